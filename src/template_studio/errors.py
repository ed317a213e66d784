from __future__ import annotations


class TemplateStudioError(Exception):
    """Base error for template/document operations."""

    code = "error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(TemplateStudioError):
    """Referenced record does not exist or is not owned by the caller."""

    code = "not_found"
    status_code = 404


class ValidationFailure(TemplateStudioError):
    code = "validation_failure"
    status_code = 422


class InvariantViolation(TemplateStudioError):
    """An operation would leave the single-default variant invariant broken."""

    code = "invariant_violation"
    status_code = 409
