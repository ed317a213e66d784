from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query

from template_studio.api.deps import current_user_id, get_store
from template_studio.db.store import RecordStore
from template_studio.schemas import (
    CoverLetterCreate,
    CoverLetterStatus,
    CoverLetterUpdate,
    CustomizationCreate,
    CustomizationUpdate,
    DocumentBulkDelete,
    DocumentCreate,
    DocumentDuplicate,
    DocumentUpdate,
    TemplateRating,
    patch_of,
)
from template_studio.services import customizations as customization_service
from template_studio.services import documents as document_service
from template_studio.services import usage as usage_service
from template_studio.settings import get_settings

router = APIRouter(tags=["documents"])

# URL segment -> document kind
_KIND_PATHS = {"resumes": "resume", "cvs": "cv", "cover-letters": "cover_letter"}
_KIND_PATTERN = "^(resumes|cvs)$"


# -----------------------------
# Cross-kind
# -----------------------------
@router.get("/documents/summary")
def documents_summary(
    owner: str = Depends(current_user_id), store: RecordStore = Depends(get_store)
):
    return document_service.summary(store, owner)


@router.post("/documents/bulk-delete")
def bulk_delete_documents(
    payload: DocumentBulkDelete,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    """Delete several of the caller's documents of one kind.

    Args:
        payload: Document kind and ids.
        owner: Calling user.
        store: Record store.
    """
    return document_service.bulk_delete(store, owner, payload.document_type, payload.ids)


# -----------------------------
# Public template catalog
# -----------------------------
@router.get("/templates")
def list_public_templates(
    document_type: str | None = None,
    category: str | None = None,
    industry: str | None = None,
    specialization: str | None = None,
    store: RecordStore = Depends(get_store),
):
    filters = {
        "document_type": document_type,
        "category": category,
        "industry": industry,
        "specialization": specialization,
    }
    return {"templates": document_service.list_public_templates(store, filters)}


@router.get("/templates/{template_id}/variants")
def public_template_variants(template_id: str, store: RecordStore = Depends(get_store)):
    return document_service.public_template_variants(store, template_id)


@router.get("/templates/{template_id}/sample-content-preview")
def preview_sample_content(
    template_id: str,
    target_industry: str | None = None,
    target_specialization: str | None = None,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    """Preview the sample content a new document would start from.

    Args:
        template_id: Template to inspect.
        target_industry: Industry to narrow generic samples by.
        target_specialization: Specialization to narrow generic samples by.
        owner: Calling user.
        store: Record store.
    """
    return document_service.preview_sample_content(
        store,
        template_id,
        target_industry=target_industry,
        target_specialization=target_specialization,
        use_targeting=get_settings().sample_content_targeting,
    )


@router.post("/templates/{template_id}/rating")
def rate_template(
    template_id: str,
    payload: TemplateRating,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return usage_service.rate_template(
        store, owner, template_id, payload.rating, payload.feedback
    )


# -----------------------------
# Template customizations
# -----------------------------
@router.get("/template-customizations")
def list_customizations(
    template_id: str | None = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return customization_service.list_customizations(store, owner, template_id, limit, offset)


@router.post("/template-customizations")
def create_customization(
    payload: CustomizationCreate,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return customization_service.save_customization(store, owner, payload.model_dump(mode="json"))


@router.get("/template-customizations/{customization_id}")
def get_customization(
    customization_id: str,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return customization_service.get_customization(store, owner, customization_id)


@router.put("/template-customizations/{customization_id}")
def update_customization(
    customization_id: str,
    payload: CustomizationUpdate,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return customization_service.save_customization(
        store, owner, patch_of(payload), customization_id
    )


@router.delete("/template-customizations/{customization_id}")
def delete_customization(
    customization_id: str,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return customization_service.delete_customization(store, owner, customization_id)


# -----------------------------
# Cover letters
# -----------------------------
_cover_letters = document_service.SERVICES["cover_letter"]


@router.get("/cover-letters")
def list_cover_letters(
    application_status: str | None = None,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return _cover_letters.list(store, owner, {"application_status": application_status})


@router.post("/cover-letters")
def create_cover_letter(
    payload: CoverLetterCreate,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return _cover_letters.create(store, owner, payload.model_dump(mode="json"))


@router.get("/cover-letters/{document_id}")
def get_cover_letter(
    document_id: str,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return _cover_letters.get(store, owner, document_id)


@router.put("/cover-letters/{document_id}")
def update_cover_letter(
    document_id: str,
    payload: CoverLetterUpdate,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return _cover_letters.update(store, owner, document_id, patch_of(payload))


@router.put("/cover-letters/{document_id}/status")
def update_cover_letter_status(
    document_id: str,
    payload: CoverLetterStatus,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    """Track the application status; moving to ``sent`` stamps the submission date."""
    return _cover_letters.update_status(store, owner, document_id, payload.status, payload.notes)


# -----------------------------
# Resumes & CVs
# -----------------------------
def _service(kind_path: str) -> document_service.DocumentService:
    return document_service.service_for(_KIND_PATHS[kind_path])


@router.get("/{kind_path}")
def list_documents(
    kind_path: str = Path(pattern=_KIND_PATTERN),
    is_default: bool | None = None,
    template_id: str | None = None,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    filters = {"is_default": is_default, "template_id": template_id}
    return _service(kind_path).list(store, owner, filters)


@router.post("/{kind_path}")
def create_document(
    payload: DocumentCreate,
    kind_path: str = Path(pattern=_KIND_PATTERN),
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    """Create a document owned by the caller.

    Args:
        payload: Request payload.
        kind_path: ``resumes`` or ``cvs``.
        owner: Calling user.
        store: Record store.
    """
    return _service(kind_path).create(store, owner, payload.model_dump(mode="json"))


@router.get("/{kind_path}/{document_id}")
def get_document(
    document_id: str,
    kind_path: str = Path(pattern=_KIND_PATTERN),
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return _service(kind_path).get(store, owner, document_id)


@router.put("/{kind_path}/{document_id}")
def update_document(
    document_id: str,
    payload: DocumentUpdate,
    kind_path: str = Path(pattern=_KIND_PATTERN),
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return _service(kind_path).update(store, owner, document_id, patch_of(payload))


# -----------------------------
# Shared per-kind actions
# -----------------------------
_ANY_KIND_PATTERN = "^(resumes|cvs|cover-letters)$"


@router.post("/{kind_path}/from-template/{template_id}")
def initialize_from_template(
    template_id: str,
    kind_path: str = Path(pattern=_ANY_KIND_PATTERN),
    title: str | None = None,
    variant_id: str | None = None,
    target_industry: str | None = None,
    target_specialization: str | None = None,
    customization_id: str | None = None,
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    """Create a document pre-filled with a template's sample content.

    Caller industry and specialization narrow the generic samples; a saved
    customization is layered over the variant's design.
    """
    return _service(kind_path).initialize_from_template(
        store,
        owner,
        template_id,
        title=title,
        variant_id=variant_id,
        target_industry=target_industry,
        target_specialization=target_specialization,
        customization_id=customization_id,
        use_targeting=get_settings().sample_content_targeting,
    )


@router.post("/{kind_path}/{document_id}/duplicate")
def duplicate_document(
    document_id: str,
    payload: DocumentDuplicate,
    kind_path: str = Path(pattern=_ANY_KIND_PATTERN),
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return _service(kind_path).duplicate(
        store,
        owner,
        document_id,
        title=payload.title,
        preserve_personal_info=payload.preserve_personal_info,
        preserve_design_config=payload.preserve_design_config,
    )


@router.post("/{kind_path}/{document_id}/default")
def set_default_document(
    document_id: str,
    kind_path: str = Path(pattern=_ANY_KIND_PATTERN),
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return _service(kind_path).set_default(store, owner, document_id)


@router.delete("/{kind_path}/{document_id}")
def delete_document(
    document_id: str,
    kind_path: str = Path(pattern=_ANY_KIND_PATTERN),
    owner: str = Depends(current_user_id),
    store: RecordStore = Depends(get_store),
):
    return _service(kind_path).delete(store, owner, document_id)
