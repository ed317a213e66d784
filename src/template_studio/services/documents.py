from __future__ import annotations

import copy
import logging
from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List, Mapping

from template_studio.core.merge import deep_merge
from template_studio.core.sample_content import (
    SampleContentSource,
    Targeting,
    candidate_pool,
    mapped_ids,
    ordered_sections,
    resolve_sections,
)
from template_studio.core.variants import VariantStore
from template_studio.db.models import Template, utcnow
from template_studio.db.store import DOCUMENT_KINDS, RecordStore, as_dict, model_for
from template_studio.errors import NotFoundError, TemplateStudioError, ValidationFailure
from template_studio.services.customizations import mark_used, owned_customization
from template_studio.services.sample_content import SqlSampleContent
from template_studio.services.templates import require_public_template
from template_studio.services.usage import record_usage

logger = logging.getLogger(__name__)

KIND_LABELS = {"resume": "Resume", "cv": "CV", "cover_letter": "Cover letter"}

# never copied onto a duplicate
_DUPLICATE_SKIP = {"id", "created_at", "updated_at", "date_submitted"}

PLACEHOLDER_PERSONAL_INFO = {
    "first_name": "Your",
    "last_name": "Name",
    "email": "your.email@example.com",
}


def targeting_for(
    template: Mapping[str, Any],
    industry: str | None = None,
    specialization: str | None = None,
    use_targeting: bool = False,
) -> Targeting | None:
    """Targeting for the generic pool, or None to take it unfiltered."""
    if industry or specialization or use_targeting:
        return Targeting.for_template(template, industry, specialization)
    return None


class DocumentService:
    """Owner-scoped CRUD for one document kind."""

    filter_fields = ("is_default", "template_id", "is_from_template")

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.model = model_for(kind)
        self.label = KIND_LABELS[kind]

    # -----------------------------
    # Helpers
    # -----------------------------
    def _owned(self, store: RecordStore, owner_id: str, document_id: str):
        document = store.get_by_id(self.kind, document_id)
        # another owner's document is reported exactly like a missing one
        if document is None or document.user_id != owner_id:
            raise NotFoundError(f"{self.label} not found")
        return document

    def _check_template_refs(self, store: RecordStore, fields: Mapping[str, Any]) -> None:
        template_id = fields.get("template_id")
        variant_id = fields.get("template_variant_id")
        if variant_id and not template_id:
            raise ValidationFailure("template_variant_id requires template_id")
        if not template_id:
            return
        template = store.require("template", template_id, "Template")
        if variant_id:
            VariantStore(template.template_variants).get(variant_id)

    def _clear_defaults(self, store: RecordStore, owner_id: str, keep: str | None = None) -> None:
        for document in store.list_by_owner(self.kind, owner_id, {"is_default": True}):
            if document.id != keep:
                document.is_default = False

    # -----------------------------
    # Operations
    # -----------------------------
    def list(
        self, store: RecordStore, owner_id: str, filters: Mapping[str, Any] | None = None
    ) -> List[Dict[str, Any]]:
        wanted = {k: v for k, v in (filters or {}).items() if k in self.filter_fields}
        return [as_dict(doc) for doc in store.list_by_owner(self.kind, owner_id, wanted)]

    def get(self, store: RecordStore, owner_id: str, document_id: str) -> Dict[str, Any]:
        return as_dict(self._owned(store, owner_id, document_id))

    def create(
        self, store: RecordStore, owner_id: str, data: Mapping[str, Any]
    ) -> Dict[str, Any]:
        record = dict(data)
        self._check_template_refs(store, record)
        record.update(
            {
                "user_id": owner_id,
                "is_from_template": bool(record.get("template_id")),
                "version": 1,
            }
        )
        if record.get("is_default"):
            self._clear_defaults(store, owner_id)
        document = store.insert(self.kind, record)
        if document.template_id:
            template = store.get_by_id("template", document.template_id)
            template.usage_count = (template.usage_count or 0) + 1
        store.commit()
        logger.info("Created %s %s for %s", self.kind, document.id, owner_id)
        return as_dict(document)

    def update(
        self, store: RecordStore, owner_id: str, document_id: str, patch: Mapping[str, Any]
    ) -> Dict[str, Any]:
        document = self._owned(store, owner_id, document_id)
        changes = {k: v for k, v in patch.items() if k not in ("user_id", "version", "is_default")}
        if "template_id" in changes or "template_variant_id" in changes:
            refs = {
                "template_id": changes.get("template_id", document.template_id),
                "template_variant_id": changes.get(
                    "template_variant_id", document.template_variant_id
                ),
            }
            self._check_template_refs(store, refs)
            changes["is_from_template"] = bool(refs["template_id"])
        changes["version"] = (document.version or 0) + 1
        store.apply(document, changes)
        store.commit()
        return as_dict(document)

    def duplicate(
        self,
        store: RecordStore,
        owner_id: str,
        document_id: str,
        title: str | None = None,
        preserve_personal_info: bool = True,
        preserve_design_config: bool = True,
    ) -> Dict[str, Any]:
        source = self._owned(store, owner_id, document_id)
        record = {k: v for k, v in as_dict(source).items() if k not in _DUPLICATE_SKIP}
        record.update(
            {
                "title": title or f"{source.title} (Copy)",
                "is_default": False,
                "is_public": False,
                "version": 1,
            }
        )
        if not preserve_personal_info:
            record["personal_info"] = {}
        if not preserve_design_config:
            record["design_config"] = {}
        document = store.insert(self.kind, record)
        store.commit()
        return as_dict(document)

    def delete(self, store: RecordStore, owner_id: str, document_id: str) -> Dict[str, Any]:
        document = self._owned(store, owner_id, document_id)
        store.db.delete(document)
        store.commit()
        logger.info("Deleted %s %s for %s", self.kind, document_id, owner_id)
        return {"success": True, "id": document_id}

    def set_default(self, store: RecordStore, owner_id: str, document_id: str) -> Dict[str, Any]:
        document = self._owned(store, owner_id, document_id)
        self._clear_defaults(store, owner_id, keep=document.id)
        document.is_default = True
        store.commit()
        return as_dict(document)

    def initialize_from_template(
        self,
        store: RecordStore,
        owner_id: str,
        template_id: str,
        title: str | None = None,
        variant_id: str | None = None,
        target_industry: str | None = None,
        target_specialization: str | None = None,
        customization_id: str | None = None,
        source: SampleContentSource | None = None,
        use_targeting: bool = False,
    ) -> Dict[str, Any]:
        """Create a document pre-filled with the template's sample content.

        Each section's resolved sample content lands in ``content`` under the
        section type; a ``personal_info`` section seeds the personal info.
        A caller industry or specialization narrows the generic pool in place
        of the template's own facets. The design config is the template's,
        then the variant's overrides, then the owner's customization.

        Raises:
            NotFoundError: Template missing, inactive or private, or the
                customization is not the owner's.
            ValidationFailure: Template is for another document kind, or the
                customization was made for another template.
        """
        template = require_public_template(store, template_id)
        if template.document_type != self.kind:
            raise ValidationFailure("Document type mismatch with template")

        variants = VariantStore(template.template_variants)
        if variant_id:
            variant = variants.get(variant_id)
        else:
            variant = variants.list_resolved(template.design_config).default_variant

        customization = None
        if customization_id:
            customization = owned_customization(store, owner_id, customization_id)
            if customization.template_id != template.id:
                raise ValidationFailure("Customization belongs to another template")

        record = as_dict(template)
        targeting = targeting_for(record, target_industry, target_specialization, use_targeting)
        content: Dict[str, Any] = {}
        personal_info = dict(PLACEHOLDER_PERSONAL_INFO)
        resolutions = resolve_sections(
            record, source or SqlSampleContent(store), targeting=targeting
        )
        for resolution in resolutions:
            if resolution.item is None:
                continue
            section_type = resolution.section.get("type")
            payload = copy.deepcopy(resolution.item.get("content"))
            if section_type == "personal_info" and isinstance(payload, dict):
                personal_info = payload
            else:
                content.setdefault(section_type, payload)

        design_config = deep_merge(template.design_config, (variant or {}).get("design_overrides"))
        if customization is not None:
            design_config = deep_merge(design_config, customization.design_overrides)
            mark_used(customization)

        data = {
            "title": title or f"{template.name} - {date.today().isoformat()}",
            "template_id": template.id,
            "template_variant_id": variant["id"] if variant else None,
            "target_industry": target_industry,
            "target_specialization": target_specialization,
            "experience_level": template.target_experience_level,
            "personal_info": personal_info,
            "content": content,
            "design_config": design_config,
        }
        document = self.create(store, owner_id, data)
        record_usage(
            store,
            owner_id,
            template,
            "select",
            document_id=document["id"],
            customization_id=customization_id,
        )
        store.commit()
        return document


class CoverLetterService(DocumentService):
    filter_fields = DocumentService.filter_fields + ("application_status", "target_company")

    def update_status(
        self,
        store: RecordStore,
        owner_id: str,
        document_id: str,
        status: str,
        notes: str | None = None,
    ) -> Dict[str, Any]:
        document = self._owned(store, owner_id, document_id)
        changes: Dict[str, Any] = {"application_status": status}
        if notes is not None:
            changes["status_notes"] = notes
        if status == "sent":
            changes["date_submitted"] = utcnow()
        store.apply(document, changes)
        store.commit()
        logger.info("Cover letter %s moved to %s", document_id, status)
        return as_dict(document)


SERVICES: Dict[str, DocumentService] = {
    "resume": DocumentService("resume"),
    "cv": DocumentService("cv"),
    "cover_letter": CoverLetterService("cover_letter"),
}


def service_for(kind: str) -> DocumentService:
    try:
        return SERVICES[kind]
    except KeyError:
        raise ValidationFailure(f"Unknown document type: {kind}") from None


def bulk_delete(
    store: RecordStore, owner_id: str, kind: str, document_ids: List[str]
) -> Dict[str, Any]:
    """Delete several documents of one kind, skipping ones that fail.

    Returns:
        Dictionary with ``success_count``, ``deleted_ids`` and per-item ``errors``.
    """
    service = service_for(kind)
    deleted: List[str] = []
    errors: List[Dict[str, str]] = []
    for document_id in document_ids:
        try:
            store.db.delete(service._owned(store, owner_id, document_id))
            store.db.flush()
            deleted.append(document_id)
        except TemplateStudioError as exc:
            logger.warning("Bulk delete skipped %s %s: %s", kind, document_id, exc.message)
            errors.append({"id": document_id, "error": exc.message})
    store.commit()
    return {"success_count": len(deleted), "deleted_ids": deleted, "errors": errors}


def summary(store: RecordStore, owner_id: str) -> Dict[str, int]:
    counts = {
        kind: store.query(kind).filter(model_for(kind).user_id == owner_id).count()
        for kind in DOCUMENT_KINDS
    }
    return {
        "total_documents": sum(counts.values()),
        "resumes": counts["resume"],
        "cvs": counts["cv"],
        "cover_letters": counts["cover_letter"],
    }


def list_public_templates(
    store: RecordStore, filters: Mapping[str, Any] | None = None
) -> List[Dict[str, Any]]:
    """Catalog of templates end users may pick from.

    Only active, public, non-draft templates are listed, featured ones first.
    """
    filters = filters or {}
    query = store.query("template").filter(
        Template.is_active.is_(True), Template.is_public.is_(True), Template.is_draft.is_(False)
    )
    if filters.get("document_type"):
        query = query.filter(Template.document_type == filters["document_type"])
    if filters.get("category"):
        query = query.filter(Template.category == filters["category"])
    rows = query.order_by(
        Template.is_featured.desc(), Template.usage_count.desc(), Template.name.asc()
    ).all()

    industry = filters.get("industry")
    specialization = filters.get("specialization")
    return [
        as_dict(t)
        for t in rows
        if (not industry or industry in (t.target_industries or []))
        and (not specialization or specialization in (t.target_specialization or []))
    ]


def public_template_variants(store: RecordStore, template_id: str) -> Dict[str, Any]:
    template = require_public_template(store, template_id)
    if template.is_draft:
        raise NotFoundError("Template not found or not accessible")
    resolved = VariantStore(template.template_variants).list_resolved(template.design_config)
    return {
        "template": {"id": template.id, "name": template.name},
        "variants": resolved.variants,
        "default_variant": resolved.default_variant,
        "total": resolved.total,
    }


def preview_sample_content(
    store: RecordStore,
    template_id: str,
    target_industry: str | None = None,
    target_specialization: str | None = None,
    use_targeting: bool = False,
    source: SampleContentSource | None = None,
    sample_limit: int = 2,
) -> Dict[str, Any]:
    """Show, per section, what initializing a document would draw from.

    Pinned items are reported as ``specific``; otherwise the (targeted)
    generic pool is reported as ``generic``. Each entry carries the number of
    available samples and the first ``sample_limit`` of them.
    """
    template = as_dict(require_public_template(store, template_id))
    source = source or SqlSampleContent(store)
    targeting = targeting_for(template, target_industry, target_specialization, use_targeting)

    sections = []
    for section in ordered_sections(template):
        pinned = [source.get(cid) for cid in mapped_ids(template, section.get("id") or "")]
        samples = [item for item in pinned if item is not None]
        origin = "specific" if samples else None
        if not samples:
            samples = candidate_pool(section, source, targeting)
            origin = "generic" if samples else None
        sections.append(
            {
                "section": section,
                "source": origin,
                "available_samples": len(samples),
                "samples": samples[:sample_limit],
            }
        )
    return {
        "template": {
            "id": template["id"],
            "name": template["name"],
            "document_type": template["document_type"],
        },
        "targeting": asdict(targeting) if targeting else None,
        "sections": sections,
    }
