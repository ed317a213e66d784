from __future__ import annotations

import copy
import logging
import time
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError
from sqlalchemy import or_

from template_studio.core.merge import deep_merge
from template_studio.core.variants import generate_variant_id
from template_studio.db.models import (
    Template,
    TemplateCollectionItem,
    TemplateTagRelation,
    TemplateUsage,
    UserTemplateCustomization,
)
from template_studio.db.store import RecordStore, as_dict
from template_studio.errors import NotFoundError, TemplateStudioError, ValidationFailure
from template_studio.schemas import TemplateStructure
from template_studio.services.versions import add_snapshot

logger = logging.getLogger(__name__)

# columns never carried over to a duplicate
_DUPLICATE_SKIP = {
    "id",
    "created_at",
    "updated_at",
    "usage_count",
    "avg_rating",
    "total_ratings",
    "review_notes",
}


def validate_structure(structure: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Validate a template structure and return its normalized form.

    Raises:
        ValidationFailure: On a malformed section or a repeated section id.
    """
    try:
        parsed = TemplateStructure.model_validate(structure or {})
    except ValidationError as exc:
        raise ValidationFailure(f"Invalid template structure: {exc.errors()[0]['msg']}") from exc
    ids = [section.id for section in parsed.sections]
    duplicates = sorted({sid for sid in ids if ids.count(sid) > 1})
    if duplicates:
        raise ValidationFailure(f"Duplicate section ids: {', '.join(duplicates)}")
    return parsed.model_dump(exclude_none=True)


def section_ids(template: Template) -> List[str]:
    structure = template.template_structure or {}
    return [s.get("id") for s in structure.get("sections") or [] if s.get("id")]


def list_templates(store: RecordStore, filters: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    """List templates for the admin console, most recently updated first.

    Args:
        store: Record store.
        filters: Optional document_type, category, is_active, is_draft,
            review_status, is_featured, search, limit, offset.

    Returns:
        Dictionary with the page of templates and the unpaged total.
    """
    filters = dict(filters or {})
    limit = int(filters.pop("limit", None) or 20)
    offset = int(filters.pop("offset", None) or 0)
    search = filters.pop("search", None)

    query = store.query("template")
    for key in ("document_type", "category", "is_active", "is_draft", "review_status", "is_featured"):
        value = filters.get(key)
        if value is not None:
            query = query.filter(getattr(Template, key) == value)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Template.name.ilike(pattern), Template.description.ilike(pattern)))

    total = query.count()
    rows = (
        query.order_by(Template.updated_at.desc(), Template.id.asc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return {
        "templates": [as_dict(t) for t in rows],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


def get_template(store: RecordStore, template_id: str) -> Dict[str, Any]:
    return as_dict(store.require("template", template_id, "Template"))


def require_public_template(store: RecordStore, template_id: str) -> Template:
    """Load a template end users may use; anything else reads as missing."""
    template = store.get_by_id("template", template_id)
    if template is None or not template.is_active or not template.is_public:
        raise NotFoundError("Template not found or not accessible")
    return template


def create_template(
    store: RecordStore, data: Mapping[str, Any], actor: str | None = None
) -> Dict[str, Any]:
    record = dict(data)
    record["template_structure"] = validate_structure(record.get("template_structure"))
    record["template_variants"] = []
    record.update({"created_by": actor, "updated_by": actor})
    template = store.insert("template", record)
    store.commit()
    logger.info("Created template %s (%s)", template.id, template.name)
    return as_dict(template)


def update_template(
    store: RecordStore, template_id: str, patch: Mapping[str, Any], actor: str | None = None
) -> Dict[str, Any]:
    template = store.require("template", template_id, "Template")
    changes = dict(patch)
    if "template_structure" in changes:
        changes["template_structure"] = validate_structure(changes["template_structure"])
    # variants are only edited through the variant endpoints
    changes.pop("template_variants", None)
    changes["updated_by"] = actor
    store.apply(template, changes)
    store.commit()
    return as_dict(template)


def _remove_template(store: RecordStore, template: Template) -> None:
    store.query("tag_relation").filter(TemplateTagRelation.template_id == template.id).delete()
    store.query("collection_item").filter(
        TemplateCollectionItem.template_id == template.id
    ).delete()
    store.query("customization").filter(
        UserTemplateCustomization.template_id == template.id
    ).delete()
    store.query("template_usage").filter(TemplateUsage.template_id == template.id).delete()
    # version history goes with the template (delete-orphan cascade)
    store.db.delete(template)
    store.db.flush()


def delete_template(
    store: RecordStore, template_id: str, hard_delete: bool = False
) -> Dict[str, Any]:
    template = store.require("template", template_id, "Template")
    if hard_delete:
        _remove_template(store, template)
    else:
        store.apply(template, {"is_active": False})
    store.commit()
    logger.info("Deleted template %s (hard=%s)", template_id, hard_delete)
    return {"success": True, "id": template_id, "hard_delete": hard_delete}


def duplicate_template(
    store: RecordStore,
    template_id: str,
    name: str,
    description: str | None = None,
    category: str | None = None,
    tags: List[str] | None = None,
    link_to_parent: bool = True,
    design_config_overrides: Mapping[str, Any] | None = None,
    actor: str | None = None,
) -> Dict[str, Any]:
    """Copy a template into a new pending draft.

    Variants are copied with fresh ids; ``design_config_overrides`` is merged
    over the source design config.
    """
    source = store.require("template", template_id, "Template")
    record = {k: v for k, v in as_dict(source).items() if k not in _DUPLICATE_SKIP}

    variants = copy.deepcopy(source.template_variants or [])
    for variant in variants:
        variant["id"] = generate_variant_id()

    record.update(
        {
            "name": name,
            "description": description or source.description,
            "category": category or source.category,
            "tags": tags if tags is not None else list(source.tags or []),
            "parent_template_id": source.id if link_to_parent else None,
            "design_config": deep_merge(source.design_config, design_config_overrides),
            "template_variants": variants,
            "version": "1.0.0",
            "is_draft": True,
            "is_featured": False,
            "featured_order": None,
            "review_status": "pending",
            "created_by": actor,
            "updated_by": actor,
        }
    )
    template = store.insert("template", record)
    store.commit()
    logger.info("Duplicated template %s into %s", template_id, template.id)
    return as_dict(template)


def bulk_update_templates(
    store: RecordStore,
    template_ids: List[str],
    patch: Mapping[str, Any],
    create_versions: bool = False,
    actor: str | None = None,
) -> Dict[str, Any]:
    changes = dict(patch)
    changes.pop("template_variants", None)
    if "template_structure" in changes:
        changes["template_structure"] = validate_structure(changes["template_structure"])
    changes["updated_by"] = actor

    success = 0
    errors: List[Dict[str, str]] = []
    for template_id in template_ids:
        try:
            template = store.require("template", template_id, "Template")
            if create_versions:
                add_snapshot(
                    store,
                    template,
                    f"{template.version}-bulk-{int(time.time() * 1000)}",
                    actor,
                    change_description="Snapshot before bulk update",
                )
            store.apply(template, changes)
            success += 1
        except TemplateStudioError as exc:
            logger.warning("Bulk update skipped template %s: %s", template_id, exc.message)
            errors.append({"id": template_id, "error": exc.message})
    store.commit()
    return {"success_count": success, "errors": errors}


def bulk_delete_templates(
    store: RecordStore, template_ids: List[str], hard_delete: bool = False
) -> Dict[str, Any]:
    success = 0
    errors: List[Dict[str, str]] = []
    for template_id in template_ids:
        try:
            template = store.require("template", template_id, "Template")
            if hard_delete:
                _remove_template(store, template)
            else:
                store.apply(template, {"is_active": False})
            success += 1
        except TemplateStudioError as exc:
            logger.warning("Bulk delete skipped template %s: %s", template_id, exc.message)
            errors.append({"id": template_id, "error": exc.message})
    store.commit()
    return {"success_count": success, "errors": errors}


def bulk_change_status(
    store: RecordStore,
    template_ids: List[str],
    status: str,
    notes: str | None = None,
    actor: str | None = None,
) -> Dict[str, Any]:
    success = 0
    errors: List[Dict[str, str]] = []
    for template_id in template_ids:
        try:
            template = store.require("template", template_id, "Template")
            store.apply(
                template,
                {"review_status": status, "review_notes": notes, "updated_by": actor},
            )
            success += 1
        except TemplateStudioError as exc:
            errors.append({"id": template_id, "error": exc.message})
    store.commit()
    return {"success_count": success, "errors": errors}


def link_sample_content(
    store: RecordStore, template_id: str, section_id: str, content_id: str
) -> Dict[str, List[str]]:
    """Pin a sample content item to a template section.

    Returns:
        The updated section to content-id map.
    """
    template = store.require("template", template_id, "Template")
    if section_id not in section_ids(template):
        raise ValidationFailure(f"Section not found in template structure: {section_id}")
    store.require("sample_content", content_id, "Sample content")

    mapping = copy.deepcopy(template.specific_sample_content_map or {})
    linked = mapping.setdefault(section_id, [])
    if content_id not in linked:
        linked.append(content_id)
    store.apply(template, {"specific_sample_content_map": mapping})
    store.commit()
    return mapping


def unlink_sample_content(
    store: RecordStore, template_id: str, section_id: str, content_id: str
) -> Dict[str, List[str]]:
    template = store.require("template", template_id, "Template")
    mapping = copy.deepcopy(template.specific_sample_content_map or {})
    if section_id not in section_ids(template) and section_id not in mapping:
        raise ValidationFailure(f"Section not found in template structure: {section_id}")
    linked = [cid for cid in mapping.get(section_id, []) if cid != content_id]
    if linked:
        mapping[section_id] = linked
    else:
        mapping.pop(section_id, None)
    store.apply(template, {"specific_sample_content_map": mapping})
    store.commit()
    return mapping
