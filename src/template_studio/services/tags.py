from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy import or_

from template_studio.db.models import TemplateTag, TemplateTagRelation
from template_studio.db.store import RecordStore, as_dict
from template_studio.db.utils import ensure_unique_slug, slugify
from template_studio.errors import ValidationFailure

logger = logging.getLogger(__name__)


def _taken_slugs(store: RecordStore, exclude_id: str | None = None) -> List[str]:
    query = store.db.query(TemplateTag.slug, TemplateTag.id)
    return [slug for slug, tag_id in query.all() if tag_id != exclude_id]


def list_tags(store: RecordStore, filters: Mapping[str, Any] | None = None) -> List[Dict[str, Any]]:
    """Tags ordered by usage (most used first), then name."""
    filters = filters or {}
    query = store.query("tag")
    if filters.get("category"):
        query = query.filter(TemplateTag.category == filters["category"])
    if filters.get("is_system") is not None:
        query = query.filter(TemplateTag.is_system.is_(bool(filters["is_system"])))
    if filters.get("parent_tag_id"):
        query = query.filter(TemplateTag.parent_tag_id == filters["parent_tag_id"])
    if filters.get("search"):
        pattern = f"%{filters['search']}%"
        query = query.filter(or_(TemplateTag.name.ilike(pattern), TemplateTag.description.ilike(pattern)))
    rows = query.order_by(TemplateTag.usage_count.desc(), TemplateTag.name.asc()).all()
    return [as_dict(tag) for tag in rows]


def create_tag(store: RecordStore, data: Mapping[str, Any]) -> Dict[str, Any]:
    record = dict(data)
    taken = _taken_slugs(store)
    if record.get("slug"):
        if record["slug"] in taken:
            raise ValidationFailure(f"Tag slug already exists: {record['slug']}")
    else:
        record["slug"] = ensure_unique_slug(slugify(record["name"]), taken)
    tag = store.insert("tag", record)
    store.commit()
    logger.info("Created tag %s (%s)", tag.id, tag.slug)
    return as_dict(tag)


def update_tag(store: RecordStore, tag_id: str, patch: Mapping[str, Any]) -> Dict[str, Any]:
    tag = store.require("tag", tag_id, "Tag")
    changes = dict(patch)
    taken = _taken_slugs(store, exclude_id=tag_id)
    if changes.get("slug"):
        if changes["slug"] in taken:
            raise ValidationFailure(f"Tag slug already exists: {changes['slug']}")
    elif changes.get("name"):
        changes["slug"] = ensure_unique_slug(slugify(changes["name"]), taken)
    store.apply(tag, changes)
    store.commit()
    return as_dict(tag)


def delete_tag(store: RecordStore, tag_id: str) -> Dict[str, Any]:
    store.require("tag", tag_id, "Tag")
    store.query("tag_relation").filter(TemplateTagRelation.tag_id == tag_id).delete()
    store.delete("tag", tag_id)
    store.commit()
    return {"success": True, "id": tag_id}


def assign_tags(store: RecordStore, template_id: str, tag_ids: List[str]) -> Dict[str, Any]:
    """Replace a template's tag relations with ``tag_ids``.

    Newly attached tags get their usage count bumped; detached tags lose one.
    """
    store.require("template", template_id, "Template")
    wanted = list(dict.fromkeys(tag_ids))
    tags = {tag_id: store.require("tag", tag_id, "Tag") for tag_id in wanted}

    existing = (
        store.query("tag_relation").filter(TemplateTagRelation.template_id == template_id).all()
    )
    current = {rel.tag_id for rel in existing}
    for rel in existing:
        if rel.tag_id not in tags:
            detached = store.get_by_id("tag", rel.tag_id)
            if detached is not None:
                detached.usage_count = max((detached.usage_count or 0) - 1, 0)
            store.db.delete(rel)

    for tag_id, tag in tags.items():
        if tag_id in current:
            continue
        store.insert("tag_relation", {"template_id": template_id, "tag_id": tag_id})
        tag.usage_count = (tag.usage_count or 0) + 1
    store.commit()
    return {"success": True, "template_id": template_id, "tag_ids": wanted}


def template_tags(store: RecordStore, template_id: str) -> List[Dict[str, Any]]:
    rows = (
        store.query("tag")
        .join(TemplateTagRelation, TemplateTagRelation.tag_id == TemplateTag.id)
        .filter(TemplateTagRelation.template_id == template_id)
        .order_by(TemplateTag.name.asc())
        .all()
    )
    return [as_dict(tag) for tag in rows]
