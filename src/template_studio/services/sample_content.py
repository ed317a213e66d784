from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping

from sqlalchemy import or_

from template_studio.db.models import SampleContent
from template_studio.db.store import RecordStore, as_dict

logger = logging.getLogger(__name__)


class SqlSampleContent:
    """Sample content source over the database.

    Pinned ids resolve whatever their status; the type pool holds only
    active items, oldest first.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def get(self, content_id: str) -> Dict[str, Any] | None:
        item = self.store.get_by_id("sample_content", content_id)
        return None if item is None else as_dict(item)

    def list_by_type(self, content_type: str) -> List[Dict[str, Any]]:
        rows = (
            self.store.query("sample_content")
            .filter(SampleContent.content_type == content_type, SampleContent.is_active.is_(True))
            .order_by(SampleContent.created_at.asc(), SampleContent.id.asc())
            .all()
        )
        return [as_dict(row) for row in rows]


def _json_contains(values: Any, wanted: str) -> bool:
    return isinstance(values, list) and wanted in values


def list_sample_content(
    store: RecordStore,
    filters: Mapping[str, Any] | None = None,
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    """Page through sample content for the admin console.

    Args:
        store: Record store.
        filters: Optional content_type, industry, specialization,
            experience_level, tags (any match), is_active, search.
        page: 1-based page number.
        limit: Page size.

    Returns:
        Dictionary with ``data`` and ``pagination`` keys.
    """
    filters = filters or {}
    page = max(page, 1)
    limit = max(limit, 1)

    query = store.query("sample_content")
    if filters.get("content_type"):
        query = query.filter(SampleContent.content_type == filters["content_type"])
    if filters.get("experience_level"):
        query = query.filter(SampleContent.experience_level == filters["experience_level"])
    if filters.get("is_active") is not None:
        query = query.filter(SampleContent.is_active.is_(bool(filters["is_active"])))
    if filters.get("search"):
        pattern = f"%{filters['search']}%"
        query = query.filter(
            or_(SampleContent.title.ilike(pattern), SampleContent.description.ilike(pattern))
        )
    rows = query.order_by(SampleContent.created_at.desc(), SampleContent.id.asc()).all()

    # JSON list membership is filtered in python so it works on any backend
    industry = filters.get("industry")
    specialization = filters.get("specialization")
    tags = set(filters.get("tags") or [])
    items = [
        row
        for row in rows
        if (not industry or _json_contains(row.target_industry, industry))
        and (not specialization or _json_contains(row.target_specialization, specialization))
        and (not tags or tags.intersection(row.tags or []))
    ]

    total = len(items)
    start = (page - 1) * limit
    return {
        "data": [as_dict(row) for row in items[start : start + limit]],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }


def get_sample_content(store: RecordStore, content_id: str) -> Dict[str, Any]:
    return as_dict(store.require("sample_content", content_id, "Sample content"))


def create_sample_content(
    store: RecordStore, data: Mapping[str, Any], actor: str | None = None
) -> Dict[str, Any]:
    item = store.insert("sample_content", {**data, "created_by": actor})
    store.commit()
    logger.info("Created %s sample content %s", item.content_type, item.id)
    return as_dict(item)


def update_sample_content(
    store: RecordStore, content_id: str, patch: Mapping[str, Any]
) -> Dict[str, Any]:
    item = store.update("sample_content", content_id, patch)
    store.commit()
    return as_dict(item)


def delete_sample_content(store: RecordStore, content_id: str) -> Dict[str, Any]:
    store.delete("sample_content", content_id)
    store.commit()
    logger.info("Deleted sample content %s", content_id)
    return {"success": True, "id": content_id}


def content_types(store: RecordStore) -> List[str]:
    rows = store.db.query(SampleContent.content_type).distinct().all()
    return sorted(row[0] for row in rows)


def for_template_preview(
    store: RecordStore, types: List[str] | None = None
) -> Dict[str, List[Dict[str, Any]]]:
    """Active sample content grouped by content type."""
    query = store.query("sample_content").filter(SampleContent.is_active.is_(True))
    if types:
        query = query.filter(SampleContent.content_type.in_(types))
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for row in query.order_by(SampleContent.created_at.asc(), SampleContent.id.asc()).all():
        grouped.setdefault(row.content_type, []).append(as_dict(row))
    return grouped
