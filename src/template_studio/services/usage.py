from __future__ import annotations

import logging
from typing import Any, Dict

from template_studio.db.models import Template, TemplateUsage
from template_studio.db.store import RecordStore
from template_studio.services.templates import require_public_template

logger = logging.getLogger(__name__)

ACTION_TYPES = ("preview", "select", "customize", "export", "duplicate", "rate")


def record_usage(
    store: RecordStore,
    owner_id: str,
    template: Template,
    action_type: str,
    **fields: Any,
) -> TemplateUsage:
    """Append a usage row for ``template``; flushed, not committed."""
    if action_type not in ACTION_TYPES:
        raise ValueError(f"Unknown usage action: {action_type}")
    record = {
        "user_id": owner_id,
        "template_id": template.id,
        "document_type": template.document_type,
        "template_version": template.version,
        "action_type": action_type,
    }
    record.update(fields)
    return store.insert("template_usage", record)


def rate_template(
    store: RecordStore,
    owner_id: str,
    template_id: str,
    rating: int,
    feedback: str | None = None,
) -> Dict[str, Any]:
    """Record a 1-5 rating and refresh the template's rating aggregate.

    Each user counts once: a newer rating replaces that user's earlier one
    in ``avg_rating`` and ``total_ratings``.
    """
    template = require_public_template(store, template_id)
    record_usage(store, owner_id, template, "rate", user_rating=rating, feedback=feedback)

    rows = (
        store.query("template_usage")
        .filter(TemplateUsage.template_id == template.id, TemplateUsage.user_rating.isnot(None))
        .order_by(TemplateUsage.created_at.asc(), TemplateUsage.id.asc())
        .all()
    )
    latest = {row.user_id: row.user_rating for row in rows}
    template.total_ratings = len(latest)
    template.avg_rating = round(sum(latest.values()) / len(latest), 2)
    store.commit()
    logger.info("Template %s rated %s by %s", template.id, rating, owner_id)
    return {
        "success": True,
        "template_id": template.id,
        "avg_rating": template.avg_rating,
        "total_ratings": template.total_ratings,
    }
