from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from sqlalchemy import func

from template_studio.db.models import UserTemplateCustomization, utcnow
from template_studio.db.store import RecordStore, as_dict
from template_studio.errors import NotFoundError
from template_studio.services.templates import require_public_template

logger = logging.getLogger(__name__)

# set at creation or by the system, never by an update payload
_READ_ONLY = {"id", "user_id", "template_id", "times_used", "last_used_at", "created_at"}


def owned_customization(
    store: RecordStore, owner_id: str, customization_id: str
) -> UserTemplateCustomization:
    customization = store.get_by_id("customization", customization_id)
    if customization is None or customization.user_id != owner_id:
        raise NotFoundError("Customization not found")
    return customization


def list_customizations(
    store: RecordStore,
    owner_id: str,
    template_id: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> Dict[str, Any]:
    """A user's saved customizations, most recently used first."""
    query = store.query("customization").filter(UserTemplateCustomization.user_id == owner_id)
    if template_id:
        query = query.filter(UserTemplateCustomization.template_id == template_id)
    total = query.count()
    rows = (
        query.order_by(
            func.coalesce(
                UserTemplateCustomization.last_used_at, UserTemplateCustomization.created_at
            ).desc(),
            UserTemplateCustomization.id.asc(),
        )
        .offset(max(offset, 0))
        .limit(max(limit, 1))
        .all()
    )
    return {"customizations": [as_dict(row) for row in rows], "total": total}


def get_customization(store: RecordStore, owner_id: str, customization_id: str) -> Dict[str, Any]:
    return as_dict(owned_customization(store, owner_id, customization_id))


def save_customization(
    store: RecordStore,
    owner_id: str,
    data: Mapping[str, Any],
    customization_id: str | None = None,
) -> Dict[str, Any]:
    """Create a customization, or update one the owner already has.

    Creating requires an active public template; the template's current
    version is recorded as the base the overrides were made against.

    Raises:
        NotFoundError: Template not usable, or the customization is not the owner's.
    """
    if customization_id:
        customization = owned_customization(store, owner_id, customization_id)
        changes = {k: v for k, v in data.items() if k not in _READ_ONLY}
        store.apply(customization, changes)
    else:
        template = require_public_template(store, data["template_id"])
        record = {k: v for k, v in data.items() if k not in _READ_ONLY}
        record.update(
            {
                "user_id": owner_id,
                "template_id": template.id,
                "base_template_version": template.version,
            }
        )
        customization = store.insert("customization", record)
        logger.info(
            "Saved customization %s of template %s for %s", customization.id, template.id, owner_id
        )
    store.commit()
    return as_dict(customization)


def delete_customization(
    store: RecordStore, owner_id: str, customization_id: str
) -> Dict[str, Any]:
    customization = owned_customization(store, owner_id, customization_id)
    store.db.delete(customization)
    store.commit()
    return {"success": True, "id": customization_id}


def mark_used(customization: UserTemplateCustomization) -> None:
    customization.times_used = (customization.times_used or 0) + 1
    customization.last_used_at = utcnow()
