from __future__ import annotations

import copy
import logging
import time
from typing import Any, Dict, List

from template_studio.db.models import Template, TemplateVersion, utcnow
from template_studio.db.store import RecordStore, as_dict
from template_studio.errors import NotFoundError

logger = logging.getLogger(__name__)

SNAPSHOT_FIELDS = ("name", "description", "template_structure", "design_config", "tags")


def snapshot_template(template: Template) -> Dict[str, Any]:
    return {field: copy.deepcopy(getattr(template, field)) for field in SNAPSHOT_FIELDS}


def add_snapshot(
    store: RecordStore,
    template: Template,
    version_number: str,
    actor: str | None,
    version_name: str | None = None,
    change_description: str | None = None,
) -> TemplateVersion:
    return store.insert(
        "template_version",
        {
            "template_id": template.id,
            "version_number": version_number,
            "version_name": version_name,
            "change_description": change_description,
            "template_data": snapshot_template(template),
            "created_by": actor,
        },
    )


def list_versions(
    store: RecordStore, template_id: str, limit: int = 20, offset: int = 0
) -> List[Dict[str, Any]]:
    store.require("template", template_id, "Template")
    versions = (
        store.query("template_version")
        .filter(TemplateVersion.template_id == template_id)
        .order_by(TemplateVersion.created_at.desc(), TemplateVersion.id.asc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return [as_dict(v) for v in versions]


def get_version(store: RecordStore, version_id: str) -> Dict[str, Any]:
    return as_dict(store.require("template_version", version_id, "Version"))


def create_version(
    store: RecordStore,
    template_id: str,
    version_number: str,
    actor: str | None = None,
    version_name: str | None = None,
    change_description: str | None = None,
    publish: bool = False,
) -> Dict[str, Any]:
    template = store.require("template", template_id, "Template")
    version = add_snapshot(
        store, template, version_number, actor, version_name, change_description
    )
    store.commit()
    logger.info("Created version %s for template %s", version_number, template_id)
    if publish:
        return publish_version(store, version.id)
    return as_dict(version)


def publish_version(
    store: RecordStore, version_id: str, unpublish_others: bool = True
) -> Dict[str, Any]:
    version = store.require("template_version", version_id, "Version")
    if unpublish_others:
        others = (
            store.query("template_version")
            .filter(
                TemplateVersion.template_id == version.template_id,
                TemplateVersion.id != version.id,
            )
            .all()
        )
        for other in others:
            store.apply(other, {"is_published": False, "published_at": None})
    store.apply(version, {"is_published": True, "published_at": utcnow()})
    store.commit()
    return as_dict(version)


def revert_to_version(
    store: RecordStore,
    template_id: str,
    version_id: str,
    actor: str | None = None,
    create_backup: bool = True,
) -> Dict[str, Any]:
    """Restore a template's snapshot fields from one of its versions.

    Args:
        store: Record store.
        template_id: Template to restore.
        version_id: Version holding the snapshot.
        actor: Admin performing the revert.
        create_backup: Snapshot the current state first.

    Returns:
        The reverted template.
    """
    version = store.get_by_id("template_version", version_id)
    if version is None or version.template_id != template_id:
        raise NotFoundError("Version not found or does not belong to template")
    template = store.require("template", template_id, "Template")

    if create_backup:
        add_snapshot(
            store,
            template,
            f"{template.version}-backup-{int(time.time() * 1000)}",
            actor,
            change_description="Backup before reverting to older version",
        )

    data = version.template_data or {}
    patch = {field: data.get(field) for field in SNAPSHOT_FIELDS if field in data}
    patch.update({"version": version.version_number, "updated_by": actor})
    store.apply(template, patch)
    store.commit()
    logger.info("Reverted template %s to version %s", template_id, version.version_number)
    return as_dict(template)
