from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy import func

from template_studio.db.models import TemplateCollection, TemplateCollectionItem, utcnow
from template_studio.db.store import RecordStore, as_dict
from template_studio.db.utils import ensure_unique_slug, slugify
from template_studio.errors import ValidationFailure

logger = logging.getLogger(__name__)


def _taken_slugs(store: RecordStore, exclude_id: str | None = None) -> List[str]:
    rows = store.db.query(TemplateCollection.slug, TemplateCollection.id).all()
    return [slug for slug, cid in rows if cid != exclude_id]


def _template_counts(store: RecordStore) -> Dict[str, int]:
    rows = (
        store.db.query(TemplateCollectionItem.collection_id, func.count(TemplateCollectionItem.id))
        .group_by(TemplateCollectionItem.collection_id)
        .all()
    )
    return {cid: count for cid, count in rows}


def _collection_to_dict(collection: TemplateCollection, count: int) -> Dict[str, Any]:
    data = as_dict(collection)
    data["is_curated"] = collection.curated_at is not None
    data["template_count"] = count
    return data


def _curation_stamp(is_curated: bool | None, actor: str | None) -> Dict[str, Any]:
    if is_curated is None:
        return {}
    if is_curated:
        return {"curated_by": actor, "curated_at": utcnow()}
    return {"curated_by": None, "curated_at": None}


def list_collections(store: RecordStore) -> List[Dict[str, Any]]:
    counts = _template_counts(store)
    rows = (
        store.query("collection")
        .order_by(TemplateCollection.order.asc(), TemplateCollection.name.asc())
        .all()
    )
    return [_collection_to_dict(c, counts.get(c.id, 0)) for c in rows]


def get_collection(store: RecordStore, collection_id: str) -> Dict[str, Any]:
    collection = store.require("collection", collection_id, "Collection")
    data = _collection_to_dict(collection, len(collection.items))
    data["template_ids"] = [item.template_id for item in collection.items]
    return data


def create_collection(
    store: RecordStore, data: Mapping[str, Any], actor: str | None = None
) -> Dict[str, Any]:
    record = dict(data)
    is_curated = record.pop("is_curated", False)
    taken = _taken_slugs(store)
    if record.get("slug"):
        if record["slug"] in taken:
            raise ValidationFailure(f"Collection slug already exists: {record['slug']}")
    else:
        record["slug"] = ensure_unique_slug(slugify(record["name"]), taken)
    record.update(_curation_stamp(is_curated, actor))
    collection = store.insert("collection", record)
    store.commit()
    logger.info("Created collection %s (%s)", collection.id, collection.slug)
    return _collection_to_dict(collection, 0)


def update_collection(
    store: RecordStore, collection_id: str, patch: Mapping[str, Any], actor: str | None = None
) -> Dict[str, Any]:
    collection = store.require("collection", collection_id, "Collection")
    changes = dict(patch)
    is_curated = changes.pop("is_curated", None)
    taken = _taken_slugs(store, exclude_id=collection_id)
    if changes.get("slug"):
        if changes["slug"] in taken:
            raise ValidationFailure(f"Collection slug already exists: {changes['slug']}")
    elif changes.get("name"):
        changes["slug"] = ensure_unique_slug(slugify(changes["name"]), taken)
    changes.update(_curation_stamp(is_curated, actor))
    store.apply(collection, changes)
    store.commit()
    return _collection_to_dict(collection, len(collection.items))


def delete_collection(
    store: RecordStore, collection_id: str, move_templates_to: str | None = None
) -> Dict[str, Any]:
    """Delete a collection, optionally moving its templates to another one.

    Templates already present in the target collection are not duplicated.
    """
    collection = store.require("collection", collection_id, "Collection")
    moved = 0
    if move_templates_to:
        if move_templates_to == collection_id:
            raise ValidationFailure("Cannot move templates into the collection being deleted")
        target = store.require("collection", move_templates_to, "Target collection")
        present = {item.template_id for item in target.items}
        start = max((item.order for item in target.items), default=-1) + 1
        for item in list(collection.items):
            if item.template_id in present:
                continue
            store.insert(
                "collection_item",
                {
                    "collection_id": target.id,
                    "template_id": item.template_id,
                    "order": start + moved,
                },
            )
            moved += 1
    store.db.delete(collection)
    store.commit()
    store.db.expire_all()
    logger.info("Deleted collection %s (moved %s templates)", collection_id, moved)
    return {"success": True, "id": collection_id, "moved": moved}


def add_templates(
    store: RecordStore, collection_id: str, template_ids: List[str], start_order: int = 0
) -> Dict[str, Any]:
    """Add templates in the given order; re-adding a template replaces its entry."""
    store.require("collection", collection_id, "Collection")
    wanted = list(dict.fromkeys(template_ids))
    for template_id in wanted:
        store.require("template", template_id, "Template")

    store.query("collection_item").filter(
        TemplateCollectionItem.collection_id == collection_id,
        TemplateCollectionItem.template_id.in_(wanted),
    ).delete(synchronize_session=False)
    store.db.flush()
    for index, template_id in enumerate(wanted):
        store.insert(
            "collection_item",
            {"collection_id": collection_id, "template_id": template_id, "order": start_order + index},
        )
    store.commit()
    store.db.expire_all()
    return {"success": True, "added": len(wanted)}


def remove_templates(
    store: RecordStore, collection_id: str, template_ids: List[str]
) -> Dict[str, Any]:
    store.require("collection", collection_id, "Collection")
    removed = (
        store.query("collection_item")
        .filter(
            TemplateCollectionItem.collection_id == collection_id,
            TemplateCollectionItem.template_id.in_(template_ids),
        )
        .delete(synchronize_session=False)
    )
    store.commit()
    store.db.expire_all()
    return {"success": True, "removed": removed}


def collections_for_template(store: RecordStore, template_id: str) -> List[Dict[str, Any]]:
    counts = _template_counts(store)
    rows = (
        store.query("collection")
        .join(TemplateCollectionItem, TemplateCollectionItem.collection_id == TemplateCollection.id)
        .filter(TemplateCollectionItem.template_id == template_id)
        .order_by(TemplateCollection.order.asc(), TemplateCollection.name.asc())
        .all()
    )
    return [_collection_to_dict(c, counts.get(c.id, 0)) for c in rows]
