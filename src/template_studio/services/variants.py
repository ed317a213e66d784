from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, TypeVar

from template_studio.core.variants import VariantStore
from template_studio.db.models import Template
from template_studio.db.store import RecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

PREVIEW_URL = "/api/previews/templates/{template_id}/variants/{variant_id}/preview.png"


def _mutate(
    store: RecordStore,
    template_id: str,
    action: Callable[[VariantStore], T],
    actor: str | None = None,
) -> T:
    """Read-modify-write of a template's variant list inside one transaction.

    The list is persisted only when ``action`` returns without raising, so a
    failed invariant check leaves the stored collection untouched.
    """
    template: Template = store.require("template", template_id, "Template")
    variants = VariantStore(template.template_variants)
    result = action(variants)
    store.apply(template, {"template_variants": variants.variants, "updated_by": actor})
    store.commit()
    return result


def list_variants(store: RecordStore, template_id: str) -> Dict[str, Any]:
    template: Template = store.require("template", template_id, "Template")
    resolved = VariantStore(template.template_variants).list_resolved(template.design_config)
    return {
        "template": {"id": template.id, "name": template.name},
        "variants": resolved.variants,
        "default_variant": resolved.default_variant,
        "total": resolved.total,
    }


def get_variant(store: RecordStore, template_id: str, variant_id: str) -> Dict[str, Any]:
    template: Template = store.require("template", template_id, "Template")
    return VariantStore(template.template_variants).get(variant_id)


def create_variant(
    store: RecordStore, template_id: str, data: Mapping[str, Any], actor: str | None = None
) -> Dict[str, Any]:
    variant = _mutate(store, template_id, lambda vs: vs.create(data), actor)
    logger.info("Added variant %s to template %s", variant["id"], template_id)
    return variant


def update_variant(
    store: RecordStore,
    template_id: str,
    variant_id: str,
    patch: Mapping[str, Any],
    actor: str | None = None,
) -> Dict[str, Any]:
    return _mutate(store, template_id, lambda vs: vs.update(variant_id, patch), actor)


def delete_variant(
    store: RecordStore, template_id: str, variant_id: str, actor: str | None = None
) -> Dict[str, Any]:
    _mutate(store, template_id, lambda vs: vs.delete(variant_id), actor)
    return {"success": True, "id": variant_id}


def reorder_variants(
    store: RecordStore,
    template_id: str,
    order_map: Mapping[str, int],
    actor: str | None = None,
) -> List[Dict[str, Any]]:
    return _mutate(store, template_id, lambda vs: vs.reorder(order_map), actor)


def duplicate_variant(
    store: RecordStore,
    template_id: str,
    source_variant_id: str,
    new_name: str,
    modifications: Mapping[str, Any] | None = None,
    actor: str | None = None,
) -> Dict[str, Any]:
    return _mutate(
        store,
        template_id,
        lambda vs: vs.duplicate(source_variant_id, new_name, modifications),
        actor,
    )


def bulk_update_variants(
    store: RecordStore,
    template_id: str,
    variant_ids: List[str],
    patch: Mapping[str, Any],
    actor: str | None = None,
) -> Dict[str, Any]:
    count = _mutate(store, template_id, lambda vs: vs.bulk_update(variant_ids, patch), actor)
    return {"success": True, "updated_count": count}


def create_variant_set(
    store: RecordStore,
    template_id: str,
    set_type: str,
    replace_existing: bool = False,
    preset_file: str | None = None,
    actor: str | None = None,
) -> Dict[str, Any]:
    created = _mutate(
        store,
        template_id,
        lambda vs: vs.apply_preset_set(set_type, replace_existing, preset_file),
        actor,
    )
    return {"success": True, "created_variants": created, "set_type": set_type}


def generate_variant_preview(
    store: RecordStore, template_id: str, variant_id: str, actor: str | None = None
) -> Dict[str, Any]:
    url = PREVIEW_URL.format(template_id=template_id, variant_id=variant_id)
    _mutate(store, template_id, lambda vs: vs.set_preview_image(variant_id, url), actor)
    return {"success": True, "preview_url": url}
