from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from template_studio.api.deps import current_actor, get_store
from template_studio.db.store import RecordStore
from template_studio.schemas import (
    CollectionCreate,
    CollectionTemplates,
    CollectionUpdate,
    SampleContentCreate,
    SampleContentLink,
    SampleContentUpdate,
    TagAssignment,
    TagCreate,
    TagUpdate,
    TemplateBulkDelete,
    TemplateBulkStatus,
    TemplateBulkUpdate,
    TemplateCreate,
    TemplateDuplicate,
    TemplateUpdate,
    VariantBulkUpdate,
    VariantCreate,
    VariantDuplicate,
    VariantReorder,
    VariantSetRequest,
    VariantUpdate,
    VersionCreate,
    VersionPublish,
    VersionRevert,
    patch_of,
)
from template_studio.services import collections as collection_service
from template_studio.services import preview as preview_service
from template_studio.services import sample_content as sample_service
from template_studio.services import tags as tag_service
from template_studio.services import templates as template_service
from template_studio.services import variants as variant_service
from template_studio.services import versions as version_service
from template_studio.settings import get_settings

router = APIRouter(prefix="/admin", tags=["admin"])


# -----------------------------
# Templates
# -----------------------------
@router.get("/templates")
def list_templates(
    document_type: str | None = None,
    category: str | None = None,
    is_active: bool | None = None,
    is_draft: bool | None = None,
    review_status: str | None = None,
    is_featured: bool | None = None,
    search: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    store: RecordStore = Depends(get_store),
):
    """List templates for the admin console."""
    filters = {
        "document_type": document_type,
        "category": category,
        "is_active": is_active,
        "is_draft": is_draft,
        "review_status": review_status,
        "is_featured": is_featured,
        "search": search,
        "limit": limit or get_settings().default_page_limit,
        "offset": offset,
    }
    return template_service.list_templates(store, filters)


@router.post("/templates")
def create_template(
    payload: TemplateCreate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    """Create a new template.

    Args:
        payload: Request payload.
        store: Record store.
        actor: Admin performing the change.
    """
    return template_service.create_template(store, payload.model_dump(mode="json"), actor)


@router.post("/templates/bulk/update")
def bulk_update_templates(
    payload: TemplateBulkUpdate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return template_service.bulk_update_templates(
        store, payload.template_ids, patch_of(payload.updates), payload.create_versions, actor
    )


@router.post("/templates/bulk/delete")
def bulk_delete_templates(payload: TemplateBulkDelete, store: RecordStore = Depends(get_store)):
    return template_service.bulk_delete_templates(
        store, payload.template_ids, payload.hard_delete
    )


@router.post("/templates/bulk/status")
def bulk_change_status(
    payload: TemplateBulkStatus,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return template_service.bulk_change_status(
        store, payload.template_ids, payload.status, payload.notes, actor
    )


@router.get("/templates/{template_id}")
def get_template(template_id: str, store: RecordStore = Depends(get_store)):
    return template_service.get_template(store, template_id)


@router.put("/templates/{template_id}")
def update_template(
    template_id: str,
    payload: TemplateUpdate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    """Patch a template; only fields present in the payload change.

    Args:
        template_id: Template identifier.
        payload: Request payload.
        store: Record store.
        actor: Admin performing the change.
    """
    return template_service.update_template(store, template_id, patch_of(payload), actor)


@router.delete("/templates/{template_id}")
def delete_template(
    template_id: str, hard_delete: bool = False, store: RecordStore = Depends(get_store)
):
    """Soft delete a template, or remove it entirely with ``hard_delete``."""
    return template_service.delete_template(store, template_id, hard_delete)


@router.post("/templates/{template_id}/duplicate")
def duplicate_template(
    template_id: str,
    payload: TemplateDuplicate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return template_service.duplicate_template(
        store,
        template_id,
        payload.name,
        description=payload.description,
        category=payload.category,
        tags=payload.tags,
        link_to_parent=payload.link_to_parent,
        design_config_overrides=payload.design_config_overrides,
        actor=actor,
    )


@router.post("/templates/{template_id}/sample-content")
def link_sample_content(
    template_id: str, payload: SampleContentLink, store: RecordStore = Depends(get_store)
):
    mapping = template_service.link_sample_content(
        store, template_id, payload.section_id, payload.content_id
    )
    return {"specific_sample_content_map": mapping}


@router.delete("/templates/{template_id}/sample-content/{section_id}/{content_id}")
def unlink_sample_content(
    template_id: str, section_id: str, content_id: str, store: RecordStore = Depends(get_store)
):
    mapping = template_service.unlink_sample_content(store, template_id, section_id, content_id)
    return {"specific_sample_content_map": mapping}


@router.get("/templates/{template_id}/preview")
def preview_template(
    template_id: str, variant_id: str | None = None, store: RecordStore = Depends(get_store)
):
    """Resolved design config plus sample content per section."""
    return preview_service.build_preview(
        store, template_id, variant_id, use_targeting=get_settings().sample_content_targeting
    )


@router.get("/templates/{template_id}/preview.html", response_class=HTMLResponse)
def preview_template_html(
    template_id: str, variant_id: str | None = None, store: RecordStore = Depends(get_store)
):
    settings = get_settings()
    preview = preview_service.build_preview(
        store, template_id, variant_id, use_targeting=settings.sample_content_targeting
    )
    return HTMLResponse(preview_service.render_preview_html(preview, settings.template_dir or None))


# -----------------------------
# Variants
# -----------------------------
@router.get("/templates/{template_id}/variants")
def list_variants(template_id: str, store: RecordStore = Depends(get_store)):
    """List variants in display order with their resolved design configs."""
    return variant_service.list_variants(store, template_id)


@router.post("/templates/{template_id}/variants")
def create_variant(
    template_id: str,
    payload: VariantCreate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    variant = variant_service.create_variant(
        store, template_id, payload.model_dump(mode="json"), actor
    )
    return {"success": True, "variant": variant}


@router.post("/templates/{template_id}/variants/reorder")
def reorder_variants(
    template_id: str,
    payload: VariantReorder,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    order_map = {item.variant_id: item.sort_order for item in payload.variant_orders}
    variants = variant_service.reorder_variants(store, template_id, order_map, actor)
    return {"success": True, "variants": variants}


@router.post("/templates/{template_id}/variants/bulk-update")
def bulk_update_variants(
    template_id: str,
    payload: VariantBulkUpdate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    """Apply one patch to several variants.

    Args:
        template_id: Template identifier.
        payload: Variant ids and the shared patch.
        store: Record store.
        actor: Admin performing the change.
    """
    return variant_service.bulk_update_variants(
        store, template_id, payload.variant_ids, patch_of(payload.updates), actor
    )


@router.post("/templates/{template_id}/variant-sets")
def create_variant_set(
    template_id: str,
    payload: VariantSetRequest,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return variant_service.create_variant_set(
        store,
        template_id,
        payload.set_type,
        payload.replace_existing,
        preset_file=get_settings().preset_file or None,
        actor=actor,
    )


@router.get("/templates/{template_id}/variants/{variant_id}")
def get_variant(template_id: str, variant_id: str, store: RecordStore = Depends(get_store)):
    return variant_service.get_variant(store, template_id, variant_id)


@router.put("/templates/{template_id}/variants/{variant_id}")
def update_variant(
    template_id: str,
    variant_id: str,
    payload: VariantUpdate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    variant = variant_service.update_variant(
        store, template_id, variant_id, patch_of(payload), actor
    )
    return {"success": True, "variant": variant}


@router.delete("/templates/{template_id}/variants/{variant_id}")
def delete_variant(
    template_id: str,
    variant_id: str,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return variant_service.delete_variant(store, template_id, variant_id, actor)


@router.post("/templates/{template_id}/variants/{variant_id}/duplicate")
def duplicate_variant(
    template_id: str,
    variant_id: str,
    payload: VariantDuplicate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    variant = variant_service.duplicate_variant(
        store, template_id, variant_id, payload.new_name, payload.modifications, actor
    )
    return {"success": True, "variant": variant}


@router.post("/templates/{template_id}/variants/{variant_id}/preview")
def generate_variant_preview(
    template_id: str,
    variant_id: str,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return variant_service.generate_variant_preview(store, template_id, variant_id, actor)


# -----------------------------
# Versions
# -----------------------------
@router.get("/templates/{template_id}/versions")
def list_versions(
    template_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    store: RecordStore = Depends(get_store),
):
    return {"versions": version_service.list_versions(store, template_id, limit, offset)}


@router.post("/templates/{template_id}/versions")
def create_version(
    template_id: str,
    payload: VersionCreate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    """Snapshot the template's current state as a named version."""
    return version_service.create_version(
        store,
        template_id,
        payload.version_number,
        actor=actor,
        version_name=payload.version_name,
        change_description=payload.change_description,
        publish=payload.publish,
    )


@router.post("/templates/{template_id}/versions/{version_id}/revert")
def revert_to_version(
    template_id: str,
    version_id: str,
    payload: VersionRevert,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return version_service.revert_to_version(
        store, template_id, version_id, actor, payload.create_backup
    )


@router.get("/versions/{version_id}")
def get_version(version_id: str, store: RecordStore = Depends(get_store)):
    return version_service.get_version(store, version_id)


@router.post("/versions/{version_id}/publish")
def publish_version(
    version_id: str, payload: VersionPublish, store: RecordStore = Depends(get_store)
):
    return version_service.publish_version(store, version_id, payload.unpublish_others)


# -----------------------------
# Tags
# -----------------------------
@router.get("/tags")
def list_tags(
    category: str | None = None,
    is_system: bool | None = None,
    parent_tag_id: str | None = None,
    search: str | None = None,
    store: RecordStore = Depends(get_store),
):
    filters = {
        "category": category,
        "is_system": is_system,
        "parent_tag_id": parent_tag_id,
        "search": search,
    }
    return {"tags": tag_service.list_tags(store, filters)}


@router.post("/tags")
def create_tag(payload: TagCreate, store: RecordStore = Depends(get_store)):
    return tag_service.create_tag(store, payload.model_dump(mode="json"))


@router.put("/tags/{tag_id}")
def update_tag(tag_id: str, payload: TagUpdate, store: RecordStore = Depends(get_store)):
    return tag_service.update_tag(store, tag_id, patch_of(payload))


@router.delete("/tags/{tag_id}")
def delete_tag(tag_id: str, store: RecordStore = Depends(get_store)):
    return tag_service.delete_tag(store, tag_id)


@router.get("/templates/{template_id}/tags")
def get_template_tags(template_id: str, store: RecordStore = Depends(get_store)):
    return {"tags": tag_service.template_tags(store, template_id)}


@router.put("/templates/{template_id}/tags")
def assign_tags(
    template_id: str, payload: TagAssignment, store: RecordStore = Depends(get_store)
):
    """Replace the tags attached to a template."""
    return tag_service.assign_tags(store, template_id, payload.tag_ids)


# -----------------------------
# Collections
# -----------------------------
@router.get("/collections")
def list_collections(store: RecordStore = Depends(get_store)):
    return {"collections": collection_service.list_collections(store)}


@router.post("/collections")
def create_collection(
    payload: CollectionCreate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return collection_service.create_collection(store, payload.model_dump(mode="json"), actor)


@router.get("/collections/{collection_id}")
def get_collection(collection_id: str, store: RecordStore = Depends(get_store)):
    return collection_service.get_collection(store, collection_id)


@router.put("/collections/{collection_id}")
def update_collection(
    collection_id: str,
    payload: CollectionUpdate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return collection_service.update_collection(store, collection_id, patch_of(payload), actor)


@router.delete("/collections/{collection_id}")
def delete_collection(
    collection_id: str,
    move_templates_to: str | None = None,
    store: RecordStore = Depends(get_store),
):
    """Delete a collection.

    Args:
        collection_id: Collection identifier.
        move_templates_to: Optional collection that receives the templates.
        store: Record store.
    """
    return collection_service.delete_collection(store, collection_id, move_templates_to)


@router.post("/collections/{collection_id}/templates")
def add_templates_to_collection(
    collection_id: str, payload: CollectionTemplates, store: RecordStore = Depends(get_store)
):
    return collection_service.add_templates(
        store, collection_id, payload.template_ids, payload.start_order
    )


@router.post("/collections/{collection_id}/templates/remove")
def remove_templates_from_collection(
    collection_id: str, payload: CollectionTemplates, store: RecordStore = Depends(get_store)
):
    return collection_service.remove_templates(store, collection_id, payload.template_ids)


@router.get("/templates/{template_id}/collections")
def get_template_collections(template_id: str, store: RecordStore = Depends(get_store)):
    return {"collections": collection_service.collections_for_template(store, template_id)}


# -----------------------------
# Sample content
# -----------------------------
@router.get("/sample-content")
def list_sample_content(
    content_type: str | None = None,
    industry: str | None = None,
    specialization: str | None = None,
    experience_level: str | None = None,
    tags: List[str] | None = Query(default=None),
    is_active: bool | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100),
    store: RecordStore = Depends(get_store),
):
    """Page through sample content.

    Args:
        content_type: Section type tag.
        industry: Target industry the item must list.
        specialization: Target specialization the item must list.
        experience_level: Exact experience level.
        tags: Any of these tags.
        is_active: Active flag.
        search: Title or description substring.
        page: 1-based page number.
        limit: Page size.
        store: Record store.
    """
    filters = {
        "content_type": content_type,
        "industry": industry,
        "specialization": specialization,
        "experience_level": experience_level,
        "tags": tags,
        "is_active": is_active,
        "search": search,
    }
    return sample_service.list_sample_content(
        store, filters, page, limit or get_settings().default_page_limit
    )


@router.post("/sample-content")
def create_sample_content(
    payload: SampleContentCreate,
    store: RecordStore = Depends(get_store),
    actor: str | None = Depends(current_actor),
):
    return sample_service.create_sample_content(store, payload.model_dump(mode="json"), actor)


@router.get("/sample-content/types")
def sample_content_types(store: RecordStore = Depends(get_store)):
    return {"content_types": sample_service.content_types(store)}


@router.get("/sample-content/for-preview")
def sample_content_for_preview(
    content_types: List[str] | None = Query(default=None),
    store: RecordStore = Depends(get_store),
):
    return {"content": sample_service.for_template_preview(store, content_types)}


@router.get("/sample-content/{content_id}")
def get_sample_content(content_id: str, store: RecordStore = Depends(get_store)):
    return sample_service.get_sample_content(store, content_id)


@router.put("/sample-content/{content_id}")
def update_sample_content(
    content_id: str, payload: SampleContentUpdate, store: RecordStore = Depends(get_store)
):
    return sample_service.update_sample_content(store, content_id, patch_of(payload))


@router.delete("/sample-content/{content_id}")
def delete_sample_content(content_id: str, store: RecordStore = Depends(get_store)):
    return sample_service.delete_sample_content(store, content_id)
