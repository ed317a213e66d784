from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

from template_studio.core.merge import deep_merge
from template_studio.core.presets import preset_variants
from template_studio.db.utils import next_sort_order
from template_studio.errors import InvariantViolation, NotFoundError, ValidationFailure

logger = logging.getLogger(__name__)

VARIANT_TYPES = ("color", "layout", "typography", "style", "complete")

# fields a variant always carries once stored
_VARIANT_DEFAULTS: Dict[str, Any] = {
    "description": None,
    "design_overrides": {},
    "sort_order": 0,
    "is_default": False,
    "is_premium": False,
    "preview_image_url": None,
}

# may be changed but never cleared
_REQUIRED_FIELDS = ("name", "variant_type", "design_overrides", "sort_order", "is_default")


def _reject_cleared(changes: Mapping[str, Any]) -> None:
    cleared = [k for k in _REQUIRED_FIELDS if k in changes and changes[k] is None]
    if cleared:
        raise ValidationFailure(f"Variant fields cannot be null: {', '.join(cleared)}")


def generate_variant_id() -> str:
    return str(uuid.uuid4())


def _order_key(variant: Mapping[str, Any]) -> int:
    order = variant.get("sort_order")
    return order if isinstance(order, int) else 0


def sort_variants(variants: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort by sort_order; sorted() is stable so ties keep insertion order."""
    return sorted(variants, key=_order_key)


@dataclass
class ResolvedVariants:
    variants: List[Dict[str, Any]]
    default_variant: Dict[str, Any] | None

    @property
    def total(self) -> int:
        return len(self.variants)


class VariantStore:
    """Operations over the ordered variant collection embedded in a template.

    The store owns a deep copy of the collection; callers persist
    ``store.variants`` after a successful mutation.
    """

    def __init__(self, variants: Iterable[Mapping[str, Any]] | None = None) -> None:
        self.variants: List[Dict[str, Any]] = [copy.deepcopy(dict(v)) for v in variants or []]

    # -----------------------------
    # Lookup helpers
    # -----------------------------
    def _index_of(self, variant_id: str) -> int:
        for idx, variant in enumerate(self.variants):
            if variant.get("id") == variant_id:
                return idx
        raise NotFoundError(f"Variant not found: {variant_id}")

    def get(self, variant_id: str) -> Dict[str, Any]:
        return self.variants[self._index_of(variant_id)]

    def default_ids(self) -> List[str]:
        return [v["id"] for v in self.variants if v.get("is_default")]

    def _clear_defaults(self, keep: Iterable[str] = ()) -> None:
        keep_set = set(keep)
        for variant in self.variants:
            if variant.get("id") not in keep_set:
                variant["is_default"] = False

    def check_invariant(self) -> None:
        defaults = self.default_ids()
        if len(defaults) > 1:
            raise InvariantViolation(
                f"Multiple default variants would be stored: {', '.join(defaults)}"
            )

    # -----------------------------
    # Mutations
    # -----------------------------
    def create(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        variant = {**_VARIANT_DEFAULTS, **copy.deepcopy(dict(data))}
        variant["id"] = generate_variant_id()
        if variant.get("is_default"):
            self._clear_defaults()
        self.variants.append(variant)
        self.check_invariant()
        logger.info("Created variant %s (%s)", variant["id"], variant.get("name"))
        return variant

    def update(self, variant_id: str, patch: Mapping[str, Any]) -> Dict[str, Any]:
        idx = self._index_of(variant_id)
        changes = {k: copy.deepcopy(v) for k, v in patch.items() if k != "id"}
        _reject_cleared(changes)
        updated = {**self.variants[idx], **changes}
        if updated.get("is_default"):
            self._clear_defaults(keep=[variant_id])
        self.variants[idx] = updated
        self.check_invariant()
        return updated

    def delete(self, variant_id: str) -> Dict[str, Any]:
        idx = self._index_of(variant_id)
        removed = self.variants.pop(idx)
        if removed.get("is_default") and self.variants:
            promoted = sort_variants(self.variants)[0]
            promoted["is_default"] = True
            logger.info("Promoted variant %s to default", promoted["id"])
        self.check_invariant()
        return removed

    def reorder(self, order_map: Mapping[str, int]) -> List[Dict[str, Any]]:
        for variant in self.variants:
            if variant.get("id") in order_map:
                variant["sort_order"] = order_map[variant["id"]]
        return self.variants

    def duplicate(
        self,
        source_variant_id: str,
        new_name: str,
        modifications: Mapping[str, Any] | None = None,
    ) -> Dict[str, Any]:
        source = self.get(source_variant_id)
        new_variant = copy.deepcopy(source)
        new_variant["id"] = generate_variant_id()
        new_variant["name"] = new_name
        new_variant["is_default"] = False
        new_variant["sort_order"] = next_sort_order(v.get("sort_order") for v in self.variants)
        if modifications:
            new_variant["design_overrides"] = deep_merge(
                source.get("design_overrides") or {}, modifications
            )
        self.variants.append(new_variant)
        return new_variant

    def bulk_update(self, variant_ids: List[str], patch: Mapping[str, Any]) -> int:
        """Apply one shallow patch to several variants.

        When the patch sets ``is_default``, only the last listed id keeps the
        flag so the collection never ends up with two defaults.

        Returns:
            Number of variants updated.
        """
        indexes = [self._index_of(vid) for vid in variant_ids]
        changes = {k: copy.deepcopy(v) for k, v in patch.items() if k != "id"}
        _reject_cleared(changes)
        for idx in indexes:
            self.variants[idx] = {**self.variants[idx], **copy.deepcopy(changes)}

        if changes.get("is_default") is True and variant_ids:
            self._clear_defaults(keep=[variant_ids[-1]])

        self.check_invariant()
        return len(set(indexes))

    def set_preview_image(self, variant_id: str, url: str) -> Dict[str, Any]:
        variant = self.get(variant_id)
        variant["preview_image_url"] = url
        return variant

    def apply_preset_set(
        self, set_type: str, replace_existing: bool = False, preset_file: str | None = None
    ) -> List[Dict[str, Any]]:
        """Append a predefined variant set.

        Returns:
            The newly created variants.
        """
        presets = preset_variants(set_type, preset_file)
        if replace_existing:
            self.variants = []

        was_empty = not self.variants
        start = next_sort_order(v.get("sort_order") for v in self.variants)
        created: List[Dict[str, Any]] = []
        for offset, preset in enumerate(presets):
            variant = {**_VARIANT_DEFAULTS, **preset}
            variant["id"] = generate_variant_id()
            variant["sort_order"] = start + offset
            variant["is_default"] = was_empty and offset == 0
            created.append(variant)
        self.variants.extend(created)
        self.check_invariant()
        logger.info("Applied %s preset set (%s variants)", set_type, len(created))
        return created

    # -----------------------------
    # Reads
    # -----------------------------
    def list_resolved(self, design_config: Mapping[str, Any] | None) -> ResolvedVariants:
        resolved: List[Dict[str, Any]] = []
        for variant in sort_variants(self.variants):
            item = copy.deepcopy(variant)
            item["computed_design_config"] = deep_merge(
                design_config, variant.get("design_overrides")
            )
            resolved.append(item)

        default = next((v for v in resolved if v.get("is_default")), None)
        if default is None and resolved:
            default = resolved[0]
        return ResolvedVariants(variants=resolved, default_variant=default)
