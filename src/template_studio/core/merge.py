from __future__ import annotations

import copy
from typing import Any, Dict, Mapping


def _is_plain_object(value: Any) -> bool:
    return isinstance(value, Mapping)


def _merge_into(dest: Dict[str, Any], src: Mapping[str, Any]) -> None:
    for key, value in src.items():
        if _is_plain_object(value):
            current = dest.get(key)
            if not isinstance(current, dict):
                current = {}
                dest[key] = current
            _merge_into(current, value)
        else:
            # scalars, lists and None replace the base value wholesale
            dest[key] = copy.deepcopy(value)


def deep_merge(
    base: Mapping[str, Any] | None, override: Mapping[str, Any] | None
) -> Dict[str, Any]:
    """Merge a partial override into a base configuration tree.

    Nested mappings are merged key by key; every other override value,
    including lists and an explicit None, replaces the base value. Keys
    absent from the override keep their base value. Neither input is
    mutated.

    Args:
        base: Fully specified configuration (may be None or empty).
        override: Partial configuration patch (may be None or empty).

    Returns:
        A new configuration dictionary.
    """
    if not override:
        return copy.deepcopy(dict(base or {}))
    if not base:
        return copy.deepcopy(dict(override))

    result = copy.deepcopy(dict(base))
    _merge_into(result, override)
    return result
