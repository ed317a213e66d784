from __future__ import annotations

import re
from typing import Iterable

_slug_non_alnum = re.compile(r"[^a-z0-9]+")


def slugify(value: str | None) -> str:
    if value is None:
        return "untitled"
    value = value.strip().lower()
    value = _slug_non_alnum.sub("-", value).strip("-")
    return value or "untitled"


def ensure_unique_slug(base: str, existing: Iterable[str]) -> str:
    existing_set = {s for s in existing if s}
    if base not in existing_set:
        return base
    suffix = 2
    while True:
        candidate = f"{base}-{suffix}"
        if candidate not in existing_set:
            return candidate
        suffix += 1


def next_sort_order(existing_orders: Iterable[int | None], start: int = 0) -> int:
    """Return one past the largest integer order, or ``start`` when there is none."""
    nums = [n for n in existing_orders if isinstance(n, int) and not isinstance(n, bool)]
    return (max(nums) + 1) if nums else start
