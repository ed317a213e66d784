from __future__ import annotations

import copy
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from template_studio.errors import ValidationFailure

DEFAULT_PRESET_FILE = Path(__file__).resolve().parents[1] / "data" / "variant_presets.json"

PRESET_SET_TYPES = ("color_schemes", "layout_styles", "typography_sets", "industry_themes")


@lru_cache
def _load_table(path: str) -> Dict[str, List[Dict[str, Any]]]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Preset file {path} must contain a JSON object")
    return data


def load_presets(path: str | None = None) -> Dict[str, List[Dict[str, Any]]]:
    """Load the static variant preset table.

    Args:
        path: Optional preset JSON path; defaults to the packaged table.

    Returns:
        Mapping of set type to preset variant definitions.
    """
    return _load_table(str(path or DEFAULT_PRESET_FILE))


def preset_variants(set_type: str, path: str | None = None) -> List[Dict[str, Any]]:
    """Return fresh copies of the presets for one set type."""
    if set_type not in PRESET_SET_TYPES:
        raise ValidationFailure(f"Unknown variant set type: {set_type}")
    table = load_presets(path)
    return copy.deepcopy(table.get(set_type, []))
