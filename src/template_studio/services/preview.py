from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict

import jinja2

from template_studio.core.merge import deep_merge
from template_studio.core.sample_content import SampleContentSource, resolve_sections
from template_studio.core.variants import VariantStore
from template_studio.db.store import RecordStore, as_dict
from template_studio.services.sample_content import SqlSampleContent

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"
PREVIEW_TEMPLATE = "preview.html.j2"
EMPTY_SECTION_TEXT = "No sample content available for this section"

# design values land inside <style>, so only plain colors and font lists pass
CSS_COLOR_RE = re.compile(r"^(#[0-9a-fA-F]{3,4}|#[0-9a-fA-F]{6}|#[0-9a-fA-F]{8}|[a-zA-Z]{3,20})$")
CSS_FONT_RE = re.compile(r"^[A-Za-z0-9 ,-]{1,120}$")


def build_preview(
    store: RecordStore,
    template_id: str,
    variant_id: str | None = None,
    use_targeting: bool = False,
    source: SampleContentSource | None = None,
) -> Dict[str, Any]:
    """Assemble everything needed to render a template preview.

    Args:
        store: Record store.
        template_id: Template to preview.
        variant_id: Variant to apply; the default variant when omitted.
        use_targeting: Pre-filter default sample content by template targeting.
        source: Sample content source; the database when omitted.

    Returns:
        Dictionary with the template, the applied variant, the resolved
        design config and one entry per section in display order.
    """
    template = as_dict(store.require("template", template_id, "Template"))
    variants = VariantStore(template.get("template_variants"))
    if variant_id:
        variant = variants.get(variant_id)
    else:
        variant = variants.list_resolved(template.get("design_config")).default_variant

    design_config = deep_merge(
        template.get("design_config"), (variant or {}).get("design_overrides")
    )
    resolutions = resolve_sections(template, source or SqlSampleContent(store), use_targeting)
    sections = [
        {"section": r.section, "content": r.item, "source": r.source} for r in resolutions
    ]
    empty = [s["section"].get("id") for s in sections if s["content"] is None]
    if empty:
        logger.debug("Template %s preview has empty sections: %s", template_id, empty)
    return {
        "template": {
            "id": template["id"],
            "name": template["name"],
            "document_type": template["document_type"],
            "category": template["category"],
        },
        "variant": {k: v for k, v in variant.items() if k != "computed_design_config"}
        if variant
        else None,
        "design_config": design_config,
        "sections": sections,
        "empty_sections": empty,
    }


def css_color(value: Any, default: str) -> str:
    if isinstance(value, str) and CSS_COLOR_RE.match(value.strip()):
        return value.strip()
    return default


def css_font(value: Any, default: str) -> str:
    if isinstance(value, str) and CSS_FONT_RE.match(value.strip()):
        return value.strip()
    return default


def _environment(template_dir: str | None = None) -> jinja2.Environment:
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(template_dir or str(DEFAULT_TEMPLATE_DIR)),
        autoescape=jinja2.select_autoescape(["html", "j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["pretty_json"] = lambda value: json.dumps(value, ensure_ascii=False, indent=2)
    env.filters["css_color"] = css_color
    env.filters["css_font"] = css_font
    return env


def render_preview_html(preview: Dict[str, Any], template_dir: str | None = None) -> str:
    env = _environment(template_dir)
    return env.get_template(PREVIEW_TEMPLATE).render(
        preview=preview,
        design=preview.get("design_config") or {},
        empty_text=EMPTY_SECTION_TEXT,
    )
