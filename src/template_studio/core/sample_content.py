from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Protocol

logger = logging.getLogger(__name__)

SECTION_TYPES = (
    "personal_info",
    "summary",
    "experience",
    "education",
    "skills",
    "projects",
    "certifications",
    "publications",
    "achievements",
    "references",
    "custom",
)

EXPERIENCE_LEVELS = ("entry", "junior", "mid", "senior", "lead", "principal", "executive")


class SampleContentSource(Protocol):
    """Query collaborator the resolver reads sample content through."""

    def get(self, content_id: str) -> Dict[str, Any] | None: ...

    def list_by_type(self, content_type: str) -> List[Dict[str, Any]]: ...


class InMemorySampleContent:
    """List-backed source; pool order is the order items were given in."""

    def __init__(self, items: Iterable[Mapping[str, Any]] = ()) -> None:
        self.items: List[Dict[str, Any]] = [dict(item) for item in items]

    def get(self, content_id: str) -> Dict[str, Any] | None:
        return next((item for item in self.items if item.get("id") == content_id), None)

    def list_by_type(self, content_type: str) -> List[Dict[str, Any]]:
        return [item for item in self.items if item.get("content_type") == content_type]


@dataclass
class SectionResolution:
    section: Dict[str, Any]
    item: Dict[str, Any] | None
    source: str | None  # "specific" | "generic" | None

    @property
    def is_empty(self) -> bool:
        return self.item is None


def matches_section(section_type: str, content_type: str) -> bool:
    return section_type in SECTION_TYPES and section_type == content_type


def _primary(values: Any) -> Any:
    if isinstance(values, (list, tuple)):
        return values[0] if values else None
    return values


@dataclass(frozen=True)
class Targeting:
    """Facets the generic pool is narrowed by. Unset facets match anything."""

    industry: str | None = None
    specialization: str | None = None
    experience_level: str | None = None

    @classmethod
    def for_template(
        cls,
        template: Mapping[str, Any],
        industry: str | None = None,
        specialization: str | None = None,
    ) -> "Targeting":
        """Targeting for a template.

        Caller-supplied industry or specialization replace the template's
        primary industry and specialization; the experience level always
        comes from the template.
        """
        if not (industry or specialization):
            industry = _primary(template.get("target_industries"))
            specialization = _primary(template.get("target_specialization"))
        return cls(
            industry=industry or None,
            specialization=specialization or None,
            experience_level=template.get("target_experience_level"),
        )

    def matches(self, item: Mapping[str, Any]) -> bool:
        if self.industry and self.industry not in (item.get("target_industry") or []):
            return False
        if self.specialization and self.specialization not in (
            item.get("target_specialization") or []
        ):
            return False
        if self.experience_level and item.get("experience_level") != self.experience_level:
            return False
        return True


def _targeting(
    template: Mapping[str, Any], use_targeting: bool, targeting: Targeting | None
) -> Targeting | None:
    if targeting is not None:
        return targeting
    return Targeting.for_template(template) if use_targeting else None


def mapped_ids(template: Mapping[str, Any], section_id: str) -> List[str]:
    mapping = template.get("specific_sample_content_map") or {}
    ids = mapping.get(section_id) or []
    if isinstance(ids, str):
        ids = [ids]
    return [cid for cid in ids if cid]


def candidate_pool(
    section: Mapping[str, Any],
    source: SampleContentSource,
    targeting: Targeting | None = None,
) -> List[Dict[str, Any]]:
    """Generic items a section could fall back to, in source order."""
    section_type = section.get("type")
    if not section_type or section_type == "custom":
        return []
    pool = [
        item
        for item in source.list_by_type(section_type)
        if matches_section(section_type, item.get("content_type", ""))
    ]
    if targeting is not None:
        pool = [item for item in pool if targeting.matches(item)]
    return pool


def resolve_with_source(
    template: Mapping[str, Any],
    section: Mapping[str, Any],
    source: SampleContentSource,
    use_targeting: bool = False,
    targeting: Targeting | None = None,
) -> SectionResolution:
    """Resolve a section and report which path produced the item."""
    section_id = section.get("id")

    mapped = mapped_ids(template, section_id) if section_id else []
    if mapped:
        item = source.get(mapped[0])
        if item is not None:
            return SectionResolution(section=dict(section), item=item, source="specific")
        logger.debug("Mapped sample content %s for section %s is missing", mapped[0], section_id)

    pool = candidate_pool(section, source, _targeting(template, use_targeting, targeting))
    if not pool:
        return SectionResolution(section=dict(section), item=None, source=None)
    return SectionResolution(section=dict(section), item=pool[0], source="generic")


def resolve(
    template: Mapping[str, Any],
    section: Mapping[str, Any],
    source: SampleContentSource,
    use_targeting: bool = False,
    targeting: Targeting | None = None,
) -> Dict[str, Any] | None:
    """Pick the sample content item to show for one template section.

    An explicit entry in ``specific_sample_content_map`` wins (first mapped
    id). Otherwise the first item of the section type's default pool is used,
    optionally pre-filtered by targeting facets: an explicit ``targeting``,
    or the template's own facets when ``use_targeting`` is set. Custom
    sections only resolve through the explicit map.

    Returns:
        The chosen item, or None when nothing matches.
    """
    return resolve_with_source(template, section, source, use_targeting, targeting).item


def ordered_sections(template: Mapping[str, Any]) -> List[Dict[str, Any]]:
    structure = template.get("template_structure") or {}
    return sorted(
        structure.get("sections") or [],
        key=lambda s: s.get("order") if isinstance(s.get("order"), int) else 0,
    )


def resolve_sections(
    template: Mapping[str, Any],
    source: SampleContentSource,
    use_targeting: bool = False,
    targeting: Targeting | None = None,
) -> List[SectionResolution]:
    return [
        resolve_with_source(template, s, source, use_targeting, targeting)
        for s in ordered_sections(template)
    ]
