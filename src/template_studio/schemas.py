from __future__ import annotations

from typing import Any, ClassVar, Dict, FrozenSet, List, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    model_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

Category = Literal["professional", "modern", "creative", "academic"]
DocumentType = Literal["resume", "cv", "cover_letter"]
SectionType = Literal[
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
]
ExperienceLevel = Literal["entry", "junior", "mid", "senior", "lead", "principal", "executive"]
ReviewStatus = Literal["pending", "approved", "rejected"]
VariantType = Literal["color", "layout", "typography", "style", "complete"]
VariantSetType = Literal["color_schemes", "layout_styles", "typography_sets", "industry_themes"]
ContentQuality = Literal["basic", "good", "excellent", "premium"]
ContentSource = Literal["ai_generated", "expert_written", "user_contributed", "curated"]
ApplicationStatus = Literal[
    "draft",
    "ready",
    "sent",
    "delivered",
    "viewed",
    "interview_scheduled",
    "interview_completed",
    "offer_received",
    "rejected",
    "withdrawn",
]


class PatchModel(BaseModel):
    """Partial update body. Explicit nulls are only accepted for nullable fields."""

    nullable: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_nulls(self):
        cleared = sorted(
            name
            for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.nullable
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self


# -----------------------------
# Template structure
# -----------------------------
class Section(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    type: SectionType
    is_required: bool = False
    order: int = 0
    max_items: int | None = Field(default=None, ge=1)
    description: str | None = None


class TemplateStructure(BaseModel):
    sections: List[Section] = Field(default_factory=list)
    layout: Dict[str, Any] = Field(default_factory=dict)


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    category: Category = "professional"
    document_type: DocumentType = "resume"
    design_config: Dict[str, Any] = Field(default_factory=dict)
    template_structure: TemplateStructure = Field(default_factory=TemplateStructure)
    specific_sample_content_map: Dict[str, List[str]] = Field(default_factory=dict)
    target_industries: List[str] = Field(default_factory=list)
    target_specialization: List[str] = Field(default_factory=list)
    target_job_titles: List[str] = Field(default_factory=list)
    target_experience_level: ExperienceLevel | None = None
    is_active: bool = True
    is_premium: bool = False
    is_public: bool = True
    is_draft: bool = True
    is_featured: bool = False
    featured_order: int | None = None
    tags: List[str] = Field(default_factory=list)


class TemplateUpdate(PatchModel):
    nullable = frozenset(
        {"description", "target_experience_level", "featured_order", "review_notes"}
    )

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    category: Category | None = None
    document_type: DocumentType | None = None
    design_config: Dict[str, Any] | None = None
    template_structure: TemplateStructure | None = None
    specific_sample_content_map: Dict[str, List[str]] | None = None
    target_industries: List[str] | None = None
    target_specialization: List[str] | None = None
    target_job_titles: List[str] | None = None
    target_experience_level: ExperienceLevel | None = None
    is_active: bool | None = None
    is_premium: bool | None = None
    is_public: bool | None = None
    is_draft: bool | None = None
    is_featured: bool | None = None
    featured_order: int | None = None
    review_status: ReviewStatus | None = None
    review_notes: str | None = None
    version: str | None = None
    tags: List[str] | None = None


class TemplateDuplicate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    category: Category | None = None
    tags: List[str] | None = None
    link_to_parent: bool = True
    design_config_overrides: Dict[str, Any] | None = None


class TemplateBulkUpdate(BaseModel):
    template_ids: List[str] = Field(min_length=1)
    updates: TemplateUpdate
    create_versions: bool = False


class TemplateBulkDelete(BaseModel):
    template_ids: List[str] = Field(min_length=1)
    hard_delete: bool = False


class TemplateBulkStatus(BaseModel):
    template_ids: List[str] = Field(min_length=1)
    status: ReviewStatus
    notes: str | None = None


class SampleContentLink(BaseModel):
    section_id: str = Field(min_length=1)
    content_id: str = Field(min_length=1)


# -----------------------------
# Variants
# -----------------------------
class VariantCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    variant_type: VariantType
    design_overrides: Dict[str, Any] = Field(default_factory=dict)
    sort_order: int = 0
    is_default: bool = False
    is_premium: bool = False
    preview_image_url: HttpUrl | None = None


class VariantUpdate(PatchModel):
    nullable = frozenset({"description", "preview_image_url"})

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    variant_type: VariantType | None = None
    design_overrides: Dict[str, Any] | None = None
    sort_order: int | None = None
    is_default: bool | None = None
    is_premium: bool | None = None
    preview_image_url: HttpUrl | None = None


class VariantOrder(BaseModel):
    variant_id: str = Field(min_length=1)
    sort_order: int


class VariantReorder(BaseModel):
    variant_orders: List[VariantOrder]


class VariantDuplicate(BaseModel):
    new_name: str = Field(min_length=1, max_length=255)
    modifications: Dict[str, Any] | None = None


class VariantBulkUpdate(BaseModel):
    variant_ids: List[str] = Field(min_length=1)
    updates: VariantUpdate


class VariantSetRequest(BaseModel):
    set_type: VariantSetType
    replace_existing: bool = False


# -----------------------------
# Versions
# -----------------------------
class VersionCreate(BaseModel):
    version_number: str = Field(min_length=1, max_length=32)
    version_name: str | None = None
    change_description: str | None = None
    publish: bool = False


class VersionPublish(BaseModel):
    unpublish_others: bool = True


class VersionRevert(BaseModel):
    create_backup: bool = True


# -----------------------------
# Tags & collections
# -----------------------------
class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    category: str | None = None
    parent_tag_id: str | None = None
    is_system: bool = False


class TagUpdate(PatchModel):
    nullable = frozenset({"description", "color", "icon", "category", "parent_tag_id"})

    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    category: str | None = None
    parent_tag_id: str | None = None
    is_system: bool | None = None


class TagAssignment(BaseModel):
    tag_ids: List[str] = Field(default_factory=list)


class CollectionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = None
    description: str | None = None
    cover_image_url: HttpUrl | None = None
    is_featured: bool = False
    is_public: bool = True
    order: int = 0
    is_curated: bool = False


class CollectionUpdate(PatchModel):
    nullable = frozenset({"description", "cover_image_url"})

    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = None
    description: str | None = None
    cover_image_url: HttpUrl | None = None
    is_featured: bool | None = None
    is_public: bool | None = None
    order: int | None = None
    is_curated: bool | None = None


class CollectionTemplates(BaseModel):
    template_ids: List[str] = Field(min_length=1)
    start_order: int = 0


# -----------------------------
# Sample content
# -----------------------------
class SampleContentCreate(BaseModel):
    content_type: SectionType
    content_subtype: str | None = None
    title: str | None = None
    description: str | None = None
    content: Dict[str, Any] = Field(default_factory=dict)
    target_industry: List[str] = Field(default_factory=list)
    target_specialization: List[str] = Field(default_factory=list)
    target_job_titles: List[str] = Field(default_factory=list)
    experience_level: ExperienceLevel | None = None
    content_quality: ContentQuality = "good"
    content_source: ContentSource = "curated"
    is_active: bool = True
    is_approved: bool = False
    tags: List[str] = Field(default_factory=list)


class SampleContentUpdate(PatchModel):
    nullable = frozenset({"content_subtype", "title", "description", "experience_level"})

    content_type: SectionType | None = None
    content_subtype: str | None = None
    title: str | None = None
    description: str | None = None
    content: Dict[str, Any] | None = None
    target_industry: List[str] | None = None
    target_specialization: List[str] | None = None
    target_job_titles: List[str] | None = None
    experience_level: ExperienceLevel | None = None
    content_quality: ContentQuality | None = None
    content_source: ContentSource | None = None
    is_active: bool | None = None
    is_approved: bool | None = None
    tags: List[str] | None = None


# -----------------------------
# Documents
# -----------------------------
class PersonalInfo(BaseModel):
    """Contact block of a document. Unknown keys are kept as sent."""

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    location: str | None = Field(default=None, max_length=255)
    linked_in: HttpUrl | None = None
    github: HttpUrl | None = None
    portfolio: HttpUrl | None = None
    website: HttpUrl | None = None
    stackoverflow: HttpUrl | None = None
    medium: HttpUrl | None = None
    kaggle: HttpUrl | None = None
    professional_photo: HttpUrl | None = None
    google_scholar: HttpUrl | None = None
    research_gate: HttpUrl | None = None
    academia_edu: HttpUrl | None = None
    personal_website: HttpUrl | None = None

    @model_serializer(mode="wrap")
    def _drop_empty(self, handler):
        return {key: value for key, value in handler(self).items() if value is not None}


class DocumentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    is_default: bool = False
    template_id: str | None = None
    template_variant_id: str | None = None
    target_role: str | None = None
    target_job_title: str | None = None
    target_industry: str | None = None
    target_specialization: str | None = None
    experience_level: ExperienceLevel | None = None
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    content: Dict[str, Any] = Field(default_factory=dict)
    design_config: Dict[str, Any] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)
    is_public: bool = False


class DocumentUpdate(PatchModel):
    nullable = frozenset(
        {
            "template_id",
            "template_variant_id",
            "target_role",
            "target_job_title",
            "target_industry",
            "target_specialization",
            "experience_level",
        }
    )

    title: str | None = Field(default=None, min_length=1, max_length=255)
    template_id: str | None = None
    template_variant_id: str | None = None
    target_role: str | None = None
    target_job_title: str | None = None
    target_industry: str | None = None
    target_specialization: str | None = None
    experience_level: ExperienceLevel | None = None
    personal_info: PersonalInfo | None = None
    content: Dict[str, Any] | None = None
    design_config: Dict[str, Any] | None = None
    settings: Dict[str, Any] | None = None
    is_public: bool | None = None


class CoverLetterCreate(DocumentCreate):
    target_company: str | None = None
    linked_resume_id: str | None = None
    application_status: ApplicationStatus = "draft"


class CoverLetterUpdate(DocumentUpdate):
    nullable = DocumentUpdate.nullable | {"target_company", "linked_resume_id"}

    target_company: str | None = None
    linked_resume_id: str | None = None
    application_status: ApplicationStatus | None = None


class CoverLetterStatus(BaseModel):
    status: ApplicationStatus
    notes: str | None = None


class DocumentDuplicate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    preserve_personal_info: bool = True
    preserve_design_config: bool = True


class DocumentBulkDelete(BaseModel):
    document_type: DocumentType
    ids: List[str] = Field(min_length=1)


# -----------------------------
# User customizations & feedback
# -----------------------------
class CustomizationCreate(BaseModel):
    template_id: str = Field(min_length=1)
    custom_name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    design_overrides: Dict[str, Any] = Field(default_factory=dict)
    is_shared: bool = False


class CustomizationUpdate(PatchModel):
    nullable = frozenset({"custom_name", "description"})

    custom_name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    design_overrides: Dict[str, Any] | None = None
    is_shared: bool | None = None


class TemplateRating(BaseModel):
    rating: int = Field(ge=1, le=5)
    feedback: str | None = Field(default=None, max_length=2000)


def patch_of(model: BaseModel) -> Dict[str, Any]:
    """Fields the client actually sent, as JSON-ready values."""
    return model.model_dump(mode="json", exclude_unset=True)
