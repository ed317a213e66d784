import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from template_studio.db.base import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Template(Base):
    __tablename__ = "document_templates"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(32), nullable=False, default="professional")
    document_type = Column(String(32), nullable=False, default="resume")

    design_config = Column(JSON, nullable=False, default=dict)
    template_structure = Column(JSON, nullable=False, default=dict)
    template_variants = Column(JSON, nullable=False, default=list)
    specific_sample_content_map = Column(JSON, nullable=False, default=dict)

    target_industries = Column(JSON, nullable=False, default=list)
    target_specialization = Column(JSON, nullable=False, default=list)
    target_job_titles = Column(JSON, nullable=False, default=list)
    target_experience_level = Column(String(32), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_premium = Column(Boolean, nullable=False, default=False)
    is_public = Column(Boolean, nullable=False, default=True)
    is_draft = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    featured_order = Column(Integer, nullable=True)
    review_status = Column(String(16), nullable=False, default="pending")
    review_notes = Column(Text, nullable=True)

    version = Column(String(32), nullable=False, default="1.0.0")
    parent_template_id = Column(String(36), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    preview_image_url = Column(String(1024), nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    avg_rating = Column(Float, nullable=True)
    total_ratings = Column(Integer, nullable=False, default=0)

    created_by = Column(String(255), nullable=True)
    updated_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    versions = relationship(
        "TemplateVersion",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateVersion.created_at",
    )


class TemplateVersion(Base):
    __tablename__ = "template_versions"

    id = Column(String(36), primary_key=True, default=new_id)
    template_id = Column(String(36), ForeignKey("document_templates.id"), nullable=False)
    version_number = Column(String(32), nullable=False)
    version_name = Column(String(255), nullable=True)
    change_description = Column(Text, nullable=True)
    template_data = Column(JSON, nullable=False, default=dict)
    is_published = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    template = relationship("Template", back_populates="versions")


class SampleContent(Base):
    __tablename__ = "sample_content"

    id = Column(String(36), primary_key=True, default=new_id)
    content_type = Column(String(32), nullable=False)
    content_subtype = Column(String(64), nullable=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    content = Column(JSON, nullable=False, default=dict)

    target_industry = Column(JSON, nullable=False, default=list)
    target_specialization = Column(JSON, nullable=False, default=list)
    target_job_titles = Column(JSON, nullable=False, default=list)
    experience_level = Column(String(32), nullable=True)

    content_quality = Column(String(16), nullable=False, default="good")
    content_source = Column(String(32), nullable=False, default="curated")
    is_active = Column(Boolean, nullable=False, default=True)
    is_approved = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)
    usage_count = Column(Integer, nullable=False, default=0)

    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class TemplateTag(Base):
    __tablename__ = "template_tags"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    color = Column(String(32), nullable=True)
    icon = Column(String(64), nullable=True)
    category = Column(String(64), nullable=True)
    parent_tag_id = Column(String(36), nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    is_system = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    relations = relationship(
        "TemplateTagRelation", back_populates="tag", cascade="all, delete-orphan"
    )


class TemplateTagRelation(Base):
    __tablename__ = "template_tag_relations"
    __table_args__ = (UniqueConstraint("template_id", "tag_id", name="uq_template_tag"),)

    id = Column(Integer, primary_key=True)
    template_id = Column(String(36), ForeignKey("document_templates.id"), nullable=False)
    tag_id = Column(String(36), ForeignKey("template_tags.id"), nullable=False)

    tag = relationship("TemplateTag", back_populates="relations")


class TemplateCollection(Base):
    __tablename__ = "template_collections"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    cover_image_url = Column(String(1024), nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    is_public = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)
    curated_by = Column(String(255), nullable=True)
    curated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "TemplateCollectionItem",
        back_populates="collection",
        cascade="all, delete-orphan",
        order_by="TemplateCollectionItem.order",
    )


class TemplateCollectionItem(Base):
    __tablename__ = "template_collection_items"
    __table_args__ = (
        UniqueConstraint("collection_id", "template_id", name="uq_collection_template"),
    )

    id = Column(Integer, primary_key=True)
    collection_id = Column(String(36), ForeignKey("template_collections.id"), nullable=False)
    template_id = Column(String(36), ForeignKey("document_templates.id"), nullable=False)
    order = Column(Integer, nullable=False, default=0)
    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    collection = relationship("TemplateCollection", back_populates="items")


class UserTemplateCustomization(Base):
    """A user's saved design overrides on top of a public template."""

    __tablename__ = "user_template_customizations"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), nullable=False, index=True)
    template_id = Column(String(36), ForeignKey("document_templates.id"), nullable=False)
    custom_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    design_overrides = Column(JSON, nullable=False, default=dict)
    is_shared = Column(Boolean, nullable=False, default=False)
    times_used = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    base_template_version = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class TemplateUsage(Base):
    """One user interaction with a template; ratings live here too."""

    __tablename__ = "template_usage"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), nullable=False, index=True)
    template_id = Column(String(36), ForeignKey("document_templates.id"), nullable=False)
    customization_id = Column(String(36), nullable=True)
    document_id = Column(String(36), nullable=True)
    document_type = Column(String(32), nullable=True)
    action_type = Column(String(16), nullable=False)
    user_rating = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)
    template_version = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class DocumentMixin:
    """Columns shared by resumes, CVs and cover letters."""

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(255), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)

    template_id = Column(String(36), nullable=True)
    template_variant_id = Column(String(36), nullable=True)
    is_from_template = Column(Boolean, nullable=False, default=False)

    target_role = Column(String(255), nullable=True)
    target_job_title = Column(String(255), nullable=True)
    target_industry = Column(String(255), nullable=True)
    target_specialization = Column(String(255), nullable=True)
    experience_level = Column(String(32), nullable=True)

    personal_info = Column(JSON, nullable=False, default=dict)
    content = Column(JSON, nullable=False, default=dict)
    design_config = Column(JSON, nullable=False, default=dict)
    settings = Column(JSON, nullable=False, default=dict)

    is_public = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Resume(DocumentMixin, Base):
    __tablename__ = "resumes"


class CV(DocumentMixin, Base):
    __tablename__ = "cvs"


class CoverLetter(DocumentMixin, Base):
    __tablename__ = "cover_letters"

    target_company = Column(String(255), nullable=True)
    linked_resume_id = Column(String(36), nullable=True)
    application_status = Column(String(32), nullable=False, default="draft")
    status_notes = Column(Text, nullable=True)
    date_submitted = Column(DateTime(timezone=True), nullable=True)
