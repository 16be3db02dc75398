"""Composite "active-versions" snapshot and revision API models."""

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.cms.canonical import CamelModel, CustomFieldEntry
from app.cms.scope import normalize_scope
from app.models.enums import DraftFlags, ModuleScope, PostStatus, SnapshotMode
from app.models.post_module import PostModule

ACTIVE_VERSIONS_KIND = "active-versions"


class ModuleFlags(CamelModel):
    """The four per-mode added/deleted flags of an attachment, as stored on the wire."""

    review_added: bool = False
    review_deleted: bool = False
    ai_review_added: bool = False
    ai_review_deleted: bool = False

    @classmethod
    def from_attachment(cls, attachment: PostModule) -> "ModuleFlags":
        review = attachment.flags_for(SnapshotMode.REVIEW)
        ai_review = attachment.flags_for(SnapshotMode.AI_REVIEW)
        return cls(
            review_added=review.added,
            review_deleted=review.deleted,
            ai_review_added=ai_review.added,
            ai_review_deleted=ai_review.deleted,
        )

    def for_mode(self, mode: SnapshotMode) -> DraftFlags:
        if mode is SnapshotMode.REVIEW:
            return DraftFlags(added=self.review_added, deleted=self.review_deleted)
        if mode is SnapshotMode.AI_REVIEW:
            return DraftFlags(added=self.ai_review_added, deleted=self.ai_review_deleted)
        raise ValueError(f"'{mode}' is not a draft mode")


class SnapshotPostFields(CamelModel):
    id: uuid.UUID | None = None
    type: str
    locale: str = "en"
    slug: str
    title: str
    status: PostStatus = PostStatus.DRAFT
    excerpt: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    canonical_url: str | None = None
    robots_json: dict[str, Any] | None = None
    jsonld_overrides: dict[str, Any] | None = None
    og_title: str | None = None
    og_description: str | None = None
    og_image_id: uuid.UUID | None = None
    noindex: bool = False
    nofollow: bool = False
    featured_image_id: uuid.UUID | None = None
    parent_id: uuid.UUID | None = None
    order_index: int = 0
    author_id: uuid.UUID | None = None
    custom_fields: list[CustomFieldEntry] = Field(default_factory=list)
    taxonomy_term_ids: list[str] = Field(default_factory=list)


class SnapshotModule(CamelModel):
    """An attachment with its instance, shadow columns and flags."""

    post_module_id: uuid.UUID
    module_instance_id: uuid.UUID
    type: str
    scope: ModuleScope
    # Owning post of a post-scope instance
    post_id: uuid.UUID | None = None
    global_slug: str | None = None
    global_label: str | None = None
    props: dict[str, Any] = Field(default_factory=dict)
    review_props: dict[str, Any] | None = None
    ai_review_props: dict[str, Any] | None = None
    order_index: int = 0
    locked: bool = False
    admin_label: str | None = None
    overrides: dict[str, Any] | None = None
    review_overrides: dict[str, Any] | None = None
    ai_review_overrides: dict[str, Any] | None = None
    flags: ModuleFlags = Field(default_factory=ModuleFlags)

    @field_validator("scope", mode="before")
    @classmethod
    def _normalize_scope(cls, value: Any) -> Any:
        if isinstance(value, str):
            return normalize_scope(value)
        return value

    @field_validator("props", mode="before")
    @classmethod
    def _props_default(cls, value: Any) -> Any:
        return {} if value is None else value


class ActiveVersionsSnapshot(CamelModel):
    kind: Literal["active-versions"] = ACTIVE_VERSIONS_KIND
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    post: SnapshotPostFields
    review_draft: dict[str, Any] | None = None
    ai_review_draft: dict[str, Any] | None = None
    modules: list[SnapshotModule] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# API models
# ---------------------------------------------------------------------------


class PostRevisionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    post_id: uuid.UUID
    mode: str
    action: str | None
    user_id: uuid.UUID | None
    created_at: datetime


class PostRevisionDetailResponse(PostRevisionResponse):
    snapshot: dict[str, Any]


class FieldChange(BaseModel):
    current: Any = None
    revision: Any = None


class RevisionComparisonResponse(BaseModel):
    post_id: uuid.UUID
    revision_id: uuid.UUID
    mode: str
    created_at: datetime
    diff: dict[str, FieldChange]
    has_changes: bool
