import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base

from .enums import JsonDocument, PostStatus, post_status_enum


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    locale: Mapped[str] = mapped_column(String(16), nullable=False, default="en")
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[PostStatus] = mapped_column(
        post_status_enum, nullable=False, default=PostStatus.DRAFT
    )
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)

    # SEO / social
    meta_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    canonical_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    robots_json: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    jsonld_overrides: Mapped[dict | None] = mapped_column(JsonDocument, nullable=True)
    og_title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    og_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Soft reference: media assets live in the media service
    og_image_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    noindex: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    nofollow: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    featured_image_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # Hierarchy
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="SET NULL"), nullable=True
    )
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Soft reference: users live outside this database
    author_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # Denormalized pending drafts: post fields + modules + savedAt + savedBy, or NULL
    review_draft: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument, nullable=True)
    ai_review_draft: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    revisions = relationship("PostRevision", back_populates="post", lazy="noload")

    __table_args__ = (
        Index("ix_posts_type_locale_slug", "type", "locale", "slug", unique=True),
        Index("ix_posts_parent_id", "parent_id"),
        Index("ix_posts_status", "status"),
    )


# Scalar columns a canonical post may write to source
SOURCE_FIELD_COLUMNS = (
    "slug",
    "title",
    "status",
    "excerpt",
    "meta_title",
    "meta_description",
    "canonical_url",
    "robots_json",
    "jsonld_overrides",
    "og_title",
    "og_description",
    "og_image_id",
    "noindex",
    "nofollow",
    "featured_image_id",
)

# Everything a full revision restore rewrites, hierarchy included
RESTORABLE_FIELD_COLUMNS = SOURCE_FIELD_COLUMNS + (
    "type",
    "locale",
    "parent_id",
    "order_index",
    "author_id",
)
