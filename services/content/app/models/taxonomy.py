import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base

from .enums import JsonDocument


class Taxonomy(Base):
    __tablename__ = "taxonomies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Post types this taxonomy is enabled for; NULL means every type
    post_types: Mapped[list[str] | None] = mapped_column(JsonDocument, nullable=True)


class TaxonomyTerm(Base):
    __tablename__ = "taxonomy_terms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    taxonomy_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("taxonomies.id", ondelete="CASCADE"), nullable=False
    )
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("taxonomy_id", "slug", name="uq_taxonomy_terms_taxonomy_slug"),
    )


class PostTaxonomyTerm(Base):
    __tablename__ = "post_taxonomy_terms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    taxonomy_term_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("taxonomy_terms.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("post_id", "taxonomy_term_id", name="uq_post_taxonomy_terms_post_term"),
        Index("ix_post_taxonomy_terms_post_id", "post_id"),
    )
