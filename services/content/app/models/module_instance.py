import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base

from .enums import DRAFT_COLUMNS, JsonDocument, ModuleScope, SnapshotMode, module_scope_enum


class ModuleInstance(Base):
    """A configured unit of page content.

    ``props`` is the source of truth; ``review_props`` / ``ai_review_props`` hold
    the same shape for pending drafts. Scope never changes after creation.
    """

    __tablename__ = "module_instances"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    scope: Mapped[ModuleScope] = mapped_column(module_scope_enum, nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    # Owning post for scope='post'
    post_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True
    )
    global_slug: Mapped[str | None] = mapped_column(String(255), nullable=True)
    global_label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    props: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False, default=dict)
    review_props: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument, nullable=True)
    ai_review_props: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("scope", "global_slug", name="uq_module_instances_scope_global_slug"),
        Index("ix_module_instances_scope_type", "scope", "type"),
        Index("ix_module_instances_post_id", "post_id"),
    )

    def shadow_props(self, mode: SnapshotMode) -> dict[str, Any] | None:
        return getattr(self, DRAFT_COLUMNS[mode].props)
