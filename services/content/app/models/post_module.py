import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base

from .enums import DRAFT_COLUMNS, DraftFlags, JsonDocument, SnapshotMode


class PostModule(Base):
    """Attachment of a module instance to a post.

    ``overrides`` only carries meaning for global instances. The four
    added/deleted booleans are read and written per draft mode through
    ``flags_for`` / ``set_flags``.
    """

    __tablename__ = "post_modules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    module_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("module_instances.id", ondelete="CASCADE"), nullable=False
    )
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admin_label: Mapped[str | None] = mapped_column(Text, nullable=True)

    overrides: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument, nullable=True)
    review_overrides: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument, nullable=True)
    ai_review_overrides: Mapped[dict[str, Any] | None] = mapped_column(JsonDocument, nullable=True)

    review_added: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    review_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ai_review_added: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ai_review_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

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
        UniqueConstraint("post_id", "module_id", name="uq_post_modules_post_module"),
        # Ordered retrieval when rendering pages
        Index("ix_post_modules_post_order", "post_id", "order_index"),
        Index("ix_post_modules_module_id", "module_id"),
    )

    def flags_for(self, mode: SnapshotMode) -> DraftFlags:
        cols = DRAFT_COLUMNS[mode]
        return DraftFlags(added=bool(getattr(self, cols.added)), deleted=bool(getattr(self, cols.deleted)))

    def set_flags(self, mode: SnapshotMode, flags: DraftFlags) -> None:
        cols = DRAFT_COLUMNS[mode]
        setattr(self, cols.added, flags.added)
        setattr(self, cols.deleted, flags.deleted)

    def shadow_overrides(self, mode: SnapshotMode) -> dict[str, Any] | None:
        return getattr(self, DRAFT_COLUMNS[mode].overrides)
