import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base

from .enums import JsonDocument


class PostRevision(Base):
    """Immutable point-in-time capture of a post, taken before workflow transitions.

    ``snapshot`` holds an active-versions composite (source + both drafts +
    every attachment with its shadow columns and flags) and is what a
    rollback restores from.
    """

    __tablename__ = "post_revisions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    # RevisionMode value
    mode: Mapped[str] = mapped_column(String(32), nullable=False)
    # e.g. 'reject-review', 'promote-ai-review-to-review', 'before-restore'
    action: Mapped[str | None] = mapped_column(String(100), nullable=True)
    snapshot: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
    # Soft reference: users live outside this database
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    post = relationship("Post", back_populates="revisions", lazy="noload")

    __table_args__ = (
        Index("ix_post_revisions_post_created", "post_id", "created_at"),
    )
