"""Editorial transitions between source, review and ai-review.

Every transition that discards or overwrites a draft records an
active-versions revision first so it can be rolled back.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.cms.actions import detach_module, get_post_by_id, list_post_modules
from app.cms.canonical import CanonicalPost
from app.cms.draft_sync import clear_draft, refresh_atomic_draft, require_draft_mode
from app.cms.exceptions import ModuleLockedError, NoPendingDraftError, PostModuleNotFoundError
from app.cms.serializer import serialize_post
from app.cms.snapshot import apply_snapshot
from app.models.enums import DRAFT_MODES, DraftFlags, SnapshotMode, draft_columns
from app.models.post_module import PostModule
from app.registry.registry import ModuleRegistry
from app.revisions.service import record_active_versions_snapshot
from app.richtext.lexical import markdown_to_lexical
from app.richtext.normalize import RichTextNormalizer

logger = logging.getLogger(__name__)


async def _require_pending_draft(post_id: UUID, mode: SnapshotMode, db: AsyncSession) -> None:
    post = await get_post_by_id(post_id, db)
    if getattr(post, draft_columns(mode).draft) is None:
        raise NoPendingDraftError(post_id, mode.value)


async def delete_post_module(
    post_id: UUID,
    post_module_id: UUID,
    mode: SnapshotMode,
    db: AsyncSession,
) -> None:
    """Remove an attachment from the post as seen in ``mode``.

    Source deletes the row (and a post-scope instance). A draft mode only
    flags the row as deleted in that mode and refreshes the mode's JSON draft.
    """
    mode = SnapshotMode(mode)
    attachment = await db.get(PostModule, post_module_id)
    if attachment is None or attachment.post_id != post_id:
        raise PostModuleNotFoundError(post_module_id)
    if attachment.locked:
        raise ModuleLockedError(post_module_id)

    if not mode.is_draft:
        await detach_module(attachment.id, attachment.module_id, db)
        logger.info("Deleted module attachment %s from post %s", post_module_id, post_id)
        return

    flags = attachment.flags_for(mode)
    attachment.set_flags(mode, DraftFlags(added=flags.added, deleted=True))
    await db.flush()
    await refresh_atomic_draft(post_id, mode, db)


async def reject_draft(
    post_id: UUID,
    mode: SnapshotMode,
    db: AsyncSession,
    user_id: UUID | None = None,
) -> None:
    """Throw away the pending draft of ``mode`` along with the modules it introduced."""
    mode = require_draft_mode(mode)
    await get_post_by_id(post_id, db)
    await record_active_versions_snapshot(post_id, f"reject-{mode.value}", db, user_id=user_id)

    for attachment in await list_post_modules(post_id, db):
        if not attachment.flags_for(mode).added:
            continue
        # Still part of another pending draft
        if any(attachment.flags_for(other).added for other in DRAFT_MODES if other is not mode):
            continue
        await detach_module(attachment.id, attachment.module_id, db)

    await clear_draft(post_id, mode, db)
    logger.info("Rejected %s draft of post %s", mode.value, post_id)


async def promote_ai_review_to_review(
    post_id: UUID,
    db: AsyncSession,
    registry: ModuleRegistry,
    user_id: UUID | None = None,
    normalizer: RichTextNormalizer = markdown_to_lexical,
) -> CanonicalPost:
    """Make the AI agent's draft the pending human review draft."""
    await _require_pending_draft(post_id, SnapshotMode.AI_REVIEW, db)
    await record_active_versions_snapshot(
        post_id, "promote-ai-review-to-review", db, user_id=user_id
    )

    snapshot = await serialize_post(
        post_id, SnapshotMode.AI_REVIEW, db, bypass_denormalized_draft=True
    )
    applied = await apply_snapshot(
        post_id, snapshot, SnapshotMode.REVIEW, db, registry, normalizer
    )
    await clear_draft(post_id, SnapshotMode.AI_REVIEW, db)
    logger.info("Promoted ai-review draft of post %s to review", post_id)
    return applied


async def publish_review(
    post_id: UUID,
    db: AsyncSession,
    registry: ModuleRegistry,
    user_id: UUID | None = None,
    normalizer: RichTextNormalizer = markdown_to_lexical,
) -> CanonicalPost:
    """Apply the pending review draft to source, which also clears it."""
    await _require_pending_draft(post_id, SnapshotMode.REVIEW, db)
    await record_active_versions_snapshot(post_id, "publish-review", db, user_id=user_id)

    snapshot = await serialize_post(post_id, SnapshotMode.REVIEW, db)
    applied = await apply_snapshot(
        post_id, snapshot, SnapshotMode.SOURCE, db, registry, normalizer
    )
    logger.info("Published review draft of post %s", post_id)
    return applied
