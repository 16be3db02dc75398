"""Keep a draft's JSON document and its granular shadow columns in agreement.

The JSON draft on ``posts`` is the fast read path; the per-mode columns on
``module_instances`` / ``post_modules`` are what the editor manipulates row by
row. Neither is authoritative on its own.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cms.actions import get_post_by_id
from app.cms.canonical import CanonicalPost
from app.cms.exceptions import NotADraftModeError
from app.cms.scope import parse_identifier, policy_for
from app.cms.serializer import serialize_post
from app.models.enums import (
    DRAFT_MODES,
    DraftFlags,
    ModuleScope,
    SnapshotMode,
    draft_columns,
)
from app.models.module_instance import ModuleInstance
from app.models.post_module import PostModule

logger = logging.getLogger(__name__)

SYNC_SAVED_BY = "System (Sync)"


def require_draft_mode(mode: SnapshotMode | str) -> SnapshotMode:
    try:
        mode = SnapshotMode(mode)
    except ValueError:
        raise NotADraftModeError(str(mode)) from None
    if not mode.is_draft:
        raise NotADraftModeError(mode.value)
    return mode


async def sync_draft_columns(
    post_id: UUID,
    snapshot: CanonicalPost,
    mode: SnapshotMode,
    db: AsyncSession,
) -> None:
    """Project ``snapshot`` onto the granular columns of ``mode``.

    The deleted flag is recomputed for every attachment of the post on each
    save, so a module dropped in one save and restored in the next comes back.
    Entries without a storage id are skipped here.
    """
    mode = require_draft_mode(mode)
    cols = draft_columns(mode)

    rows = (
        await db.execute(
            select(PostModule, ModuleInstance)
            .join(ModuleInstance, PostModule.module_id == ModuleInstance.id)
            .where(PostModule.post_id == post_id)
        )
    ).all()
    incoming = {}
    for module in snapshot.modules:
        attachment_id = parse_identifier(module.post_module_id)
        if attachment_id is None:
            logger.debug("Skipping %s module without a storage id in %s sync", module.type, mode.value)
            continue
        incoming[attachment_id] = module

    for attachment, instance in rows:
        flags = attachment.flags_for(mode)
        module = incoming.get(attachment.id)
        if module is None:
            attachment.set_flags(mode, DraftFlags(added=flags.added, deleted=True))
            continue

        # A row another draft introduced now belongs to this draft too
        added = flags.added or any(
            attachment.flags_for(other).added for other in DRAFT_MODES if other is not mode
        )
        attachment.set_flags(mode, DraftFlags(added=added, deleted=False))

        attachment.admin_label = module.admin_label
        # The stored scope decides; a shared instance never takes one post's shadow props
        policy = policy_for(instance.scope)
        if policy.overrides_mutable:
            setattr(attachment, cols.overrides, module.overrides)
        if policy.props_mutable:
            setattr(instance, cols.props, module.props)

    await db.flush()


async def clear_draft(post_id: UUID, mode: SnapshotMode, db: AsyncSession) -> None:
    """Drop the pending draft for ``mode``: JSON column, shadow columns and flags."""
    mode = require_draft_mode(mode)
    cols = draft_columns(mode)

    post = await get_post_by_id(post_id, db)
    setattr(post, cols.draft, None)

    # Global instances are shared; only this post's own instances carry its shadow props
    instances = (
        await db.execute(
            select(ModuleInstance).where(
                ModuleInstance.post_id == post_id,
                ModuleInstance.scope == ModuleScope.POST,
            )
        )
    ).scalars().all()
    for instance in instances:
        setattr(instance, cols.props, None)

    attachments = (
        await db.execute(select(PostModule).where(PostModule.post_id == post_id))
    ).scalars().all()
    for attachment in attachments:
        setattr(attachment, cols.overrides, None)
        attachment.set_flags(mode, DraftFlags())

    await db.flush()
    logger.info("Cleared %s draft of post %s", mode.value, post_id)


async def refresh_atomic_draft(post_id: UUID, mode: SnapshotMode, db: AsyncSession) -> dict:
    """Rewrite the JSON draft of ``mode`` from the granular columns."""
    mode = require_draft_mode(mode)
    snapshot = await serialize_post(post_id, mode, db, bypass_denormalized_draft=True)
    draft = snapshot.to_draft(SYNC_SAVED_BY)

    post = await get_post_by_id(post_id, db)
    setattr(post, draft_columns(mode).draft, draft)
    await db.flush()
    logger.info("Refreshed %s draft of post %s from granular state", mode.value, post_id)
    return draft
