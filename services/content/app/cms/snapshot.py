"""Project a canonical post into one storage target.

``source`` rewrites the live tables. ``review`` and ``ai-review`` leave the
live content alone and write the mode's JSON draft together with its granular
shadow columns.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.cms.actions import (
    add_module_to_post,
    apply_post_taxonomy_assignments,
    detach_module,
    get_post_by_id,
    list_post_modules,
    update_post,
    upsert_post_custom_fields,
)
from app.cms.canonical import CanonicalModule, CanonicalPost
from app.cms.draft_sync import clear_draft, sync_draft_columns
from app.cms.scope import parse_identifier, policy_for
from app.models.enums import DRAFT_MODES, DraftFlags, SnapshotMode, draft_columns
from app.models.module_instance import ModuleInstance
from app.models.post_module import PostModule
from app.registry.registry import ModuleRegistry
from app.richtext.lexical import markdown_to_lexical
from app.richtext.normalize import RichTextNormalizer, normalize_snapshot_richtext

logger = logging.getLogger(__name__)


async def apply_snapshot(
    post_id: UUID,
    snapshot: CanonicalPost,
    mode: SnapshotMode,
    db: AsyncSession,
    registry: ModuleRegistry,
    normalizer: RichTextNormalizer = markdown_to_lexical,
) -> CanonicalPost:
    """Make storage reflect ``snapshot`` for ``mode``, and only that mode.

    Returns the snapshot as applied: richtext normalized and newly created
    modules carrying their storage ids. The caller's ``snapshot`` is not
    modified.
    """
    mode = SnapshotMode(mode)
    snapshot = snapshot.model_copy(deep=True)
    normalize_snapshot_richtext(snapshot, registry, normalizer)

    if mode is SnapshotMode.SOURCE:
        await apply_to_source(post_id, snapshot, db, registry)
    else:
        await apply_to_draft(post_id, snapshot, mode, db, registry)

    logger.info(
        "Applied snapshot to post %s (%s, %d modules)", post_id, mode.value, len(snapshot.modules)
    )
    return snapshot


async def _add_module(
    post_id: UUID,
    module: CanonicalModule,
    mode: SnapshotMode,
    db: AsyncSession,
    registry: ModuleRegistry,
) -> None:
    instance, attachment = await add_module_to_post(
        post_id,
        module.type,
        module.scope,
        db,
        registry,
        props=module.props,
        global_slug=module.global_slug,
        order_index=module.order_index,
        locked=module.locked,
        overrides=module.overrides,
        admin_label=module.admin_label,
        mode=mode,
    )
    module.post_module_id = str(attachment.id)
    module.module_instance_id = str(instance.id)
    module.order_index = attachment.order_index


# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------


def _held_by_pending_draft(attachment: PostModule) -> bool:
    # A source save discards the review draft but keeps every other draft
    return any(
        attachment.flags_for(mode).added for mode in DRAFT_MODES if mode is not SnapshotMode.REVIEW
    )


async def reconcile_modules(
    post_id: UUID,
    snapshot: CanonicalPost,
    db: AsyncSession,
    registry: ModuleRegistry,
) -> None:
    existing = await list_post_modules(post_id, db)
    incoming_ids = {parse_identifier(module.post_module_id) for module in snapshot.modules}
    incoming_ids.discard(None)

    kept: dict[UUID, PostModule] = {}
    for attachment in existing:
        if attachment.id in incoming_ids:
            kept[attachment.id] = attachment
        elif not _held_by_pending_draft(attachment):
            await detach_module(attachment.id, attachment.module_id, db)

    for module in snapshot.modules:
        attachment = kept.get(parse_identifier(module.post_module_id))
        if attachment is None:
            await _add_module(post_id, module, SnapshotMode.SOURCE, db, registry)
            continue

        # Scope is fixed at creation; the payload's scope label is not trusted
        instance = await db.get(ModuleInstance, attachment.module_id)
        policy = policy_for(instance.scope)
        if policy.props_mutable and module.props is not None:
            instance.props = module.props
        if module.order_index is not None:
            attachment.order_index = module.order_index
        attachment.locked = module.locked
        attachment.admin_label = module.admin_label
        if policy.overrides_mutable:
            attachment.overrides = module.overrides
        # Rows a draft introduced are live from here on
        for mode in DRAFT_MODES:
            flags = attachment.flags_for(mode)
            attachment.set_flags(mode, DraftFlags(added=False, deleted=flags.deleted))

    await db.flush()


async def apply_to_source(
    post_id: UUID,
    snapshot: CanonicalPost,
    db: AsyncSession,
    registry: ModuleRegistry,
) -> None:
    post = await update_post(post_id, snapshot.post.source_fields(), db)

    if snapshot.post.custom_fields is not None:
        await upsert_post_custom_fields(
            post_id, [entry.model_dump() for entry in snapshot.post.custom_fields], db
        )
    if snapshot.post.taxonomy_term_ids is not None:
        await apply_post_taxonomy_assignments(
            post_id, post.type, snapshot.post.taxonomy_term_ids, db
        )

    await reconcile_modules(post_id, snapshot, db, registry)

    # Publishing supersedes the pending review; the ai-review draft is kept
    await clear_draft(post_id, SnapshotMode.REVIEW, db)


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------


async def apply_to_draft(
    post_id: UUID,
    snapshot: CanonicalPost,
    mode: SnapshotMode,
    db: AsyncSession,
    registry: ModuleRegistry,
) -> None:
    """Store ``snapshot`` as the pending draft of ``mode``.

    Modules new to this draft get rows flagged as added in ``mode`` so that
    the JSON draft and the granular columns always describe the same modules.
    """
    cols = draft_columns(mode)
    post = await get_post_by_id(post_id, db)

    for module in snapshot.modules:
        if parse_identifier(module.post_module_id) is None:
            await _add_module(post_id, module, mode, db, registry)

    setattr(post, cols.draft, snapshot.to_draft(cols.saved_by))
    await db.flush()

    await sync_draft_columns(post_id, snapshot, mode, db)
