"""Revision history: capture, record, list and restore active-versions snapshots.

Restoring is an exact-state rollback. It writes the stored state straight into
the tables, recreating rows with their original ids, and never goes through the
snapshot applier or the draft synchronizer.
"""

import logging
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cms.actions import detach_module, get_post_by_id, list_post_modules, update_post
from app.cms.canonical import CustomFieldEntry
from app.cms.scope import parse_identifier
from app.models.custom_field import PostCustomFieldValue
from app.models.enums import DRAFT_MODES, ModuleScope, RevisionMode
from app.models.module_instance import ModuleInstance
from app.models.post import RESTORABLE_FIELD_COLUMNS, Post
from app.models.post_module import PostModule
from app.models.post_revision import PostRevision
from app.models.taxonomy import PostTaxonomyTerm
from app.revisions.exceptions import InvalidRevisionSnapshotError, RevisionNotFoundError
from app.revisions.schemas import (
    ACTIVE_VERSIONS_KIND,
    ActiveVersionsSnapshot,
    ModuleFlags,
    SnapshotModule,
    SnapshotPostFields,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------


async def _capture_post_fields(post: Post, db: AsyncSession) -> SnapshotPostFields:
    custom_fields = (
        await db.execute(
            select(PostCustomFieldValue)
            .where(PostCustomFieldValue.post_id == post.id)
            .order_by(PostCustomFieldValue.field_slug)
        )
    ).scalars().all()
    term_ids = (
        await db.execute(
            select(PostTaxonomyTerm.taxonomy_term_id)
            .where(PostTaxonomyTerm.post_id == post.id)
            .order_by(PostTaxonomyTerm.created_at)
        )
    ).scalars().all()
    return SnapshotPostFields(
        id=post.id,
        **{column: getattr(post, column) for column in RESTORABLE_FIELD_COLUMNS},
        custom_fields=[
            CustomFieldEntry(slug=row.field_slug, value=row.value) for row in custom_fields
        ],
        taxonomy_term_ids=[str(term_id) for term_id in term_ids],
    )


async def capture_active_versions_snapshot(post_id: UUID, db: AsyncSession) -> dict[str, Any]:
    """Composite of source, both drafts and every attachment of the post."""
    post = await get_post_by_id(post_id, db)

    rows = (
        await db.execute(
            select(PostModule, ModuleInstance)
            .join(ModuleInstance, PostModule.module_id == ModuleInstance.id)
            .where(PostModule.post_id == post_id)
            .order_by(PostModule.order_index, PostModule.created_at)
        )
    ).all()

    snapshot = ActiveVersionsSnapshot(
        post=await _capture_post_fields(post, db),
        review_draft=post.review_draft,
        ai_review_draft=post.ai_review_draft,
        modules=[
            SnapshotModule(
                post_module_id=attachment.id,
                module_instance_id=instance.id,
                type=instance.type,
                scope=instance.scope,
                post_id=instance.post_id,
                global_slug=instance.global_slug,
                global_label=instance.global_label,
                props=instance.props,
                review_props=instance.review_props,
                ai_review_props=instance.ai_review_props,
                order_index=attachment.order_index,
                locked=attachment.locked,
                admin_label=attachment.admin_label,
                overrides=attachment.overrides,
                review_overrides=attachment.review_overrides,
                ai_review_overrides=attachment.ai_review_overrides,
                flags=ModuleFlags.from_attachment(attachment),
            )
            for attachment, instance in rows
        ],
    )
    return snapshot.model_dump(by_alias=True, mode="json")


async def record_active_versions_snapshot(
    post_id: UUID,
    action: str,
    db: AsyncSession,
    user_id: UUID | None = None,
) -> PostRevision:
    snapshot = await capture_active_versions_snapshot(post_id, db)
    revision = PostRevision(
        post_id=post_id,
        mode=RevisionMode.ACTIVE_VERSIONS.value,
        action=action,
        snapshot=snapshot,
        user_id=user_id,
    )
    db.add(revision)
    await db.flush()
    logger.info("Recorded revision %s (%s) for post %s", revision.id, action, post_id)
    return revision


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


async def list_post_revisions(
    post_id: UUID,
    db: AsyncSession,
    *,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[PostRevision], int]:
    await get_post_by_id(post_id, db)
    total = (
        await db.execute(
            select(func.count()).select_from(PostRevision).where(PostRevision.post_id == post_id)
        )
    ).scalar_one()
    result = await db.execute(
        select(PostRevision)
        .where(PostRevision.post_id == post_id)
        .order_by(PostRevision.created_at.desc(), PostRevision.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def get_post_revision(post_id: UUID, revision_id: UUID, db: AsyncSession) -> PostRevision:
    result = await db.execute(
        select(PostRevision).where(
            PostRevision.id == revision_id,
            PostRevision.post_id == post_id,
        )
    )
    revision = result.scalar_one_or_none()
    if revision is None:
        raise RevisionNotFoundError(revision_id)
    return revision


async def compare_post_revision(
    post_id: UUID,
    revision_id: UUID,
    db: AsyncSession,
) -> tuple[PostRevision, dict[str, dict[str, Any]]]:
    """Source post fields that differ between now and ``revision_id``.

    Keys are the snapshot's camelCase field names, each mapped to
    ``{"current": ..., "revision": ...}``.
    """
    revision = await get_post_revision(post_id, revision_id, db)
    stored = parse_active_versions_snapshot(revision.snapshot).post
    post = await get_post_by_id(post_id, db)
    current = await _capture_post_fields(post, db)

    current_values = current.model_dump(by_alias=True, mode="json", exclude={"id"})
    revision_values = stored.model_dump(by_alias=True, mode="json", exclude={"id"})
    diff = {
        field: {"current": value, "revision": revision_values.get(field)}
        for field, value in current_values.items()
        if value != revision_values.get(field)
    }
    return revision, diff


# ---------------------------------------------------------------------------
# Restore
# ---------------------------------------------------------------------------


def parse_active_versions_snapshot(snapshot: Any) -> ActiveVersionsSnapshot:
    """Validate a stored composite snapshot without touching the database."""
    if not isinstance(snapshot, dict):
        raise InvalidRevisionSnapshotError("snapshot must be an object")
    if snapshot.get("kind") != ACTIVE_VERSIONS_KIND:
        raise InvalidRevisionSnapshotError(f"unsupported kind {snapshot.get('kind')!r}")
    if not snapshot.get("post"):
        raise InvalidRevisionSnapshotError("snapshot has no post")
    try:
        return ActiveVersionsSnapshot.model_validate(snapshot)
    except ValidationError as exc:
        raise InvalidRevisionSnapshotError(str(exc)) from exc


async def _restore_module(post_id: UUID, module: SnapshotModule, db: AsyncSession) -> None:
    instance = await db.get(ModuleInstance, module.module_instance_id)
    if instance is None:
        instance = ModuleInstance(id=module.module_instance_id)
        db.add(instance)
    instance.type = module.type
    instance.scope = module.scope
    instance.post_id = (module.post_id or post_id) if module.scope is ModuleScope.POST else None
    instance.global_slug = module.global_slug
    instance.global_label = module.global_label
    instance.props = module.props
    instance.review_props = module.review_props
    instance.ai_review_props = module.ai_review_props
    await db.flush()

    attachment = await db.get(PostModule, module.post_module_id)
    if attachment is None:
        attachment = PostModule(id=module.post_module_id)
        db.add(attachment)
    attachment.post_id = post_id
    attachment.module_id = instance.id
    attachment.order_index = module.order_index
    attachment.locked = module.locked
    attachment.admin_label = module.admin_label
    attachment.overrides = module.overrides
    attachment.review_overrides = module.review_overrides
    attachment.ai_review_overrides = module.ai_review_overrides
    for mode in DRAFT_MODES:
        attachment.set_flags(mode, module.flags.for_mode(mode))


async def restore_active_versions_snapshot(
    post_id: UUID,
    snapshot: dict[str, Any],
    db: AsyncSession,
) -> None:
    """Put the post back into exactly the state ``snapshot`` describes."""
    parsed = parse_active_versions_snapshot(snapshot)

    fields = {column: getattr(parsed.post, column) for column in RESTORABLE_FIELD_COLUMNS}
    fields["review_draft"] = parsed.review_draft
    fields["ai_review_draft"] = parsed.ai_review_draft
    await update_post(post_id, fields, db)

    await db.execute(delete(PostCustomFieldValue).where(PostCustomFieldValue.post_id == post_id))
    for entry in parsed.post.custom_fields:
        db.add(PostCustomFieldValue(post_id=post_id, field_slug=entry.slug, value=entry.value))

    await db.execute(delete(PostTaxonomyTerm).where(PostTaxonomyTerm.post_id == post_id))
    term_ids = [parse_identifier(raw) for raw in parsed.post.taxonomy_term_ids]
    for term_id in dict.fromkeys(term_id for term_id in term_ids if term_id is not None):
        db.add(PostTaxonomyTerm(post_id=post_id, taxonomy_term_id=term_id))
    await db.flush()

    keep = {module.post_module_id for module in parsed.modules}
    for attachment in await list_post_modules(post_id, db):
        if attachment.id not in keep:
            await detach_module(attachment.id, attachment.module_id, db)

    for module in parsed.modules:
        await _restore_module(post_id, module, db)
    await db.flush()

    logger.info(
        "Restored post %s from active-versions snapshot (%d modules)", post_id, len(parsed.modules)
    )


async def restore_post_revision(
    post_id: UUID,
    revision_id: UUID,
    db: AsyncSession,
    user_id: UUID | None = None,
) -> PostRevision:
    """Roll the post back to ``revision_id``, recording the current state first."""
    revision = await get_post_revision(post_id, revision_id, db)
    parse_active_versions_snapshot(revision.snapshot)

    await record_active_versions_snapshot(post_id, "before-restore", db, user_id=user_id)
    await restore_active_versions_snapshot(post_id, revision.snapshot, db)
    return revision
