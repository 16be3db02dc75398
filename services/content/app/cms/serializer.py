"""Rebuild a canonical post from storage for one mode."""

import copy
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cms.actions import get_post_by_id
from app.cms.canonical import (
    CanonicalModule,
    CanonicalPost,
    CanonicalPostFields,
    CustomFieldEntry,
)
from app.cms.scope import policy_for
from app.models.custom_field import PostCustomFieldValue
from app.models.enums import DRAFT_MODES, SnapshotMode, draft_columns
from app.models.module_instance import ModuleInstance
from app.models.post import SOURCE_FIELD_COLUMNS, Post
from app.models.post_module import PostModule
from app.models.taxonomy import PostTaxonomyTerm


def is_visible(attachment: PostModule, mode: SnapshotMode) -> bool:
    """Whether ``attachment`` belongs to the post as seen in ``mode``.

    Rows added by a draft stay out of source until published. A draft hides
    the rows it deleted and the rows only another draft added.
    """
    added_elsewhere = any(
        attachment.flags_for(other).added for other in DRAFT_MODES if other is not mode
    )
    if mode is SnapshotMode.SOURCE:
        return not added_elsewhere
    flags = attachment.flags_for(mode)
    if flags.deleted:
        return False
    return flags.added or not added_elsewhere


def serialize_module(
    attachment: PostModule, instance: ModuleInstance, mode: SnapshotMode
) -> CanonicalModule:
    """One attachment as seen in ``mode``.

    Shadow columns the instance's scope does not allow to vary are ignored.
    """
    props = instance.props
    overrides = attachment.overrides
    if mode.is_draft:
        policy = policy_for(instance.scope)
        shadow_props = instance.shadow_props(mode)
        shadow_overrides = attachment.shadow_overrides(mode)
        if policy.props_mutable and shadow_props is not None:
            props = shadow_props
        if policy.overrides_mutable and shadow_overrides is not None:
            overrides = shadow_overrides
    return CanonicalModule(
        post_module_id=str(attachment.id),
        module_instance_id=str(instance.id),
        type=instance.type,
        scope=instance.scope,
        order_index=attachment.order_index,
        locked=attachment.locked,
        props=copy.deepcopy(props),
        overrides=copy.deepcopy(overrides),
        global_slug=instance.global_slug,
        admin_label=attachment.admin_label,
    )


async def _post_fields(post: Post, db: AsyncSession) -> CanonicalPostFields:
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
    return CanonicalPostFields(
        type=post.type,
        locale=post.locale,
        **{column: copy.deepcopy(getattr(post, column)) for column in SOURCE_FIELD_COLUMNS},
        custom_fields=[
            CustomFieldEntry(slug=row.field_slug, value=copy.deepcopy(row.value))
            for row in custom_fields
        ],
        taxonomy_term_ids=[str(term_id) for term_id in term_ids],
    )


async def serialize_post(
    post_id: UUID,
    mode: SnapshotMode,
    db: AsyncSession,
    *,
    bypass_denormalized_draft: bool = False,
) -> CanonicalPost:
    """Current state of the post in ``mode``.

    A draft mode answers from its JSON draft when one is stored. With
    ``bypass_denormalized_draft`` the modules are rebuilt from the granular
    columns instead; post fields still come from the stored draft when there
    is one, since they have no granular counterpart.
    """
    mode = SnapshotMode(mode)
    post = await get_post_by_id(post_id, db)

    blob = getattr(post, draft_columns(mode).draft) if mode.is_draft else None
    if blob and not bypass_denormalized_draft:
        return CanonicalPost.from_draft(copy.deepcopy(blob))

    if blob:
        fields = CanonicalPost.from_draft(copy.deepcopy(blob)).post
    else:
        fields = await _post_fields(post, db)

    rows = (
        await db.execute(
            select(PostModule, ModuleInstance)
            .join(ModuleInstance, PostModule.module_id == ModuleInstance.id)
            .where(PostModule.post_id == post.id)
            .order_by(PostModule.order_index, PostModule.created_at)
        )
    ).all()
    modules = [
        serialize_module(attachment, instance, mode)
        for attachment, instance in rows
        if is_visible(attachment, mode)
    ]
    return CanonicalPost(post=fields, modules=modules)
