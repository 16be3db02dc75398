"""Atomic write actions on posts and their modules.

Every action runs on the caller's session and only flushes; committing or
rolling back is the caller's transaction boundary.
"""

import copy
import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cms.exceptions import (
    GlobalSlugRequiredError,
    ModuleLockedError,
    PostModuleNotFoundError,
    PostNotFoundError,
    UnknownModuleTypeError,
)
from app.cms.scope import normalize_scope, parse_identifier, policy_for
from app.models.custom_field import PostCustomFieldValue
from app.models.enums import DraftFlags, ModuleScope, SnapshotMode, draft_columns
from app.models.module_instance import ModuleInstance
from app.models.post import Post
from app.models.post_module import PostModule
from app.models.taxonomy import PostTaxonomyTerm, Taxonomy, TaxonomyTerm
from app.registry.registry import ModuleRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


async def get_post_by_id(post_id: UUID, db: AsyncSession) -> Post:
    result = await db.execute(select(Post).where(Post.id == post_id))
    post = result.scalar_one_or_none()
    if post is None:
        raise PostNotFoundError(post_id)
    return post


async def update_post(post_id: UUID, fields: Mapping[str, Any], db: AsyncSession) -> Post:
    post = await get_post_by_id(post_id, db)
    for column, value in fields.items():
        setattr(post, column, value)
    await db.flush()
    return post


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


async def list_post_modules(post_id: UUID, db: AsyncSession) -> list[PostModule]:
    result = await db.execute(
        select(PostModule)
        .where(PostModule.post_id == post_id)
        .order_by(PostModule.order_index, PostModule.created_at)
    )
    return list(result.scalars().all())


async def add_module_to_post(
    post_id: UUID,
    module_type: str,
    scope: str | ModuleScope,
    db: AsyncSession,
    registry: ModuleRegistry,
    *,
    props: dict[str, Any] | None = None,
    global_slug: str | None = None,
    order_index: int | None = None,
    locked: bool = False,
    overrides: dict[str, Any] | None = None,
    admin_label: str | None = None,
    mode: SnapshotMode = SnapshotMode.SOURCE,
) -> tuple[ModuleInstance, PostModule]:
    """Create (or, for a known global slug, reuse) an instance and attach it.

    Empty props fall back to the type's default props. Without an order index
    the module is appended. In a draft mode the attachment is flagged as added
    in that mode.
    """
    post = await get_post_by_id(post_id, db)
    if not registry.has(module_type):
        raise UnknownModuleTypeError(module_type)

    scope = normalize_scope(scope)
    if scope is ModuleScope.GLOBAL and not global_slug:
        raise GlobalSlugRequiredError(module_type)

    instance: ModuleInstance | None = None
    if scope is ModuleScope.GLOBAL:
        result = await db.execute(
            select(ModuleInstance).where(
                ModuleInstance.scope == ModuleScope.GLOBAL,
                ModuleInstance.global_slug == global_slug,
            )
        )
        instance = result.scalar_one_or_none()

    if instance is None:
        initial_props = props if props else dict(registry.get_schema(module_type).default_props)
        instance = ModuleInstance(
            scope=scope,
            type=module_type,
            post_id=post.id if scope is ModuleScope.POST else None,
            global_slug=global_slug if scope is ModuleScope.GLOBAL else None,
            props=initial_props,
        )
        db.add(instance)
        await db.flush()

    if order_index is None:
        max_index = (
            await db.execute(
                select(func.max(PostModule.order_index)).where(PostModule.post_id == post.id)
            )
        ).scalar()
        order_index = (max_index if max_index is not None else -1) + 1

    attachment = PostModule(
        post_id=post.id,
        module_id=instance.id,
        order_index=order_index,
        locked=locked,
        admin_label=admin_label,
        overrides=overrides if policy_for(scope).overrides_mutable else None,
    )
    if mode.is_draft:
        attachment.set_flags(mode, DraftFlags(added=True))
    db.add(attachment)
    await db.flush()

    logger.debug(
        "Attached %s module %s to post %s as %s", scope.value, instance.id, post.id, attachment.id
    )
    return instance, attachment


def _deep_merge(base: dict[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    """Merge nested objects key by key; lists and scalars are replaced whole."""
    merged = dict(base)
    for key, value in changes.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


async def update_post_module(
    post_id: UUID,
    post_module_id: UUID,
    mode: SnapshotMode,
    changes: Mapping[str, Any],
    db: AsyncSession,
) -> tuple[ModuleInstance, PostModule]:
    """Edit one attachment in place for ``mode``.

    ``changes`` holds only the keys the caller sent: ``order_index``,
    ``overrides``, ``locked``, ``admin_label``. ``overrides`` on a post-scope
    module are deep-merged into the mode's props column; on a global module
    they replace the mode's overrides column. Order and admin label belong to
    source, so draft modes leave them alone.
    """
    mode = SnapshotMode(mode)
    attachment = await db.get(PostModule, post_module_id)
    if attachment is None or attachment.post_id != post_id:
        raise PostModuleNotFoundError(post_module_id)
    if attachment.locked and changes.get("order_index") is not None:
        raise ModuleLockedError(post_module_id)
    instance = await db.get(ModuleInstance, attachment.module_id)

    if not mode.is_draft:
        if changes.get("order_index") is not None:
            attachment.order_index = changes["order_index"]
        if "admin_label" in changes:
            attachment.admin_label = changes["admin_label"]

    if "overrides" in changes:
        overrides = changes["overrides"]
        if policy_for(instance.scope).props_mutable:
            base = instance.props
            if mode.is_draft:
                base = instance.shadow_props(mode) or instance.props
            merged = _deep_merge(copy.deepcopy(base or {}), overrides or {})
            if mode.is_draft:
                setattr(instance, draft_columns(mode).props, merged)
            else:
                instance.props = merged
        elif mode.is_draft:
            setattr(attachment, draft_columns(mode).overrides, overrides)
        else:
            attachment.overrides = overrides

    if changes.get("locked") is not None:
        attachment.locked = changes["locked"]

    await db.flush()
    logger.debug("Updated module attachment %s of post %s (%s)", post_module_id, post_id, mode.value)
    return instance, attachment


async def detach_module(attachment_id: UUID, module_id: UUID, db: AsyncSession) -> None:
    """Delete an attachment, and its instance when the scope ties them together."""
    await db.execute(delete(PostModule).where(PostModule.id == attachment_id))
    instance = await db.get(ModuleInstance, module_id)
    if instance is not None and policy_for(instance.scope).dies_with_attachment:
        await db.execute(delete(ModuleInstance).where(ModuleInstance.id == module_id))


# ---------------------------------------------------------------------------
# Custom fields
# ---------------------------------------------------------------------------


def _unwrap_json(value: Any) -> Any:
    """Undo accidental double (or deeper) JSON encoding of a field value."""
    if isinstance(value, str):
        trimmed = value.strip()
        if (trimmed.startswith("[") and trimmed.endswith("]")) or (
            trimmed.startswith("{") and trimmed.endswith("}")
        ):
            try:
                return _unwrap_json(json.loads(trimmed))
            except ValueError:
                return value
    if isinstance(value, list) and len(value) == 1 and isinstance(value[0], str):
        trimmed = value[0].strip()
        if trimmed.startswith("[") and trimmed.endswith("]"):
            try:
                parsed = json.loads(trimmed)
            except ValueError:
                return value
            if isinstance(parsed, list):
                return _unwrap_json(parsed)
    return value


async def upsert_post_custom_fields(
    post_id: UUID,
    custom_fields: Iterable[Mapping[str, Any]],
    db: AsyncSession,
) -> None:
    """Merge values by slug. Slugs absent from ``custom_fields`` are untouched."""
    entries: dict[str, Any] = {}
    for entry in custom_fields:
        slug = str(entry.get("slug") or "").strip()
        if slug:
            entries[slug] = _unwrap_json(entry.get("value"))
    if not entries:
        return

    result = await db.execute(
        select(PostCustomFieldValue).where(
            PostCustomFieldValue.post_id == post_id,
            PostCustomFieldValue.field_slug.in_(list(entries)),
        )
    )
    existing = {row.field_slug: row for row in result.scalars().all()}

    for slug, value in entries.items():
        row = existing.get(slug)
        if row is not None:
            row.value = value
        else:
            db.add(PostCustomFieldValue(post_id=post_id, field_slug=slug, value=value))
    await db.flush()


# ---------------------------------------------------------------------------
# Taxonomies
# ---------------------------------------------------------------------------


async def apply_post_taxonomy_assignments(
    post_id: UUID,
    post_type: str,
    term_ids: Iterable[str],
    db: AsyncSession,
) -> None:
    """Replace the post's terms within the taxonomies enabled for ``post_type``."""
    taxonomies = (await db.execute(select(Taxonomy.id, Taxonomy.post_types))).all()
    allowed_taxonomy_ids = [
        taxonomy_id
        for taxonomy_id, post_types in taxonomies
        if post_types is None or post_type in post_types
    ]
    if not allowed_taxonomy_ids:
        return

    allowed_term_ids = list(
        (
            await db.execute(
                select(TaxonomyTerm.id).where(TaxonomyTerm.taxonomy_id.in_(allowed_taxonomy_ids))
            )
        ).scalars()
    )

    requested: list[UUID] = []
    for raw in term_ids:
        term_id = parse_identifier(str(raw))
        if term_id is not None and term_id in allowed_term_ids and term_id not in requested:
            requested.append(term_id)

    if allowed_term_ids:
        await db.execute(
            delete(PostTaxonomyTerm).where(
                PostTaxonomyTerm.post_id == post_id,
                PostTaxonomyTerm.taxonomy_term_id.in_(allowed_term_ids),
            )
        )
    for term_id in requested:
        db.add(PostTaxonomyTerm(post_id=post_id, taxonomy_term_id=term_id))
    await db.flush()
