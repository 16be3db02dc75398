"""CMS controller: orchestration layer between router and service modules.

Maps HTTP requests to snapshot/workflow calls, translates domain exceptions to
HTTPException, and composes response models.
"""

from typing import Any
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.cms import actions, draft_sync, serializer, snapshot, workflow
from app.cms.canonical import CanonicalModule, CanonicalPost
from app.cms.exceptions import (
    GlobalSlugRequiredError,
    ModuleLockedError,
    NoPendingDraftError,
    NotADraftModeError,
    PostModuleNotFoundError,
    PostNotFoundError,
    UnknownModuleTypeError,
)
from app.cms.schemas import (
    AddModuleRequest,
    AddModuleResponse,
    DraftResponse,
    UpdateModuleRequest,
)
from app.exceptions import ConflictError, NotFoundError, UnprocessableError
from app.models.enums import SnapshotMode
from app.registry.registry import ModuleRegistry


def _parse_snapshot(payload: dict[str, Any]) -> CanonicalPost:
    """Accept either a canonical document or a flat editor payload."""
    try:
        if isinstance(payload.get("post"), dict):
            return CanonicalPost.model_validate(payload)
        return CanonicalPost.from_payload(payload)
    except (ValidationError, ValueError) as exc:
        raise UnprocessableError(f"Invalid snapshot: {exc}")


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


async def get_snapshot(
    post_id: UUID,
    mode: SnapshotMode,
    db: AsyncSession,
    *,
    bypass_denormalized_draft: bool = False,
) -> CanonicalPost:
    try:
        return await serializer.serialize_post(
            post_id, mode, db, bypass_denormalized_draft=bypass_denormalized_draft
        )
    except PostNotFoundError:
        raise NotFoundError(f"Post {post_id} not found")


async def apply_snapshot(
    post_id: UUID,
    mode: SnapshotMode,
    payload: dict[str, Any],
    db: AsyncSession,
    registry: ModuleRegistry,
) -> CanonicalPost:
    canonical = _parse_snapshot(payload)
    try:
        return await snapshot.apply_snapshot(post_id, canonical, mode, db, registry)
    except PostNotFoundError:
        raise NotFoundError(f"Post {post_id} not found")
    except (UnknownModuleTypeError, GlobalSlugRequiredError) as exc:
        raise UnprocessableError(str(exc))


async def add_module(
    post_id: UUID,
    body: AddModuleRequest,
    db: AsyncSession,
    registry: ModuleRegistry,
) -> AddModuleResponse:
    try:
        instance, attachment = await actions.add_module_to_post(
            post_id,
            body.type,
            body.scope,
            db,
            registry,
            props=body.props,
            global_slug=body.global_slug,
            order_index=body.order_index,
            locked=body.locked,
            overrides=body.overrides,
            admin_label=body.admin_label,
            mode=body.mode,
        )
    except PostNotFoundError:
        raise NotFoundError(f"Post {post_id} not found")
    except (UnknownModuleTypeError, GlobalSlugRequiredError) as exc:
        raise UnprocessableError(str(exc))
    if body.mode.is_draft:
        await draft_sync.refresh_atomic_draft(post_id, body.mode, db)
    return AddModuleResponse(
        post_module_id=attachment.id,
        module_instance_id=instance.id,
        order_index=attachment.order_index,
    )


async def update_module(
    post_id: UUID,
    post_module_id: UUID,
    mode: SnapshotMode,
    body: UpdateModuleRequest,
    db: AsyncSession,
) -> CanonicalModule:
    try:
        instance, attachment = await actions.update_post_module(
            post_id, post_module_id, mode, body.model_dump(exclude_unset=True), db
        )
    except PostModuleNotFoundError as exc:
        raise NotFoundError(str(exc))
    except ModuleLockedError as exc:
        raise ConflictError(str(exc))
    if mode.is_draft:
        await draft_sync.refresh_atomic_draft(post_id, mode, db)
    return serializer.serialize_module(attachment, instance, mode)


async def delete_module(
    post_id: UUID,
    post_module_id: UUID,
    mode: SnapshotMode,
    db: AsyncSession,
) -> None:
    try:
        await workflow.delete_post_module(post_id, post_module_id, mode, db)
    except (PostNotFoundError, PostModuleNotFoundError) as exc:
        raise NotFoundError(str(exc))
    except ModuleLockedError as exc:
        raise ConflictError(str(exc))


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------


async def refresh_draft(post_id: UUID, mode: SnapshotMode, db: AsyncSession) -> DraftResponse:
    try:
        draft = await draft_sync.refresh_atomic_draft(post_id, mode, db)
    except PostNotFoundError:
        raise NotFoundError(f"Post {post_id} not found")
    except NotADraftModeError as exc:
        raise UnprocessableError(str(exc))
    return DraftResponse(mode=mode, draft=draft)


async def reject_draft(
    post_id: UUID,
    mode: SnapshotMode,
    user_id: UUID,
    db: AsyncSession,
) -> None:
    try:
        await workflow.reject_draft(post_id, mode, db, user_id=user_id)
    except PostNotFoundError:
        raise NotFoundError(f"Post {post_id} not found")
    except NotADraftModeError as exc:
        raise UnprocessableError(str(exc))


async def promote_ai_review(
    post_id: UUID,
    user_id: UUID,
    db: AsyncSession,
    registry: ModuleRegistry,
) -> CanonicalPost:
    try:
        return await workflow.promote_ai_review_to_review(post_id, db, registry, user_id=user_id)
    except PostNotFoundError:
        raise NotFoundError(f"Post {post_id} not found")
    except NoPendingDraftError as exc:
        raise ConflictError(str(exc))
    except UnknownModuleTypeError as exc:
        raise UnprocessableError(str(exc))


async def publish_review(
    post_id: UUID,
    user_id: UUID,
    db: AsyncSession,
    registry: ModuleRegistry,
) -> CanonicalPost:
    try:
        return await workflow.publish_review(post_id, db, registry, user_id=user_id)
    except PostNotFoundError:
        raise NotFoundError(f"Post {post_id} not found")
    except NoPendingDraftError as exc:
        raise ConflictError(str(exc))
    except (UnknownModuleTypeError, GlobalSlugRequiredError) as exc:
        raise UnprocessableError(str(exc))
