"""CMS router: snapshot, module and draft workflow endpoints for one post.

RBAC is enforced at the API gateway level. These endpoints require
authentication but do not check roles internally.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.cms import controller
from app.cms.canonical import CanonicalModule, CanonicalPost
from app.cms.schemas import (
    AddModuleRequest,
    AddModuleResponse,
    DraftResponse,
    UpdateModuleRequest,
)
from app.database import get_db
from app.dependencies import get_current_user, get_module_registry
from app.models.enums import SnapshotMode
from app.registry.registry import ModuleRegistry

router = APIRouter(prefix="/cms/posts", tags=["CMS"])


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@router.get(
    "/{post_id}/snapshot",
    response_model=CanonicalPost,
    summary="Read a post as a canonical snapshot",
    description=(
        "Serializes the post for `mode`. Draft modes answer from the stored JSON draft "
        "unless `bypass_draft` asks for the granular columns."
    ),
)
async def get_snapshot(
    post_id: UUID,
    mode: SnapshotMode = Query(default=SnapshotMode.SOURCE),
    bypass_draft: bool = Query(default=False),
    _: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CanonicalPost:
    return await controller.get_snapshot(
        post_id, mode, db, bypass_denormalized_draft=bypass_draft
    )


@router.put(
    "/{post_id}/snapshot",
    response_model=CanonicalPost,
    summary="Apply a snapshot",
    description=(
        "`source` rewrites the live post and clears the pending review draft. "
        "`review` / `ai-review` store a pending draft without touching live content."
    ),
)
async def apply_snapshot(
    post_id: UUID,
    payload: dict[str, Any] = Body(...),
    mode: SnapshotMode = Query(default=SnapshotMode.SOURCE),
    _: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> CanonicalPost:
    return await controller.apply_snapshot(post_id, mode, payload, db, registry)


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


@router.post(
    "/{post_id}/modules",
    response_model=AddModuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a module",
)
async def add_module(
    post_id: UUID,
    body: AddModuleRequest,
    _: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> AddModuleResponse:
    return await controller.add_module(post_id, body, db, registry)


@router.patch(
    "/{post_id}/modules/{post_module_id}",
    response_model=CanonicalModule,
    summary="Edit a module attachment",
    description=(
        "Post-scope `overrides` are merged into the module's props for `mode`; global modules "
        "store them as per-attachment overrides. Draft modes refresh the mode's JSON draft."
    ),
)
async def update_module(
    post_id: UUID,
    post_module_id: UUID,
    body: UpdateModuleRequest,
    mode: SnapshotMode = Query(default=SnapshotMode.SOURCE),
    _: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CanonicalModule:
    return await controller.update_module(post_id, post_module_id, mode, body, db)


@router.delete(
    "/{post_id}/modules/{post_module_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a module attachment",
    description="In a draft mode the attachment is only flagged as deleted for that draft.",
)
async def delete_module(
    post_id: UUID,
    post_module_id: UUID,
    mode: SnapshotMode = Query(default=SnapshotMode.SOURCE),
    _: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    await controller.delete_module(post_id, post_module_id, mode, db)


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------


@router.post(
    "/{post_id}/drafts/ai-review/promote",
    response_model=CanonicalPost,
    summary="Promote the AI draft to the review draft",
)
async def promote_ai_review(
    post_id: UUID,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> CanonicalPost:
    return await controller.promote_ai_review(post_id, user_id, db, registry)


@router.post(
    "/{post_id}/drafts/review/publish",
    response_model=CanonicalPost,
    summary="Publish the review draft to source",
)
async def publish_review(
    post_id: UUID,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ModuleRegistry = Depends(get_module_registry),
) -> CanonicalPost:
    return await controller.publish_review(post_id, user_id, db, registry)


@router.post(
    "/{post_id}/drafts/{mode}/refresh",
    response_model=DraftResponse,
    summary="Rebuild a draft's JSON document from the granular columns",
)
async def refresh_draft(
    post_id: UUID,
    mode: SnapshotMode,
    _: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DraftResponse:
    return await controller.refresh_draft(post_id, mode, db)


@router.post(
    "/{post_id}/drafts/{mode}/reject",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard a pending draft",
)
async def reject_draft(
    post_id: UUID,
    mode: SnapshotMode,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    await controller.reject_draft(post_id, mode, user_id, db)
