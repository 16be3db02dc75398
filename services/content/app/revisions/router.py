from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.pagination import OffsetPage
from app.revisions import controller
from app.revisions.schemas import (
    PostRevisionDetailResponse,
    PostRevisionResponse,
    RevisionComparisonResponse,
)

router = APIRouter(prefix="/cms/posts", tags=["Revisions"])


@router.get(
    "/{post_id}/revisions",
    response_model=OffsetPage[PostRevisionResponse],
    summary="List revisions of a post",
    description="Newest first. Each revision is a full active-versions snapshot.",
)
async def list_revisions(
    post_id: UUID,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    _: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OffsetPage[PostRevisionResponse]:
    return await controller.list_revisions(post_id, db, page=page, page_size=page_size)


@router.get(
    "/{post_id}/revisions/{revision_id}",
    response_model=PostRevisionDetailResponse,
    summary="Get a revision with its snapshot",
)
async def get_revision(
    post_id: UUID,
    revision_id: UUID,
    _: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PostRevisionDetailResponse:
    return await controller.get_revision(post_id, revision_id, db)


@router.post(
    "/{post_id}/revisions/{revision_id}/restore",
    response_model=PostRevisionResponse,
    summary="Roll a post back to a revision",
    description=(
        "Records the current state as a `before-restore` revision, then restores source, "
        "both drafts and every module exactly as captured."
    ),
)
async def restore_revision(
    post_id: UUID,
    revision_id: UUID,
    user_id: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PostRevisionResponse:
    return await controller.restore_revision(post_id, revision_id, user_id, db)


@router.get(
    "/{post_id}/revisions/{revision_id}/compare",
    response_model=RevisionComparisonResponse,
    summary="Compare a revision with the current post",
    description="Source post fields whose current value differs from the revision's.",
)
async def compare_revision(
    post_id: UUID,
    revision_id: UUID,
    _: UUID = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RevisionComparisonResponse:
    return await controller.compare_revision(post_id, revision_id, db)
