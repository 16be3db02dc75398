from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.cms.exceptions import PostNotFoundError
from app.exceptions import NotFoundError, UnprocessableError
from app.pagination import OffsetPage
from app.revisions import service
from app.revisions.exceptions import InvalidRevisionSnapshotError, RevisionNotFoundError
from app.revisions.schemas import (
    PostRevisionDetailResponse,
    PostRevisionResponse,
    RevisionComparisonResponse,
)


async def list_revisions(
    post_id: UUID,
    db: AsyncSession,
    *,
    page: int,
    page_size: int,
) -> OffsetPage[PostRevisionResponse]:
    try:
        revisions, total = await service.list_post_revisions(
            post_id, db, page=page, page_size=page_size
        )
    except PostNotFoundError:
        raise NotFoundError(f"Post {post_id} not found")
    return OffsetPage[PostRevisionResponse].build(
        items=[PostRevisionResponse.model_validate(r) for r in revisions],
        total=total,
        page=page,
        page_size=page_size,
    )


async def get_revision(
    post_id: UUID,
    revision_id: UUID,
    db: AsyncSession,
) -> PostRevisionDetailResponse:
    try:
        revision = await service.get_post_revision(post_id, revision_id, db)
    except RevisionNotFoundError as exc:
        raise NotFoundError(str(exc))
    return PostRevisionDetailResponse.model_validate(revision)


async def restore_revision(
    post_id: UUID,
    revision_id: UUID,
    user_id: UUID,
    db: AsyncSession,
) -> PostRevisionResponse:
    try:
        revision = await service.restore_post_revision(post_id, revision_id, db, user_id=user_id)
    except (PostNotFoundError, RevisionNotFoundError) as exc:
        raise NotFoundError(str(exc))
    except InvalidRevisionSnapshotError as exc:
        raise UnprocessableError(str(exc))
    return PostRevisionResponse.model_validate(revision)


async def compare_revision(
    post_id: UUID,
    revision_id: UUID,
    db: AsyncSession,
) -> RevisionComparisonResponse:
    try:
        revision, diff = await service.compare_post_revision(post_id, revision_id, db)
    except (PostNotFoundError, RevisionNotFoundError) as exc:
        raise NotFoundError(str(exc))
    except InvalidRevisionSnapshotError as exc:
        raise UnprocessableError(str(exc))
    return RevisionComparisonResponse(
        post_id=post_id,
        revision_id=revision.id,
        mode=revision.mode,
        created_at=revision.created_at,
        diff=diff,
        has_changes=bool(diff),
    )
