"""Admin Merge Routes — merge one or many posts into a target, and unmerge.

Invariants:
    - All routes require an admin (api/dependencies.py)
    - Missing posts/statuses → 404; invalid merge state → 409 (MergeConflictError)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.api.dependencies import get_current_admin, get_post_or_404
from ideabox.core.errors import ResourceNotFoundError
from ideabox.infrastructure.database import get_db
from ideabox.models.status import Status
from ideabox.models.user import User
from ideabox.schemas.merge import (
    MergeManyRequest, MergeRequest, MergeResponse, UnmergeResponse,
)
from ideabox.schemas.post import PostResponse
from ideabox.services.merge_post_service import MergePostService

router = APIRouter(prefix="/admin/posts", tags=["merge"])


@router.post("/merge", response_model=MergeResponse)
async def merge_many(
    body: MergeManyRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Merge every post in merge_ids into post_id."""
    target = await get_post_or_404(db, body.post_id)
    sources = [await get_post_or_404(db, post_id) for post_id in body.merge_ids]
    if body.status_id is not None and await db.get(Status, body.status_id) is None:
        raise ResourceNotFoundError("Status", str(body.status_id))

    await MergePostService(db).merge_many(target, sources, admin, body.status_id)
    return MergeResponse(
        message="Posts merged successfully.",
        target=PostResponse.model_validate(target),
        merged=[PostResponse.model_validate(source) for source in sources],
    )


@router.post("/{post_id}/merge", response_model=MergeResponse)
async def merge_post(
    post_id: int,
    body: MergeRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    source = await get_post_or_404(db, post_id)
    target = await get_post_or_404(db, body.target_post_id)

    await MergePostService(db).merge(source, target, admin)
    return MergeResponse(
        message="Post merged successfully.",
        target=PostResponse.model_validate(target),
        merged=[PostResponse.model_validate(source)],
    )


@router.post("/{post_id}/unmerge", response_model=UnmergeResponse)
async def unmerge_post(
    post_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    source = await get_post_or_404(db, post_id)
    target_id = source.merged_into_post_id

    await MergePostService(db).unmerge(source, admin)
    target = await get_post_or_404(db, target_id) if target_id else source
    return UnmergeResponse(
        message="Post unmerged successfully.",
        post=PostResponse.model_validate(source),
        target=PostResponse.model_validate(target),
    )
