"""Public Post Route — the post page payload addressed by board and post slug.

Invariants:
    - Private boards are indistinguishable from missing ones (404)
    - A merged post still resolves; the payload names its merge target
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.core.errors import ResourceNotFoundError
from ideabox.infrastructure.database import get_db
from ideabox.models.board import Board
from ideabox.models.post import Post
from ideabox.models.post_integration_link import PostIntegrationLink
from ideabox.schemas.post import (
    LinkedIssueResponse, MergedIntoResponse, PostDetailResponse, PostResponse,
)

router = APIRouter(tags=["posts"])


@router.get("/b/{board_slug}/p/{post_slug}", response_model=PostDetailResponse)
async def show_post(
    board_slug: str, post_slug: str, db: AsyncSession = Depends(get_db),
):
    board = (await db.execute(
        select(Board).where(Board.slug == board_slug)
    )).scalar_one_or_none()
    if board is None or not board.is_public:
        raise ResourceNotFoundError("Board", board_slug)

    post = (await db.execute(
        select(Post).where(Post.board_id == board.id, Post.slug == post_slug)
    )).scalar_one_or_none()
    if post is None:
        raise ResourceNotFoundError("Post", post_slug)

    merged_into = None
    if post.merged_into_post_id is not None:
        target = await db.get(Post, post.merged_into_post_id)
        if target is not None:
            merged_into = MergedIntoResponse(
                id=target.id, title=target.title, slug=target.slug,
                board_slug=target.board.slug,
            )

    links = (await db.execute(
        select(PostIntegrationLink)
        .where(PostIntegrationLink.post_id == post.id)
        .order_by(PostIntegrationLink.id)
    )).scalars().all()

    return PostDetailResponse(
        **PostResponse.model_validate(post).model_dump(),
        board_slug=board.slug,
        status_name=post.status.name if post.status else None,
        merged_into=merged_into,
        linked_issues=[LinkedIssueResponse.model_validate(link) for link in links],
    )
