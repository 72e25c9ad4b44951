"""GitHub Issue Routes — search/get issues, create issues from posts, link and unlink.

Invariants:
    - Issues created from a post carry a footer linking back to the public post page
    - A (post, repository, issue number) link exists at most once (409 otherwise)
    - Unlink only removes a link that belongs to the addressed post
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.api.dependencies import (
    get_current_admin, get_github_integration, get_post_or_404,
)
from ideabox.api.routes.github_route_helpers import (
    get_github_provider_or_404, get_repository_or_404, issue_body_with_footer,
)
from ideabox.config import get_settings
from ideabox.core.domain_types import LinkStatus
from ideabox.core.errors import (
    ErrorContext, IntegrationConflictError, IntegrationError, ResourceNotFoundError,
)
from ideabox.infrastructure.database import get_db
from ideabox.models.integration_repository import IntegrationRepository
from ideabox.models.post_integration_link import PostIntegrationLink
from ideabox.schemas.github import IssueCreate, IssueLinkCreate
from ideabox.schemas.post import LinkedIssueResponse
from ideabox.services.integrations.github_integration import GitHubIntegration

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/admin/integrations/github", tags=["github"],
    dependencies=[Depends(get_current_admin)],
)


@router.get("/issues/search")
async def search_issues(
    provider_id: int = Query(gt=0),
    repository_id: int = Query(gt=0),
    search: str = "",
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    provider = await get_github_provider_or_404(db, provider_id)
    repository = await get_repository_or_404(db, repository_id)
    integration.set_provider(provider)
    return {"issues": await integration.search_issues(repository.full_name, search)}


@router.get("/issues")
async def get_issue(
    provider_id: int = Query(gt=0),
    repository_full_name: str = Query(min_length=3),
    issue_number: int = Query(gt=0),
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    provider = await get_github_provider_or_404(db, provider_id)
    integration.set_provider(provider)
    issue = await integration.get_issue(repository_full_name, issue_number)
    if issue is None:
        raise ResourceNotFoundError(
            "Issue", f"{repository_full_name}#{issue_number}",
            ErrorContext(provider_id=provider_id, repository=repository_full_name),
        )
    return {"issue": issue}


@router.post("/posts/{post_id}/issues", status_code=status.HTTP_201_CREATED)
async def create_issue(
    post_id: int,
    body: IssueCreate,
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    """Open a GitHub issue for the post and link it."""
    post = await get_post_or_404(db, post_id)
    repository = await get_repository_or_404(db, body.repository_id)
    integration.set_provider(repository.provider)

    issue_body = issue_body_with_footer(body.body, post, get_settings())
    issue = await integration.create_issue(repository, body.title, issue_body)
    if issue is None:
        raise IntegrationError(
            "Failed to create GitHub issue.",
            ErrorContext(post_id=post.id, repository=repository.full_name),
        )

    link = _new_link(post.id, repository, issue)
    db.add(link)
    await db.commit()
    logger.info(
        "GitHub issue created",
        extra={"post_id": post.id, "repository": repository.full_name, "issue": issue["number"]},
    )
    return {
        "message": "Issue created successfully",
        "issue": issue,
        "link": LinkedIssueResponse.model_validate(link),
    }


@router.post("/posts/{post_id}/links", status_code=status.HTTP_201_CREATED)
async def link_issue(
    post_id: int,
    body: IssueLinkCreate,
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    """Link an existing GitHub issue to the post."""
    post = await get_post_or_404(db, post_id)
    repository = await get_repository_or_404(db, body.repository_id)

    existing = (await db.execute(
        select(PostIntegrationLink.id).where(
            PostIntegrationLink.post_id == post.id,
            PostIntegrationLink.integration_repository_id == repository.id,
            PostIntegrationLink.external_id == body.external_id,
        )
    )).first()
    if existing is not None:
        raise IntegrationConflictError(
            "This issue is already linked to the post.",
            ErrorContext(post_id=post.id, repository=repository.full_name),
        )

    integration.set_provider(repository.provider)
    issue = await integration.get_issue(repository, int(body.external_id))
    if issue is None:
        raise IntegrationError(
            "Failed to get issue details from GitHub.",
            ErrorContext(post_id=post.id, repository=repository.full_name),
        )

    link = _new_link(post.id, repository, issue)
    db.add(link)
    await db.commit()
    return {
        "message": "Issue linked successfully",
        "link": LinkedIssueResponse.model_validate(link),
    }


@router.delete("/posts/{post_id}/links/{link_id}")
async def unlink_issue(post_id: int, link_id: int, db: AsyncSession = Depends(get_db)):
    link = await db.get(PostIntegrationLink, link_id)
    if link is None or link.post_id != post_id:
        raise ResourceNotFoundError(
            "Issue link", str(link_id), ErrorContext(post_id=post_id),
        )
    await db.delete(link)
    await db.commit()
    return {"message": "GitHub issue unlinked successfully."}


def _new_link(post_id: int, repository: IntegrationRepository, issue: dict) -> PostIntegrationLink:
    return PostIntegrationLink(
        post_id=post_id,
        provider=repository.provider,
        repository=repository,
        external_id=str(issue["number"]),
        external_url=issue.get("url"),
        status=issue.get("state") or LinkStatus.PENDING.value,
        settings={"title": issue.get("title")},
    )
