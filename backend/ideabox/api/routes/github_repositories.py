"""GitHub Repository Routes — search, attach (with webhook), list and detach repositories.

Invariants:
    - A full_name is attached at most once per provider (409 otherwise)
    - Attaching creates an `issues` webhook; a webhook failure does not block the attach
    - Detaching is refused (409) while the repository has linked issues
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.api.dependencies import get_current_admin, get_github_integration
from ideabox.api.routes.github_route_helpers import (
    get_github_provider_or_404, get_repository_or_404,
    repositories_have_links, repository_view,
)
from ideabox.core.errors import ErrorContext, IntegrationConflictError
from ideabox.infrastructure.database import get_db
from ideabox.models.integration_repository import IntegrationRepository
from ideabox.schemas.github import RepositoryCreate, RepositorySearchRequest
from ideabox.services.integrations.github_integration import GitHubIntegration
from ideabox.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/admin/integrations/github", tags=["github"],
    dependencies=[Depends(get_current_admin)],
)


@router.post("/repositories/search")
async def search_repositories(
    body: RepositorySearchRequest,
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    provider = await get_github_provider_or_404(db, body.provider_id)
    integration.set_provider(provider)
    results = await integration.search_repositories(body.query)
    return {
        "repositories": [
            {
                "id": repo["id"],
                "name": repo["name"],
                "full_name": repo["full_name"],
                "description": repo.get("description") or "",
                "html_url": repo.get("html_url") or "",
                "owner": {
                    "login": (repo.get("owner") or {}).get("login", ""),
                    "avatar_url": (repo.get("owner") or {}).get("avatar_url", ""),
                },
            }
            for repo in results.get("items", [])
        ],
    }


@router.post("/repositories", status_code=status.HTTP_201_CREATED)
async def add_repository(
    body: RepositoryCreate,
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    provider = await get_github_provider_or_404(db, body.provider_id)
    existing = (await db.execute(
        select(IntegrationRepository.id).where(
            IntegrationRepository.integration_provider_id == provider.id,
            IntegrationRepository.full_name == body.full_name,
        )
    )).first()
    if existing is not None:
        raise IntegrationConflictError(
            "Repository already exists.",
            ErrorContext(provider_id=provider.id, repository=body.full_name),
        )

    repository = IntegrationRepository(
        provider=provider,
        name=body.full_name.split("/")[-1],
        full_name=body.full_name,
    )
    db.add(repository)
    await db.flush()

    hook = await WebhookService(db, integration).create_webhook(repository)
    if hook is None:
        logger.warning(
            "Repository added without webhook", extra={"repository": repository.full_name},
        )
    await db.commit()

    message = "Repository added successfully"
    if hook is not None:
        message += ". A webhook has been created to track issue updates."
    return {
        "message": message,
        "repository": repository_view(repository),
        "webhook_created": hook is not None,
    }


@router.get("/providers/{provider_id}/repositories")
async def list_repositories(provider_id: int, db: AsyncSession = Depends(get_db)):
    provider = await get_github_provider_or_404(db, provider_id)
    repositories = (await db.execute(
        select(IntegrationRepository)
        .where(IntegrationRepository.integration_provider_id == provider.id)
        .order_by(IntegrationRepository.name)
    )).scalars().all()
    return {"repositories": [repository_view(r) for r in repositories]}


@router.delete("/repositories/{repository_id}")
async def remove_repository(
    repository_id: int,
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    repository = await get_repository_or_404(db, repository_id)
    if await repositories_have_links(db, [repository.id]):
        raise IntegrationConflictError(
            "Cannot remove repository that has linked issues. Please unlink all issues first.",
            ErrorContext(repository=repository.full_name),
        )

    webhook_id = repository.get_webhook_id()
    if webhook_id and not await WebhookService(db, integration).delete_webhook(repository):
        logger.warning(
            "Failed to delete webhook, removing repository anyway",
            extra={"repository": repository.full_name, "webhook_id": webhook_id},
        )

    await db.delete(repository)
    await db.commit()
    return {"message": "Repository removed successfully"}
