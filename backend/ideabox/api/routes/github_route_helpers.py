"""GitHub Route Helpers — lookups and view builders shared by the GitHub admin routes.

Invariants:
    - Lookups raise ResourceNotFoundError (404); a non-GitHub provider counts as missing
    - Provider views never carry client_secret or tokens
"""

from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.config import Settings
from ideabox.core.domain_types import IntegrationType
from ideabox.core.errors import ErrorContext, ResourceNotFoundError
from ideabox.models.integration_provider import IntegrationProvider
from ideabox.models.integration_repository import IntegrationRepository
from ideabox.models.post import Post
from ideabox.models.post_integration_link import PostIntegrationLink
from ideabox.schemas.github import ProviderResponse, RepositoryResponse

SETTINGS_PATH = "/admin/integrations/github"


async def get_github_provider_or_404(db: AsyncSession, provider_id: int) -> IntegrationProvider:
    provider = await db.get(IntegrationProvider, provider_id)
    if provider is None or provider.type != IntegrationType.GITHUB.value:
        raise ResourceNotFoundError(
            "GitHub provider", str(provider_id), ErrorContext(provider_id=provider_id),
        )
    return provider


async def get_repository_or_404(db: AsyncSession, repository_id: int) -> IntegrationRepository:
    repository = await db.get(IntegrationRepository, repository_id)
    if repository is None:
        raise ResourceNotFoundError("Repository", str(repository_id))
    return repository


async def repositories_have_links(db: AsyncSession, repository_ids: list[int]) -> bool:
    if not repository_ids:
        return False
    result = await db.execute(
        select(PostIntegrationLink.id)
        .where(PostIntegrationLink.integration_repository_id.in_(repository_ids))
        .limit(1)
    )
    return result.first() is not None


def callback_url(settings: Settings) -> str:
    return f"{settings.app_url}{SETTINGS_PATH}/callback"


def settings_redirect_url(**params) -> str:
    return f"{SETTINGS_PATH}?{urlencode(params)}"


def post_url(settings: Settings, post: Post) -> str:
    return f"{settings.app_url}/b/{post.board.slug}/p/{post.slug}"


def issue_body_with_footer(body: str, post: Post, settings: Settings) -> str:
    return (
        f"{body}\n\n---\n\n"
        f"*(This issue was created from a post on IdeaBox: "
        f"[{post.title}]({post_url(settings, post)}))*"
    )


def provider_view(provider: IntegrationProvider) -> ProviderResponse:
    config = provider.get_config()
    return ProviderResponse(
        id=provider.id,
        name=provider.name,
        type=provider.type,
        connected=provider.is_connected(),
        authenticated_at=provider.authenticated_at,
        client_id=config.get("client_id"),
        user=config.get("user"),
        error_message=config.get("error_message"),
    )


def repository_view(repository: IntegrationRepository) -> RepositoryResponse:
    return RepositoryResponse(
        id=repository.id,
        integration_provider_id=repository.integration_provider_id,
        name=repository.name,
        full_name=repository.full_name,
        has_webhook=repository.get_webhook_id() is not None,
    )
