"""API Dependencies — acting user, shared HTTP client, integration factory, AI generator.

Invariants:
    - get_current_admin: 401 when X-User-Id is missing, malformed or unknown; 403 when not admin
    - Integrations built per request share the app-wide httpx.AsyncClient (app.state.http_client)

Design Decisions:
    - Identity comes from X-User-Id, set by the authenticating reverse proxy; this service
      does not manage logins
    - Every collaborator is a FastAPI dependency so tests swap them via dependency_overrides
"""

from functools import lru_cache

import httpx
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.config import get_settings
from ideabox.core.errors import (
    AuthenticationRequiredError, ErrorContext, IntegrationError,
    PermissionDeniedError, ResourceNotFoundError,
)
from ideabox.infrastructure.database import get_db
from ideabox.models.post import Post
from ideabox.models.user import User
from ideabox.services.feature_description import FeatureDescriptionGenerator
from ideabox.services.integration_registry import IntegrationFactory, get_registry
from ideabox.services.integrations.github_integration import GitHubIntegration


async def get_current_admin(
    x_user_id: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not x_user_id or not x_user_id.strip().isdigit():
        raise AuthenticationRequiredError()
    user = await db.get(User, int(x_user_id))
    if user is None:
        raise AuthenticationRequiredError()
    if not user.is_admin:
        raise PermissionDeniedError()
    return user


def get_http_client(request: Request) -> httpx.AsyncClient | None:
    return getattr(request.app.state, "http_client", None)


def get_integration_factory(
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
) -> IntegrationFactory:
    return IntegrationFactory(get_registry(), http_client, get_settings())


def get_github_integration(
    factory: IntegrationFactory = Depends(get_integration_factory),
) -> GitHubIntegration:
    integration = factory.make("github")
    if integration is None:
        raise IntegrationError("GitHub integration is not available")
    return integration


@lru_cache
def get_description_generator() -> FeatureDescriptionGenerator:
    return FeatureDescriptionGenerator.from_settings(get_settings())


async def get_post_or_404(db: AsyncSession, post_id: int) -> Post:
    post = await db.get(Post, post_id)
    if post is None:
        raise ResourceNotFoundError("Post", str(post_id), ErrorContext(post_id=post_id))
    return post
