"""GitHub Account Routes — settings overview, OAuth connect/callback, disconnect.

Invariants:
    - connect reuses the pending (never authenticated) provider when one exists
    - callback always redirects to the settings page with `connected=<id>` or `error=<message>`
    - disconnect is refused (409) while any of the provider's repositories has linked issues

Design Decisions:
    - The provider is recovered from the OAuth state suffix ("<random>_<provider id>");
      the state itself is verified against the stored one by GitHubIntegration
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.api.dependencies import get_current_admin, get_github_integration
from ideabox.api.routes.github_route_helpers import (
    callback_url, get_github_provider_or_404, provider_view,
    repositories_have_links, repository_view, settings_redirect_url,
)
from ideabox.config import get_settings
from ideabox.core.domain_types import IntegrationType
from ideabox.core.errors import ErrorContext, IntegrationConflictError
from ideabox.infrastructure.database import get_db
from ideabox.models.integration_provider import IntegrationProvider
from ideabox.models.integration_repository import IntegrationRepository
from ideabox.schemas.github import ConnectRequest, GitHubSettingsResponse
from ideabox.services.integrations.github_integration import GitHubIntegration

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/admin/integrations/github", tags=["github"],
    dependencies=[Depends(get_current_admin)],
)


@router.get("", response_model=GitHubSettingsResponse)
async def github_settings(db: AsyncSession = Depends(get_db)):
    providers = (await db.execute(
        select(IntegrationProvider)
        .where(IntegrationProvider.type == IntegrationType.GITHUB.value)
        .order_by(IntegrationProvider.id)
    )).scalars().all()
    connected_ids = [p.id for p in providers if p.is_connected()]

    repositories = []
    if connected_ids:
        repositories = (await db.execute(
            select(IntegrationRepository)
            .where(IntegrationRepository.integration_provider_id.in_(connected_ids))
            .order_by(IntegrationRepository.full_name)
        )).scalars().all()

    return GitHubSettingsResponse(
        providers=[provider_view(p) for p in providers],
        repositories=[repository_view(r) for r in repositories],
        callback_url=callback_url(get_settings()),
    )


@router.post("/connect")
async def connect(
    body: ConnectRequest,
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    """Stage OAuth app credentials on a pending provider and return the authorize URL."""
    pending = (await db.execute(
        select(IntegrationProvider)
        .where(
            IntegrationProvider.type == IntegrationType.GITHUB.value,
            IntegrationProvider.access_token.is_(None),
            IntegrationProvider.authenticated_at.is_(None),
        )
        .order_by(IntegrationProvider.id)
    )).scalars().first()

    credentials = {"client_id": body.client_id, "client_secret": body.client_secret}
    if pending is not None:
        pending.set_config(credentials)
        provider = pending
    else:
        provider = IntegrationProvider(
            type=IntegrationType.GITHUB.value, name=integration.name, settings=credentials,
        )
        db.add(provider)
        await db.flush()

    integration.set_provider(provider)
    auth_url = integration.get_auth_url(callback_url(get_settings()))
    await db.commit()
    logger.info("GitHub connect started", extra={"provider_id": provider.id})
    return {"auth_url": auth_url, "provider_id": provider.id}


@router.get("/callback")
async def callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    if error:
        logger.warning(f"GitHub authorization denied: {error}")
        return _redirect(error=f"GitHub authorization failed: {error_description or error}")

    provider_id = _provider_id_from_state(state)
    provider = await db.get(IntegrationProvider, provider_id) if provider_id else None
    if provider is None or provider.type != IntegrationType.GITHUB.value:
        return _redirect(error="Authentication session expired. Please try connecting again.")

    integration.set_provider(provider)
    connected = await integration.handle_auth_callback(
        code, state, callback_url(get_settings()),
    )
    await db.commit()

    if connected:
        return _redirect(connected=provider.id)
    message = provider.get_config_value("error_message", "Unknown error occurred")
    return _redirect(error=f"Failed to authenticate with GitHub: {message}")


@router.delete("/providers/{provider_id}")
async def disconnect(provider_id: int, db: AsyncSession = Depends(get_db)):
    provider = await get_github_provider_or_404(db, provider_id)
    repository_ids = [r.id for r in provider.repositories]
    if await repositories_have_links(db, repository_ids):
        raise IntegrationConflictError(
            "Cannot disconnect this integration as it has repositories with linked issues. "
            "Please unlink all issues first.",
            ErrorContext(provider_id=provider_id),
        )

    await db.delete(provider)
    await db.commit()
    logger.info("GitHub provider removed", extra={"provider_id": provider_id})
    return {"message": "GitHub integration disconnected successfully."}


def _provider_id_from_state(state: str | None) -> int | None:
    if not state or "_" not in state:
        return None
    suffix = state.rsplit("_", 1)[1]
    return int(suffix) if suffix.isdigit() else None


def _redirect(**params) -> RedirectResponse:
    return RedirectResponse(
        settings_redirect_url(**params), status_code=status.HTTP_303_SEE_OTHER,
    )
