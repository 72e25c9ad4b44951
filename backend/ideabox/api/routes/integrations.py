"""Admin Integrations Index — registered integration types with connected provider counts."""

from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.api.dependencies import get_current_admin
from ideabox.infrastructure.database import get_db
from ideabox.models.integration_provider import IntegrationProvider
from ideabox.services.integration_registry import get_registry

router = APIRouter(
    prefix="/admin/integrations", tags=["integrations"],
    dependencies=[Depends(get_current_admin)],
)


@router.get("")
async def list_integrations(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(IntegrationProvider.type, func.count(IntegrationProvider.id))
        .where(IntegrationProvider.access_token.is_not(None))
        .group_by(IntegrationProvider.type)
    )
    connected = {row[0]: row[1] for row in result.all()}

    registry = get_registry()
    integrations = [
        {
            "type": integration_type,
            "name": integration.name,
            "configuration_fields": integration.configuration_fields,
            "connected": connected.get(integration_type, 0),
        }
        for integration_type, integration in registry.get_all_integrations().items()
    ]
    return {
        "integrations": integrations,
        "active_integrations": {
            integration_type: connected.get(integration_type, 0)
            for integration_type in registry.get_types()
        },
    }
