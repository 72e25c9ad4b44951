"""GitHub Webhook Route — inbound deliveries from repository webhooks.

Invariants:
    - Signature verified against the raw body BEFORE any event handling (403 on failure)
    - Non-JSON body → 400; non-`issues` events are acknowledged and ignored
    - A malformed `repository` field is treated as an unknown repository (403)
    - No admin identity: GitHub is the caller, the signature is the credential
"""

import json
import logging

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.api.dependencies import get_github_integration
from ideabox.infrastructure.database import get_db
from ideabox.services.integrations.github_integration import GitHubIntegration
from ideabox.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/github")
async def github_webhook(
    request: Request,
    x_github_event: str | None = Header(default=None),
    x_hub_signature_256: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    integration: GitHubIntegration = Depends(get_github_integration),
):
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body)
    except ValueError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Invalid JSON payload"},
        )
    if not isinstance(payload, dict):
        payload = {}

    repository = payload.get("repository")
    repository_name = repository.get("full_name") if isinstance(repository, dict) else None
    if not isinstance(repository_name, str) or not repository_name:
        repository_name = "unknown"
    service = WebhookService(db, integration)

    if not await service.verify_signature(x_hub_signature_256, repository_name, raw_body):
        logger.warning(
            "GitHub webhook signature verification failed",
            extra={"repository": repository_name},
        )
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"success": False, "message": "Signature verification failed"},
        )

    logger.info(
        f"GitHub webhook received: {x_github_event}",
        extra={"repository": repository_name, "action": payload.get("action")},
    )
    if x_github_event != "issues":
        return {"success": True, "message": "Event ignored"}
    return await service.process_issue_event(payload)
