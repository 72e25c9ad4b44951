"""Webhook Service — GitHub repository webhooks: provisioning, signature checks, issue events.

Invariants:
    - A repository's webhook secret is generated here (40 chars) and sent to GitHub at creation
    - verify_signature is False for a missing header, unknown repository or missing secret
    - process_issue_event only acts on `closed` / `reopened`; other actions are acknowledged
    - A post moves to a completed status only when EVERY GitHub link on it is closed,
      unless the provider's auto_sync_status mapping already chose a status

Design Decisions:
    - create/delete_webhook stage repository changes; the calling route commits together
      with the repository row itself
    - process_issue_event commits: it is the whole unit of work for a webhook delivery
"""

import logging
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideabox.config import Settings, get_settings
from ideabox.core.domain_types import COMPLETED_STATUS_NAMES, IntegrationType
from ideabox.core.signatures import signature_matches
from ideabox.models.integration_provider import IntegrationProvider
from ideabox.models.integration_repository import IntegrationRepository
from ideabox.models.post import Post
from ideabox.models.post_integration_link import PostIntegrationLink
from ideabox.models.status import Status
from ideabox.services.integrations.github_integration import GitHubIntegration

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/api/webhooks/github"
_HANDLED_ACTIONS = ("closed", "reopened")


def _webhook_secret() -> str:
    # 30 random bytes -> 40 url-safe characters
    return secrets.token_urlsafe(30)


class WebhookService:
    """GitHub webhook lifecycle and inbound issue event handling."""

    def __init__(
        self,
        db: AsyncSession,
        integration: GitHubIntegration,
        settings: Settings | None = None,
    ):
        self.db = db
        self.integration = integration
        self.settings = settings or get_settings()

    def default_webhook_url(self) -> str:
        return f"{self.settings.app_url}{WEBHOOK_PATH}"

    # ─── Provisioning ───────────────────────────────────────────

    async def create_webhook(
        self, repository: IntegrationRepository, webhook_url: str | None = None,
    ) -> dict | None:
        if repository.provider is None:
            logger.error(
                "Cannot create webhook: repository has no provider",
                extra={"repository": repository.full_name},
            )
            return None

        self.integration.set_provider(repository.provider)
        secret = _webhook_secret()
        hook = await self.integration.create_repository_webhook(
            repository, webhook_url or self.default_webhook_url(), secret,
        )
        if not hook or not hook.get("id"):
            logger.error("Failed to create webhook", extra={"repository": repository.full_name})
            return None

        repository.store_webhook_details(hook["id"], secret)
        logger.info(
            "Webhook created",
            extra={"repository": repository.full_name, "webhook_id": hook["id"]},
        )
        return hook

    async def delete_webhook(self, repository: IntegrationRepository) -> bool:
        webhook_id = repository.get_webhook_id()
        if not webhook_id:
            return True
        if repository.provider is None:
            logger.error(
                "Cannot delete webhook: repository has no provider",
                extra={"repository": repository.full_name},
            )
            return False

        self.integration.set_provider(repository.provider)
        deleted = await self.integration.delete_repository_webhook(repository, webhook_id)
        if deleted:
            repository.remove_webhook_details()
            logger.info(
                "Webhook deleted",
                extra={"repository": repository.full_name, "webhook_id": webhook_id},
            )
        return deleted

    # ─── Inbound ────────────────────────────────────────────────

    async def verify_signature(
        self, signature: str | None, repository_full_name: str, payload: bytes,
    ) -> bool:
        """Check X-Hub-Signature-256 against the stored secret of the named repository."""
        if not signature:
            logger.warning(
                "GitHub webhook missing signature header",
                extra={"repository": repository_full_name},
            )
            return False

        result = await self.db.execute(
            select(IntegrationRepository)
            .where(IntegrationRepository.full_name == repository_full_name)
            .order_by(IntegrationRepository.id)
        )
        repository = result.scalars().first()
        if repository is None:
            logger.warning(
                "Repository not found for webhook", extra={"repository": repository_full_name},
            )
            return False

        secret = repository.get_webhook_secret()
        if not secret:
            logger.warning(
                "Webhook secret not found for repository",
                extra={"repository": repository_full_name},
            )
            return False

        return signature_matches(payload, secret, signature)

    async def process_issue_event(self, payload: dict) -> dict:
        if not all(payload.get(key) for key in ("action", "issue", "repository")):
            return {"success": False, "message": "Invalid payload format"}
        if not isinstance(payload["issue"], dict) or not isinstance(payload["repository"], dict):
            return {"success": False, "message": "Invalid payload format"}

        action = payload["action"]
        issue = payload["issue"]
        issue_number = issue.get("number")
        repository_full_name = payload["repository"].get("full_name")

        if action not in _HANDLED_ACTIONS:
            return {"success": True, "message": "Issue event ignored"}

        link = await self._find_link(repository_full_name, issue_number)
        if link is None:
            return {"success": False, "message": "No integration link found for this issue"}

        link.status = issue.get("state", link.status)
        post = await self.db.get(Post, link.post_id)

        synced = await self._apply_status_mapping(link, post, issue.get("state"))
        if not synced and action == "closed":
            await self.db.flush()
            await self._complete_if_all_issues_closed(post)

        await self.db.commit()
        logger.info(
            "Issue status updated",
            extra={
                "post_id": link.post_id, "repository": repository_full_name,
                "issue": issue_number, "action": action,
            },
        )
        return {
            "success": True,
            "message": "Issue status updated",
            "action": action,
            "issue": issue_number,
        }

    # ─── Internals ──────────────────────────────────────────────

    async def _find_link(
        self, repository_full_name: str | None, issue_number,
    ) -> PostIntegrationLink | None:
        if repository_full_name is None or issue_number is None:
            return None
        result = await self.db.execute(
            select(PostIntegrationLink)
            .join(
                IntegrationRepository,
                PostIntegrationLink.integration_repository_id == IntegrationRepository.id,
            )
            .where(
                IntegrationRepository.full_name == repository_full_name,
                PostIntegrationLink.external_id == str(issue_number),
            )
            .order_by(PostIntegrationLink.id)
        )
        return result.scalars().first()

    async def _apply_status_mapping(
        self, link: PostIntegrationLink, post: Post | None, state: str | None,
    ) -> bool:
        """Provider-configured issue state -> status id. True when a status was applied."""
        settings = link.provider.get_config() if link.provider else {}
        if post is None or not settings.get("auto_sync_status") or not state:
            return False
        status_id = (settings.get("status_mapping") or {}).get(state)
        if not status_id:
            return False
        status = await self.db.get(Status, int(status_id))
        if status is None:
            return False
        post.status_id = status.id
        logger.info(
            "Post status updated from GitHub webhook",
            extra={"post_id": post.id, "status_id": status.id},
        )
        return True

    async def _complete_if_all_issues_closed(self, post: Post | None) -> bool:
        if post is None:
            return False
        result = await self.db.execute(
            select(PostIntegrationLink)
            .join(
                IntegrationProvider,
                PostIntegrationLink.integration_provider_id == IntegrationProvider.id,
            )
            .where(
                PostIntegrationLink.post_id == post.id,
                IntegrationProvider.type == IntegrationType.GITHUB.value,
            )
        )
        links = result.scalars().all()
        if not links or not all(link.is_closed() for link in links):
            return False

        completed = await self._completed_status()
        if completed is None:
            logger.warning(
                "Could not find completed status for auto-update", extra={"post_id": post.id},
            )
            return False

        post.status_id = completed.id
        logger.info(
            "Post status updated to complete because all GitHub issues are closed",
            extra={"post_id": post.id, "status_id": completed.id},
        )
        return True

    async def _completed_status(self) -> Status | None:
        for name in COMPLETED_STATUS_NAMES:
            result = await self.db.execute(
                select(Status).where(Status.name == name).order_by(Status.id)
            )
            status = result.scalars().first()
            if status is not None:
                return status
        return None
