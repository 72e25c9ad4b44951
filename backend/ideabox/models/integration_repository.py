"""IntegrationRepository ORM — a remote repository attached to a provider.

Invariants:
    - full_name is "owner/name" as reported by GitHub
    - settings.webhook_id / settings.webhook_secret present <=> a webhook was created
"""

from sqlalchemy import String, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ideabox.db.base import Base, TimestampMixin


class IntegrationRepository(TimestampMixin, Base):
    __tablename__ = "integration_repositories"

    id: Mapped[int] = mapped_column(primary_key=True)
    integration_provider_id: Mapped[int] = mapped_column(
        ForeignKey("integration_providers.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    provider: Mapped["IntegrationProvider"] = relationship(
        "IntegrationProvider", back_populates="repositories", lazy="joined",
    )

    def get_webhook_id(self) -> int | None:
        return (self.settings or {}).get("webhook_id")

    def get_webhook_secret(self) -> str | None:
        return (self.settings or {}).get("webhook_secret")

    def store_webhook_details(self, webhook_id: int, secret: str) -> None:
        self.settings = {
            **(self.settings or {}), "webhook_id": webhook_id, "webhook_secret": secret,
        }

    def remove_webhook_details(self) -> None:
        settings = dict(self.settings or {})
        settings.pop("webhook_id", None)
        settings.pop("webhook_secret", None)
        self.settings = settings
