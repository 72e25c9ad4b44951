"""PostIntegrationLink ORM — ties a post to a remote issue.

Invariants:
    - external_id is the issue number as a string
    - status mirrors the remote issue state (LinkStatus), updated by webhooks
    - settings.title caches the issue title for display
"""

from sqlalchemy import String, Text, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ideabox.core.domain_types import LinkStatus
from ideabox.db.base import Base, TimestampMixin


class PostIntegrationLink(TimestampMixin, Base):
    __tablename__ = "post_integration_links"

    id: Mapped[int] = mapped_column(primary_key=True)
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    integration_provider_id: Mapped[int] = mapped_column(
        ForeignKey("integration_providers.id", ondelete="CASCADE"), nullable=False,
    )
    integration_repository_id: Mapped[int] = mapped_column(
        ForeignKey("integration_repositories.id", ondelete="CASCADE"), nullable=False,
    )
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)
    external_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LinkStatus.PENDING.value,
    )
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    provider: Mapped["IntegrationProvider"] = relationship(
        "IntegrationProvider", lazy="joined",
    )
    repository: Mapped["IntegrationRepository"] = relationship(
        "IntegrationRepository", lazy="joined",
    )

    def is_open(self) -> bool:
        return self.status == LinkStatus.OPEN.value

    def is_closed(self) -> bool:
        return self.status == LinkStatus.CLOSED.value

    @property
    def repository_name(self) -> str | None:
        return self.repository.full_name if self.repository else None

    @property
    def issue_title(self) -> str | None:
        return (self.settings or {}).get("title")
