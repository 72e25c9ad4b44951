"""IntegrationProvider ORM — one connected external account (e.g. a GitHub OAuth app + token).

Invariants:
    - type matches a key in the integration registry (IntegrationType)
    - settings holds provider config: client_id, client_secret, oauth_state,
      error_message, user, access_token, auto_sync_status, status_mapping
    - connected <=> access_token present and authenticated_at set

Design Decisions:
    - settings mutated only through set_config(): assigns a new dict so the
      JSON column change is detected without MutableDict
"""

from datetime import datetime
from typing import Any

from sqlalchemy import String, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ideabox.db.base import Base, TimestampMixin, utcnow


class IntegrationProvider(TimestampMixin, Base):
    __tablename__ = "integration_providers"

    id: Mapped[int] = mapped_column(primary_key=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    authenticated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    repositories: Mapped[list["IntegrationRepository"]] = relationship(
        "IntegrationRepository", back_populates="provider",
        cascade="all, delete-orphan", lazy="selectin",
    )

    def get_config(self) -> dict[str, Any]:
        return dict(self.settings or {})

    def set_config(self, config: dict[str, Any]) -> None:
        self.settings = dict(config)

    def get_config_value(self, key: str, default: Any = None) -> Any:
        return self.get_config().get(key, default)

    def is_connected(self) -> bool:
        return bool(self.access_token) and self.authenticated_at is not None

    def update_tokens(self, access_token: str, refresh_token: str | None = None) -> None:
        self.access_token = access_token
        if refresh_token is not None:
            self.refresh_token = refresh_token
        self.authenticated_at = utcnow()

    def disconnect(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.authenticated_at = None
