"""Base Integration — shared provider handling for every external integration.

Invariants:
    - An integration without a provider is never authenticated
    - save_config / provider mutations are staged on the ORM object only;
      the caller's session commits them
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ideabox.config import Settings, get_settings
from ideabox.models.integration_provider import IntegrationProvider

logger = logging.getLogger(__name__)


class BaseIntegration(ABC):
    """Provider-bound integration; subclasses implement the auth handshake."""

    name: str = ""
    type: str = ""
    # field name -> {"type", "label", "required"}
    configuration_fields: dict[str, dict[str, Any]] = {}

    def __init__(
        self,
        provider: IntegrationProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        self.provider = provider
        self.http_client = http_client
        self.settings = settings or get_settings()

    def set_provider(self, provider: IntegrationProvider) -> "BaseIntegration":
        self.provider = provider
        return self

    def get_provider(self) -> IntegrationProvider | None:
        return self.provider

    def is_authenticated(self) -> bool:
        """Token on the model, or a token in config backed by authenticated_at."""
        if self.provider is None:
            return False
        if self.provider.access_token:
            return True
        config = self.provider.get_config()
        return bool(config.get("access_token")) and self.provider.authenticated_at is not None

    def validate_config(self, config: dict[str, Any]) -> bool:
        for field_name, field in self.configuration_fields.items():
            if field.get("required") and not config.get(field_name):
                return False
        return True

    def save_config(self, config: dict[str, Any]) -> bool:
        if self.provider is None:
            logger.error(f"{self.name} integration: cannot save config without provider")
            return False
        self.provider.set_config(config)
        return True

    @abstractmethod
    def get_auth_url(self, redirect_uri: str) -> str:
        ...

    @abstractmethod
    async def handle_auth_callback(
        self, code: str | None, state: str | None, redirect_uri: str,
    ) -> bool:
        ...
