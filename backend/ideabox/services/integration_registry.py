"""Integration Registry — type key -> integration class, plus a factory binding providers.

Invariants:
    - One registry per process (get_registry is cached) with every built-in type registered
    - Unknown types resolve to None, never raise
    - Each get/make call returns a fresh integration instance (integrations hold a provider)
"""

from functools import lru_cache

import httpx

from ideabox.config import Settings
from ideabox.core.domain_types import IntegrationType
from ideabox.models.integration_provider import IntegrationProvider
from ideabox.services.integrations.base_integration import BaseIntegration
from ideabox.services.integrations.github_integration import GitHubIntegration


class IntegrationRegistry:
    def __init__(self):
        self._integrations: dict[str, type[BaseIntegration]] = {}

    def register(self, integration_type: str, integration_class: type[BaseIntegration]) -> None:
        self._integrations[integration_type] = integration_class

    def get_integration(self, integration_type: str, **kwargs) -> BaseIntegration | None:
        integration_class = self._integrations.get(integration_type)
        if integration_class is None:
            return None
        return integration_class(**kwargs)

    def get_all_integrations(self, **kwargs) -> dict[str, BaseIntegration]:
        return {
            integration_type: integration_class(**kwargs)
            for integration_type, integration_class in self._integrations.items()
        }

    def get_types(self) -> list[str]:
        return list(self._integrations)


class IntegrationFactory:
    """Builds integrations sharing one HTTP client and settings object."""

    def __init__(
        self,
        registry: IntegrationRegistry,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        self.registry = registry
        self.http_client = http_client
        self.settings = settings

    def make(self, integration_type: str) -> BaseIntegration | None:
        return self.registry.get_integration(
            integration_type, http_client=self.http_client, settings=self.settings,
        )

    def make_from_provider(self, provider: IntegrationProvider) -> BaseIntegration | None:
        integration = self.make(provider.type)
        if integration is not None:
            integration.set_provider(provider)
        return integration


@lru_cache
def get_registry() -> IntegrationRegistry:
    registry = IntegrationRegistry()
    registry.register(IntegrationType.GITHUB.value, GitHubIntegration)
    return registry
