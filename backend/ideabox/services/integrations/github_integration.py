"""GitHub Integration — OAuth handshake and REST calls against api.github.com.

Invariants:
    - OAuth state is "<random>_<provider id>", stored in provider config as oauth_state;
      a callback whose state does not match the stored one is rejected
    - Every REST call goes through request(): bearer token, GitHub JSON accept header,
      fixed user agent, configured timeout
    - request() raises IntegrationNotAuthenticatedError without a token; the public
      helpers log and return an empty result ([], {"items": []}, None, False) on any failure
    - Callback failures are recorded in provider config as error_message for the settings page

Design Decisions:
    - Shared httpx.AsyncClient injected by the app (api/dependencies.py); a short-lived
      client is opened per call when none is given
    - Provider mutations are staged only: the route's session commits them
"""

import json
import logging
import secrets
from typing import Any
from urllib.parse import urlencode

import httpx

from ideabox.core.domain_types import IntegrationType
from ideabox.core.errors import (
    ErrorContext, IntegrationError, IntegrationNotAuthenticatedError,
)
from ideabox.models.integration_repository import IntegrationRepository
from ideabox.services.integrations.base_integration import BaseIntegration

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.github.com"
AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
OAUTH_SCOPE = "repo"
USER_AGENT = "IdeaBox GitHub Integration"

# Failures the public helpers absorb (network, missing token, malformed payloads)
_CALL_ERRORS = (httpx.HTTPError, IntegrationNotAuthenticatedError, ValueError, KeyError)


def _same_token(received: str, expected: str) -> bool:
    """Constant-time compare that tolerates any text (compare_digest rejects non-ASCII str)."""
    return secrets.compare_digest(
        received.encode("utf-8", "surrogateescape"), expected.encode("utf-8", "surrogateescape"),
    )


def _json_or_empty(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}


def _issue_summary(issue: dict) -> dict:
    return {
        "id": issue["id"],
        "number": issue["number"],
        "title": issue["title"],
        "state": issue["state"],
        "created_at": issue.get("created_at"),
        "updated_at": issue.get("updated_at"),
        "url": issue.get("html_url"),
    }


def _full_name(repository: IntegrationRepository | str) -> str:
    if isinstance(repository, IntegrationRepository):
        return repository.full_name
    return repository


class GitHubIntegration(BaseIntegration):
    """GitHub OAuth app + REST API client bound to one IntegrationProvider."""

    name = "GitHub"
    type = IntegrationType.GITHUB.value
    configuration_fields = {
        "client_id": {"type": "text", "label": "Client ID", "required": True},
        "client_secret": {"type": "text", "label": "Client Secret", "required": True},
    }

    # ─── OAuth ──────────────────────────────────────────────────

    def get_auth_url(self, redirect_uri: str) -> str:
        """Authorize URL for the provider's OAuth app; stages oauth_state on the provider."""
        config = self.provider.get_config() if self.provider else {}
        if not config.get("client_id"):
            raise IntegrationError("GitHub client ID is not set")

        state = f"{secrets.token_urlsafe(24)}_{self.provider.id}"
        config["oauth_state"] = state
        self.provider.set_config(config)

        params = {
            "client_id": config["client_id"],
            "redirect_uri": redirect_uri,
            "scope": OAUTH_SCOPE,
            "state": state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def handle_auth_callback(
        self, code: str | None, state: str | None, redirect_uri: str,
    ) -> bool:
        """Exchange the authorization code for a token and record the GitHub account."""
        if self.provider is None:
            logger.error("GitHub callback without provider")
            return False

        if not code:
            logger.error("GitHub callback missing code", extra={"provider_id": self.provider.id})
            self._store_error("Authorization code missing from callback")
            return False

        config = self.provider.get_config()
        expected_state = config.get("oauth_state")
        if not state or not expected_state or not _same_token(state, expected_state):
            logger.warning("GitHub callback state mismatch", extra={"provider_id": self.provider.id})
            self._store_error("OAuth state mismatch, please retry connecting")
            return False

        if not config.get("client_id") or not config.get("client_secret"):
            logger.error("GitHub callback missing credentials", extra={"provider_id": self.provider.id})
            self._store_error("Client ID and secret are required")
            return False

        try:
            token_response = await self._send(
                "POST", TOKEN_URL,
                headers={"Accept": "application/json"},
                json={
                    "client_id": config["client_id"],
                    "client_secret": config["client_secret"],
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
            )
            token_data = _json_or_empty(token_response)
            if not token_response.is_success:
                logger.error(
                    f"GitHub access token request failed: HTTP {token_response.status_code}",
                    extra={"provider_id": self.provider.id},
                )
                detail = token_data.get("error_description") or f"HTTP {token_response.status_code}"
                self._store_error(f"Failed to obtain access token: {detail}")
                return False

            access_token = token_data.get("access_token")
            if not access_token:
                logger.error("GitHub access token missing from response", extra={"provider_id": self.provider.id})
                detail = token_data.get("error_description") or json.dumps(token_data)
                self._store_error(f"Access token missing from GitHub response: {detail}")
                return False

            user_response = await self._send(
                "GET", f"{API_BASE_URL}/user",
                headers=self._headers(access_token),
            )
        except httpx.HTTPError as e:
            logger.error(f"GitHub auth callback exception: {e}", extra={"provider_id": self.provider.id})
            self._store_error(f"Exception: {e}")
            return False

        config = self.provider.get_config()
        if user_response.is_success:
            user_data = _json_or_empty(user_response)
            config["user"] = {
                key: user_data.get(key)
                for key in ("login", "id", "name", "email", "avatar_url")
            }
            if user_data.get("login"):
                self.provider.name = user_data["login"]
        else:
            logger.error(
                f"GitHub user info request failed: HTTP {user_response.status_code}",
                extra={"provider_id": self.provider.id},
            )

        config["access_token"] = access_token
        config.pop("oauth_state", None)
        config.pop("error_message", None)
        self.provider.set_config(config)
        self.provider.update_tokens(access_token)
        logger.info("GitHub provider connected", extra={"provider_id": self.provider.id})
        return True

    def disconnect(self) -> bool:
        if self.provider is None:
            return False
        config = self.provider.get_config()
        config.pop("access_token", None)
        self.provider.set_config(config)
        self.provider.disconnect()
        logger.info("GitHub provider disconnected", extra={"provider_id": self.provider.id})
        return True

    # ─── REST ───────────────────────────────────────────────────

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Authenticated call to the GitHub REST API; `path` is relative to the API base."""
        if not self.is_authenticated():
            raise IntegrationNotAuthenticatedError(
                self.name, ErrorContext(provider_id=self.provider.id if self.provider else None),
            )
        headers = {**self._headers(self._access_token()), **kwargs.pop("headers", {})}
        return await self._send(method, f"{API_BASE_URL}{path}", headers=headers, **kwargs)

    async def get_repositories(self) -> list[dict]:
        try:
            response = await self.request(
                "GET", "/user/repos", params={"sort": "updated", "per_page": 100},
            )
            if not response.is_success:
                self._log_failure("get repositories", response)
                return []
            return [
                {
                    "id": repo["id"],
                    "name": repo["name"],
                    "full_name": repo["full_name"],
                    "description": repo.get("description") or "",
                    "url": repo.get("html_url"),
                }
                for repo in response.json()
            ]
        except _CALL_ERRORS as e:
            logger.error(f"GitHub get repositories exception: {e}")
            return []

    async def search_repositories(self, query: str) -> dict:
        """Case-insensitive name/full_name filter over the user's repos, at most 10."""
        try:
            response = await self.request(
                "GET", "/user/repos",
                params={
                    "sort": "updated",
                    "per_page": 100,
                    "affiliation": "owner,collaborator,organization_member",
                },
            )
            if not response.is_success:
                self._log_failure("search repositories", response)
                return {"items": []}
            needle = query.lower()
            matches = [
                repo for repo in response.json()
                if needle in repo["name"].lower() or needle in repo["full_name"].lower()
            ]
            return {"items": matches[:10]}
        except _CALL_ERRORS as e:
            logger.error(f"GitHub search repositories exception: {e}")
            return {"items": []}

    async def search_issues(self, repository: IntegrationRepository | str, query: str = "") -> list[dict]:
        full_name = _full_name(repository)
        q = f"repo:{full_name}"
        if query:
            q = f"{q} {query}"
        try:
            response = await self.request(
                "GET", "/search/issues", params={"q": q, "per_page": 50},
            )
            if not response.is_success:
                self._log_failure("search issues", response, full_name)
                return []
            return [_issue_summary(issue) for issue in response.json().get("items", [])]
        except _CALL_ERRORS as e:
            logger.error(f"GitHub search issues exception: {e}", extra={"repository": full_name})
            return []

    async def get_issue(self, repository: IntegrationRepository | str, number: int) -> dict | None:
        full_name = _full_name(repository)
        try:
            response = await self.request("GET", f"/repos/{full_name}/issues/{number}")
            if not response.is_success:
                self._log_failure("get issue", response, full_name)
                return None
            issue = response.json()
            return {**_issue_summary(issue), "body": issue.get("body")}
        except _CALL_ERRORS as e:
            logger.error(f"GitHub get issue exception: {e}", extra={"repository": full_name, "issue": number})
            return None

    async def create_issue(
        self, repository: IntegrationRepository | str, title: str, body: str,
    ) -> dict | None:
        full_name = _full_name(repository)
        try:
            response = await self.request(
                "POST", f"/repos/{full_name}/issues", json={"title": title, "body": body},
            )
            if not response.is_success:
                self._log_failure("create issue", response, full_name)
                return None
            return _issue_summary(response.json())
        except _CALL_ERRORS as e:
            logger.error(f"GitHub create issue exception: {e}", extra={"repository": full_name})
            return None

    async def create_repository_webhook(
        self, repository: IntegrationRepository | str, url: str, secret: str,
    ) -> dict | None:
        """Create an `issues` webhook delivering JSON signed with `secret`."""
        full_name = _full_name(repository)
        try:
            response = await self.request(
                "POST", f"/repos/{full_name}/hooks",
                json={
                    "name": "web",
                    "active": True,
                    "events": ["issues"],
                    "config": {
                        "url": url,
                        "content_type": "json",
                        "secret": secret,
                        "insecure_ssl": "0",
                    },
                },
            )
            if not response.is_success:
                self._log_failure("create webhook", response, full_name)
                return None
            return response.json()
        except _CALL_ERRORS as e:
            logger.error(f"GitHub create webhook exception: {e}", extra={"repository": full_name})
            return None

    async def delete_repository_webhook(
        self, repository: IntegrationRepository | str, hook_id: int,
    ) -> bool:
        full_name = _full_name(repository)
        try:
            response = await self.request("DELETE", f"/repos/{full_name}/hooks/{hook_id}")
            if not response.is_success:
                self._log_failure("delete webhook", response, full_name)
                return False
            return True
        except _CALL_ERRORS as e:
            logger.error(f"GitHub delete webhook exception: {e}", extra={"repository": full_name})
            return False

    # ─── Internals ──────────────────────────────────────────────

    def _access_token(self) -> str | None:
        if self.provider is None:
            return None
        return self.provider.access_token or self.provider.get_config_value("access_token")

    def _headers(self, token: str | None) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        timeout = self.settings.github_timeout_seconds
        if self.http_client is not None:
            return await self.http_client.request(method, url, timeout=timeout, **kwargs)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.request(method, url, **kwargs)

    def _store_error(self, message: str) -> None:
        config = self.provider.get_config()
        config["error_message"] = message
        self.provider.set_config(config)

    def _log_failure(self, operation: str, response: httpx.Response, repository: str | None = None) -> None:
        logger.error(
            f"GitHub {operation} failed: HTTP {response.status_code} {response.text[:500]}",
            extra={
                "provider_id": self.provider.id if self.provider else None,
                "repository": repository,
            },
        )
