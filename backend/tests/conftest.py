"""Root conftest — shared test configuration, async DB and seed data.

Invariants:
    - Environment defaults are set BEFORE any ideabox import (get_settings is cached)
    - Every test gets a fresh in-memory SQLite database
    - FakeGitHub answers every outbound GitHub call; nothing reaches the network

Design Decisions:
    - SQLite in-memory with StaticPool: route sessions and the test session share
      one connection, so rows committed by either side are visible to the other
    - FakeGitHub keyed by (method, path): api.github.com and github.com paths never collide
"""

import os

# Ensure tests don't accidentally use real API keys or hosts
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-fake-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("APP_URL", "https://ideabox.test")

import httpx
import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from ideabox.config import get_settings
from ideabox.db.base import Base
from ideabox.models import (
    Board, Comment, IntegrationProvider, IntegrationRepository,
    Post, PostIntegrationLink, Status, User, Vote,
)
from ideabox.services.integrations.github_integration import GitHubIntegration


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


# ─── Seed data ──────────────────────────────────────────────────

class Seed:
    """Commits domain rows through the ORM so lifecycle hooks run as in production."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def reload(self, *objs) -> None:
        """Re-read rows whose counters were written behind the identity map."""
        for obj in objs:
            await self.db.refresh(obj)

    async def user(self, name: str, role: str = "user") -> User:
        return await self._save(User(name=name, email=f"{name.lower()}@example.com", role=role))

    async def board(self, name: str = "Feature Requests", privacy: str = "public") -> Board:
        slug = name.lower().replace(" ", "-")
        return await self._save(Board(name=name, slug=slug, privacy=privacy))

    async def status(self, name: str) -> Status:
        return await self._save(Status(name=name))

    async def post(self, board: Board, title: str, author: User | None = None, **kwargs) -> Post:
        return await self._save(Post(
            board_id=board.id, title=title,
            created_by=author.id if author else None, **kwargs,
        ))

    async def vote(self, post: Post, user: User) -> Vote:
        return await self._save(Vote(post_id=post.id, board_id=post.board_id, user_id=user.id))

    async def comment(
        self, post: Post, user: User, body: str = "Would love this", parent: Comment | None = None,
    ) -> Comment:
        return await self._save(Comment(
            post_id=post.id, user_id=user.id, body=body,
            parent_id=parent.id if parent else None,
        ))

    async def provider(self, name: str = "octocat", connected: bool = True, **config) -> IntegrationProvider:
        settings = {"client_id": "client-123", "client_secret": "secret-456", **config}
        if connected:
            settings["access_token"] = "gho_test_token"
        provider = IntegrationProvider(type="github", name=name, settings=settings)
        if connected:
            provider.update_tokens("gho_test_token")
        return await self._save(provider)

    async def repository(
        self,
        provider: IntegrationProvider,
        full_name: str = "acme/widgets",
        webhook_id: int | None = None,
        webhook_secret: str | None = None,
    ) -> IntegrationRepository:
        settings = {}
        if webhook_id is not None:
            settings = {"webhook_id": webhook_id, "webhook_secret": webhook_secret}
        return await self._save(IntegrationRepository(
            integration_provider_id=provider.id,
            name=full_name.split("/")[-1],
            full_name=full_name,
            settings=settings,
        ))

    async def link(
        self, post: Post, repository: IntegrationRepository, number: int, status: str = "open",
    ) -> PostIntegrationLink:
        return await self._save(PostIntegrationLink(
            post_id=post.id,
            integration_provider_id=repository.integration_provider_id,
            integration_repository_id=repository.id,
            external_id=str(number),
            external_url=f"https://github.com/{repository.full_name}/issues/{number}",
            status=status,
            settings={"title": f"Issue {number}"},
        ))


@pytest.fixture
def seed(test_db):
    return Seed(test_db)


@pytest.fixture
async def admin(seed):
    return await seed.user("Admin", role="admin")


@pytest.fixture
async def alice(seed):
    return await seed.user("Alice")


@pytest.fixture
async def bob(seed):
    return await seed.user("Bob")


@pytest.fixture
async def carol(seed):
    return await seed.user("Carol")


@pytest.fixture
async def dave(seed):
    return await seed.user("Dave")


@pytest.fixture
async def board(seed):
    return await seed.board()


# ─── Scripted GitHub ────────────────────────────────────────────

class FakeGitHub:
    """httpx.MockTransport handler answering GitHub calls from a response table."""

    def __init__(self):
        self.responses: dict[tuple[str, str], tuple[int, object]] = {}
        self.failures: set[tuple[str, str]] = set()
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, status_code: int = 200, json=None) -> None:
        self.responses[(method.upper(), path)] = (status_code, json)

    def fail(self, method: str, path: str) -> None:
        """Make calls to (method, path) raise a connection error."""
        self.failures.add((method.upper(), path))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self.failures:
            raise httpx.ConnectError("connection refused", request=request)
        if key not in self.responses:
            return httpx.Response(404, json={"message": "Not Found"})
        status_code, body = self.responses[key]
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    def sent(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method.upper() and r.url.path == path
        ]


@pytest.fixture
def github_api():
    return FakeGitHub()


@pytest.fixture
async def github_http(github_api):
    async with httpx.AsyncClient(transport=httpx.MockTransport(github_api.handler)) as client:
        yield client


@pytest.fixture
def github(github_http):
    """GitHubIntegration wired to FakeGitHub, no provider bound."""
    return GitHubIntegration(http_client=github_http, settings=get_settings())


def issue_payload(number: int, state: str = "open", title: str = "Crash on save", **extra) -> dict:
    """GitHub REST issue object (the fields IdeaBox reads)."""
    return {
        "id": 1000 + number,
        "number": number,
        "title": title,
        "state": state,
        "body": extra.pop("body", "Steps to reproduce"),
        "created_at": "2026-10-01T10:00:00Z",
        "updated_at": "2026-10-02T10:00:00Z",
        "html_url": f"https://github.com/acme/widgets/issues/{number}",
        **extra,
    }


@pytest.fixture
def make_issue():
    return issue_payload

