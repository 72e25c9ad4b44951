"""API test fixtures — FastAPI test client over the in-memory DB and scripted GitHub.

Invariants:
    - get_db overridden to open sessions on the test engine
    - get_integration_factory overridden: every integration talks to FakeGitHub
    - db_manager patched so the readiness probe sees the test engine

Design Decisions:
    - ASGITransport skips the lifespan: no app.state.http_client, no init_db
"""

import pytest
from httpx import ASGITransport, AsyncClient

from ideabox.api.dependencies import get_integration_factory
from ideabox.config import get_settings
from ideabox.infrastructure.database import get_db, DatabaseSessionManager
import ideabox.infrastructure.database as db_module
from ideabox.main import app
from ideabox.services.integration_registry import IntegrationFactory, get_registry


@pytest.fixture
async def client(test_engine, test_session_factory, github_http):
    """FastAPI test client with DB and GitHub dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    def override_factory():
        return IntegrationFactory(get_registry(), github_http, get_settings())

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_integration_factory] = override_factory

    original_manager = db_module.db_manager
    db_module.db_manager = DatabaseSessionManager.from_engine(test_engine, test_session_factory)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def as_admin(admin):
    return {"X-User-Id": str(admin.id)}


@pytest.fixture
def as_member(alice):
    return {"X-User-Id": str(alice.id)}
