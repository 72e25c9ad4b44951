"""IdeaBox API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map IdeaBoxError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and the shared GitHub HTTP client are created on startup and
      released on shutdown via the lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ideabox.api.error_handlers import register_error_handlers
from ideabox.api.routes import (
    descriptions, github_accounts, github_issues, github_repositories,
    health, integrations, merge, posts, webhooks,
)
from ideabox.config import get_settings
from ideabox.infrastructure import database
from ideabox.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    app.state.http_client = httpx.AsyncClient(timeout=settings.github_timeout_seconds)
    logger.info("IdeaBox API started")
    yield
    logger.info("IdeaBox API shutting down")
    await app.state.http_client.aclose()
    if database.db_manager is not None:
        await database.db_manager.dispose()


app = FastAPI(
    title="IdeaBox API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(posts.router)
app.include_router(webhooks.router)
app.include_router(merge.router)
app.include_router(descriptions.router)
app.include_router(integrations.router)
app.include_router(github_accounts.router)
app.include_router(github_repositories.router)
app.include_router(github_issues.router)

register_error_handlers(app)
