"""Database — async engine ownership, session scoping and readiness probe.

Invariants:
    - A session that raises is rolled back before the error leaves the scope
    - SQLAlchemy failures surface as DatabaseError (core/errors.py); anything
      else (IdeaBoxError from services, HTTPException) propagates untouched
    - get_db refuses to hand out sessions before init_db ran

Design Decisions:
    - Manager wraps an engine it may not own: the test suite shares one
      StaticPool engine between fixtures and routes via from_engine()
    - expire_on_commit=False: routes serialize ORM rows after commit
    - Server pool sizing is skipped for SQLite URLs (aiosqlite has no QueuePool)
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from ideabox.core.errors import DatabaseError

logger = logging.getLogger(__name__)

# Most specific first: IntegrityError and OperationalError are DBAPIErrors
_ERROR_MAP: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "Integrity constraint violated", "commit"),
    (OperationalError, "Connection or operational error", "execute"),
    (DBAPIError, "Database driver error", "query"),
    (SQLAlchemyError, "Database operation failed", "unknown"),
)


def _to_database_error(exc: SQLAlchemyError) -> DatabaseError:
    for exc_type, message, operation in _ERROR_MAP:
        if isinstance(exc, exc_type):
            return DatabaseError(message, operation)
    return DatabaseError(str(exc), "unknown")


class DatabaseSessionManager:
    """Hands out AsyncSessions bound to one engine."""

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.engine = engine
        self.session_factory = session_factory or async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False,
        )

    @classmethod
    def from_url(
        cls, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ) -> "DatabaseSessionManager":
        options: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            options |= {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_recycle": 3600,
            }
        return cls(create_async_engine(database_url, **options))

    @classmethod
    def from_engine(
        cls,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> "DatabaseSessionManager":
        return cls(engine, session_factory)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                await session.rollback()
                mapped = _to_database_error(exc)
                logger.error(
                    f"{mapped.message}: {exc}",
                    extra={"error_code": mapped.code, "operation": mapped.operation},
                )
                raise mapped from exc
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        """True when a trivial SELECT round-trips (readiness probe)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except (DatabaseError, OSError) as e:
            logger.warning(f"Database readiness check failed: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **pool_options) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager.from_url(database_url, **pool_options)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if db_manager is None:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
