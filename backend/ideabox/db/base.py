"""SQLAlchemy Declarative Base — shared base class and timestamp columns for all ORM models.

Invariants:
    - All models inherit from Base
    - Base is the single source of truth for table metadata
    - updated_at is refreshed by the ORM on every UPDATE issued through a session
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all IdeaBox ORM models."""
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )
