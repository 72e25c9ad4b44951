"""Board ORM — a named collection of posts.

Invariants:
    - slug is unique
    - posts is a denormalized counter maintained by Post insert/delete hooks (models/hooks.py)
"""

from sqlalchemy import String, Integer, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column

from ideabox.core.domain_types import BoardPrivacy
from ideabox.db.base import Base, TimestampMixin


class Board(TimestampMixin, Base):
    __tablename__ = "boards"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    posts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    privacy: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BoardPrivacy.PUBLIC.value,
    )
    allow_posts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    @property
    def is_public(self) -> bool:
        return self.privacy == BoardPrivacy.PUBLIC.value
