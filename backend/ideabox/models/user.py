"""User ORM — authors of posts, votes and comments; admins run merges and integrations.

Invariants:
    - email is unique
    - role is "admin" or "user" (UserRole)
"""

from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from ideabox.core.domain_types import UserRole
from ideabox.db.base import Base, TimestampMixin


def _default_email_preferences() -> dict:
    return {"comments": True, "status_updates": True}


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.USER.value,
    )
    email_preferences: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=_default_email_preferences,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
