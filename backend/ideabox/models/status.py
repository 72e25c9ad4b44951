"""Status ORM — workflow state assignable to posts (e.g. Open, In Progress, Complete)."""

from sqlalchemy import String, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from ideabox.db.base import Base, TimestampMixin


class Status(TimestampMixin, Base):
    __tablename__ = "statuses"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="#6b7280")
    in_roadmap: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    in_frontend: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
