"""Post ORM — a feedback item on a board; the unit of voting, commenting and merging.

Invariants:
    - slug is unique, derived from title on insert (models/hooks.py)
    - vote / comments are denormalized counters (votes rows, top-level comment rows)
    - merged_into_post_id set <=> post is merged; merged_by_user_id and merged_at set with it
    - merge_details records what unmerge must restore (duplicate voters,
      transferred subscriptions and links); cleared on unmerge

Design Decisions:
    - board/status joined-eager: every post read renders both
    - merged_into_post_id ON DELETE SET NULL: deleting a target orphans, never deletes, its sources
"""

from datetime import datetime

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ideabox.db.base import Base, TimestampMixin


class Post(TimestampMixin, Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    vote: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status_id: Mapped[int | None] = mapped_column(
        ForeignKey("statuses.id", ondelete="SET NULL"), nullable=True,
    )
    board_id: Mapped[int] = mapped_column(
        ForeignKey("boards.id", ondelete="CASCADE"), nullable=False,
    )
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )

    merged_into_post_id: Mapped[int | None] = mapped_column(
        ForeignKey("posts.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    merged_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    merged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    merge_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    board: Mapped["Board"] = relationship("Board", lazy="joined")
    status: Mapped["Status | None"] = relationship("Status", lazy="joined")

    @property
    def is_merged(self) -> bool:
        return self.merged_into_post_id is not None
