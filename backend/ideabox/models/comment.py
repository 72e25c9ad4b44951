"""Comment ORM — discussion on a post; merge comments are system-generated.

Invariants:
    - parent_id NULL for top-level comments; only top-level comments count toward posts.comments
    - is_merge_comment rows have body "Merged from #<id>" (core/merge_rules.py)
    - merged_from_post_id stamps comments moved by a merge (provenance for unmerge)
"""

from sqlalchemy import Text, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from ideabox.db.base import Base, TimestampMixin


class Comment(TimestampMixin, Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(primary_key=True)
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"), nullable=True,
    )
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_merge_comment: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    merged_from_post_id: Mapped[int | None] = mapped_column(
        ForeignKey("posts.id", ondelete="SET NULL"), nullable=True,
    )
