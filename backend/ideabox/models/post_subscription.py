"""PostSubscription ORM — users following a post's activity."""

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ideabox.db.base import Base, TimestampMixin


class PostSubscription(TimestampMixin, Base):
    __tablename__ = "post_subscriptions"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_post_subscriptions_post_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
