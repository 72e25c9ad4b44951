"""Lifecycle Hooks — mapper events keeping counters, slugs and subscriptions consistent.

Invariants:
    - Post insert: slug derived from title when unset; board.posts +1; creator subscribed
    - Post delete: board.posts -1
    - Vote insert/delete: posts.vote recounted; voter subscribed on insert
    - Comment insert/delete: posts.comments recounted (top-level only);
      commenter subscribed on insert, unsubscribed on delete
    - Comment delete removes its replies (recursively) first
    - Hooks fire per ORM row only: bulk update()/delete() statements skip them,
      so callers issuing bulk statements recount explicitly (services/merge_post_service.py)

Design Decisions:
    - Core statements on the flush connection: hooks run inside the flush, where
      issuing ORM queries through the Session is not allowed
    - Counters are recounted rather than incremented: idempotent under retries and moves
"""

from sqlalchemy import event, select, update, delete, func, insert, and_

from ideabox.core.slugs import slugify, next_available_slug
from ideabox.db.base import utcnow
from ideabox.models.board import Board
from ideabox.models.post import Post
from ideabox.models.vote import Vote
from ideabox.models.comment import Comment
from ideabox.models.post_subscription import PostSubscription

posts_t = Post.__table__
boards_t = Board.__table__
votes_t = Vote.__table__
comments_t = Comment.__table__
subs_t = PostSubscription.__table__


# ─── Shared statements ──────────────────────────────────────────

def subscribe(connection, post_id: int, user_id: int | None) -> None:
    """Insert a subscription unless one exists."""
    if user_id is None:
        return
    exists = connection.execute(
        select(subs_t.c.id).where(
            and_(subs_t.c.post_id == post_id, subs_t.c.user_id == user_id),
        )
    ).first()
    if exists is None:
        now = utcnow()
        connection.execute(insert(subs_t).values(
            post_id=post_id, user_id=user_id, created_at=now, updated_at=now,
        ))


def unsubscribe(connection, post_id: int, user_id: int | None) -> None:
    if user_id is None:
        return
    connection.execute(delete(subs_t).where(
        and_(subs_t.c.post_id == post_id, subs_t.c.user_id == user_id),
    ))


def recount_votes(connection, post_id: int) -> None:
    count = (
        select(func.count(votes_t.c.id))
        .where(votes_t.c.post_id == post_id)
        .scalar_subquery()
    )
    connection.execute(
        update(posts_t).where(posts_t.c.id == post_id).values(vote=count)
    )


def recount_comments(connection, post_id: int) -> None:
    count = (
        select(func.count(comments_t.c.id))
        .where(and_(
            comments_t.c.post_id == post_id, comments_t.c.parent_id.is_(None),
        ))
        .scalar_subquery()
    )
    connection.execute(
        update(posts_t).where(posts_t.c.id == post_id).values(comments=count)
    )


# ─── Post ───────────────────────────────────────────────────────

@event.listens_for(Post, "before_insert")
def _post_slug(mapper, connection, target: Post) -> None:
    if target.slug:
        return
    base = slugify(target.title or "")
    taken = connection.execute(
        select(posts_t.c.slug).where(
            (posts_t.c.slug == base) | posts_t.c.slug.like(f"{base}-%")
        )
    ).scalars().all()
    target.slug = next_available_slug(base, taken)


@event.listens_for(Post, "after_insert")
def _post_created(mapper, connection, target: Post) -> None:
    connection.execute(
        update(boards_t).where(boards_t.c.id == target.board_id)
        .values(posts=boards_t.c.posts + 1)
    )
    subscribe(connection, target.id, target.created_by)


@event.listens_for(Post, "after_delete")
def _post_deleted(mapper, connection, target: Post) -> None:
    connection.execute(
        update(boards_t)
        .where(and_(boards_t.c.id == target.board_id, boards_t.c.posts > 0))
        .values(posts=boards_t.c.posts - 1)
    )


# ─── Vote ───────────────────────────────────────────────────────

@event.listens_for(Vote, "after_insert")
def _vote_created(mapper, connection, target: Vote) -> None:
    recount_votes(connection, target.post_id)
    subscribe(connection, target.post_id, target.user_id)


@event.listens_for(Vote, "after_delete")
def _vote_deleted(mapper, connection, target: Vote) -> None:
    recount_votes(connection, target.post_id)


# ─── Comment ────────────────────────────────────────────────────

@event.listens_for(Comment, "after_insert")
def _comment_created(mapper, connection, target: Comment) -> None:
    recount_comments(connection, target.post_id)
    subscribe(connection, target.post_id, target.user_id)


@event.listens_for(Comment, "before_delete")
def _comment_delete_replies(mapper, connection, target: Comment) -> None:
    child_ids = connection.execute(
        select(comments_t.c.id).where(comments_t.c.parent_id == target.id)
    ).scalars().all()
    if child_ids:
        _delete_subtree(connection, list(child_ids))


def _delete_subtree(connection, ids: list[int]) -> None:
    # Deepest replies first so parent_id references never dangle
    grandchildren = connection.execute(
        select(comments_t.c.id).where(comments_t.c.parent_id.in_(ids))
    ).scalars().all()
    if grandchildren:
        _delete_subtree(connection, list(grandchildren))
    connection.execute(delete(comments_t).where(comments_t.c.id.in_(ids)))


@event.listens_for(Comment, "after_delete")
def _comment_deleted(mapper, connection, target: Comment) -> None:
    recount_comments(connection, target.post_id)
    unsubscribe(connection, target.post_id, target.user_id)
