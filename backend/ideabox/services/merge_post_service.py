"""Merge Post Service — folds a duplicate post into a canonical one, and reverses it.

Invariants:
    - merge/merge_many/unmerge each commit exactly once; any failure rolls the whole operation back
    - A voter never ends up with two votes on the target (duplicates are dropped, then
      remembered in source.merge_details["duplicate_voter_ids"] for unmerge)
    - Rows moved by a merge carry merged_from_post_id = source.id; unmerge moves back
      exactly those rows
    - vote/comments counters on both posts equal the row counts after every operation

Design Decisions:
    - Bulk UPDATE/DELETE for the row moves: one statement per table instead of per-row
      ORM round trips; mapper hooks do not fire, so counters are recomputed here
    - Merge comment inserted through the ORM: its hook subscribes the merging admin to
      the target, same as any other comment
    - Chained merges are refused both ways: a merged post cannot receive merges, and a
      post that received merges cannot be merged away until they are unmerged
"""

import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from ideabox.core.errors import ErrorContext, ResourceNotFoundError
from ideabox.core.merge_rules import (
    check_mergeable, check_unmergeable, merge_comment_body, split_voters,
)
from ideabox.db.base import utcnow
from ideabox.models.comment import Comment
from ideabox.models.post import Post
from ideabox.models.post_integration_link import PostIntegrationLink
from ideabox.models.post_subscription import PostSubscription
from ideabox.models.user import User
from ideabox.models.vote import Vote

logger = logging.getLogger(__name__)


class MergePostService:
    """Transactional merge/unmerge of posts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Public operations ──────────────────────────────────────

    async def merge(self, source: Post, target: Post, user: User) -> Post:
        """Merge source into target. Returns the target with fresh counters."""
        await self._merge_one(source, target, user)
        await self.db.commit()
        logger.info(
            "post merged",
            extra={"post_id": source.id, "target_post_id": target.id, "user_id": user.id},
        )
        return target

    async def merge_many(
        self,
        target: Post,
        sources: list[Post],
        user: User,
        status_id: int | None = None,
    ) -> Post:
        """Merge every source into target in one transaction; optionally restatus the sources."""
        for source in sources:
            await self._merge_one(source, target, user)
            if status_id is not None:
                source.status_id = status_id
        await self.db.flush()
        await self.db.commit()
        for source in sources:
            logger.info(
                "post merged",
                extra={
                    "post_id": source.id, "target_post_id": target.id,
                    "user_id": user.id, "status_id": status_id,
                },
            )
        return target

    async def unmerge(self, source: Post, user: User) -> Post:
        """Restore a merged post's votes, comments, subscriptions and links."""
        check_unmergeable(source.id, source.merged_into_post_id)
        target_id = source.merged_into_post_id
        target = await self.db.get(Post, target_id)
        if target is None:
            raise ResourceNotFoundError(
                "Post", str(target_id), ErrorContext(post_id=source.id),
            )
        details = dict(source.merge_details or {})

        await self._delete_merge_comment(source.id, target.id)
        await self._restore_comments(source, target)
        await self._restore_votes(source, target, details.get("duplicate_voter_ids", []))
        await self._restore_links(source, target, details.get("link_ids", []))
        await self._restore_subscriptions(
            source, target, details.get("subscription_user_ids", []),
        )

        source.merged_into_post_id = None
        source.merged_by_user_id = None
        source.merged_at = None
        source.merge_details = None
        await self.db.flush()
        await self._refresh_counters(source, target)
        await self.db.commit()

        logger.info(
            "post unmerged",
            extra={"post_id": source.id, "target_post_id": target.id, "user_id": user.id},
        )
        return source

    # ─── Merge steps ────────────────────────────────────────────

    async def _merge_one(self, source: Post, target: Post, user: User) -> None:
        absorbed = await self.db.execute(
            select(Post.id).where(Post.merged_into_post_id == source.id).order_by(Post.id)
        )
        check_mergeable(
            source.id, source.merged_into_post_id, target.id, target.merged_into_post_id,
            list(absorbed.scalars().all()),
        )
        duplicate_voter_ids = await self._transfer_votes(source, target)
        await self._transfer_comments(source, target)
        subscription_user_ids = await self._transfer_subscriptions(source, target)
        link_ids = await self._transfer_links(source, target)

        source.merged_into_post_id = target.id
        source.merged_by_user_id = user.id
        source.merged_at = utcnow()
        source.merge_details = {
            "duplicate_voter_ids": duplicate_voter_ids,
            "subscription_user_ids": subscription_user_ids,
            "link_ids": link_ids,
        }
        await self.db.flush()

        self.db.add(Comment(
            post_id=target.id,
            user_id=user.id,
            body=merge_comment_body(source.id),
            is_merge_comment=True,
        ))
        await self.db.flush()
        await self._refresh_counters(source, target)

    async def _transfer_votes(self, source: Post, target: Post) -> list[int]:
        source_voters = await self._user_ids(Vote, source.id)
        target_voters = set(await self._user_ids(Vote, target.id))
        movable, duplicates = split_voters(source_voters, target_voters)

        if duplicates:
            await self.db.execute(
                delete(Vote).where(Vote.post_id == source.id, Vote.user_id.in_(duplicates))
            )
        if movable:
            await self.db.execute(
                update(Vote)
                .where(Vote.post_id == source.id, Vote.user_id.in_(movable))
                .values(
                    post_id=target.id, board_id=target.board_id,
                    merged_from_post_id=source.id,
                )
            )
        return duplicates

    async def _transfer_comments(self, source: Post, target: Post) -> None:
        await self.db.execute(
            update(Comment)
            .where(Comment.post_id == source.id)
            .values(post_id=target.id, merged_from_post_id=source.id)
        )

    async def _transfer_subscriptions(self, source: Post, target: Post) -> list[int]:
        source_subscribers = await self._user_ids(PostSubscription, source.id)
        target_subscribers = set(await self._user_ids(PostSubscription, target.id))
        moved = [uid for uid in source_subscribers if uid not in target_subscribers]

        if moved:
            await self.db.execute(
                update(PostSubscription)
                .where(
                    PostSubscription.post_id == source.id,
                    PostSubscription.user_id.in_(moved),
                )
                .values(post_id=target.id)
            )
        await self.db.execute(
            delete(PostSubscription).where(PostSubscription.post_id == source.id)
        )
        return moved

    async def _transfer_links(self, source: Post, target: Post) -> list[int]:
        """Move source issue links unless the target already links the same issue."""
        result = await self.db.execute(
            select(
                PostIntegrationLink.integration_repository_id,
                PostIntegrationLink.external_id,
            ).where(PostIntegrationLink.post_id == target.id)
        )
        target_issues = {(row[0], row[1]) for row in result.all()}

        result = await self.db.execute(
            select(PostIntegrationLink).where(PostIntegrationLink.post_id == source.id)
        )
        moved: list[int] = []
        for link in result.scalars().all():
            if (link.integration_repository_id, link.external_id) in target_issues:
                continue
            link.post_id = target.id
            moved.append(link.id)
        return moved

    # ─── Unmerge steps ──────────────────────────────────────────

    async def _delete_merge_comment(self, source_id: int, target_id: int) -> None:
        result = await self.db.execute(
            select(Comment).where(
                Comment.post_id == target_id,
                Comment.is_merge_comment.is_(True),
                Comment.body == merge_comment_body(source_id),
            )
        )
        for comment in result.scalars().all():
            await self.db.delete(comment)
        await self.db.flush()

    async def _restore_comments(self, source: Post, target: Post) -> None:
        await self.db.execute(
            update(Comment)
            .where(Comment.post_id == target.id, Comment.merged_from_post_id == source.id)
            .values(post_id=source.id, merged_from_post_id=None)
        )

    async def _restore_votes(
        self, source: Post, target: Post, duplicate_voter_ids: list[int],
    ) -> None:
        await self.db.execute(
            update(Vote)
            .where(Vote.post_id == target.id, Vote.merged_from_post_id == source.id)
            .values(post_id=source.id, board_id=source.board_id, merged_from_post_id=None)
        )
        existing = set(await self._user_ids(Vote, source.id))
        for user_id in duplicate_voter_ids:
            if user_id not in existing:
                self.db.add(Vote(post_id=source.id, board_id=source.board_id, user_id=user_id))
        await self.db.flush()

    async def _restore_links(self, source: Post, target: Post, link_ids: list[int]) -> None:
        if not link_ids:
            return
        await self.db.execute(
            update(PostIntegrationLink)
            .where(
                PostIntegrationLink.post_id == target.id,
                PostIntegrationLink.id.in_(link_ids),
            )
            .values(post_id=source.id)
        )

    async def _restore_subscriptions(
        self, source: Post, target: Post, subscription_user_ids: list[int],
    ) -> None:
        if subscription_user_ids:
            await self.db.execute(
                update(PostSubscription)
                .where(
                    PostSubscription.post_id == target.id,
                    PostSubscription.user_id.in_(subscription_user_ids),
                )
                .values(post_id=source.id)
            )

        owners = set(await self._user_ids(Vote, source.id))
        owners |= set(await self._user_ids(Comment, source.id))
        if source.created_by is not None:
            owners.add(source.created_by)
        subscribed = set(await self._user_ids(PostSubscription, source.id))
        for user_id in sorted(owners - subscribed):
            self.db.add(PostSubscription(post_id=source.id, user_id=user_id))
        await self.db.flush()

    # ─── Helpers ────────────────────────────────────────────────

    async def _user_ids(self, model, post_id: int) -> list[int]:
        result = await self.db.execute(
            select(model.user_id)
            .where(model.post_id == post_id, model.user_id.is_not(None))
            .order_by(model.id)
        )
        return list(result.scalars().all())

    async def _refresh_counters(self, *posts: Post) -> None:
        """Recount vote/comment counters (bulk statements above bypass the hooks)."""
        for post in posts:
            votes = await self.db.scalar(
                select(func.count(Vote.id)).where(Vote.post_id == post.id)
            )
            comments = await self.db.scalar(
                select(func.count(Comment.id)).where(
                    Comment.post_id == post.id, Comment.parent_id.is_(None),
                )
            )
            post.vote = votes or 0
            post.comments = comments or 0
            # Hooks may have written the columns behind the identity map
            flag_modified(post, "vote")
            flag_modified(post, "comments")
        await self.db.flush()
