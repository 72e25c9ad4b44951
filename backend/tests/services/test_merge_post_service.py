"""Merge Post Service — merge/unmerge move votes, comments, subscriptions and issue links.

Scenario used throughout:
    target T (by Alice): voted by Carol
    source S (by Bob):   voted by Carol and Dave; Carol's comment with Dave's reply

Invariants checked:
    - Duplicate voters keep one vote on the target and get it back on unmerge
    - Counters equal row counts on both posts after merge and after unmerge
    - Unmerge returns exactly what the merge moved
"""

import pytest
from sqlalchemy import select

from ideabox.core.errors import MergeConflictError
from ideabox.models import Comment, PostIntegrationLink, PostSubscription, Vote
from ideabox.services.merge_post_service import MergePostService


@pytest.fixture
async def scenario(seed, board, alice, bob, carol, dave):
    target = await seed.post(board, "Dark mode", alice)
    source = await seed.post(board, "Night theme please", bob)
    await seed.vote(target, carol)
    await seed.vote(source, carol)
    await seed.vote(source, dave)
    thread = await seed.comment(source, carol, "Same as dark mode?")
    await seed.comment(source, dave, "Yes", parent=thread)
    await seed.reload(source, target)
    return source, target


async def _user_ids(db, model, post_id: int) -> list[int]:
    result = await db.execute(
        select(model.user_id).where(model.post_id == post_id).order_by(model.user_id)
    )
    return list(result.scalars().all())


async def _merge_comment(db, target_id: int) -> Comment | None:
    result = await db.execute(
        select(Comment).where(Comment.post_id == target_id, Comment.is_merge_comment.is_(True))
    )
    return result.scalars().first()


# ─── merge ───────────────────────────────────────────────────────

async def test_merge_marks_source(test_db, scenario, admin):
    source, target = scenario
    await MergePostService(test_db).merge(source, target, admin)

    assert source.merged_into_post_id == target.id
    assert source.merged_by_user_id == admin.id
    assert source.merged_at is not None
    assert source.is_merged


async def test_merge_moves_votes_without_duplicates(test_db, scenario, admin, carol, dave):
    source, target = scenario
    await MergePostService(test_db).merge(source, target, admin)

    assert await _user_ids(test_db, Vote, target.id) == sorted([carol.id, dave.id])
    assert await _user_ids(test_db, Vote, source.id) == []
    assert source.merge_details["duplicate_voter_ids"] == [carol.id]
    assert target.vote == 2
    assert source.vote == 0


async def test_merge_moves_comments_and_adds_merge_comment(test_db, scenario, admin):
    source, target = scenario
    await MergePostService(test_db).merge(source, target, admin)

    moved = await test_db.execute(
        select(Comment).where(Comment.merged_from_post_id == source.id)
    )
    assert {c.post_id for c in moved.scalars().all()} == {target.id}

    merge_comment = await _merge_comment(test_db, target.id)
    assert merge_comment.body == f"Merged from #{source.id}"
    assert merge_comment.user_id == admin.id
    # Carol's thread + merge comment; Dave's reply is not top-level
    assert target.comments == 2
    assert source.comments == 0


async def test_merge_moves_subscriptions(test_db, scenario, admin, alice, bob, carol, dave):
    source, target = scenario
    await MergePostService(test_db).merge(source, target, admin)

    assert await _user_ids(test_db, PostSubscription, source.id) == []
    assert set(await _user_ids(test_db, PostSubscription, target.id)) == {
        alice.id, bob.id, carol.id, dave.id, admin.id,
    }
    assert source.merge_details["subscription_user_ids"] == [bob.id, dave.id]


async def test_merge_moves_links_except_issues_already_on_target(seed, test_db, scenario, admin):
    source, target = scenario
    repository = await seed.repository(await seed.provider())
    await seed.link(target, repository, 5)
    duplicate = await seed.link(source, repository, 5)
    unique = await seed.link(source, repository, 7)

    await MergePostService(test_db).merge(source, target, admin)

    await seed.reload(duplicate, unique)
    assert unique.post_id == target.id
    assert duplicate.post_id == source.id
    assert source.merge_details["link_ids"] == [unique.id]


async def test_merge_rejects_self(test_db, scenario, admin):
    source, _ = scenario
    with pytest.raises(MergeConflictError):
        await MergePostService(test_db).merge(source, source, admin)


async def test_merge_rejects_already_merged_source(seed, test_db, scenario, admin, board):
    source, target = scenario
    other = await seed.post(board, "Something else")
    service = MergePostService(test_db)
    await service.merge(source, target, admin)

    with pytest.raises(MergeConflictError, match="already merged"):
        await service.merge(source, other, admin)


async def test_merge_rejects_merged_target(seed, test_db, scenario, admin, board):
    source, target = scenario
    other = await seed.post(board, "Something else")
    service = MergePostService(test_db)
    await service.merge(source, target, admin)

    with pytest.raises(MergeConflictError, match="cannot receive merges"):
        await service.merge(other, source, admin)


async def test_merge_rejects_source_that_absorbed_merges(seed, test_db, scenario, admin, board, dave):
    source, target = scenario
    canonical = await seed.post(board, "Theme settings")
    service = MergePostService(test_db)
    await service.merge(source, target, admin)

    with pytest.raises(MergeConflictError, match="unmerge them first"):
        await service.merge(target, canonical, admin)

    await test_db.rollback()
    await seed.reload(source, target, canonical)
    assert target.merged_into_post_id is None
    assert await _user_ids(test_db, Vote, canonical.id) == []

    await service.unmerge(source, admin)
    assert dave.id in await _user_ids(test_db, Vote, source.id)
    assert await _merge_comment(test_db, target.id) is None


async def test_target_can_be_merged_after_its_merges_are_undone(test_db, scenario, admin, seed, board):
    source, target = scenario
    canonical = await seed.post(board, "Theme settings")
    service = MergePostService(test_db)
    await service.merge(source, target, admin)
    await service.unmerge(source, admin)

    await service.merge(target, canonical, admin)
    assert target.merged_into_post_id == canonical.id


# ─── merge_many ──────────────────────────────────────────────────

async def test_merge_many_merges_all_and_sets_status(seed, test_db, board, admin, bob, carol):
    target = await seed.post(board, "Canonical")
    first = await seed.post(board, "Dup one")
    second = await seed.post(board, "Dup two")
    await seed.vote(first, bob)
    await seed.vote(second, bob)
    await seed.vote(second, carol)
    done = await seed.status("Completed")

    await MergePostService(test_db).merge_many(target, [first, second], admin, done.id)

    assert first.merged_into_post_id == target.id
    assert second.merged_into_post_id == target.id
    assert first.status_id == done.id
    assert second.status_id == done.id
    assert await _user_ids(test_db, Vote, target.id) == sorted([bob.id, carol.id])
    assert target.vote == 2
    # One merge comment per source
    assert target.comments == 2


async def test_merge_many_is_all_or_nothing(seed, test_db, board, admin):
    target = await seed.post(board, "Canonical")
    ok = await seed.post(board, "Dup")
    with pytest.raises(MergeConflictError):
        await MergePostService(test_db).merge_many(target, [ok, target], admin)
    await test_db.rollback()

    await seed.reload(ok)
    assert ok.merged_into_post_id is None


# ─── unmerge ─────────────────────────────────────────────────────

async def test_unmerge_restores_votes_including_duplicates(test_db, scenario, admin, carol, dave):
    source, target = scenario
    service = MergePostService(test_db)
    await service.merge(source, target, admin)
    await service.unmerge(source, admin)

    assert await _user_ids(test_db, Vote, source.id) == sorted([carol.id, dave.id])
    assert await _user_ids(test_db, Vote, target.id) == [carol.id]
    assert source.vote == 2
    assert target.vote == 1


async def test_unmerge_restores_comments_and_removes_merge_comment(test_db, scenario, admin):
    source, target = scenario
    service = MergePostService(test_db)
    await service.merge(source, target, admin)
    await service.unmerge(source, admin)

    assert await _merge_comment(test_db, target.id) is None
    result = await test_db.execute(select(Comment).where(Comment.post_id == source.id))
    comments = result.scalars().all()
    assert len(comments) == 2
    assert all(c.merged_from_post_id is None for c in comments)
    assert source.comments == 1
    assert target.comments == 0


async def test_unmerge_restores_subscriptions(test_db, scenario, admin, alice, bob, carol, dave):
    source, target = scenario
    service = MergePostService(test_db)
    await service.merge(source, target, admin)
    await service.unmerge(source, admin)

    assert set(await _user_ids(test_db, PostSubscription, source.id)) == {
        bob.id, carol.id, dave.id,
    }
    assert set(await _user_ids(test_db, PostSubscription, target.id)) == {alice.id, carol.id}


async def test_unmerge_restores_moved_links(seed, test_db, scenario, admin):
    source, target = scenario
    repository = await seed.repository(await seed.provider())
    kept = await seed.link(target, repository, 1)
    moved = await seed.link(source, repository, 2)
    service = MergePostService(test_db)
    await service.merge(source, target, admin)
    await service.unmerge(source, admin)

    result = await test_db.execute(
        select(PostIntegrationLink.id, PostIntegrationLink.post_id).order_by(PostIntegrationLink.id)
    )
    assert result.all() == [(kept.id, target.id), (moved.id, source.id)]


async def test_unmerge_clears_merge_fields(test_db, scenario, admin):
    source, target = scenario
    service = MergePostService(test_db)
    await service.merge(source, target, admin)
    await service.unmerge(source, admin)

    assert source.merged_into_post_id is None
    assert source.merged_by_user_id is None
    assert source.merged_at is None
    assert source.merge_details is None


async def test_unmerge_keeps_votes_cast_on_target_after_merge(seed, test_db, scenario, admin, bob):
    source, target = scenario
    service = MergePostService(test_db)
    await service.merge(source, target, admin)
    await seed.vote(target, bob)

    await service.unmerge(source, admin)
    assert bob.id in await _user_ids(test_db, Vote, target.id)
    assert bob.id not in await _user_ids(test_db, Vote, source.id)


async def test_unmerge_rejects_unmerged_post(test_db, scenario, admin):
    source, _ = scenario
    with pytest.raises(MergeConflictError, match="not merged"):
        await MergePostService(test_db).unmerge(source, admin)


async def test_post_can_be_merged_again_after_unmerge(test_db, scenario, admin):
    source, target = scenario
    service = MergePostService(test_db)
    await service.merge(source, target, admin)
    await service.unmerge(source, admin)
    await service.merge(source, target, admin)

    assert source.merged_into_post_id == target.id
    assert target.vote == 2
