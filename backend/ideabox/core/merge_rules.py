"""Merge Rules — pure preconditions and bookkeeping helpers for post merging.

Invariants:
    - check_* functions are PURE: they raise MergeConflictError or return None
    - merge_comment_body is the single source of truth for the merge comment text
      (unmerge finds the comment by this exact body)
"""

from ideabox.core.errors import ErrorContext, MergeConflictError


def merge_comment_body(source_post_id: int) -> str:
    return f"Merged from #{source_post_id}"


def check_mergeable(
    source_id: int,
    source_merged_into: int | None,
    target_id: int,
    target_merged_into: int | None,
    source_absorbed_ids: list[int] | None = None,
) -> None:
    """A post can be merged once, into a different post that is not itself merged.

    A post that has absorbed merges (source_absorbed_ids) cannot itself be merged away.
    """
    ctx = ErrorContext(post_id=source_id)
    if source_id == target_id:
        raise MergeConflictError("A post cannot be merged into itself.", ctx)
    if source_merged_into is not None:
        raise MergeConflictError(
            f"Post #{source_id} is already merged into #{source_merged_into}.", ctx,
        )
    if target_merged_into is not None:
        raise MergeConflictError(
            f"Post #{target_id} is merged into #{target_merged_into} "
            "and cannot receive merges.",
            ctx,
        )
    if source_absorbed_ids:
        listed = ", ".join(f"#{pid}" for pid in source_absorbed_ids)
        raise MergeConflictError(
            f"Post #{source_id} has posts merged into it ({listed}); "
            "unmerge them first.",
            ctx,
        )


def check_unmergeable(source_id: int, source_merged_into: int | None) -> None:
    if source_merged_into is None:
        raise MergeConflictError(
            f"Post #{source_id} is not merged.", ErrorContext(post_id=source_id),
        )


def split_voters(
    source_voter_ids: list[int], target_voter_ids: set[int],
) -> tuple[list[int], list[int]]:
    """Partition source voters into (movable, duplicate) by presence on the target."""
    movable = [uid for uid in source_voter_ids if uid not in target_voter_ids]
    duplicates = [uid for uid in source_voter_ids if uid in target_voter_ids]
    return movable, duplicates
