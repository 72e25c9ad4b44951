"""Merge fields — posts.merged_* columns and merge provenance on comments/votes.

Revision ID: 003_merge_fields
Revises: 002_integrations
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "003_merge_fields"
down_revision: Union[str, None] = "002_integrations"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("posts") as batch:
        batch.add_column(sa.Column("merged_into_post_id", sa.Integer, nullable=True))
        batch.add_column(sa.Column("merged_by_user_id", sa.Integer, nullable=True))
        batch.add_column(sa.Column("merged_at", sa.DateTime(timezone=True), nullable=True))
        batch.add_column(sa.Column("merge_details", sa.JSON, nullable=True))
        batch.create_foreign_key(
            "posts_merged_into_post_id_fkey", "posts",
            ["merged_into_post_id"], ["id"], ondelete="SET NULL",
        )
        batch.create_foreign_key(
            "posts_merged_by_user_id_fkey", "users",
            ["merged_by_user_id"], ["id"], ondelete="SET NULL",
        )
        batch.create_index("ix_posts_merged_into_post_id", ["merged_into_post_id"])

    with op.batch_alter_table("comments") as batch:
        batch.add_column(sa.Column("is_merge_comment", sa.Boolean, nullable=False, server_default=sa.false()))
        batch.add_column(sa.Column("merged_from_post_id", sa.Integer, nullable=True))
        batch.create_foreign_key(
            "comments_merged_from_post_id_fkey", "posts",
            ["merged_from_post_id"], ["id"], ondelete="SET NULL",
        )

    with op.batch_alter_table("votes") as batch:
        batch.add_column(sa.Column("merged_from_post_id", sa.Integer, nullable=True))
        batch.create_foreign_key(
            "votes_merged_from_post_id_fkey", "posts",
            ["merged_from_post_id"], ["id"], ondelete="SET NULL",
        )


def downgrade() -> None:
    with op.batch_alter_table("votes") as batch:
        batch.drop_constraint("votes_merged_from_post_id_fkey", type_="foreignkey")
        batch.drop_column("merged_from_post_id")

    with op.batch_alter_table("comments") as batch:
        batch.drop_constraint("comments_merged_from_post_id_fkey", type_="foreignkey")
        batch.drop_column("merged_from_post_id")
        batch.drop_column("is_merge_comment")

    with op.batch_alter_table("posts") as batch:
        batch.drop_index("ix_posts_merged_into_post_id")
        batch.drop_constraint("posts_merged_by_user_id_fkey", type_="foreignkey")
        batch.drop_constraint("posts_merged_into_post_id_fkey", type_="foreignkey")
        batch.drop_column("merge_details")
        batch.drop_column("merged_at")
        batch.drop_column("merged_by_user_id")
        batch.drop_column("merged_into_post_id")
