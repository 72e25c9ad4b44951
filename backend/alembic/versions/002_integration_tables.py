"""Integration tables — integration_providers, integration_repositories, post_integration_links.

Revision ID: 002_integrations
Revises: 001_initial
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002_integrations"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "integration_providers",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("access_token", sa.Text, nullable=True),
        sa.Column("refresh_token", sa.Text, nullable=True),
        sa.Column("settings", sa.JSON, nullable=True),
        sa.Column("authenticated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_integration_providers_type", "integration_providers", ["type"])

    op.create_table(
        "integration_repositories",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "integration_provider_id", sa.Integer,
            sa.ForeignKey("integration_providers.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("settings", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_integration_repositories_integration_provider_id",
        "integration_repositories", ["integration_provider_id"],
    )
    op.create_index("ix_integration_repositories_full_name", "integration_repositories", ["full_name"])

    op.create_table(
        "post_integration_links",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("post_id", sa.Integer, sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "integration_provider_id", sa.Integer,
            sa.ForeignKey("integration_providers.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "integration_repository_id", sa.Integer,
            sa.ForeignKey("integration_repositories.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("external_id", sa.String(100), nullable=False),
        sa.Column("external_url", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("settings", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_post_integration_links_post_id", "post_integration_links", ["post_id"])


def downgrade() -> None:
    op.drop_table("post_integration_links")
    op.drop_table("integration_repositories")
    op.drop_table("integration_providers")
