"""create users and collection_items tables

Revision ID: 0001_create_users_and_collection
Revises:
Create Date: 2026-09-01 10:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_create_users_and_collection"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        "collection_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("content_type", sa.String(length=32), nullable=False, server_default="VIDEO"),
        sa.Column("thumbnail", sa.String(length=1024), nullable=True),
        sa.Column("video_id", sa.String(length=64), nullable=True),
        sa.Column("views", sa.BigInteger(), nullable=True),
        sa.Column("likes", sa.BigInteger(), nullable=True),
        sa.Column("comments", sa.BigInteger(), nullable=True),
        sa.Column("engagement_rate", sa.Float(), nullable=True),
        sa.Column("initial_views", sa.BigInteger(), nullable=True),
        sa.Column("initial_likes", sa.BigInteger(), nullable=True),
        sa.Column("initial_comments", sa.BigInteger(), nullable=True),
        sa.Column("views_per_day", sa.Float(), nullable=True),
        sa.Column("viral_velocity", sa.Float(), nullable=True),
        sa.Column("growth_rate", sa.Float(), nullable=True),
        sa.Column("age_in_days", sa.Integer(), nullable=True),
        sa.Column("channel_subscribers", sa.BigInteger(), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("performance_dna", sa.JSON(), nullable=True),
        sa.Column("aesthetic_dna", sa.JSON(), nullable=True),
        sa.Column("analyzed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("saved_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_collection_items_user_id", "collection_items", ["user_id"])
    op.create_index("ix_collection_items_video_id", "collection_items", ["video_id"])
    op.create_index("ix_collection_items_saved_at", "collection_items", ["saved_at"])


def downgrade() -> None:
    op.drop_index("ix_collection_items_saved_at", table_name="collection_items")
    op.drop_index("ix_collection_items_video_id", table_name="collection_items")
    op.drop_index("ix_collection_items_user_id", table_name="collection_items")
    op.drop_table("collection_items")
    op.drop_table("users")
