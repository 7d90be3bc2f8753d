"""create taste_profiles table

Revision ID: 0002_taste_profiles
Revises: 0001_create_users_and_collection
Create Date: 2026-09-03 12:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_taste_profiles"
down_revision = "0001_create_users_and_collection"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "taste_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("collection_patterns", sa.JSON(), nullable=True),
        sa.Column("training_patterns", sa.JSON(), nullable=True),
        sa.Column("training_tallies", sa.JSON(), nullable=True),
        sa.Column("trained_preferences", sa.JSON(), nullable=True),
        sa.Column("trained_dislikes", sa.JSON(), nullable=True),
        sa.Column("item_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("training_ratings_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("confidence_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("last_trained_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_training_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("taste_profiles")
