"""training suggestions, ratings and generated variants

Revision ID: 0003_training_and_generation
Revises: 0002_taste_profiles
Create Date: 2026-09-10 09:30:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0003_training_and_generation"
down_revision = "0002_taste_profiles"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "training_suggestions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("thumbnail", sa.String(length=1024), nullable=True),
        sa.Column("video_id", sa.String(length=64), nullable=True),
        sa.Column("relevance_score", sa.Float(), nullable=False, server_default="0.5"),
        sa.Column("search_query", sa.String(length=512), nullable=True),
        sa.Column("source_type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="PENDING"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("user_id", "url", name="uq_training_suggestions_user_url"),
    )
    op.create_index("ix_training_suggestions_user_id", "training_suggestions", ["user_id"])
    op.create_index("ix_training_suggestions_expires_at", "training_suggestions", ["expires_at"])
    op.create_index("ix_training_suggestions_created_at", "training_suggestions", ["created_at"])

    op.create_table(
        "training_ratings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rating_type", sa.String(length=32), nullable=False),
        sa.Column("outcome", sa.String(length=32), nullable=False),
        sa.Column(
            "suggestion_a_id", sa.Integer(), sa.ForeignKey("training_suggestions.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column(
            "suggestion_b_id", sa.Integer(), sa.ForeignKey("training_suggestions.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column(
            "suggestion_id", sa.Integer(), sa.ForeignKey("training_suggestions.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("response_time_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_training_ratings_user_id", "training_ratings", ["user_id"])
    op.create_index("ix_training_ratings_created_at", "training_ratings", ["created_at"])

    op.create_table(
        "generated_variants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("performance_score", sa.Float(), nullable=True),
        sa.Column("taste_score", sa.Float(), nullable=True),
        sa.Column("performance_rationale", sa.Text(), nullable=True),
        sa.Column("taste_rationale", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_generated_variants_user_id", "generated_variants", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_generated_variants_user_id", table_name="generated_variants")
    op.drop_table("generated_variants")
    op.drop_index("ix_training_ratings_created_at", table_name="training_ratings")
    op.drop_index("ix_training_ratings_user_id", table_name="training_ratings")
    op.drop_table("training_ratings")
    op.drop_index("ix_training_suggestions_created_at", table_name="training_suggestions")
    op.drop_index("ix_training_suggestions_expires_at", table_name="training_suggestions")
    op.drop_index("ix_training_suggestions_user_id", table_name="training_suggestions")
    op.drop_table("training_suggestions")
