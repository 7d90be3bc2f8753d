from __future__ import annotations

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship as sa_relationship

from .db import Base


def relationship(*args, **kwargs):
    """Wrap SQLAlchemy relationship to forbid lazy loading by default."""
    kwargs.setdefault("lazy", "raise")
    return sa_relationship(*args, **kwargs)


class Platform(str, Enum):
    tiktok = "TIKTOK"
    youtube_short = "YOUTUBE_SHORT"
    instagram_reel = "INSTAGRAM_REEL"
    youtube_long = "YOUTUBE_LONG"
    twitter = "TWITTER"
    linkedin = "LINKEDIN"
    twitch = "TWITCH"
    soundcloud = "SOUNDCLOUD"
    bandcamp = "BANDCAMP"
    mixcloud = "MIXCLOUD"


class ContentType(str, Enum):
    video = "VIDEO"
    live_stream = "LIVE_STREAM"
    clip = "CLIP"
    track = "TRACK"
    mix = "MIX"
    release = "RELEASE"
    post = "POST"


class SuggestionSource(str, Enum):
    similar = "SIMILAR"
    trending = "TRENDING"
    exploration = "EXPLORATION"
    random = "RANDOM"


class SuggestionStatus(str, Enum):
    pending = "PENDING"
    rated = "RATED"
    skipped = "SKIPPED"


class RatingType(str, Enum):
    comparative = "COMPARATIVE"
    binary = "BINARY"


class RatingOutcome(str, Enum):
    a_preferred = "A_PREFERRED"
    b_preferred = "B_PREFERRED"
    both_liked = "BOTH_LIKED"
    neither = "NEITHER"
    liked = "LIKED"
    disliked = "DISLIKED"
    skipped = "SKIPPED"


COMPARATIVE_OUTCOMES = {
    RatingOutcome.a_preferred,
    RatingOutcome.b_preferred,
    RatingOutcome.both_liked,
    RatingOutcome.neither,
    RatingOutcome.skipped,
}
BINARY_OUTCOMES = {RatingOutcome.liked, RatingOutcome.disliked, RatingOutcome.skipped}


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

    items: Mapped[list["CollectionItem"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    taste_profile: Mapped["TasteProfile | None"] = relationship(
        back_populates="user", cascade="all, delete-orphan", uselist=False
    )


class CollectionItem(Base):
    __tablename__ = "collection_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    url: Mapped[str] = mapped_column(sa.String(1024), nullable=False)
    platform: Mapped[Platform] = mapped_column(sa.String(32), nullable=False)
    content_type: Mapped[ContentType] = mapped_column(sa.String(32), nullable=False, server_default=ContentType.video.value)
    thumbnail: Mapped[str | None] = mapped_column(sa.String(1024), nullable=True)
    video_id: Mapped[str | None] = mapped_column(sa.String(64), nullable=True, index=True)
    views: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    likes: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    comments: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    engagement_rate: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    initial_views: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    initial_likes: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    initial_comments: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    views_per_day: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    viral_velocity: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    growth_rate: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    age_in_days: Mapped[int | None] = mapped_column(sa.Integer(), nullable=True)
    channel_subscribers: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    last_checked_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    check_count: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0", default=0)
    performance_dna: Mapped[dict | None] = mapped_column(sa.JSON(none_as_null=True), nullable=True)
    aesthetic_dna: Mapped[dict | None] = mapped_column(sa.JSON(none_as_null=True), nullable=True)
    analyzed_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    tags: Mapped[list | None] = mapped_column(sa.JSON(none_as_null=True), nullable=True)
    saved_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="items")


class TasteProfile(Base):
    """Raw taste signals for one user.

    Only the collection-derived and training-derived sides are stored. The
    combined view is computed on read by ``merge_bundles``.
    """

    __tablename__ = "taste_profiles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    collection_patterns: Mapped[dict | None] = mapped_column(sa.JSON(none_as_null=True), nullable=True)
    training_patterns: Mapped[dict | None] = mapped_column(sa.JSON(none_as_null=True), nullable=True)
    training_tallies: Mapped[dict | None] = mapped_column(sa.JSON(none_as_null=True), nullable=True)
    trained_preferences: Mapped[dict | None] = mapped_column(sa.JSON(none_as_null=True), nullable=True)
    trained_dislikes: Mapped[dict | None] = mapped_column(sa.JSON(none_as_null=True), nullable=True)
    item_count: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0", default=0)
    training_ratings_count: Mapped[int] = mapped_column(sa.Integer(), nullable=False, server_default="0", default=0)
    confidence_score: Mapped[float] = mapped_column(sa.Float(), nullable=False, server_default="0", default=0.0)
    last_trained_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    last_training_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="taste_profile")


class TrainingSuggestion(Base):
    __tablename__ = "training_suggestions"
    __table_args__ = (sa.UniqueConstraint("user_id", "url", name="uq_training_suggestions_user_url"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    url: Mapped[str] = mapped_column(sa.String(1024), nullable=False)
    platform: Mapped[Platform] = mapped_column(sa.String(32), nullable=False)
    thumbnail: Mapped[str | None] = mapped_column(sa.String(1024), nullable=True)
    video_id: Mapped[str | None] = mapped_column(sa.String(64), nullable=True)
    relevance_score: Mapped[float] = mapped_column(sa.Float(), nullable=False, server_default="0.5", default=0.5)
    search_query: Mapped[str | None] = mapped_column(sa.String(512), nullable=True)
    source_type: Mapped[SuggestionSource] = mapped_column(sa.String(32), nullable=False)
    status: Mapped[SuggestionStatus] = mapped_column(
        sa.String(32), nullable=False, server_default=SuggestionStatus.pending.value, default=SuggestionStatus.pending.value
    )
    expires_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True
    )


class TrainingRating(Base):
    __tablename__ = "training_ratings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating_type: Mapped[RatingType] = mapped_column(sa.String(32), nullable=False)
    outcome: Mapped[RatingOutcome] = mapped_column(sa.String(32), nullable=False)
    suggestion_a_id: Mapped[int | None] = mapped_column(
        sa.ForeignKey("training_suggestions.id", ondelete="SET NULL"), nullable=True
    )
    suggestion_b_id: Mapped[int | None] = mapped_column(
        sa.ForeignKey("training_suggestions.id", ondelete="SET NULL"), nullable=True
    )
    suggestion_id: Mapped[int | None] = mapped_column(
        sa.ForeignKey("training_suggestions.id", ondelete="SET NULL"), nullable=True
    )
    response_time_ms: Mapped[int | None] = mapped_column(sa.Integer(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True
    )


class GeneratedVariant(Base):
    __tablename__ = "generated_variants"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    prompt: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    platform: Mapped[Platform] = mapped_column(sa.String(32), nullable=False)
    text: Mapped[str] = mapped_column(sa.Text(), nullable=False)
    performance_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    taste_score: Mapped[float | None] = mapped_column(sa.Float(), nullable=True)
    performance_rationale: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    taste_rationale: Mapped[str | None] = mapped_column(sa.Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )
