from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .models import ContentType, Platform


# Collections
class CollectionCreate(BaseModel):
    url: str
    title: str | None = None
    platform: Platform | None = None
    content_type: ContentType | None = Field(default=None, validation_alias=AliasChoices("content_type", "contentType"))
    thumbnail: str | None = None
    notes: str | None = None
    tags: list[str] = []

    @field_validator("url")
    @classmethod
    def normalize_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return value

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: list[str]) -> list[str]:
        return [t.strip() for t in value if t and t.strip()]


class CollectionUpdate(BaseModel):
    title: str | None = None
    notes: str | None = None
    tags: list[str] | None = None
    thumbnail: str | None = None


class CollectionRead(BaseModel):
    id: int
    title: str
    url: str
    platform: str
    content_type: str
    thumbnail: str | None = None
    video_id: str | None = None
    views: int | None = None
    likes: int | None = None
    comments: int | None = None
    engagement_rate: float | None = None
    views_per_day: float | None = None
    viral_velocity: float | None = None
    growth_rate: float | None = None
    age_in_days: int | None = None
    channel_subscribers: int | None = None
    published_at: datetime | None = None
    last_checked_at: datetime | None = None
    check_count: int = 0
    performance_dna: dict | None = None
    aesthetic_dna: dict | None = None
    analyzed_at: datetime | None = None
    notes: str | None = None
    tags: list[str] | None = None
    saved_at: datetime | None = None

    class Config:
        from_attributes = True


class MetadataRequest(BaseModel):
    url: str


# Analysis
class AnalyzeRequest(BaseModel):
    item_id: int = Field(validation_alias=AliasChoices("item_id", "itemId"))


# Training
class RateRequest(BaseModel):
    rating_type: str = Field(validation_alias=AliasChoices("rating_type", "ratingType"))
    outcome: str
    suggestion_a_id: int | None = Field(default=None, validation_alias=AliasChoices("suggestion_a_id", "suggestionAId"))
    suggestion_b_id: int | None = Field(default=None, validation_alias=AliasChoices("suggestion_b_id", "suggestionBId"))
    suggestion_id: int | None = Field(default=None, validation_alias=AliasChoices("suggestion_id", "suggestionId"))
    response_time_ms: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("response_time_ms", "responseTimeMs")
    )

    @field_validator("rating_type", "outcome")
    @classmethod
    def upper(cls, value: str) -> str:
        return value.strip().upper()


# Generation
class GenerateRequest(BaseModel):
    topic: str | None = None
    mode: str | None = None
    platform: Platform = Platform.youtube_short
    reference_items: list[int] | None = Field(
        default=None, validation_alias=AliasChoices("reference_items", "referenceItems")
    )
    count: int = Field(default=10, ge=1, le=20)

    @field_validator("topic")
    @classmethod
    def strip_topic(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @property
    def is_randomize(self) -> bool:
        return (self.mode or "").lower() == "randomize"


# Translation
class TranslateRequest(BaseModel):
    text: str = Field(min_length=1)
    target_language: str = Field(min_length=1, validation_alias=AliasChoices("target_language", "targetLanguage"))
    source_language: str | None = Field(
        default=None, validation_alias=AliasChoices("source_language", "sourceLanguage")
    )


class BatchTranslateRequest(BaseModel):
    texts: list[str] = Field(min_length=1, max_length=100)
    target_language: str = Field(min_length=1, validation_alias=AliasChoices("target_language", "targetLanguage"))
