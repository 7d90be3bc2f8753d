"""
Derived metrics for saved items.

- age in days (at least 1)
- views per day
- engagement rate: (likes + comments) / views, as a percentage
- viral velocity 0-100: views per day relative to 1% of the channel's
  subscribers, or absolute thresholds when the channel size is unknown
- growth rate: percentage change against the first recorded view count
"""
from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel

# (views per day threshold, score), checked top-down
_VELOCITY_THRESHOLDS = [
    (100_000, 95),
    (50_000, 85),
    (10_000, 70),
    (1_000, 50),
    (100, 30),
]


class DerivedMetrics(BaseModel):
    age_in_days: int
    views_per_day: float
    engagement_rate: float
    viral_velocity: float


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def age_in_days(published_at: datetime | None, now: datetime | None = None) -> int:
    if not published_at:
        return 1
    now = now or datetime.now(timezone.utc)
    delta = as_utc(now) - as_utc(published_at)
    return max(1, int(delta.total_seconds() // 86400))


def engagement_rate(views: int | None, likes: int | None, comments: int | None) -> float:
    if not views or views <= 0:
        return 0.0
    return ((likes or 0) + (comments or 0)) / views * 100


def viral_velocity(views_per_day: float, subscribers: int | None = None) -> float:
    if subscribers and subscribers > 0:
        expected = subscribers * 0.01
        return round(min(100.0, views_per_day / expected * 50), 2)
    for threshold, score in _VELOCITY_THRESHOLDS:
        if views_per_day > threshold:
            return float(score)
    return 10.0


def growth_rate(views: int | None, initial_views: int | None) -> float | None:
    if views is None or not initial_views:
        return None
    return round((views - initial_views) / initial_views * 100, 2)


def derive_metrics(
    views: int | None,
    likes: int | None,
    comments: int | None,
    published_at: datetime | None,
    *,
    subscribers: int | None = None,
    now: datetime | None = None,
) -> DerivedMetrics:
    age = age_in_days(published_at, now)
    per_day = (views or 0) / age
    return DerivedMetrics(
        age_in_days=age,
        views_per_day=round(per_day, 2),
        engagement_rate=round(engagement_rate(views, likes, comments), 2),
        viral_velocity=viral_velocity(per_day, subscribers),
    )
