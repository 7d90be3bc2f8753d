"""
Metrics refresh batch.

Re-fetches YouTube statistics for a user's saved videos in chunks of 50 and
writes each item's update concurrently, each in its own session. A failing
item is counted, never fatal: the batch always reports
``updated``/``errors`` instead of rolling back.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from folio.db import get_session_factory
from folio.integrations import youtube_api
from folio.models import CollectionItem
from folio.platforms import YOUTUBE_PLATFORMS, extract_youtube_video_id
from folio.services.metadata_fetcher import VideoStats
from folio.services.virality import derive_metrics, growth_rate
from folio.settings import get_settings

logger = logging.getLogger(__name__)


class RefreshResult(BaseModel):
    total: int = 0
    updated: int = 0
    errors: int = 0
    message: str | None = None


def apply_stats(item: CollectionItem, stats: VideoStats, now: datetime | None = None) -> None:
    """Write raw and derived metrics onto an item."""
    now = now or datetime.now(timezone.utc)
    item.views = stats.views
    item.likes = stats.likes
    item.comments = stats.comments
    if stats.published_at:
        item.published_at = stats.published_at
    if stats.subscribers is not None:
        item.channel_subscribers = stats.subscribers
    if item.initial_views is None and stats.views is not None:
        item.initial_views = stats.views
        item.initial_likes = stats.likes
        item.initial_comments = stats.comments
    derived = derive_metrics(
        stats.views,
        stats.likes,
        stats.comments,
        item.published_at,
        subscribers=item.channel_subscribers,
        now=now,
    )
    item.age_in_days = derived.age_in_days
    item.views_per_day = derived.views_per_day
    item.engagement_rate = derived.engagement_rate
    item.viral_velocity = derived.viral_velocity
    item.growth_rate = growth_rate(stats.views, item.initial_views)
    item.last_checked_at = now
    item.check_count = (item.check_count or 0) + 1


def _chunks(values: list[Any], size: int) -> list[list[Any]]:
    return [values[i : i + size] for i in range(0, len(values), size)]


async def _fetch_batch(video_ids: list[str]) -> dict[str, VideoStats]:
    details = await youtube_api.fetch_videos_details(video_ids)
    channel_ids = [d["channel_id"] for d in details if d.get("channel_id")]
    subscribers: dict[str, int | None] = {}
    if channel_ids:
        try:
            subscribers = await youtube_api.fetch_channel_subscribers(channel_ids)
        except Exception as exc:
            logger.warning("[metrics] channel lookup failed, using absolute velocity: %s", exc)
    return {
        d["video_id"]: VideoStats(
            views=d.get("views"),
            likes=d.get("likes"),
            comments=d.get("comments"),
            published_at=d.get("published_at"),
            channel_id=d.get("channel_id"),
            subscribers=subscribers.get(d.get("channel_id")),
        )
        for d in details
    }


async def _update_item(
    session_factory: async_sessionmaker,
    semaphore: asyncio.Semaphore,
    item_id: int,
    video_id: str,
    stats: VideoStats,
) -> None:
    async with semaphore:
        async with session_factory() as session:
            item = await session.get(CollectionItem, item_id)
            if item is None:
                raise LookupError(f"item {item_id} disappeared")
            item.video_id = video_id
            apply_stats(item, stats)
            await session.commit()


async def refresh_user_metrics(user_id: int, session_factory: async_sessionmaker | None = None) -> RefreshResult:
    settings = get_settings()
    session_factory = session_factory or get_session_factory()

    async with session_factory() as session:
        rows = (
            await session.execute(
                select(CollectionItem.id, CollectionItem.url, CollectionItem.video_id).where(
                    CollectionItem.user_id == user_id,
                    CollectionItem.platform.in_([p.value for p in YOUTUBE_PLATFORMS]),
                )
            )
        ).all()

    targets = [(row.id, row.video_id or extract_youtube_video_id(row.url)) for row in rows]
    targets = [(item_id, video_id) for item_id, video_id in targets if video_id]
    if not targets:
        return RefreshResult(message="No YouTube videos to refresh")
    if not settings.youtube_api_key:
        return RefreshResult(total=len(targets), message="YOUTUBE_API_KEY missing")

    result = RefreshResult(total=len(targets))
    semaphore = asyncio.Semaphore(settings.metrics_refresh_concurrency)
    for batch in _chunks(targets, youtube_api.MAX_IDS_PER_CALL):
        try:
            stats_by_id = await _fetch_batch([video_id for _, video_id in batch])
        except Exception as exc:
            logger.warning("[metrics] batch of %d failed: %s", len(batch), exc)
            result.errors += len(batch)
            continue

        jobs = []
        for item_id, video_id in batch:
            stats = stats_by_id.get(video_id)
            if stats is None:
                result.errors += 1
                continue
            jobs.append(_update_item(session_factory, semaphore, item_id, video_id, stats))
        outcomes = await asyncio.gather(*jobs, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                logger.warning("[metrics] item update failed: %s", outcome)
                result.errors += 1
            else:
                result.updated += 1

    logger.info("[metrics] user=%s updated=%d errors=%d", user_id, result.updated, result.errors)
    return result


async def refresh_all_users(session_factory: async_sessionmaker | None = None) -> dict[str, int]:
    session_factory = session_factory or get_session_factory()
    async with session_factory() as session:
        user_ids = (
            await session.execute(
                select(CollectionItem.user_id)
                .where(CollectionItem.platform.in_([p.value for p in YOUTUBE_PLATFORMS]))
                .distinct()
            )
        ).scalars().all()
    totals = {"users": len(user_ids), "updated": 0, "errors": 0}
    for user_id in user_ids:
        result = await refresh_user_metrics(user_id, session_factory)
        totals["updated"] += result.updated
        totals["errors"] += result.errors
    return totals
