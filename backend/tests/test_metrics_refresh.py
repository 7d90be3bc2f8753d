from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from conftest import create_user
from folio.models import CollectionItem
from folio.services import metrics_refresh
from folio.services.metadata_fetcher import VideoStats

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _item(**overrides):
    fields = dict(
        title="t",
        url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        platform="YOUTUBE_LONG",
        content_type="VIDEO",
        check_count=0,
    )
    fields.update(overrides)
    return CollectionItem(**fields)


def test_apply_stats_keeps_first_snapshot():
    item = _item()
    published = NOW - timedelta(days=10)

    metrics_refresh.apply_stats(item, VideoStats(views=1000, likes=50, comments=10, published_at=published), now=NOW)
    metrics_refresh.apply_stats(item, VideoStats(views=1500, likes=60, comments=12), now=NOW)

    assert item.initial_views == 1000
    assert item.views == 1500
    assert item.growth_rate == 50.0
    assert item.views_per_day == 150.0
    assert item.age_in_days == 10
    assert item.check_count == 2
    assert item.last_checked_at == NOW


@pytest.mark.asyncio
async def test_refresh_without_youtube_items(db):
    async with db() as session:
        user_id = await create_user(session)
        session.add(_item(user_id=user_id, url="https://www.tiktok.com/@a/video/1", platform="TIKTOK"))
        await session.commit()

    result = await metrics_refresh.refresh_user_metrics(user_id, db)

    assert result.total == 0
    assert result.message == "No YouTube videos to refresh"


@pytest.mark.asyncio
async def test_refresh_without_api_key(db):
    async with db() as session:
        user_id = await create_user(session)
        session.add(_item(user_id=user_id))
        await session.commit()

    result = await metrics_refresh.refresh_user_metrics(user_id, db)

    assert result.total == 1
    assert result.updated == 0
    assert result.message == "YOUTUBE_API_KEY missing"


@pytest.mark.asyncio
async def test_refresh_counts_missing_videos_as_errors(db, monkeypatch):
    async with db() as session:
        user_id = await create_user(session)
        session.add(_item(user_id=user_id))
        session.add(_item(user_id=user_id, url="https://youtu.be/aaaaaaaaaaa"))
        await session.commit()

    settings = SimpleNamespace(youtube_api_key="key", metrics_refresh_concurrency=2)
    monkeypatch.setattr(metrics_refresh, "get_settings", lambda: settings)
    fetch = AsyncMock(
        return_value={"dQw4w9WgXcQ": VideoStats(views=900, likes=9, comments=0, published_at=NOW)}
    )
    monkeypatch.setattr(metrics_refresh, "_fetch_batch", fetch)

    result = await metrics_refresh.refresh_user_metrics(user_id, db)

    assert (result.total, result.updated, result.errors) == (2, 1, 1)
    fetch.assert_awaited_once()
    async with db() as session:
        items = {i.url: i for i in (await session.execute(select(CollectionItem))).scalars().all()}
    refreshed = items["https://www.youtube.com/watch?v=dQw4w9WgXcQ"]
    assert refreshed.views == 900
    assert refreshed.video_id == "dQw4w9WgXcQ"
    assert refreshed.check_count == 1
    assert items["https://youtu.be/aaaaaaaaaaa"].views is None


@pytest.mark.asyncio
async def test_failed_batch_is_not_fatal(db, monkeypatch):
    async with db() as session:
        user_id = await create_user(session)
        session.add(_item(user_id=user_id))
        await session.commit()

    settings = SimpleNamespace(youtube_api_key="key", metrics_refresh_concurrency=2)
    monkeypatch.setattr(metrics_refresh, "get_settings", lambda: settings)
    monkeypatch.setattr(metrics_refresh, "_fetch_batch", AsyncMock(side_effect=RuntimeError("quota")))

    result = await metrics_refresh.refresh_user_metrics(user_id, db)
    totals = await metrics_refresh.refresh_all_users(db)

    assert (result.updated, result.errors) == (0, 1)
    assert totals == {"users": 1, "updated": 0, "errors": 1}
