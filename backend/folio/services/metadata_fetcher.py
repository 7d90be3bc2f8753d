"""
Metadata Fetcher

URL -> platform (substring table) -> title/thumbnail/stats from oEmbed or
the YouTube Data API. Upstream failures leave the affected fields empty.
"""
from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel

from folio.integrations import youtube_api
from folio.integrations.oembed import OEMBED_ENDPOINTS, fetch_oembed
from folio.models import ContentType, Platform
from folio.platforms import YOUTUBE_PLATFORMS, detect_platform, extract_youtube_video_id, youtube_thumbnail
from folio.settings import get_settings

logger = logging.getLogger(__name__)


class UnsupportedURLError(ValueError):
    pass


class VideoStats(BaseModel):
    views: int | None = None
    likes: int | None = None
    comments: int | None = None
    published_at: datetime | None = None
    channel_id: str | None = None
    subscribers: int | None = None


class Metadata(BaseModel):
    url: str
    platform: Platform
    content_type: ContentType
    title: str | None = None
    thumbnail: str | None = None
    video_id: str | None = None
    author: str | None = None
    stats: VideoStats | None = None


async def fetch_youtube_stats(video_id: str) -> tuple[str | None, VideoStats | None]:
    """Title and stats for one video; (None, None) when the API is unusable."""
    if not get_settings().youtube_api_key:
        return None, None
    try:
        details = await youtube_api.fetch_videos_details([video_id])
        if not details:
            return None, None
        video = details[0]
        subscribers = None
        if video.get("channel_id"):
            channels = await youtube_api.fetch_channel_subscribers([video["channel_id"]])
            subscribers = channels.get(video["channel_id"])
    except Exception as exc:
        logger.warning("[metadata] YouTube lookup failed for %s: %s", video_id, exc)
        return None, None
    stats = VideoStats(
        views=video.get("views"),
        likes=video.get("likes"),
        comments=video.get("comments"),
        published_at=video.get("published_at"),
        channel_id=video.get("channel_id"),
        subscribers=subscribers,
    )
    return video.get("title"), stats


async def fetch_metadata(url: str) -> Metadata:
    detected = detect_platform(url)
    if not detected:
        raise UnsupportedURLError("Unsupported platform URL")
    platform, content_type = detected
    meta = Metadata(url=url, platform=platform, content_type=content_type)

    if platform in YOUTUBE_PLATFORMS:
        video_id = extract_youtube_video_id(url)
        if video_id:
            meta.video_id = video_id
            meta.thumbnail = youtube_thumbnail(video_id)
            meta.title, meta.stats = await fetch_youtube_stats(video_id)
        return meta

    if platform in OEMBED_ENDPOINTS:
        try:
            data = await fetch_oembed(platform, url)
        except Exception as exc:
            logger.warning("[metadata] oEmbed failed for %s: %s", url, exc)
            return meta
        meta.title = data.get("title")
        meta.thumbnail = data.get("thumbnail")
        meta.author = data.get("author")
    return meta
