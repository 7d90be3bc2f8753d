from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx

from folio.settings import get_settings

YT_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YT_CHANNELS_URL = "https://www.googleapis.com/youtube/v3/channels"
YT_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"

# videos.list and channels.list accept at most 50 ids per call
MAX_IDS_PER_CALL = 50


def _client(timeout: float = 15.0) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout)


def _require_key() -> str:
    settings = get_settings()
    if not settings.youtube_api_key:
        raise RuntimeError("YOUTUBE_API_KEY missing")
    return settings.youtube_api_key


def _int_or_none(value: Any) -> int | None:
    return int(value) if value is not None else None


def parse_published_at(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _best_thumbnail(snippet: dict) -> str | None:
    thumbs = snippet.get("thumbnails") or {}
    for size in ("maxres", "high", "medium", "default"):
        url = (thumbs.get(size) or {}).get("url")
        if url:
            return url
    return None


async def search_shorts(query: str, *, max_results: int = 10, timeout: float = 15.0) -> list[dict[str, Any]]:
    """Search short-form videos. The query gets a #shorts suffix if it lacks one."""
    key = _require_key()
    q = query if "shorts" in query.lower() else f"{query} #shorts"
    params = {
        "part": "snippet",
        "type": "video",
        "videoDuration": "short",
        "maxResults": max_results,
        "q": q,
        "key": key,
    }
    async with _client(timeout) as client:
        resp = await client.get(YT_SEARCH_URL, params=params)
    if resp.status_code >= 400:
        raise RuntimeError(f"YouTube search error: {resp.status_code}")
    results = []
    for item in resp.json().get("items", []):
        video_id = (item.get("id") or {}).get("videoId")
        snippet = item.get("snippet") or {}
        if not video_id:
            continue
        results.append(
            {
                "video_id": video_id,
                "title": snippet.get("title") or "",
                "thumbnail_url": _best_thumbnail(snippet),
                "channel_title": snippet.get("channelTitle"),
            }
        )
    return results


async def fetch_videos_details(video_ids: list[str]) -> list[dict[str, Any]]:
    key = _require_key()
    if not video_ids:
        return []
    params = {
        "part": "snippet,statistics",
        "id": ",".join(video_ids[:MAX_IDS_PER_CALL]),
        "key": key,
    }
    async with _client() as client:
        resp = await client.get(YT_VIDEOS_URL, params=params)
    if resp.status_code >= 400:
        raise RuntimeError(f"YouTube videos error: {resp.status_code}")
    items = []
    for item in resp.json().get("items", []):
        snippet = item.get("snippet", {}) or {}
        stats = item.get("statistics", {}) or {}
        items.append(
            {
                "video_id": item.get("id"),
                "title": snippet.get("title") or "",
                "channel_id": snippet.get("channelId"),
                "thumbnail_url": _best_thumbnail(snippet),
                "published_at": parse_published_at(snippet.get("publishedAt")),
                "views": _int_or_none(stats.get("viewCount")),
                "likes": _int_or_none(stats.get("likeCount")),
                "comments": _int_or_none(stats.get("commentCount")),
            }
        )
    return items


async def fetch_channel_subscribers(channel_ids: list[str]) -> dict[str, int | None]:
    key = _require_key()
    ids = sorted({c for c in channel_ids if c})
    if not ids:
        return {}
    params = {
        "part": "statistics",
        "id": ",".join(ids[:MAX_IDS_PER_CALL]),
        "key": key,
    }
    async with _client() as client:
        resp = await client.get(YT_CHANNELS_URL, params=params)
    if resp.status_code >= 400:
        raise RuntimeError(f"YouTube channels error: {resp.status_code}")
    out: dict[str, int | None] = {}
    for item in resp.json().get("items", []):
        stats = item.get("statistics", {}) or {}
        if stats.get("hiddenSubscriberCount"):
            out[item.get("id")] = None
        else:
            out[item.get("id")] = _int_or_none(stats.get("subscriberCount"))
    return out
