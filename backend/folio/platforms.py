"""URL helpers: platform detection, YouTube ids and thumbnails."""
from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

from .models import ContentType, Platform

_YOUTUBE_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:youtu\.be/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:youtube\.com/shorts/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:youtube\.com/embed/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"(?:youtube\.com/v/)([a-zA-Z0-9_-]{11})"),
]

# Ordered: first match wins, so more specific fragments come first.
_PLATFORM_TABLE: list[tuple[tuple[str, ...], tuple[str, ...], Platform, ContentType]] = [
    (("youtube.com",), ("/shorts/",), Platform.youtube_short, ContentType.video),
    (("youtube.com", "youtu.be"), (), Platform.youtube_long, ContentType.video),
    (("tiktok.com",), (), Platform.tiktok, ContentType.video),
    (("instagram.com",), ("/reel",), Platform.instagram_reel, ContentType.video),
    (("twitter.com", "x.com"), (), Platform.twitter, ContentType.post),
    (("linkedin.com",), (), Platform.linkedin, ContentType.post),
    (("twitch.tv",), ("/clip/", "clips.twitch.tv"), Platform.twitch, ContentType.clip),
    (("twitch.tv",), ("/videos/",), Platform.twitch, ContentType.video),
    (("twitch.tv",), (), Platform.twitch, ContentType.live_stream),
    (("soundcloud.com",), (), Platform.soundcloud, ContentType.track),
    (("bandcamp.com",), (), Platform.bandcamp, ContentType.release),
    (("mixcloud.com",), (), Platform.mixcloud, ContentType.mix),
]

YOUTUBE_PLATFORMS = {Platform.youtube_short, Platform.youtube_long}


def detect_platform(url: str) -> tuple[Platform, ContentType] | None:
    """Match a URL against the platform table by host and path fragments."""
    lowered = url.strip().lower()
    if "://" not in lowered:
        lowered = f"https://{lowered}"
    hostname = urlparse(lowered).hostname or ""
    for hosts, fragments, platform, content_type in _PLATFORM_TABLE:
        if not any(hostname == host or hostname.endswith(f".{host}") for host in hosts):
            continue
        if fragments and not any(fragment in lowered for fragment in fragments):
            continue
        return platform, content_type
    return None


def extract_youtube_video_id(url: str) -> str | None:
    for pattern in _YOUTUBE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def youtube_thumbnail(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


def thumbnail_from_url(url: str) -> str | None:
    """Derive a thumbnail from the URL alone (shorts path or ``v`` parameter)."""
    if "youtube.com/shorts/" in url:
        video_id = url.split("/shorts/")[-1].split("?")[0].split("/")[0]
        return youtube_thumbnail(video_id) if video_id else None
    if "youtube.com" in url or "youtu.be" in url:
        video_id = extract_youtube_video_id(url)
        if not video_id:
            query = parse_qs(urlparse(url).query)
            video_id = (query.get("v") or [None])[0]
        return youtube_thumbnail(video_id) if video_id else None
    return None


def shorts_url(video_id: str) -> str:
    return f"https://youtube.com/shorts/{video_id}"
