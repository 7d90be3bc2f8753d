"""
Content Extractor

Turns a page snapshot posted by the browser extension (URL + HTML, and for
infinite-scroll feeds the bounding boxes of the visible videos) into a
normalized ``ExtractedContent`` record. Parsing uses per-platform CSS
selectors with og:* meta tags and the document title as fallbacks.
"""
from __future__ import annotations

import re
from typing import Callable

from bs4 import BeautifulSoup
from pydantic import BaseModel

from folio.models import ContentType, Platform
from folio.platforms import detect_platform, extract_youtube_video_id, youtube_thumbnail

MIN_VIDEO_HEIGHT = 100
MIN_VISIBILITY = 0.5
PLAYING_BONUS = 0.1

TITLE_SUFFIXES = [
    " - YouTube",
    " | TikTok",
    " | Instagram",
    " / X",
    " - Twitch",
    " | Listen online for free on SoundCloud",
    " | Mixcloud",
]

_COUNT_RE = re.compile(r"([\d.]+)([kmb]?)")
_MULTIPLIERS = {"": 1, "k": 1_000, "m": 1_000_000, "b": 1_000_000_000}


class VideoBox(BaseModel):
    """One <video> element as reported by the extension."""

    top: float
    height: float
    playing: bool = False
    url: str | None = None
    title: str | None = None
    username: str | None = None
    thumbnail: str | None = None
    views: str | None = None
    likes: str | None = None


class ExtractedContent(BaseModel):
    title: str
    url: str
    platform: Platform
    content_type: ContentType
    thumbnail: str | None = None
    views: int | None = None
    likes: int | None = None
    engagement: float | None = None
    video_id: str | None = None


def parse_count(text: str | None) -> int | None:
    """'1.2M views' -> 1200000, '15,300' -> 15300."""
    if not text:
        return None
    cleaned = re.sub(r"[,\s]", "", text.lower()).replace("views", "").replace("view", "")
    match = _COUNT_RE.search(cleaned)
    if not match:
        return None
    try:
        number = float(match.group(1))
    except ValueError:
        return None
    return round(number * _MULTIPLIERS[match.group(2)])


def visibility(box: VideoBox, viewport_height: float) -> float:
    bottom = box.top + box.height
    if box.height <= 0 or bottom < 0 or box.top > viewport_height:
        return 0.0
    visible_top = max(0.0, box.top)
    visible_bottom = min(viewport_height, bottom)
    return (visible_bottom - visible_top) / box.height


def pick_most_visible(boxes: list[VideoBox], viewport_height: float) -> VideoBox | None:
    """The video nearest the viewport center that is mostly on screen.

    score = 2 * center closeness + visible fraction (+0.1 while playing);
    videos shorter than 100px or less than half visible are skipped.
    """
    best, best_score = None, -1.0
    half = viewport_height / 2
    for box in boxes:
        if box.height < MIN_VIDEO_HEIGHT:
            continue
        seen = visibility(box, viewport_height)
        if seen <= MIN_VISIBILITY:
            continue
        offset = abs(box.top + box.height / 2 - half)
        center_score = max(0.0, 1 - offset / half) if half else 0.0
        score = center_score * 2 + seen + (PLAYING_BONUS if box.playing else 0.0)
        if score > best_score:
            best, best_score = box, score
    return best


def strip_title_suffix(title: str) -> str:
    for suffix in TITLE_SUFFIXES:
        title = title.replace(suffix, "")
    return title.strip()


def _first_text(soup: BeautifulSoup, selectors: list[str]) -> str | None:
    for selector in selectors:
        el = soup.select_one(selector)
        if el is not None:
            text = el.get_text(" ", strip=True)
            if text:
                return text
    return None


def _meta(soup: BeautifulSoup, prop: str) -> str | None:
    el = soup.find("meta", attrs={"property": prop}) or soup.find("meta", attrs={"name": prop})
    content = el.get("content") if el else None
    return content.strip() if content else None


def _doc_title(soup: BeautifulSoup) -> str:
    return strip_title_suffix(soup.title.get_text() if soup.title else "")


def _engagement(views: int | None, likes: int | None) -> float | None:
    if not views or likes is None:
        return None
    return round(likes / views * 100, 2)


def _youtube(url: str, soup: BeautifulSoup, platform: Platform, content_type: ContentType, **_) -> ExtractedContent:
    video_id = extract_youtube_video_id(url)
    title = _first_text(soup, ["h1.ytd-video-primary-info-renderer", "h1.ytd-watch-metadata", "#title h1"])
    views = parse_count(_first_text(soup, [".ytd-video-view-count-renderer"]))
    return ExtractedContent(
        title=title or _doc_title(soup),
        url=url,
        platform=platform,
        content_type=content_type,
        thumbnail=youtube_thumbnail(video_id) if video_id else None,
        views=views,
        video_id=video_id,
    )


def _tiktok(
    url: str,
    soup: BeautifulSoup,
    platform: Platform,
    content_type: ContentType,
    videos: list[VideoBox] | None = None,
    viewport_height: float | None = None,
) -> ExtractedContent:
    current = pick_most_visible(videos or [], viewport_height or 0) if videos and viewport_height else None
    if current is not None:
        title = current.title or ""
        if current.username and title:
            title = f"@{current.username.lstrip('@')}: {title}"
        views, likes = parse_count(current.views), parse_count(current.likes)
        video_url = current.url or url
        thumbnail = current.thumbnail or _meta(soup, "og:image")
    else:
        desc = _first_text(soup, ['[data-e2e="video-desc"]', '[data-e2e="browse-video-desc"]'])
        title = desc or _meta(soup, "og:title") or ""
        username = _first_text(soup, ['a[href^="/@"]'])
        if username and desc:
            title = f"@{username.lstrip('@')}: {desc}"
        views = parse_count(_first_text(soup, ['[data-e2e="video-views"]']))
        likes = parse_count(_first_text(soup, ['[data-e2e="like-count"]']))
        video_url = url
        thumbnail = _meta(soup, "og:image")
    if not title:
        title = _doc_title(soup).replace("TikTok - ", "").split(" | ")[0].strip()
    match = re.search(r"/video/(\d+)", video_url)
    return ExtractedContent(
        title=title,
        url=video_url,
        platform=platform,
        content_type=content_type,
        thumbnail=thumbnail,
        views=views,
        likes=likes,
        engagement=_engagement(views, likes),
        video_id=match.group(1) if match else None,
    )


def _generic(selectors: list[str], thumb_selectors: list[str] | None = None, count_selectors: list[str] | None = None):
    def extract(url: str, soup: BeautifulSoup, platform: Platform, content_type: ContentType, **_) -> ExtractedContent:
        title = _first_text(soup, selectors) or _meta(soup, "og:title") or _doc_title(soup)
        thumbnail = None
        for selector in thumb_selectors or []:
            el = soup.select_one(selector)
            if el is not None and el.get("src"):
                thumbnail = el["src"]
                break
        views = parse_count(_first_text(soup, count_selectors)) if count_selectors else None
        return ExtractedContent(
            title=strip_title_suffix(title),
            url=url,
            platform=platform,
            content_type=content_type,
            thumbnail=thumbnail or _meta(soup, "og:image"),
            views=views,
        )

    return extract


EXTRACTORS: dict[Platform, Callable[..., ExtractedContent]] = {
    Platform.youtube_short: _youtube,
    Platform.youtube_long: _youtube,
    Platform.tiktok: _tiktok,
    Platform.instagram_reel: _generic([]),
    Platform.twitter: _generic(['[data-testid="tweetText"]'], ['[data-testid="tweetPhoto"] img']),
    Platform.linkedin: _generic([".feed-shared-update-v2__description", ".update-components-text"]),
    Platform.twitch: _generic(
        [
            '[data-a-target="stream-title"]',
            'h2[data-a-target="clip-title"]',
            '[data-test-selector="clip-title"]',
            '[data-a-target="video-title"]',
            '[class*="stream-info"] h1',
            '[class*="stream-info"] h2',
        ],
        count_selectors=['[data-a-target="animated-channel-viewers-count"]'],
    ),
    Platform.soundcloud: _generic(
        [".soundTitle__title span", '[class*="soundTitle"] span', ".playbackSoundBadge__titleLink"],
        count_selectors=[".sc-ministats-plays", '[class*="playCount"]'],
    ),
    Platform.bandcamp: _generic(
        [".trackTitle", "#name-section h2.trackTitle"],
        ["#tralbumArt img", ".popupImage"],
    ),
    Platform.mixcloud: _generic(
        ['[class*="PlayerSliderComponent"] span', ".cloudcast-title", 'h1[class*="title"]'],
        ['[class*="PlayerSliderComponent"] img', ".cloudcast-artwork img"],
        ['[class*="play-count"]', ".stat-plays"],
    ),
}


def extract_content(
    url: str,
    html: str,
    *,
    videos: list[VideoBox] | None = None,
    viewport_height: float | None = None,
) -> ExtractedContent | None:
    """Normalized record for a supported page; None for unsupported URLs."""
    detected = detect_platform(url)
    if not detected:
        return None
    platform, content_type = detected
    soup = BeautifulSoup(html or "", "html.parser")
    return EXTRACTORS[platform](url, soup, platform, content_type, videos=videos, viewport_height=viewport_height)
