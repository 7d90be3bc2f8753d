from __future__ import annotations

from typing import Any

import httpx
from bs4 import BeautifulSoup

from folio.models import Platform

OEMBED_ENDPOINTS = {
    Platform.tiktok: "https://www.tiktok.com/oembed",
    Platform.instagram_reel: "https://www.instagram.com/api/v1/oembed/",
    Platform.twitter: "https://publish.twitter.com/oembed",
}

TWEET_TITLE_MAX = 200


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=15.0, follow_redirects=True)


def _tweet_text(html: str | None) -> str | None:
    if not html:
        return None
    paragraph = BeautifulSoup(html, "html.parser").find("p")
    if not paragraph:
        return None
    text = paragraph.get_text(" ", strip=True)
    return text[:TWEET_TITLE_MAX] or None


async def fetch_oembed(platform: Platform, url: str) -> dict[str, Any]:
    """Title/thumbnail/author for a URL from the platform's oEmbed endpoint."""
    endpoint = OEMBED_ENDPOINTS.get(platform)
    if not endpoint:
        raise LookupError(f"no oEmbed endpoint for {platform.value}")
    async with _client() as client:
        resp = await client.get(endpoint, params={"url": url})
    if resp.status_code >= 400:
        raise RuntimeError(f"oEmbed error for {platform.value}: {resp.status_code}")
    data = resp.json()
    title = data.get("title")
    if platform == Platform.twitter:
        title = _tweet_text(data.get("html")) or title
    return {
        "title": title,
        "thumbnail": data.get("thumbnail_url"),
        "author": data.get("author_name"),
    }
