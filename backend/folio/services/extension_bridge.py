"""
Extension messaging.

Server side of the browser extension contract. The web app hands the
extension its bearer token (SET/GET/CLEAR_AUTH_TOKEN), the content script
announces the video under the cursor (VIDEO_CHANGED) and asks for page
extraction (EXTRACT_CONTENT). Tokens and the latest video are kept in Redis
per extension client id; video changes are also published so the popup can
subscribe.
"""
from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any

import redis.asyncio as aioredis
from pydantic import BaseModel, Field

from folio.services.extractor import VideoBox, extract_content
from folio.settings import get_settings

logger = logging.getLogger(__name__)

_redis_client: aioredis.Redis | None = None


def _get_redis() -> aioredis.Redis:
    """Get or create a shared async Redis client."""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        _redis_client = aioredis.from_url(
            settings.redis_url,
            decode_responses=True,
        )
    return _redis_client


class MessageType(str, Enum):
    set_auth_token = "SET_AUTH_TOKEN"
    get_auth_token = "GET_AUTH_TOKEN"
    clear_auth_token = "CLEAR_AUTH_TOKEN"
    update_badge = "UPDATE_BADGE"
    video_changed = "VIDEO_CHANGED"
    extract_content = "EXTRACT_CONTENT"


class ExtensionMessage(BaseModel):
    type: MessageType
    # random per extension install, at least a uuid4 hex
    client_id: str = Field(min_length=32, max_length=128, pattern=r"^[A-Za-z0-9_-]+$")
    token: str | None = None
    count: int | None = None
    data: dict[str, Any] | None = None
    url: str | None = None
    html: str | None = None
    videos: list[VideoBox] | None = None
    viewport_height: float | None = None


class InvalidMessageError(ValueError):
    pass


def _token_key(client_id: str) -> str:
    return f"ext:token:{client_id}"


def _video_key(client_id: str) -> str:
    return f"ext:video:{client_id}"


async def handle_message(message: ExtensionMessage) -> dict[str, Any]:
    redis = _get_redis()
    kind = message.type

    if kind == MessageType.set_auth_token:
        if not message.token:
            raise InvalidMessageError("token is required")
        await redis.set(_token_key(message.client_id), message.token, ex=get_settings().extension_token_ttl_sec)
        return {"success": True}

    if kind == MessageType.get_auth_token:
        return {"token": await redis.get(_token_key(message.client_id))}

    if kind == MessageType.clear_auth_token:
        await redis.delete(_token_key(message.client_id))
        return {"success": True}

    if kind == MessageType.update_badge:
        if message.count is None or message.count < 0:
            raise InvalidMessageError("count must be a non-negative integer")
        return {"success": True, "badge_text": str(message.count)}

    if kind == MessageType.video_changed:
        payload = json.dumps(message.data or {})
        await redis.set(_video_key(message.client_id), payload, ex=3600)
        await redis.publish(_video_key(message.client_id), payload)
        logger.debug("[extension] video changed client=%s", message.client_id)
        return {"success": True}

    if not message.url:
        raise InvalidMessageError("url is required")
    extracted = extract_content(
        message.url,
        message.html or "",
        videos=message.videos,
        viewport_height=message.viewport_height,
    )
    if extracted is None:
        return {"success": False, "error": "Unsupported page"}
    return {"success": True, "data": extracted.model_dump()}
