import json

import pytest
from pydantic import ValidationError

from folio.services.extension_bridge import ExtensionMessage, InvalidMessageError, MessageType, handle_message

CLIENT_ID = "0f3c9a7be2d44c1f9e5a6b7c8d9e0f1a"


def _msg(kind, **kwargs):
    return ExtensionMessage(type=kind, client_id=CLIENT_ID, **kwargs)


@pytest.mark.asyncio
async def test_auth_token_set_get_clear(fake_redis):
    assert await handle_message(_msg(MessageType.set_auth_token, token="abc")) == {"success": True}
    assert fake_redis.ttls[f"ext:token:{CLIENT_ID}"] == 30 * 24 * 3600

    assert await handle_message(_msg(MessageType.get_auth_token)) == {"token": "abc"}

    await handle_message(_msg(MessageType.clear_auth_token))
    assert await handle_message(_msg(MessageType.get_auth_token)) == {"token": None}


@pytest.mark.asyncio
async def test_set_token_requires_token(fake_redis):
    with pytest.raises(InvalidMessageError):
        await handle_message(_msg(MessageType.set_auth_token))


@pytest.mark.asyncio
async def test_update_badge(fake_redis):
    assert await handle_message(_msg(MessageType.update_badge, count=7)) == {"success": True, "badge_text": "7"}
    with pytest.raises(InvalidMessageError):
        await handle_message(_msg(MessageType.update_badge, count=-1))


@pytest.mark.asyncio
async def test_video_changed_is_stored_and_published(fake_redis):
    data = {"url": "https://www.tiktok.com/@b/video/1", "title": "clip"}

    await handle_message(_msg(MessageType.video_changed, data=data))

    assert json.loads(fake_redis.store[f"ext:video:{CLIENT_ID}"]) == data
    assert fake_redis.published == [(f"ext:video:{CLIENT_ID}", json.dumps(data))]


@pytest.mark.asyncio
async def test_extract_content(fake_redis):
    html = "<html><head><title>Lo-fi set - YouTube</title></head></html>"

    result = await handle_message(
        _msg(MessageType.extract_content, url="https://www.youtube.com/watch?v=dQw4w9WgXcQ", html=html)
    )

    assert result["success"] is True
    assert result["data"]["title"] == "Lo-fi set"
    assert result["data"]["video_id"] == "dQw4w9WgXcQ"


@pytest.mark.asyncio
async def test_extract_unsupported_page(fake_redis):
    result = await handle_message(_msg(MessageType.extract_content, url="https://example.com", html=""))

    assert result == {"success": False, "error": "Unsupported page"}


@pytest.mark.parametrize("client_id", ["a", "ext-1", "x" * 31, "has spaces but is long enough to pass"])
def test_short_or_malformed_client_ids_are_rejected(client_id):
    with pytest.raises(ValidationError):
        ExtensionMessage(type=MessageType.get_auth_token, client_id=client_id)
