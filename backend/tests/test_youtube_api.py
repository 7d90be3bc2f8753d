from types import SimpleNamespace

import httpx
import pytest

from folio.integrations import youtube_api


@pytest.fixture
def transport(monkeypatch):
    calls = []

    def install(handler):
        def recording(request):
            calls.append(request)
            return handler(request)

        mock = httpx.MockTransport(recording)
        monkeypatch.setattr(youtube_api, "_client", lambda timeout=15.0: httpx.AsyncClient(transport=mock))
        return calls

    monkeypatch.setattr(youtube_api, "get_settings", lambda: SimpleNamespace(youtube_api_key="key"))
    return install


@pytest.mark.asyncio
async def test_video_details_are_normalized(transport):
    body = {
        "items": [
            {
                "id": "dQw4w9WgXcQ",
                "snippet": {"title": "Song", "channelId": "UC1", "publishedAt": "2024-01-02T03:04:05Z"},
                "statistics": {"viewCount": "1200", "likeCount": "30"},
            }
        ]
    }
    calls = transport(lambda request: httpx.Response(200, json=body))

    [video] = await youtube_api.fetch_videos_details(["dQw4w9WgXcQ"])

    assert video["views"] == 1200
    assert video["comments"] is None
    assert video["published_at"].year == 2024
    assert calls[0].url.params["id"] == "dQw4w9WgXcQ"


@pytest.mark.asyncio
async def test_transport_errors_are_not_retried(transport):
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    calls = transport(refuse)

    with pytest.raises(httpx.ConnectError):
        await youtube_api.fetch_videos_details(["dQw4w9WgXcQ"])
    with pytest.raises(httpx.ConnectError):
        await youtube_api.fetch_channel_subscribers(["UC1"])
    assert len(calls) == 2
