import httpx
import pytest

from conftest import login
from folio.services.content_analyzer import analyze_signals
from folio.services.llm_provider import AnthropicLLMProvider, LLMError, extract_json, set_llm_provider


def _provider(monkeypatch, response: httpx.Response) -> AnthropicLLMProvider:
    provider = AnthropicLLMProvider(api_key="test-key", model="test-model")
    transport = httpx.MockTransport(lambda request: response)
    monkeypatch.setattr(provider, "_client", lambda: httpx.AsyncClient(transport=transport))
    return provider


@pytest.mark.asyncio
async def test_complete_joins_text_blocks(monkeypatch):
    body = {"content": [{"type": "text", "text": "Hello "}, {"type": "tool_use"}, {"type": "text", "text": "there"}]}
    provider = _provider(monkeypatch, httpx.Response(200, json=body))

    assert await provider.complete("hi") == "Hello there"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>proxy error</html>"),
        httpx.Response(200, json={"content": "not a list of blocks"}),
        httpx.Response(200, json=["unexpected"]),
        httpx.Response(200, json={"content": []}),
        httpx.Response(529, json={"error": "overloaded"}),
    ],
)
async def test_unusable_responses_raise_llm_error(monkeypatch, response):
    provider = _provider(monkeypatch, response)

    with pytest.raises(LLMError):
        await provider.complete("hi")


@pytest.mark.asyncio
async def test_signals_fall_back_to_patterns_on_non_json_body(monkeypatch):
    set_llm_provider(_provider(monkeypatch, httpx.Response(200, text="<html>proxy error</html>")))

    signals = await analyze_signals("How to cook rice tutorial")

    assert "how-to promise" in signals.hooks


def test_extract_json_finds_wrapped_object():
    assert extract_json('Sure! {"a": 1} done') == {"a": 1}
    with pytest.raises(LLMError):
        extract_json("{not json}")


def test_rating_survives_non_json_model_body(client, monkeypatch):
    headers = login(client)
    suggestion = client.get("/api/training/suggestions", params={"mode": "list"}, headers=headers).json()[
        "suggestions"
    ][0]
    set_llm_provider(_provider(monkeypatch, httpx.Response(200, text="<html>proxy error</html>")))

    response = client.post(
        "/api/training/rate",
        json={"ratingType": "BINARY", "outcome": "LIKED", "suggestionId": suggestion["id"]},
        headers=headers,
    )

    assert response.status_code == 200, response.text
    stats = client.get("/api/training/stats", headers=headers).json()
    assert stats["binary_ratings"] == 1


def test_generate_reports_unusable_model_body_as_bad_gateway(client, monkeypatch):
    headers = login(client)
    set_llm_provider(_provider(monkeypatch, httpx.Response(200, text="<html>proxy error</html>")))

    response = client.post("/api/generate", json={"topic": "sourdough"}, headers=headers)

    assert response.status_code == 502
