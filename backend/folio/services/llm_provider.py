"""
LLM Provider interface for title analysis, query planning and generation.

The default provider talks to the Anthropic Messages API over httpx. Swap
the module-level provider with ``set_llm_provider`` to plug in another model
(tests install a scripted fake).
"""
from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx

from folio.settings import get_settings

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


class LLMError(RuntimeError):
    """The model could not be reached or answered with something unusable."""


class LLMUnavailableError(LLMError):
    """No model is configured."""


class LLMProvider(ABC):
    """Abstract LLM provider. Implement `complete` to plug in a real model."""

    @abstractmethod
    async def complete(self, prompt: str, *, max_tokens: int | None = None) -> str:
        ...


class AnthropicLLMProvider(LLMProvider):
    def __init__(self, api_key: str, model: str, max_tokens: int = 2000):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens

    def _client(self) -> httpx.AsyncClient:
        # no explicit deadline on model calls
        return httpx.AsyncClient(timeout=None)

    async def complete(self, prompt: str, *, max_tokens: int | None = None) -> str:
        payload = {
            "model": self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        try:
            async with self._client() as client:
                resp = await client.post(ANTHROPIC_MESSAGES_URL, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise LLMError(f"Anthropic request failed: {exc}") from exc
        if resp.status_code >= 400:
            raise LLMError(f"Anthropic API error: {resp.status_code}")
        try:
            data = resp.json()
            parts = [block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"]
        except (ValueError, AttributeError, TypeError) as exc:
            raise LLMError(f"Anthropic response was not understood: {exc}") from exc
        if not parts:
            raise LLMError("Anthropic response had no text content")
        return "".join(parts)


class UnavailableLLMProvider(LLMProvider):
    """Used when no API key is configured; every call fails fast."""

    async def complete(self, prompt: str, *, max_tokens: int | None = None) -> str:
        raise LLMUnavailableError("ANTHROPIC_API_KEY missing")


def extract_json(text: str, *, array: bool = False) -> Any:
    """Pull the first JSON object (or array) out of free-form model output."""
    match = (_ARRAY_RE if array else _OBJECT_RE).search(text)
    if not match:
        raise LLMError("no JSON found in model response")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise LLMError(f"malformed JSON in model response: {exc}") from exc


def _build_default() -> LLMProvider:
    settings = get_settings()
    if not settings.anthropic_api_key:
        logger.info("[llm] ANTHROPIC_API_KEY not set, analysis will use pattern fallback")
        return UnavailableLLMProvider()
    return AnthropicLLMProvider(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
    )


_provider: LLMProvider | None = None


def get_llm_provider() -> LLMProvider:
    global _provider
    if _provider is None:
        _provider = _build_default()
    return _provider


def set_llm_provider(provider: LLMProvider | None) -> None:
    global _provider
    _provider = provider
