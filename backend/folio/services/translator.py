"""
Translator

LLM-backed translation of titles and notes, one text at a time or as a
batch in a single call. The source language is auto-detected unless given.
"""
from __future__ import annotations

import logging

from folio.services.llm_provider import LLMError, extract_json, get_llm_provider

logger = logging.getLogger(__name__)

SINGLE_PROMPT = """Translate the following text {direction}. Only return the translated text, nothing else.

Text: "{text}"
"""

BATCH_PROMPT = """Translate each of the following texts to {target}. Return a JSON array with the translations in the same order. Only return the JSON array, nothing else.

Texts to translate:
{texts}

Return format: ["translated text 1", "translated text 2", ...]"""


async def translate_text(text: str, target_language: str, source_language: str | None = None) -> str:
    if source_language:
        direction = f"from {source_language} to {target_language}"
    else:
        direction = f"to {target_language}. Detect the source language automatically"
    raw = await get_llm_provider().complete(SINGLE_PROMPT.format(direction=direction, text=text), max_tokens=1024)
    return raw.strip()


async def translate_batch(texts: list[str], target_language: str) -> list[str]:
    numbered = "\n".join(f'{i}. "{t}"' for i, t in enumerate(texts, start=1))
    raw = await get_llm_provider().complete(
        BATCH_PROMPT.format(target=target_language, texts=numbered), max_tokens=4096
    )
    translations = extract_json(raw, array=True)
    if not isinstance(translations, list) or len(translations) != len(texts):
        raise LLMError(f"expected {len(texts)} translations, got {translations!r}"[:200])
    logger.info("[translate] batch of %d to %s", len(texts), target_language)
    return [str(t) for t in translations]
