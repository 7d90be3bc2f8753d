"""
Content Analyzer

Asks the LLM for a PerformanceDNA / AestheticDNA pair per title. Any
failure (no key, transport error, malformed JSON, invalid shape) falls back
to the deterministic pattern matcher for that title only.
"""
from __future__ import annotations

import logging

from pydantic import ValidationError

from folio.dna import AestheticDNA, ItemAnalysis, PerformanceDNA, TasteSignals, upgrade_document
from folio.services import pattern_matcher
from folio.services.llm_provider import LLMError, extract_json, get_llm_provider

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """Analyze this piece of short-form content and describe why it performs and how it feels.

Title: "{title}"
Platform: {platform}
{metrics}

Respond with JSON only, in exactly this shape:
{{
  "performance_dna": {{
    "hooks": ["hook types used, e.g. curiosity gap, how-to promise, listicle"],
    "structure": "title structure, e.g. comparison, question, listicle, statement",
    "length": {length},
    "keywords": ["up to 5 key terms"],
    "sentiment": "positive | negative | neutral | controversial | curious",
    "predicted_score": 0-100,
    "format": "tutorial | review | vlog | skit | music | gameplay | news | compilation | other",
    "niche": "primary topic niche",
    "target_audience": "who this is for"
  }},
  "aesthetic_dna": {{
    "tone": ["tones, e.g. educational, humorous, dramatic"],
    "voice": "authoritative | casual | storyteller | hype | analytical",
    "complexity": "simple | moderate | advanced",
    "style": ["style markers, e.g. direct address, superlatives"],
    "taste_score": 0-100,
    "emotional_triggers": ["curiosity", "surprise", "..."],
    "pacing": "fast | steady | slow"
  }}
}}"""

SIGNALS_PROMPT = """Extract taste signals from this content title: "{title}"

Respond with JSON only:
{{"tones": ["..."], "keywords": ["..."], "hooks": ["..."], "styles": ["..."]}}
Use short lowercase labels. At most 4 entries per list."""


def _metrics_line(views: int | None, engagement_rate: float | None) -> str:
    parts = []
    if views is not None:
        parts.append(f"Views: {views}")
    if engagement_rate is not None:
        parts.append(f"Engagement: {engagement_rate:.2f}%")
    return "\n".join(parts)


async def analyze_title(
    title: str,
    *,
    platform: str = "unknown",
    views: int | None = None,
    engagement_rate: float | None = None,
) -> ItemAnalysis:
    prompt = ANALYSIS_PROMPT.format(
        title=title,
        platform=platform,
        metrics=_metrics_line(views, engagement_rate),
        length=len(title),
    )
    try:
        raw = await get_llm_provider().complete(prompt)
        data = extract_json(raw)
        performance = PerformanceDNA.model_validate(
            upgrade_document(data.get("performance_dna") or data.get("performanceDNA") or {})
        )
        aesthetic = AestheticDNA.model_validate(
            upgrade_document(data.get("aesthetic_dna") or data.get("aestheticDNA") or {})
        )
    except (LLMError, ValidationError, AttributeError, TypeError, ValueError) as exc:
        logger.info("[analyzer] LLM analysis unavailable for %r, using patterns: %s", title[:60], exc)
        return pattern_matcher.analyze_title(title)
    if not performance.keywords:
        performance.keywords = pattern_matcher.extract_basic_keywords(title)
    performance.length = len(title)
    return ItemAnalysis(performance=performance, aesthetic=aesthetic, source="llm")


async def analyze_signals(title: str) -> TasteSignals:
    """Tones, keywords, hooks and styles for a training suggestion title."""
    try:
        raw = await get_llm_provider().complete(SIGNALS_PROMPT.format(title=title), max_tokens=300)
        return TasteSignals.model_validate(extract_json(raw))
    except (LLMError, ValidationError) as exc:
        logger.info("[analyzer] LLM signals unavailable for %r, using patterns: %s", title[:60], exc)
        return pattern_matcher.taste_signals(title)
