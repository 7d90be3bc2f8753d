"""
Generator

Topic mode rewrites a topic into scored title variants; randomize mode
invents new hooks from reference items. Both prompt the LLM with the
combined taste profile and log every returned variant.
"""
from __future__ import annotations

import json
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from folio.models import CollectionItem, GeneratedVariant
from folio.services.llm_provider import LLMError, extract_json, get_llm_provider
from folio.services.profile_aggregator import combined_bundle, get_profile

logger = logging.getLogger(__name__)

RANDOMIZE_MARKER = "[RANDOMIZE]"
DEFAULT_REFERENCE_COUNT = 10

_PROFILE_BLOCK = """USER'S TASTE PROFILE:
Performance patterns (what performs for them):
{performance}

Aesthetic patterns (what they prefer):
{aesthetic}

Voice signature (how they write):
{voice}"""

_RESPONSE_BLOCK = """Return a JSON array with exactly {count} objects:
[
  {{
    "text": "the generated title",
    "performance_rationale": "why this will perform",
    "taste_rationale": "how this matches their taste",
    "performance_score": 0-100,
    "taste_score": 0-100
  }}
]
Return ONLY the JSON array."""

TOPIC_PROMPT = """You are a content strategist writing high-performing titles that fit one creator's taste.

{profile}

Generate {count} title variants.
Platform: {platform}
Topic: {topic}
{references}

Each variant must use their proven performance patterns, match their aesthetic and sound like their voice.

{response}"""

RANDOMIZE_PROMPT = """You are a content strategist inventing original hooks for one creator.

{profile}

Reference items from their collection:
{references}

Generate {count} completely new hook/title ideas for {platform}. Do not rewrite the references;
combine their themes and angles in fresh ways, and cover different approaches.

{response}"""


class NoReferenceItemsError(Exception):
    def __init__(self):
        super().__init__("No reference items available. Save some content to your collection first.")


class Variant(BaseModel):
    text: str
    performance_rationale: str | None = Field(default=None, alias="performanceRationale")
    taste_rationale: str | None = Field(default=None, alias="tasteRationale")
    performance_score: float | None = Field(default=None, alias="performanceScore")
    taste_score: float | None = Field(default=None, alias="tasteScore")

    model_config = {"populate_by_name": True}

    @field_validator("performance_score", "taste_score", mode="before")
    @classmethod
    def _clamp(cls, value):
        if value is None:
            return None
        return max(0.0, min(100.0, float(value)))


def _profile_block(bundle) -> str:
    if bundle.is_empty():
        return _PROFILE_BLOCK.format(
            performance="No data yet - use general best practices",
            aesthetic="No data yet - use general quality standards",
            voice="No data yet - use clear, direct language",
        )
    return _PROFILE_BLOCK.format(
        performance=json.dumps(bundle.performance.model_dump()),
        aesthetic=json.dumps(bundle.aesthetic.model_dump()),
        voice=json.dumps(bundle.voice.model_dump()),
    )


async def _reference_titles(
    session: AsyncSession, user_id: int, reference_ids: list[int] | None, default_recent: int = 0
) -> list[str]:
    stmt = select(CollectionItem.title).where(CollectionItem.user_id == user_id)
    if reference_ids:
        stmt = stmt.where(CollectionItem.id.in_(reference_ids))
    elif default_recent:
        stmt = stmt.order_by(CollectionItem.saved_at.desc()).limit(default_recent)
    else:
        return []
    return list((await session.execute(stmt)).scalars().all())


def parse_variants(raw: str) -> list[Variant]:
    """Variants from model output; unparseable output yields an empty list."""
    try:
        data = extract_json(raw, array=True)
    except LLMError as exc:
        logger.warning("[generator] could not parse variants: %s", exc)
        return []
    variants = []
    for entry in data if isinstance(data, list) else []:
        try:
            variants.append(Variant.model_validate(entry))
        except ValidationError:
            continue
    return variants


async def _complete_and_log(
    session: AsyncSession, user_id: int, prompt: str, label: str, platform: str
) -> list[Variant]:
    # LLMError propagates: the route reports the model as unreachable
    raw = await get_llm_provider().complete(prompt, max_tokens=2048)
    variants = parse_variants(raw)
    for variant in variants:
        session.add(
            GeneratedVariant(
                user_id=user_id,
                prompt=label,
                platform=platform,
                text=variant.text,
                performance_score=variant.performance_score,
                taste_score=variant.taste_score,
                performance_rationale=variant.performance_rationale,
                taste_rationale=variant.taste_rationale,
            )
        )
    await session.commit()
    logger.info("[generator] user=%s %s -> %d variants", user_id, label[:40], len(variants))
    return variants


async def generate_variants(
    session: AsyncSession,
    user_id: int,
    topic: str,
    platform: str,
    count: int = 10,
    reference_ids: list[int] | None = None,
) -> list[Variant]:
    bundle = combined_bundle(await get_profile(session, user_id))
    titles = await _reference_titles(session, user_id, reference_ids)
    references = ""
    if titles:
        references = "\nReference items from their collection:\n" + "\n".join(f'- "{t}"' for t in titles)
    prompt = TOPIC_PROMPT.format(
        profile=_profile_block(bundle),
        count=count,
        platform=platform,
        topic=topic,
        references=references,
        response=_RESPONSE_BLOCK.format(count=count),
    )
    return await _complete_and_log(session, user_id, prompt, topic, platform)


async def randomize_hooks(
    session: AsyncSession,
    user_id: int,
    platform: str,
    count: int = 10,
    reference_ids: list[int] | None = None,
) -> list[Variant]:
    titles = await _reference_titles(session, user_id, reference_ids, default_recent=DEFAULT_REFERENCE_COUNT)
    if not titles:
        raise NoReferenceItemsError()
    bundle = combined_bundle(await get_profile(session, user_id))
    prompt = RANDOMIZE_PROMPT.format(
        profile=_profile_block(bundle),
        references="\n".join(f'- "{t}"' for t in titles),
        count=count,
        platform=platform,
        response=_RESPONSE_BLOCK.format(count=count),
    )
    return await _complete_and_log(session, user_id, prompt, RANDOMIZE_MARKER, platform)
