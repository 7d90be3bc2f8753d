import json

import pytest
from sqlalchemy import select

from conftest import create_user
from folio.models import CollectionItem, GeneratedVariant
from folio.services.generator import (
    RANDOMIZE_MARKER,
    NoReferenceItemsError,
    generate_variants,
    parse_variants,
    randomize_hooks,
)
from folio.services.llm_provider import LLMError

VARIANTS = [
    {
        "text": "I learned Python in 30 days",
        "performance_rationale": "challenge hook",
        "taste_rationale": "first person",
        "performance_score": 82,
        "taste_score": 140,
    },
    {"text": "Python vs Go for beginners", "performanceScore": 70, "tasteScore": 65},
]


def test_parse_variants_accepts_wrapped_json_and_camel_case():
    raw = "Here you go:\n" + json.dumps(VARIANTS) + "\nEnjoy!"

    variants = parse_variants(raw)

    assert [v.text for v in variants] == ["I learned Python in 30 days", "Python vs Go for beginners"]
    assert variants[0].taste_score == 100.0
    assert variants[1].performance_score == 70.0


def test_parse_variants_skips_invalid_entries_and_garbage():
    assert parse_variants("no json here") == []
    assert [v.text for v in parse_variants('[{"text": "ok"}, {"nope": 1}]')] == ["ok"]


@pytest.mark.asyncio
async def test_generate_logs_every_variant(db, fake_llm):
    async with db() as session:
        user_id = await create_user(session)
        fake_llm.replies.append(json.dumps(VARIANTS))

        variants = await generate_variants(session, user_id, "learning python", "YOUTUBE_SHORT", count=2)

        assert len(variants) == 2
        rows = (await session.execute(select(GeneratedVariant))).scalars().all()
        assert {r.text for r in rows} == {v.text for v in variants}
        assert all(r.prompt == "learning python" for r in rows)
    assert "Topic: learning python" in fake_llm.prompts[0]
    assert "No data yet" in fake_llm.prompts[0]


@pytest.mark.asyncio
async def test_generate_propagates_model_failure(db):
    async with db() as session:
        user_id = await create_user(session)
        with pytest.raises(LLMError):
            await generate_variants(session, user_id, "anything", "TIKTOK")


@pytest.mark.asyncio
async def test_randomize_needs_reference_items(db):
    async with db() as session:
        user_id = await create_user(session)
        with pytest.raises(NoReferenceItemsError):
            await randomize_hooks(session, user_id, "TIKTOK")


@pytest.mark.asyncio
async def test_randomize_uses_recent_items(db, fake_llm):
    async with db() as session:
        user_id = await create_user(session)
        session.add(
            CollectionItem(
                user_id=user_id,
                title="Why cats knock things over",
                url="https://www.youtube.com/shorts/abcdefghijk",
                platform="YOUTUBE_SHORT",
                content_type="VIDEO",
            )
        )
        await session.commit()
        fake_llm.replies.append(json.dumps(VARIANTS[:1]))

        variants = await randomize_hooks(session, user_id, "YOUTUBE_SHORT", count=1)

        assert len(variants) == 1
        row = (await session.execute(select(GeneratedVariant))).scalar_one()
        assert row.prompt == RANDOMIZE_MARKER
    assert '- "Why cats knock things over"' in fake_llm.prompts[0]
