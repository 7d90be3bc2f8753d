"""
Training Discovery

Finds candidate content for the user to rate.

Strategy (a), when a YouTube key is configured: the LLM reads recent
collection titles plus the current profile and proposes SIMILAR and
EXPLORATION search queries, each issued against YouTube shorts search.
Strategy (b), when (a) is unavailable or finds nothing new: a curated list
of well-known channels and videos, tagged SIMILAR when its category matches
the profile and EXPLORATION otherwise.

New candidates are deduplicated against the collection and existing
suggestions and stored as PENDING with a fixed expiry.
"""
from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folio.db import get_session_factory
from folio.integrations import youtube_api
from folio.models import CollectionItem, Platform, SuggestionSource, SuggestionStatus, TrainingSuggestion
from folio.platforms import detect_platform, shorts_url, thumbnail_from_url
from folio.services.llm_provider import LLMError, extract_json, get_llm_provider
from folio.services.pattern_matcher import extract_basic_keywords
from folio.services.profile_aggregator import combined_bundle, get_profile
from folio.services.single_flight import SingleFlight
from folio.services.taste_patterns import PatternBundle
from folio.settings import get_settings

logger = logging.getLogger(__name__)

RELEVANCE = {
    SuggestionSource.similar: 0.8,
    SuggestionSource.exploration: 0.5,
    SuggestionSource.trending: 0.5,
    SuggestionSource.random: 0.5,
}
BROAD_QUERY = "trending viral shorts"
BROAD_RELEVANCE = 0.3
PAIR_WINDOW = 10
LIST_LIMIT = 20

QUERY_PROMPT = """You help a person discover what content they like.

Recent titles they saved:
{titles}

Their profile so far:
- top hooks: {hooks}
- keywords: {keywords}
- tones: {tones}
- styles: {styles}

Write 4 SIMILAR YouTube Shorts search queries that match this taste, and 4
EXPLORATION queries that deliberately contrast with their tones and topics,
to learn what they dislike.

Respond with a JSON array only:
[{{"query": "...", "type": "SIMILAR"}}, {{"query": "...", "type": "EXPLORATION"}}]"""

GENERIC_QUERIES = [
    ("popular shorts this week", SuggestionSource.trending),
    ("unusual hobby shorts", SuggestionSource.exploration),
]

CATEGORY_TERMS: dict[str, set[str]] = {
    "music": {"music", "song", "songs", "guitar", "piano", "remix", "album", "concert", "singer"},
    "tech": {"tech", "coding", "programming", "python", "javascript", "software", "computer", "phone", "gadgets"},
    "science": {"science", "physics", "space", "experiment", "biology", "chemistry", "math", "engineering"},
    "comedy": {"comedy", "funny", "prank", "sketch", "skit", "standup", "meme"},
    "gaming": {"gaming", "game", "games", "minecraft", "fortnite", "speedrun", "nintendo"},
    "food": {"food", "recipe", "recipes", "cooking", "chef", "kitchen", "baking"},
    "fitness": {"fitness", "workout", "gym", "muscle", "yoga", "running", "training"},
    "education": {"history", "education", "learning", "explained", "documentary", "psychology"},
    "travel": {"travel", "nature", "wildlife", "adventure", "country", "animals"},
    "lifestyle": {"productivity", "lifestyle", "minimalism", "vlog", "filmmaking", "photography"},
}

CURATED_SUGGESTIONS: list[dict[str, str]] = [
    {"category": "music", "title": "NPR Music Tiny Desk Concerts", "url": "https://www.youtube.com/@nprmusic"},
    {"category": "music", "title": "COLORS: a stage for distinctive new voices", "url": "https://www.youtube.com/@COLORSxSTUDIOS"},
    {"category": "music", "title": "KEXP live performances", "url": "https://www.youtube.com/@kexp"},
    {"category": "music", "title": "Boiler Room DJ sets", "url": "https://www.youtube.com/@boilerroom"},
    {"category": "music", "title": "Lofi Girl: beats to relax/study to", "url": "https://www.youtube.com/@LofiGirl"},
    {"category": "music", "title": "Rick Astley - Never Gonna Give You Up", "url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ"},
    {"category": "tech", "title": "Fireship: code explained in 100 seconds", "url": "https://www.youtube.com/@Fireship"},
    {"category": "tech", "title": "Marques Brownlee tech reviews", "url": "https://www.youtube.com/@mkbhd"},
    {"category": "tech", "title": "Linus Tech Tips", "url": "https://www.youtube.com/@LinusTechTips"},
    {"category": "tech", "title": "Ben Eater: building computers from scratch", "url": "https://www.youtube.com/@BenEater"},
    {"category": "tech", "title": "The Coding Train creative coding", "url": "https://www.youtube.com/@TheCodingTrain"},
    {"category": "tech", "title": "Mrwhosetheboss phone comparisons", "url": "https://www.youtube.com/@Mrwhosetheboss"},
    {"category": "science", "title": "Veritasium: the science of everything", "url": "https://www.youtube.com/@veritasium"},
    {"category": "science", "title": "Kurzgesagt - In a Nutshell", "url": "https://www.youtube.com/@kurzgesagt"},
    {"category": "science", "title": "3Blue1Brown visual math", "url": "https://www.youtube.com/@3blue1brown"},
    {"category": "science", "title": "Mark Rober engineering builds", "url": "https://www.youtube.com/@MarkRober"},
    {"category": "science", "title": "NileRed chemistry experiments", "url": "https://www.youtube.com/@NileRed"},
    {"category": "science", "title": "SmarterEveryDay slow motion science", "url": "https://www.youtube.com/@smartereveryday"},
    {"category": "comedy", "title": "Dude Perfect trick shots", "url": "https://www.youtube.com/@DudePerfect"},
    {"category": "comedy", "title": "penguinz0 commentary", "url": "https://www.youtube.com/@penguinz0"},
    {"category": "comedy", "title": "Saturday Night Live sketches", "url": "https://www.youtube.com/@SaturdayNightLive"},
    {"category": "comedy", "title": "Key & Peele sketches", "url": "https://www.youtube.com/@KeyAndPeele"},
    {"category": "gaming", "title": "Markiplier let's plays", "url": "https://www.youtube.com/@markiplier"},
    {"category": "gaming", "title": "jacksepticeye gaming", "url": "https://www.youtube.com/@jacksepticeye"},
    {"category": "gaming", "title": "Game Grumps playthroughs", "url": "https://www.youtube.com/@GameGrumps"},
    {"category": "gaming", "title": "Summoning Salt speedrun histories", "url": "https://www.youtube.com/@SummoningSalt"},
    {"category": "food", "title": "Babish Culinary Universe", "url": "https://www.youtube.com/@babishculinaryuniverse"},
    {"category": "food", "title": "Joshua Weissman: but better", "url": "https://www.youtube.com/@JoshuaWeissman"},
    {"category": "food", "title": "Tasting History with Max Miller", "url": "https://www.youtube.com/@TastingHistory"},
    {"category": "food", "title": "Gordon Ramsay quick recipes", "url": "https://www.youtube.com/@gordonramsay"},
    {"category": "food", "title": "Bon Appetit test kitchen", "url": "https://www.youtube.com/@bonappetit"},
    {"category": "fitness", "title": "Jeff Nippard science-based training", "url": "https://www.youtube.com/@JeffNippard"},
    {"category": "fitness", "title": "ATHLEAN-X workouts", "url": "https://www.youtube.com/@athleanx"},
    {"category": "fitness", "title": "Yoga With Adriene", "url": "https://www.youtube.com/@yogawithadriene"},
    {"category": "fitness", "title": "Chloe Ting home workouts", "url": "https://www.youtube.com/@ChloeTing"},
    {"category": "education", "title": "CrashCourse history and science", "url": "https://www.youtube.com/@crashcourse"},
    {"category": "education", "title": "TED talks", "url": "https://www.youtube.com/@TED"},
    {"category": "education", "title": "Vox explainers", "url": "https://www.youtube.com/@Vox"},
    {"category": "education", "title": "Johnny Harris maps and stories", "url": "https://www.youtube.com/@johnnyharris"},
    {"category": "education", "title": "Wendover Productions logistics explained", "url": "https://www.youtube.com/@Wendoverproductions"},
    {"category": "education", "title": "The School of Life", "url": "https://www.youtube.com/@theschooloflifetv"},
    {"category": "travel", "title": "National Geographic", "url": "https://www.youtube.com/@NatGeo"},
    {"category": "travel", "title": "BBC Earth wildlife", "url": "https://www.youtube.com/@bbcearth"},
    {"category": "travel", "title": "Kara and Nate travel vlogs", "url": "https://www.youtube.com/@KaraandNate"},
    {"category": "travel", "title": "Drew Binsky: every country in the world", "url": "https://www.youtube.com/@drewbinsky"},
    {"category": "lifestyle", "title": "Casey Neistat vlogs", "url": "https://www.youtube.com/@casey"},
    {"category": "lifestyle", "title": "Peter McKinnon photography", "url": "https://www.youtube.com/@PeterMcKinnon"},
    {"category": "lifestyle", "title": "Matt D'Avella minimalism", "url": "https://www.youtube.com/@mattdavella"},
    {"category": "lifestyle", "title": "Ali Abdaal productivity", "url": "https://www.youtube.com/@aliabdaal"},
    {"category": "lifestyle", "title": "Nerdwriter video essays", "url": "https://www.youtube.com/@Nerdwriter1"},
]


class Candidate(BaseModel):
    title: str
    url: str
    platform: Platform
    thumbnail: str | None = None
    video_id: str | None = None
    relevance_score: float
    source_type: SuggestionSource
    search_query: str | None = None


class SearchQuery(BaseModel):
    query: str
    type: SuggestionSource


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _pending_filter(user_id: int, now: datetime):
    return (
        TrainingSuggestion.user_id == user_id,
        TrainingSuggestion.status == SuggestionStatus.pending.value,
        TrainingSuggestion.expires_at > now,
    )


async def pending_count(session: AsyncSession, user_id: int) -> int:
    count = await session.scalar(
        select(func.count()).select_from(TrainingSuggestion).where(*_pending_filter(user_id, _now()))
    )
    return count or 0


async def get_pending_suggestions(session: AsyncSession, user_id: int, limit: int = LIST_LIMIT) -> list[TrainingSuggestion]:
    result = await session.execute(
        select(TrainingSuggestion)
        .where(*_pending_filter(user_id, _now()))
        .order_by(TrainingSuggestion.relevance_score.desc(), TrainingSuggestion.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


def select_pair(
    suggestions: list[TrainingSuggestion], rng: random.Random | None = None
) -> tuple[TrainingSuggestion, TrainingSuggestion] | None:
    """Prefer one SIMILAR and one EXPLORATION; otherwise first plus a random other."""
    if len(suggestions) < 2:
        return None
    rng = rng or random.Random()
    similar = [s for s in suggestions if s.source_type == SuggestionSource.similar.value]
    exploration = [s for s in suggestions if s.source_type == SuggestionSource.exploration.value]
    if similar and exploration:
        return rng.choice(similar), rng.choice(exploration)
    return suggestions[0], rng.choice(suggestions[1:])


async def get_suggestion_pair(
    session: AsyncSession, user_id: int, rng: random.Random | None = None
) -> tuple[TrainingSuggestion, TrainingSuggestion] | None:
    result = await session.execute(
        select(TrainingSuggestion)
        .where(*_pending_filter(user_id, _now()))
        .order_by(TrainingSuggestion.created_at.desc(), TrainingSuggestion.id.desc())
        .limit(PAIR_WINDOW)
    )
    return select_pair(list(result.scalars().all()), rng)


def _fallback_queries(titles: list[str], bundle: PatternBundle) -> list[SearchQuery]:
    if not titles:
        return [SearchQuery(query=q, type=t) for q, t in GENERIC_QUERIES]
    keywords = bundle.performance.common_keywords[:4]
    if not keywords:
        keywords = extract_basic_keywords(" ".join(titles), limit=4)
    return [SearchQuery(query=f"{k} shorts", type=SuggestionSource.similar) for k in keywords]


async def generate_queries(titles: list[str], bundle: PatternBundle) -> list[SearchQuery]:
    if not titles:
        return _fallback_queries(titles, bundle)
    prompt = QUERY_PROMPT.format(
        titles="\n".join(f"- {t}" for t in titles[:15]),
        hooks=", ".join(bundle.performance.top_hooks[:5]) or "none yet",
        keywords=", ".join(bundle.performance.common_keywords[:8]) or "none yet",
        tones=", ".join(bundle.aesthetic.dominant_tones[:5]) or "none yet",
        styles=", ".join(bundle.aesthetic.style_markers[:5]) or "none yet",
    )
    try:
        raw = await get_llm_provider().complete(prompt, max_tokens=600)
        data = extract_json(raw, array=True)
        queries = [
            SearchQuery(query=str(entry["query"]), type=SuggestionSource(str(entry.get("type", "SIMILAR")).upper()))
            for entry in data
            if isinstance(entry, dict) and entry.get("query")
        ]
    except (LLMError, KeyError, ValueError) as exc:
        logger.info("[discovery] query planning fell back to keywords: %s", exc)
        return _fallback_queries(titles, bundle)
    return queries or _fallback_queries(titles, bundle)


def _category_matches(category: str, bundle: PatternBundle) -> bool:
    terms = CATEGORY_TERMS.get(category, set()) | {category}
    signals = {v.lower() for v in (*bundle.performance.niches, *bundle.performance.common_keywords)}
    return bool(terms & signals)


def curated_candidates(bundle: PatternBundle, rng: random.Random) -> list[Candidate]:
    entries = list(CURATED_SUGGESTIONS)
    rng.shuffle(entries)
    out = []
    for entry in entries:
        detected = detect_platform(entry["url"])
        source = SuggestionSource.similar if _category_matches(entry["category"], bundle) else SuggestionSource.exploration
        out.append(
            Candidate(
                title=entry["title"],
                url=entry["url"],
                platform=detected[0] if detected else Platform.youtube_long,
                thumbnail=thumbnail_from_url(entry["url"]),
                relevance_score=RELEVANCE[source],
                source_type=source,
                search_query=f"curated:{entry['category']}",
            )
        )
    return out


async def _search(query: SearchQuery, timeout: float, relevance: float | None = None) -> list[Candidate]:
    try:
        results = await youtube_api.search_shorts(query.query, max_results=10, timeout=timeout)
    except Exception as exc:
        logger.warning("[discovery] search %r failed: %s", query.query, exc)
        return []
    return [
        Candidate(
            title=r["title"],
            url=shorts_url(r["video_id"]),
            platform=Platform.youtube_short,
            thumbnail=r.get("thumbnail_url"),
            video_id=r["video_id"],
            relevance_score=relevance if relevance is not None else RELEVANCE[query.type],
            source_type=query.type,
            search_query=query.query,
        )
        for r in results
    ]


def _fresh(candidates: list[Candidate], known_urls: set[str]) -> list[Candidate]:
    out = []
    for candidate in candidates:
        if candidate.url in known_urls:
            continue
        known_urls.add(candidate.url)
        out.append(candidate)
    return out


async def discover_suggestions(
    user_id: int,
    count: int | None = None,
    *,
    session_factory: async_sessionmaker | None = None,
    rng: random.Random | None = None,
) -> int:
    """Find and store new pending suggestions. Returns how many were stored."""
    settings = get_settings()
    count = count or settings.discovery_batch_size
    session_factory = session_factory or get_session_factory()
    rng = rng or random.Random()

    async with session_factory() as session:
        titles = (
            await session.execute(
                select(CollectionItem.title)
                .where(CollectionItem.user_id == user_id)
                .order_by(CollectionItem.saved_at.desc())
                .limit(15)
            )
        ).scalars().all()
        bundle = combined_bundle(await get_profile(session, user_id))
        known_urls = set(
            (await session.execute(select(CollectionItem.url).where(CollectionItem.user_id == user_id))).scalars().all()
        )
        known_urls |= set(
            (
                await session.execute(select(TrainingSuggestion.url).where(TrainingSuggestion.user_id == user_id))
            ).scalars().all()
        )

        fresh: list[Candidate] = []
        if settings.youtube_api_key:
            for query in await generate_queries(list(titles), bundle):
                fresh.extend(_fresh(await _search(query, settings.discovery_search_timeout_sec), known_urls))
            if not fresh:
                broad = SearchQuery(query=BROAD_QUERY, type=SuggestionSource.trending)
                fresh = _fresh(
                    await _search(broad, settings.discovery_search_timeout_sec, BROAD_RELEVANCE), known_urls
                )
        if not fresh:
            fresh = _fresh(curated_candidates(bundle, rng), known_urls)

        rng.shuffle(fresh)
        expires_at = _now() + timedelta(days=settings.suggestion_ttl_days)
        for candidate in fresh[:count]:
            session.add(
                TrainingSuggestion(
                    user_id=user_id,
                    title=candidate.title,
                    url=candidate.url,
                    platform=candidate.platform.value,
                    thumbnail=candidate.thumbnail,
                    video_id=candidate.video_id,
                    relevance_score=candidate.relevance_score,
                    search_query=candidate.search_query,
                    source_type=candidate.source_type.value,
                    status=SuggestionStatus.pending.value,
                    expires_at=expires_at,
                )
            )
        await session.commit()

    stored = min(len(fresh), count)
    logger.info("[discovery] user=%s stored=%d", user_id, stored)
    return stored


discovery_flight = SingleFlight("discovery")


async def ensure_discovery(user_id: int, count: int | None = None) -> int:
    """Run discovery for a user, joining a run that is already in flight."""
    return await discovery_flight.run(user_id, lambda: discover_suggestions(user_id, count))


def trigger_discovery(user_id: int, count: int | None = None) -> None:
    """Start discovery in the background unless one is already running."""
    discovery_flight.start(user_id, lambda: discover_suggestions(user_id, count))


async def purge_expired(session: AsyncSession) -> int:
    result = await session.execute(
        delete(TrainingSuggestion).where(
            TrainingSuggestion.status == SuggestionStatus.pending.value,
            TrainingSuggestion.expires_at <= _now(),
        )
    )
    await session.commit()
    return result.rowcount or 0


def serialize_suggestion(s: TrainingSuggestion) -> dict[str, Any]:
    return {
        "id": s.id,
        "title": s.title,
        "url": s.url,
        "platform": s.platform,
        "thumbnail": s.thumbnail,
        "video_id": s.video_id,
        "relevance_score": s.relevance_score,
        "source_type": s.source_type,
        "search_query": s.search_query,
        "status": s.status,
        "expires_at": s.expires_at.isoformat() if s.expires_at else None,
    }
