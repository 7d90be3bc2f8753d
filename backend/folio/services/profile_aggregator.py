"""
Taste Profile Aggregator

Full rebuild: (re)analyze collection items, fold the analyses into the
collection-derived bundle and store it. The combined bundle is derived on
read from the stored collection and training sides.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from folio.dna import ItemAnalysis, load_analysis
from folio.models import CollectionItem, TasteProfile
from folio.services.content_analyzer import analyze_title
from folio.services.taste_patterns import PatternBundle, aggregate_analyses, merge_bundles

logger = logging.getLogger(__name__)

SOURCE_LABELS = {
    "collection": "Collection (saved content)",
    "training": "Training (rated suggestions)",
    "all": "Combined (collection + training)",
}


class NoCollectionItemsError(Exception):
    """Raised when a rebuild is requested for an empty collection."""

    def __init__(self):
        super().__init__("No collection items to analyze")


async def get_profile(session: AsyncSession, user_id: int) -> TasteProfile | None:
    result = await session.execute(select(TasteProfile).where(TasteProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_profile(session: AsyncSession, user_id: int) -> TasteProfile:
    profile = await get_profile(session, user_id)
    if profile is None:
        profile = TasteProfile(user_id=user_id, item_count=0, training_ratings_count=0, confidence_score=0.0)
        session.add(profile)
    return profile


async def analyze_item(session: AsyncSession, item: CollectionItem) -> ItemAnalysis:
    """Run the analyzer on one item and store its DNA (no commit)."""
    analysis = await analyze_title(
        item.title,
        platform=item.platform,
        views=item.views,
        engagement_rate=item.engagement_rate,
    )
    item.performance_dna = analysis.performance.model_dump()
    item.aesthetic_dna = analysis.aesthetic.model_dump()
    item.analyzed_at = datetime.now(timezone.utc)
    session.add(item)
    return analysis


async def _store_collection_bundle(
    session: AsyncSession, user_id: int, analyses: list[ItemAnalysis], item_count: int
) -> TasteProfile:
    profile = await get_or_create_profile(session, user_id)
    profile.collection_patterns = aggregate_analyses(analyses).model_dump()
    profile.item_count = item_count
    profile.last_trained_at = datetime.now(timezone.utc)
    await session.commit()
    await session.refresh(profile)
    return profile


async def rebuild_profile(session: AsyncSession, user_id: int, *, reanalyze: bool = True) -> TasteProfile:
    items = (
        await session.execute(
            select(CollectionItem).where(CollectionItem.user_id == user_id).order_by(CollectionItem.saved_at.desc())
        )
    ).scalars().all()
    if not items:
        raise NoCollectionItemsError()

    analyses: list[ItemAnalysis] = []
    for item in items:
        stored = None if reanalyze else load_analysis(item.performance_dna, item.aesthetic_dna)
        analyses.append(stored or await analyze_item(session, item))

    profile = await _store_collection_bundle(session, user_id, analyses, len(items))
    logger.info("[aggregator] rebuilt profile user=%s items=%d", user_id, len(items))
    return profile


async def refresh_from_analyzed(session: AsyncSession, user_id: int) -> TasteProfile | None:
    """Re-aggregate already analyzed items without calling the analyzer."""
    items = (
        await session.execute(
            select(CollectionItem).where(
                CollectionItem.user_id == user_id,
                CollectionItem.performance_dna.is_not(None),
            )
        )
    ).scalars().all()
    analyses = [a for a in (load_analysis(i.performance_dna, i.aesthetic_dna) for i in items) if a]
    if not analyses:
        return None
    total = await session.scalar(
        select(func.count()).select_from(CollectionItem).where(CollectionItem.user_id == user_id)
    )
    return await _store_collection_bundle(session, user_id, analyses, total or 0)


async def collection_summary(session: AsyncSession, user_id: int) -> dict[str, Any]:
    total = await session.scalar(
        select(func.count()).select_from(CollectionItem).where(CollectionItem.user_id == user_id)
    )
    analyzed = await session.scalar(
        select(func.count())
        .select_from(CollectionItem)
        .where(CollectionItem.user_id == user_id, CollectionItem.performance_dna.is_not(None))
    )
    profile = await get_profile(session, user_id)
    needs_rebuild = bool(total) and (profile is None or analyzed < total or profile.item_count != total)
    return {"total_items": total or 0, "analyzed_items": analyzed or 0, "needs_rebuild": needs_rebuild}


def bundles(profile: TasteProfile | None) -> tuple[PatternBundle, PatternBundle]:
    if profile is None:
        return PatternBundle(), PatternBundle()
    return PatternBundle.load(profile.collection_patterns), PatternBundle.load(profile.training_patterns)


def combined_bundle(profile: TasteProfile | None) -> PatternBundle:
    collection, training = bundles(profile)
    return merge_bundles(collection, training)


def profile_view(profile: TasteProfile | None) -> dict[str, Any] | None:
    if profile is None:
        return None
    collection, training = bundles(profile)
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "combined": merge_bundles(collection, training).model_dump(),
        "collection": collection.model_dump(),
        "training": training.model_dump(),
        "trained_preferences": profile.trained_preferences,
        "trained_dislikes": profile.trained_dislikes,
        "item_count": profile.item_count,
        "training_ratings_count": profile.training_ratings_count,
        "confidence_score": profile.confidence_score,
        "last_trained_at": profile.last_trained_at.isoformat() if profile.last_trained_at else None,
        "last_training_at": profile.last_training_at.isoformat() if profile.last_training_at else None,
    }


def source_view(profile: TasteProfile | None, mode: str) -> dict[str, Any]:
    collection, training = bundles(profile)
    if mode == "collection":
        bundle = collection
    elif mode == "training":
        bundle = training
    else:
        bundle = merge_bundles(collection, training)
    return {
        "mode": mode,
        "source_label": SOURCE_LABELS[mode],
        "patterns": bundle.model_dump(),
        "has_data": not bundle.is_empty(),
        "item_count": profile.item_count if profile else 0,
        "training_ratings_count": profile.training_ratings_count if profile else 0,
        "confidence_score": profile.confidence_score if profile else 0.0,
    }
