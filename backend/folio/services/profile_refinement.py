"""
Training refinement.

``record_rating`` stores one rating and nudges the training-derived bundle
incrementally. ``refine_profile`` recomputes that bundle from the whole
rating history and needs a minimum number of ratings.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from folio.dna import TasteSignals
from folio.models import (
    BINARY_OUTCOMES,
    COMPARATIVE_OUTCOMES,
    RatingOutcome,
    RatingType,
    SuggestionStatus,
    TrainingRating,
    TrainingSuggestion,
)
from folio.services.content_analyzer import analyze_signals
from folio.services.content_discovery import pending_count
from folio.services.profile_aggregator import get_or_create_profile, get_profile
from folio.services.taste_patterns import (
    PatternBundle,
    SignalTally,
    apply_training_signals,
    confidence_score,
    refine_from_history,
)
from folio.settings import get_settings

logger = logging.getLogger(__name__)


class InvalidRatingError(ValueError):
    pass


class SuggestionNotFoundError(LookupError):
    pass


def validate_rating(
    rating_type: str,
    outcome: str,
    suggestion_a_id: int | None,
    suggestion_b_id: int | None,
    suggestion_id: int | None,
) -> tuple[RatingType, RatingOutcome]:
    try:
        rtype = RatingType(rating_type)
    except ValueError:
        raise InvalidRatingError("ratingType must be COMPARATIVE or BINARY") from None
    try:
        result = RatingOutcome(outcome)
    except ValueError:
        raise InvalidRatingError(f"Unknown outcome: {outcome}") from None

    if rtype == RatingType.comparative:
        if result not in COMPARATIVE_OUTCOMES:
            raise InvalidRatingError(f"Outcome {outcome} is not valid for COMPARATIVE ratings")
        if not suggestion_a_id or not suggestion_b_id:
            raise InvalidRatingError("COMPARATIVE ratings need suggestionAId and suggestionBId")
    else:
        if result not in BINARY_OUTCOMES:
            raise InvalidRatingError(f"Outcome {outcome} is not valid for BINARY ratings")
        if not suggestion_id:
            raise InvalidRatingError("BINARY ratings need suggestionId")
    return rtype, result


def resolve_outcome(
    outcome: RatingOutcome | str,
    suggestion_a_id: int | None = None,
    suggestion_b_id: int | None = None,
    suggestion_id: int | None = None,
) -> tuple[list[int], list[int]]:
    """Map a rating outcome to (liked ids, disliked ids)."""
    outcome = RatingOutcome(outcome)
    a, b, single = suggestion_a_id, suggestion_b_id, suggestion_id
    table: dict[RatingOutcome, tuple[list[int | None], list[int | None]]] = {
        RatingOutcome.a_preferred: ([a], [b]),
        RatingOutcome.b_preferred: ([b], [a]),
        RatingOutcome.both_liked: ([a, b], []),
        RatingOutcome.neither: ([], [a, b]),
        RatingOutcome.liked: ([single], []),
        RatingOutcome.disliked: ([], [single]),
        RatingOutcome.skipped: ([], []),
    }
    liked, disliked = table[outcome]
    return [i for i in liked if i], [i for i in disliked if i]


async def _load_suggestions(session: AsyncSession, user_id: int, ids: list[int]) -> dict[int, TrainingSuggestion]:
    if not ids:
        return {}
    rows = (
        await session.execute(
            select(TrainingSuggestion).where(
                TrainingSuggestion.user_id == user_id, TrainingSuggestion.id.in_(ids)
            )
        )
    ).scalars().all()
    return {s.id: s for s in rows}


async def record_rating(
    session: AsyncSession,
    user_id: int,
    *,
    rating_type: str,
    outcome: str,
    suggestion_a_id: int | None = None,
    suggestion_b_id: int | None = None,
    suggestion_id: int | None = None,
    response_time_ms: int | None = None,
) -> dict[str, Any]:
    rtype, result = validate_rating(rating_type, outcome, suggestion_a_id, suggestion_b_id, suggestion_id)
    if rtype == RatingType.comparative:
        suggestion_id = None
    else:
        suggestion_a_id = suggestion_b_id = None
    ids = [i for i in (suggestion_a_id, suggestion_b_id, suggestion_id) if i]
    suggestions = await _load_suggestions(session, user_id, ids)
    if len(suggestions) != len(set(ids)):
        raise SuggestionNotFoundError("Suggestion not found")

    rating = TrainingRating(
        user_id=user_id,
        rating_type=rtype.value,
        outcome=result.value,
        suggestion_a_id=suggestion_a_id,
        suggestion_b_id=suggestion_b_id,
        suggestion_id=suggestion_id,
        response_time_ms=response_time_ms,
    )
    session.add(rating)
    new_status = SuggestionStatus.skipped if result == RatingOutcome.skipped else SuggestionStatus.rated
    for suggestion in suggestions.values():
        suggestion.status = new_status.value

    liked_ids, disliked_ids = resolve_outcome(result, suggestion_a_id, suggestion_b_id, suggestion_id)
    liked = [await analyze_signals(suggestions[i].title) for i in liked_ids]
    disliked = [await analyze_signals(suggestions[i].title) for i in disliked_ids]

    profile = await get_or_create_profile(session, user_id)
    count = (profile.training_ratings_count or 0) + 1
    tally = SignalTally(profile.training_tallies)
    bundle = apply_training_signals(PatternBundle.load(profile.training_patterns), tally, liked, disliked, count)
    profile.training_patterns = bundle.model_dump()
    profile.training_tallies = tally.to_dict()
    profile.training_ratings_count = count
    profile.confidence_score = confidence_score(count)
    profile.last_training_at = datetime.now(timezone.utc)
    await session.commit()
    await session.refresh(rating)

    logger.info(
        "[training] user=%s rating=%s %s liked=%d disliked=%d",
        user_id, rating.id, result.value, len(liked), len(disliked),
    )
    return {
        "success": True,
        "rating_id": rating.id,
        "liked": liked_ids,
        "disliked": disliked_ids,
        "training_ratings_count": count,
        "confidence_score": profile.confidence_score,
    }


async def refine_profile(session: AsyncSession, user_id: int) -> dict[str, Any]:
    settings = get_settings()
    ratings = (
        await session.execute(
            select(TrainingRating)
            .where(TrainingRating.user_id == user_id)
            .order_by(TrainingRating.created_at.asc(), TrainingRating.id.asc())
        )
    ).scalars().all()
    if len(ratings) < settings.min_ratings_for_refine:
        return {
            "success": False,
            "message": f"Need at least {settings.min_ratings_for_refine} ratings to refine (have {len(ratings)})",
            "ratings_count": len(ratings),
            "confidence_score": 0.0,
        }

    resolved = [
        resolve_outcome(r.outcome, r.suggestion_a_id, r.suggestion_b_id, r.suggestion_id) for r in ratings
    ]
    ids = sorted({i for liked, disliked in resolved for i in (*liked, *disliked)})
    suggestions = await _load_suggestions(session, user_id, ids)

    signals: dict[int, TasteSignals] = {}
    for sid, suggestion in suggestions.items():
        signals[sid] = await analyze_signals(suggestion.title)

    events = [
        ([signals[i] for i in liked if i in signals], [signals[i] for i in disliked if i in signals])
        for liked, disliked in resolved
    ]
    refined = refine_from_history(events)

    profile = await get_or_create_profile(session, user_id)
    profile.training_patterns = refined.bundle.model_dump()
    profile.training_tallies = refined.tally
    profile.trained_preferences = refined.trained_preferences
    profile.trained_dislikes = refined.trained_dislikes
    profile.training_ratings_count = len(ratings)
    profile.confidence_score = confidence_score(len(ratings))
    profile.last_training_at = datetime.now(timezone.utc)
    await session.commit()

    logger.info("[training] refined profile user=%s ratings=%d", user_id, len(ratings))
    return {
        "success": True,
        "message": f"Profile refined from {len(ratings)} ratings",
        "ratings_count": len(ratings),
        "confidence_score": profile.confidence_score,
        "trained_preferences": refined.trained_preferences,
        "trained_dislikes": refined.trained_dislikes,
    }


async def training_stats(session: AsyncSession, user_id: int) -> dict[str, Any]:
    counts = dict(
        (
            await session.execute(
                select(TrainingRating.rating_type, func.count())
                .where(TrainingRating.user_id == user_id)
                .group_by(TrainingRating.rating_type)
            )
        ).all()
    )
    profile = await get_profile(session, user_id)
    comparative = counts.get(RatingType.comparative.value, 0)
    binary = counts.get(RatingType.binary.value, 0)
    return {
        "total_ratings": comparative + binary,
        "comparative_ratings": comparative,
        "binary_ratings": binary,
        "confidence_score": profile.confidence_score if profile else 0.0,
        "last_training_at": profile.last_training_at.isoformat() if profile and profile.last_training_at else None,
        "pending_suggestions": await pending_count(session, user_id),
    }
