from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from folio.db import get_session
from folio.routes_auth import require_user
from folio.schemas import RateRequest
from folio.services.content_discovery import (
    LIST_LIMIT,
    ensure_discovery,
    get_pending_suggestions,
    get_suggestion_pair,
    pending_count,
    serialize_suggestion,
    trigger_discovery,
)
from folio.services.profile_refinement import (
    InvalidRatingError,
    SuggestionNotFoundError,
    record_rating,
    refine_profile,
    training_stats,
)
from folio.settings import get_settings

router = APIRouter(prefix="/api/training", tags=["training"])

SessionDep = Depends(get_session)
UserDep = Depends(require_user)

SUGGESTION_MODES = ("pair", "list", "discover")


@router.post("/rate")
async def rate(data: RateRequest, user_id: int = UserDep, session: AsyncSession = SessionDep):
    try:
        return await record_rating(
            session,
            user_id,
            rating_type=data.rating_type,
            outcome=data.outcome,
            suggestion_a_id=data.suggestion_a_id,
            suggestion_b_id=data.suggestion_b_id,
            suggestion_id=data.suggestion_id,
            response_time_ms=data.response_time_ms,
        )
    except InvalidRatingError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except SuggestionNotFoundError as e:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(e))


@router.post("/refine")
async def refine(user_id: int = UserDep, session: AsyncSession = SessionDep):
    result = await refine_profile(session, user_id)
    if not result["success"]:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=result)
    return result


@router.get("/suggestions")
async def suggestions(
    mode: str = Query("pair"),
    count: int | None = Query(None, ge=1, le=100),
    user_id: int = UserDep,
    session: AsyncSession = SessionDep,
):
    if mode not in SUGGESTION_MODES:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"mode must be one of: {', '.join(SUGGESTION_MODES)}")

    if mode == "discover":
        discovered = await ensure_discovery(user_id, count)
        return {
            "discovered": discovered,
            "suggestions": [serialize_suggestion(s) for s in await get_pending_suggestions(session, user_id)],
        }

    pending = await pending_count(session, user_id)
    if pending < 2:
        await ensure_discovery(user_id)
    elif pending < get_settings().discovery_min_pending:
        trigger_discovery(user_id)

    if mode == "list":
        items = await get_pending_suggestions(session, user_id, limit=count or LIST_LIMIT)
        return {"suggestions": [serialize_suggestion(s) for s in items], "count": len(items)}

    pair = await get_suggestion_pair(session, user_id)
    if pair is None:
        return {"pair": None, "message": "No suggestions available yet, try again shortly"}
    return {"pair": [serialize_suggestion(s) for s in pair]}


@router.get("/stats")
async def stats(user_id: int = UserDep, session: AsyncSession = SessionDep):
    return await training_stats(session, user_id)
