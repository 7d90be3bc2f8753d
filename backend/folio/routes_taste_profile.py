from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from folio.db import get_session
from folio.routes_auth import require_user
from folio.services.profile_aggregator import (
    SOURCE_LABELS,
    NoCollectionItemsError,
    collection_summary,
    get_profile,
    profile_view,
    rebuild_profile,
    source_view,
)

router = APIRouter(prefix="/api/taste-profile", tags=["taste-profile"])

SessionDep = Depends(get_session)
UserDep = Depends(require_user)


@router.get("")
async def get_taste_profile(user_id: int = UserDep, session: AsyncSession = SessionDep):
    profile = await get_profile(session, user_id)
    return {"profile": profile_view(profile), "summary": await collection_summary(session, user_id)}


@router.get("/source")
async def get_profile_source(
    mode: str = Query("all"),
    user_id: int = UserDep,
    session: AsyncSession = SessionDep,
):
    if mode not in SOURCE_LABELS:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"mode must be one of: {', '.join(SOURCE_LABELS)}")
    return source_view(await get_profile(session, user_id), mode)


@router.get("/rebuild")
async def rebuild_summary(user_id: int = UserDep, session: AsyncSession = SessionDep):
    return await collection_summary(session, user_id)


@router.post("/rebuild")
async def rebuild(
    reanalyze: bool = True,
    user_id: int = UserDep,
    session: AsyncSession = SessionDep,
):
    try:
        profile = await rebuild_profile(session, user_id, reanalyze=reanalyze)
    except NoCollectionItemsError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    return {"success": True, "profile": profile_view(profile)}
