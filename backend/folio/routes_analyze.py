from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from folio.db import get_session
from folio.models import CollectionItem
from folio.routes_auth import require_user
from folio.schemas import AnalyzeRequest
from folio.services.profile_aggregator import analyze_item, refresh_from_analyzed

router = APIRouter(prefix="/api", tags=["analysis"])

SessionDep = Depends(get_session)


@router.post("/analyze")
async def analyze(data: AnalyzeRequest, user_id: int = Depends(require_user), session: AsyncSession = SessionDep):
    """Analyze one item now and fold it into the collection patterns."""
    item = await session.get(CollectionItem, data.item_id)
    if not item or item.user_id != user_id:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Item not found")

    analysis = await analyze_item(session, item)
    await session.commit()
    await refresh_from_analyzed(session, user_id)
    return {
        "item_id": item.id,
        "source": analysis.source,
        "performance_dna": analysis.performance.model_dump(),
        "aesthetic_dna": analysis.aesthetic.model_dump(),
    }
