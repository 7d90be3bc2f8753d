from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from folio.db import get_session
from folio.routes_auth import require_user
from folio.schemas import GenerateRequest
from folio.services.generator import NoReferenceItemsError, generate_variants, randomize_hooks
from folio.services.llm_provider import LLMError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generate"])

SessionDep = Depends(get_session)


@router.post("/generate")
async def generate(data: GenerateRequest, user_id: int = Depends(require_user), session: AsyncSession = SessionDep):
    if not data.is_randomize and not data.topic:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "topic is required unless mode is 'randomize'")

    try:
        if data.is_randomize:
            variants = await randomize_hooks(
                session, user_id, data.platform.value, count=data.count, reference_ids=data.reference_items
            )
        else:
            variants = await generate_variants(
                session, user_id, data.topic, data.platform.value, count=data.count, reference_ids=data.reference_items
            )
    except NoReferenceItemsError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
    except LLMError as e:
        logger.warning("[generate] model call failed for user=%s: %s", user_id, e)
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, "Generation service unavailable")

    return {
        "mode": "randomize" if data.is_randomize else "topic",
        "platform": data.platform.value,
        "variants": [v.model_dump() for v in variants],
        "count": len(variants),
    }
