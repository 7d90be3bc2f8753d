from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from folio.routes_auth import require_user
from folio.schemas import BatchTranslateRequest, TranslateRequest
from folio.services.llm_provider import LLMError
from folio.services.translator import translate_batch, translate_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["translate"])

UserDep = Depends(require_user)


@router.post("/translate")
async def translate(data: TranslateRequest, user_id: int = UserDep):
    try:
        translated = await translate_text(data.text, data.target_language, data.source_language)
    except LLMError as e:
        logger.warning("[translate] model call failed for user=%s: %s", user_id, e)
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, "Translation service unavailable")
    return {"original": data.text, "translated": translated, "target_language": data.target_language}


@router.put("/translate")
async def translate_many(data: BatchTranslateRequest, user_id: int = UserDep):
    """Translate several texts with a single model call."""
    try:
        translations = await translate_batch(data.texts, data.target_language)
    except LLMError as e:
        logger.warning("[translate] batch failed for user=%s: %s", user_id, e)
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, "Translation service unavailable")
    return {"translations": translations, "target_language": data.target_language}
