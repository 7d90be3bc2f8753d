from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from folio.services.extension_bridge import ExtensionMessage, InvalidMessageError, handle_message

router = APIRouter(prefix="/api/extension", tags=["extension"])


@router.post("/messages")
async def extension_message(message: ExtensionMessage):
    """Relay for the browser extension; it may not hold a bearer token yet."""
    try:
        return await handle_message(message)
    except InvalidMessageError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(e))
