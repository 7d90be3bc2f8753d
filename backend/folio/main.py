from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .routes_analyze import router as analyze_router
from .routes_auth import router as auth_router
from .routes_collections import router as collections_router
from .routes_extension import router as extension_router
from .routes_generate import router as generate_router
from .routes_taste_profile import router as taste_profile_router
from .routes_training import router as training_router
from .routes_translate import router as translate_router
from .settings import get_settings

logger = logging.getLogger("folio")

app = FastAPI(title="folio")
settings = get_settings()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url)
    return PlainTextResponse("Internal Server Error", status_code=500)


@app.get("/ping")
async def ping():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(collections_router)
app.include_router(analyze_router)
app.include_router(taste_profile_router)
app.include_router(training_router)
app.include_router(generate_router)
app.include_router(translate_router)
app.include_router(extension_router)


@app.on_event("startup")
async def startup_event():
    """Start scheduler on app startup."""
    from folio.services.scheduler import scheduler_service
    scheduler_service.configure(settings.async_database_url)
    scheduler_service.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Stop scheduler on app shutdown."""
    from folio.services.scheduler import scheduler_service
    scheduler_service.stop()
