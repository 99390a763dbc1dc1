# src/marginalia/main.py
"""Main entry point for the Marginalia application."""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from marginalia.api.v1 import (
    answers_router,
    documents_router,
    images_router,
    moderation_router,
    proposals_router,
    questions_router,
    votes_router,
)
from marginalia.core.settings import settings
from marginalia.services.errors import ForumError
from marginalia.services.images import ImageReaper

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Marginalia API",
    description="Questions and answers anchored to academic documents",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(documents_router, prefix="/api/v1")
app.include_router(questions_router, prefix="/api/v1")
app.include_router(answers_router, prefix="/api/v1")
app.include_router(votes_router, prefix="/api/v1")
app.include_router(proposals_router, prefix="/api/v1")
app.include_router(images_router, prefix="/api/v1")
app.include_router(moderation_router, prefix="/api/v1")


@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError) -> JSONResponse:
    """Translate domain errors into ``{"detail": ...}`` responses."""
    if exc.status_code >= 500:
        logger.error(
            "Internal error on %s %s: %s",
            request.method,
            request.url.path,
            exc.detail,
            exc_info=exc,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    client = request.client.host if request.client else "-"
    logger.info(
        "%s %d %s %s %.1fms",
        request.method,
        response.status_code,
        request.url.path,
        client,
        (time.perf_counter() - started) * 1000,
    )
    return response


@app.on_event("startup")
async def on_startup() -> None:
    if settings.image_reaper_enabled:
        reaper = ImageReaper(
            settings.images_path,
            interval_seconds=settings.image_sweep_interval_seconds,
            retention_seconds=settings.image_retention_seconds,
        )
        await reaper.start()
        app.state.image_reaper = reaper
    else:
        app.state.image_reaper = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    reaper: ImageReaper | None = getattr(app.state, "image_reaper", None)
    if reaper:
        await reaper.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Questions and answers anchored to academic documents",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("marginalia.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
