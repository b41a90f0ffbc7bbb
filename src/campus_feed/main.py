# src/campus_feed/main.py
"""Main entry point for the Campus Feed application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from campus_feed import __version__
from campus_feed.api.v1 import events_router, feed_router, moderation_router, posts_router
from campus_feed.core.errors import CampusFeedError
from campus_feed.core.settings import settings
from campus_feed.schemas.common import ErrorResponse

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Campus events and announcements: lifecycle, RSVPs and feeds",
    version=__version__,
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
app.include_router(posts_router, prefix="/api/v1")
app.include_router(events_router, prefix="/api/v1")
app.include_router(feed_router, prefix="/api/v1")
app.include_router(moderation_router, prefix="/api/v1")


@app.exception_handler(CampusFeedError)
async def campus_feed_error_handler(request: Request, exc: CampusFeedError) -> JSONResponse:
    """Render domain errors as structured bodies."""
    logger.debug("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.code, detail=exc.detail).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render malformed requests in the same structured shape."""
    return JSONResponse(
        status_code=422,
        content={
            "ok": False,
            "error": "validation_error",
            "detail": "Request payload failed validation",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("campus_feed.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
