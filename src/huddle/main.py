# src/huddle/main.py
"""Main entry point for the Huddle application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from huddle.api import (
    chat_router,
    communities_router,
    feed_router,
    friends_router,
    profile_router,
    streams_router,
    user_router,
)
from huddle.api.error_handlers import register_error_handlers
from huddle.core.settings import settings


def configure_logging(level: str) -> None:
    """Configure the root logger once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging(settings.log_level)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Community, friendship and livestream API",
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

register_error_handlers(app)

# Include API routers
app.include_router(chat_router, prefix="/api")
app.include_router(communities_router, prefix="/api")
app.include_router(feed_router, prefix="/api")
app.include_router(friends_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(streams_router, prefix="/api")
app.include_router(user_router, prefix="/api")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("huddle.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
