"""Version 1 API endpoints."""

from .endpoints import (
    events_router,
    feed_router,
    moderation_router,
    posts_router,
)

__all__ = [
    "posts_router",
    "events_router",
    "feed_router",
    "moderation_router",
]
