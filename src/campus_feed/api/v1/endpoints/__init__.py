"""API endpoint modules for version 1."""

from .feed import router as feed_router
from .moderation import router as moderation_router
from .posts import router as posts_router
from .rsvp import router as events_router

__all__ = [
    "posts_router",
    "events_router",
    "feed_router",
    "moderation_router",
]
