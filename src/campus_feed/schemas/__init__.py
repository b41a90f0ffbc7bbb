"""Pydantic request and response schemas."""

from .common import ErrorResponse, PageInfo
from .feed import FeedItemOut, FeedResponse
from .post import PostCreate, PostResponse, PostUpdate, TransitionRequest, TransitionResponse
from .rsvp import CountersOut, MyEventsResponse, RsvpRequest, RsvpResponse

__all__ = [
    "CountersOut",
    "ErrorResponse",
    "FeedItemOut",
    "FeedResponse",
    "MyEventsResponse",
    "PageInfo",
    "PostCreate",
    "PostResponse",
    "PostUpdate",
    "RsvpRequest",
    "RsvpResponse",
    "TransitionRequest",
    "TransitionResponse",
]
