"""Business logic services for the Campus Feed application."""

from .capabilities import Capabilities, resolve_capabilities
from .feed import FeedAssembler, FeedMode, FeedOrder
from .lifecycle import Action, ApprovalService
from .post_service import PostService
from .rsvp import Counters, MyEvents, RsvpLedger, RsvpResult

__all__ = [
    "Action",
    "ApprovalService",
    "Capabilities",
    "Counters",
    "FeedAssembler",
    "FeedMode",
    "FeedOrder",
    "MyEvents",
    "PostService",
    "RsvpLedger",
    "RsvpResult",
    "resolve_capabilities",
]
