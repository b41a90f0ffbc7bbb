"""SQLAlchemy models for the Campus Feed application."""

from .club import Club, ClubAdvisor, ClubMember, ClubRole, ClubStatus
from .institution import Institution
from .post import (
    LIVE_STATUSES,
    Post,
    PostAudience,
    PostOrigin,
    PostStatus,
    PostTag,
    PostType,
    SourceScope,
    Visibility,
)
from .rsvp import Rsvp, RsvpState
from .user import Role, User

__all__ = [
    "Club", "ClubAdvisor", "ClubMember", "ClubRole", "ClubStatus",
    "Institution",
    "LIVE_STATUSES", "Post", "PostAudience", "PostOrigin", "PostStatus", "PostTag",
    "PostType", "SourceScope", "Visibility",
    "Rsvp", "RsvpState",
    "Role", "User",
]
