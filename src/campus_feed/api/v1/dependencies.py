"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from campus_feed.core.errors import Unauthorized
from campus_feed.core.security import decode_access_token
from campus_feed.db.session import get_db
from campus_feed.models import User
from campus_feed.services.capabilities import Capabilities, resolve_capabilities

# HTTP Bearer scheme; missing credentials are reported as our own Unauthorized.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        Unauthorized: If the token is missing or invalid, or the user is gone
    """
    if credentials is None:
        raise Unauthorized("Not authenticated")
    user_id = decode_access_token(credentials.credentials)
    user = db.get(User, user_id)
    if user is None:
        raise Unauthorized("User not found")
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_capabilities(user: CurrentUserDep, db: SessionDep) -> Capabilities:
    """Resolve the caller's capability set once per request."""
    return resolve_capabilities(db, user)


CapabilitiesDep = Annotated[Capabilities, Depends(get_capabilities)]
