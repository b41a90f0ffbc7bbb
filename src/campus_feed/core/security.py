"""JWT helpers for the bearer-token session collaborator."""
from __future__ import annotations

from datetime import timedelta

from jose import JWTError, jwt

from campus_feed.core.errors import Unauthorized
from campus_feed.core.settings import settings
from campus_feed.db.time import utcnow


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    """Issue a signed access token whose subject is the user id."""
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload = {
        "sub": str(user_id),
        "exp": utcnow() + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """Return the user id carried by a valid token.

    Raises:
        Unauthorized: If the token is malformed, expired or has no subject.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise Unauthorized("Could not validate credentials") from err

    subject = payload.get("sub")
    if subject is None:
        raise Unauthorized("Could not validate credentials")
    try:
        return int(subject)
    except (TypeError, ValueError) as err:
        raise Unauthorized("Could not validate credentials") from err
