"""Domain error taxonomy shared by services and the HTTP layer.

Services raise these exceptions; the API renders them as structured
``{"ok": false, "error": code, "detail": message}`` bodies. A raised error
always means nothing was committed.
"""

from __future__ import annotations


class CampusFeedError(RuntimeError):
    """Base exception for all domain failures."""

    code = "error"
    status_code = 400

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class Unauthorized(CampusFeedError):
    """Authentication required."""

    code = "unauthorized"
    status_code = 401


class Forbidden(CampusFeedError):
    """Authenticated but lacking capability for this scope or action."""

    code = "forbidden"
    status_code = 403


class NotFound(CampusFeedError):
    """Post or event not found."""

    code = "not_found"
    status_code = 404


class InvalidTransition(CampusFeedError):
    """Transition not allowed from the post's current status."""

    code = "invalid_transition"
    status_code = 409


class ValidationError(CampusFeedError):
    """Request payload failed validation."""

    code = "validation_error"
    status_code = 400


class CapacityExceeded(CampusFeedError):
    """Event has no remaining slots."""

    code = "capacity_exceeded"
    status_code = 409


class ConcurrencyConflict(CampusFeedError):
    """Concurrent updates kept conflicting; retry the request."""

    code = "conflict"
    status_code = 409


__all__ = [
    "CampusFeedError",
    "CapacityExceeded",
    "ConcurrencyConflict",
    "Forbidden",
    "InvalidTransition",
    "NotFound",
    "Unauthorized",
    "ValidationError",
]
