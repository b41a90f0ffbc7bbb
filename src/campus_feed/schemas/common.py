"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, Field


class PageInfo(BaseModel):
    """Offset pagination state returned by list endpoints."""

    offset: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    next_offset: int | None = Field(None, description="Offset of the next page, if any.")


class ErrorResponse(BaseModel):
    """Structured error body rendered for every domain failure."""

    ok: bool = False
    error: str
    detail: str
