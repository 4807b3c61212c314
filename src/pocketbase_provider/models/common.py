"""Common response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error body returned by PocketBase."""

    code: int
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


class PaginatedResponse(BaseModel):
    """Paginated list response.

    Format: ``{"page", "perPage", "totalItems", "totalPages", "items": [...]}``
    """

    page: int = 1
    perPage: int = 30
    totalItems: int | None = None
    totalPages: int | None = None
    items: list[Any]
