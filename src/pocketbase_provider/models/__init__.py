"""Pydantic data models for the PocketBase API and recorded state."""

from pocketbase_provider.models.collection import (
    FieldState,
    PersistedState,
    RemoteField,
    RemoteResource,
)
from pocketbase_provider.models.common import ErrorResponse, PaginatedResponse

__all__ = [
    "ErrorResponse",
    "FieldState",
    "PaginatedResponse",
    "PersistedState",
    "RemoteField",
    "RemoteResource",
]
