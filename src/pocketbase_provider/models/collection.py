"""Collection data models.

``RemoteResource`` mirrors the PocketBase wire format. ``PersistedState`` is
what gets recorded after a successful operation. They share no base class;
``pocketbase_provider.core.state`` maps between them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _empty_options(v: Any) -> Any:
    # PocketBase encodes an empty options object as null or [] in places
    if v is None or v == []:
        return {}
    return v


class RemoteField(BaseModel):
    """A schema field as returned by the API."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    name: str
    type: str
    system: bool = False
    required: bool = False
    unique: bool = False
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("options", mode="before")
    @classmethod
    def _normalize_options(cls, v: Any) -> Any:
        return _empty_options(v)


class RemoteResource(BaseModel):
    """A collection as returned by the API (camelCase wire names)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str
    type: str = "base"
    system: bool = False
    fields: list[RemoteField] = Field(default_factory=list, alias="schema")
    listRule: str | None = None
    viewRule: str | None = None
    createRule: str | None = None
    updateRule: str | None = None
    deleteRule: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    indexes: list[str] = Field(default_factory=list)
    created: str | None = None
    updated: str | None = None

    @field_validator("options", mode="before")
    @classmethod
    def _normalize_options(cls, v: Any) -> Any:
        return _empty_options(v)

    @field_validator("indexes", mode="before")
    @classmethod
    def _null_indexes(cls, v: Any) -> Any:
        return [] if v is None else v


class FieldState(BaseModel):
    """A recorded schema field."""

    id: str = ""
    name: str
    type: str
    system: bool = False
    required: bool = False
    unique: bool = False
    options: dict[str, Any] = Field(default_factory=dict)


class PersistedState(BaseModel):
    """Last known materialized state of a managed collection.

    Access rules are always strings; an empty rule means no restriction.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: str
    system: bool = False
    fields: list[FieldState] = Field(default_factory=list, alias="schema")
    list_rule: str = ""
    view_rule: str = ""
    create_rule: str = ""
    update_rule: str = ""
    delete_rule: str = ""
    options: dict[str, Any] = Field(default_factory=dict)
    indexes: list[str] = Field(default_factory=list)
    created: str = ""
    updated: str = ""

    @field_validator(
        "list_rule", "view_rule", "create_rule", "update_rule", "delete_rule",
        "created", "updated",
        mode="before",
    )
    @classmethod
    def _null_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    def to_attributes(self) -> dict[str, Any]:
        """Plain attribute map keyed by schema attribute name."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_attributes_map(cls, attributes: dict[str, Any]) -> PersistedState:
        return cls.model_validate(attributes)
