"""Attribute schemas for managed resources.

A schema lists every attribute a resource accepts, its kind, and who owns
it. Validation reports every violation in one pass.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pocketbase_provider.core.diagnostics import Diagnostics
from pocketbase_provider.core.values import Value


class AttributeKind(str, Enum):
    STRING = "string"
    BOOL = "bool"
    LIST = "list"
    MAP = "map"
    OBJECT_LIST = "object_list"


class Mutability(str, Enum):
    USER_REQUIRED = "user-required"
    USER_OPTIONAL = "user-optional"
    SERVER_COMPUTED = "server-computed"
    # May be set by the user; once the server fills it, it is kept across
    # refreshes unless the user changes it.
    SERVER_COMPUTED_WITH_DEFAULT = "server-computed-with-client-default"


@dataclass(frozen=True)
class Attribute:
    name: str
    kind: AttributeKind
    mutability: Mutability
    description: str = ""
    default: Any = None
    allowed: tuple[str, ...] = ()
    requires_replace: bool = False
    sensitive: bool = False
    unordered: bool = False
    key: str | None = None
    nested: ResourceSchema | None = None

    @property
    def user_owned(self) -> bool:
        return self.mutability in (Mutability.USER_REQUIRED, Mutability.USER_OPTIONAL)

    @property
    def server_computed(self) -> bool:
        return self.mutability is Mutability.SERVER_COMPUTED

    @property
    def has_client_default(self) -> bool:
        return self.mutability is Mutability.SERVER_COMPUTED_WITH_DEFAULT

    def default_value(self) -> Any:
        return copy.deepcopy(self.default)


def join_path(parent: str, name: str) -> str:
    return f"{parent}.{name}" if parent else name


def _kind_name(value: Any) -> str:
    return type(value).__name__


@dataclass(frozen=True)
class ResourceSchema:
    type_name: str
    attributes: tuple[Attribute, ...]
    description: str = ""

    def __getitem__(self, name: str) -> Attribute:
        for attr in self.attributes:
            if attr.name == name:
                return attr
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(attr.name == name for attr in self.attributes)

    @property
    def names(self) -> list[str]:
        return [attr.name for attr in self.attributes]

    def validate(self, raw: Any, *, path: str = "") -> Diagnostics:
        """Check *raw* against this schema and return every violation found."""
        diags = Diagnostics()
        if isinstance(raw, Value):
            if raw.is_unknown:
                return diags
            raw = raw.value
        if not isinstance(raw, Mapping):
            diags.add_error(
                "Invalid configuration",
                f"Expected a mapping for {self.type_name}, got {_kind_name(raw)}.",
                path or None,
            )
            return diags

        for key in raw:
            if key not in self:
                diags.add_error(
                    "Unsupported attribute",
                    f"{self.type_name} has no attribute named {key!r}.",
                    join_path(path, str(key)),
                )

        for attr in self.attributes:
            attr_path = join_path(path, attr.name)
            if attr.name not in raw:
                if attr.mutability is Mutability.USER_REQUIRED:
                    diags.add_error(
                        "Missing required attribute",
                        f"The attribute {attr.name!r} is required.",
                        attr_path,
                    )
                continue
            if attr.server_computed:
                diags.add_warning(
                    "Ignoring server-computed attribute",
                    f"{attr.name!r} is assigned by the server; the configured value is ignored.",
                    attr_path,
                )
                continue
            diags.extend(_validate_value(attr, raw[attr.name], attr_path))
        return diags


def _validate_value(attr: Attribute, value: Any, path: str) -> Diagnostics:
    diags = Diagnostics()
    if isinstance(value, Value):
        if value.is_unknown:
            return diags
        value = value.value if value.is_known else None
    if value is None:
        if attr.mutability is Mutability.USER_REQUIRED:
            diags.add_error(
                "Missing required attribute",
                f"The attribute {attr.name!r} is required and cannot be null.",
                path,
            )
        return diags

    if attr.kind is AttributeKind.STRING:
        if not isinstance(value, str):
            diags.add_error("Incorrect attribute type", f"Expected a string, got {_kind_name(value)}.", path)
        elif attr.allowed and value not in attr.allowed:
            diags.add_error(
                "Invalid attribute value",
                f"{value!r} is not one of: {', '.join(attr.allowed)}.",
                path,
            )
    elif attr.kind is AttributeKind.BOOL:
        if not isinstance(value, bool):
            diags.add_error("Incorrect attribute type", f"Expected a bool, got {_kind_name(value)}.", path)
    elif attr.kind is AttributeKind.MAP:
        # An empty list is how some clients encode an empty object
        if not isinstance(value, Mapping) and value != []:
            diags.add_error("Incorrect attribute type", f"Expected a mapping, got {_kind_name(value)}.", path)
    elif attr.kind is AttributeKind.LIST:
        if not isinstance(value, (list, tuple)):
            diags.add_error("Incorrect attribute type", f"Expected a list, got {_kind_name(value)}.", path)
        else:
            for i, item in enumerate(value):
                if isinstance(item, Value):
                    if item.is_unknown:
                        continue
                    item = item.get()
                if not isinstance(item, str):
                    diags.add_error(
                        "Incorrect attribute type",
                        f"Expected a string, got {_kind_name(item)}.",
                        f"{path}[{i}]",
                    )
    elif attr.kind is AttributeKind.OBJECT_LIST:
        diags.extend(_validate_objects(attr, value, path))
    return diags


def _validate_objects(attr: Attribute, value: Any, path: str) -> Diagnostics:
    diags = Diagnostics()
    if not isinstance(value, (list, tuple)):
        diags.add_error("Incorrect attribute type", f"Expected a list, got {_kind_name(value)}.", path)
        return diags
    assert attr.nested is not None
    seen: dict[str, int] = {}
    for i, item in enumerate(value):
        item_path = f"{path}[{i}]"
        diags.extend(attr.nested.validate(item, path=item_path))
        if isinstance(item, Value):
            item = item.get()
        if attr.key is None or not isinstance(item, Mapping):
            continue
        key = item.get(attr.key)
        if isinstance(key, Value):
            key = key.get()
        if not isinstance(key, str):
            continue
        if key in seen:
            diags.add_error(
                f"Duplicate {attr.nested.type_name} {attr.key}",
                f"{key!r} is already used by {path}[{seen[key]}].",
                join_path(item_path, attr.key),
            )
        else:
            seen[key] = i
    return diags


COLLECTION_TYPES = ("base", "auth", "view")

FIELD_TYPES = (
    "text",
    "number",
    "bool",
    "email",
    "url",
    "editor",
    "date",
    "select",
    "json",
    "file",
    "relation",
)

FIELD_SCHEMA = ResourceSchema(
    type_name="field",
    description="A field of a collection schema.",
    attributes=(
        Attribute(
            "id", AttributeKind.STRING, Mutability.SERVER_COMPUTED_WITH_DEFAULT,
            description="Field id; reuse an existing id to rename the field in place.",
        ),
        Attribute("name", AttributeKind.STRING, Mutability.USER_REQUIRED),
        Attribute("type", AttributeKind.STRING, Mutability.USER_REQUIRED, allowed=FIELD_TYPES),
        Attribute("system", AttributeKind.BOOL, Mutability.USER_OPTIONAL, default=False),
        Attribute("required", AttributeKind.BOOL, Mutability.USER_OPTIONAL, default=False),
        Attribute("unique", AttributeKind.BOOL, Mutability.USER_OPTIONAL, default=False),
        Attribute(
            "options", AttributeKind.MAP, Mutability.SERVER_COMPUTED_WITH_DEFAULT,
            description="Type specific settings; unset keys take the server defaults.",
        ),
    ),
)


def _rule(name: str, action: str) -> Attribute:
    return Attribute(
        name, AttributeKind.STRING, Mutability.USER_OPTIONAL, default="",
        description=f"Filter expression required to {action}; empty means no restriction.",
    )


COLLECTION_SCHEMA = ResourceSchema(
    type_name="collection",
    description="A PocketBase collection",
    attributes=(
        Attribute("id", AttributeKind.STRING, Mutability.SERVER_COMPUTED),
        Attribute("name", AttributeKind.STRING, Mutability.USER_REQUIRED),
        Attribute(
            "type", AttributeKind.STRING, Mutability.USER_REQUIRED,
            allowed=COLLECTION_TYPES, requires_replace=True,
        ),
        Attribute("system", AttributeKind.BOOL, Mutability.SERVER_COMPUTED),
        Attribute(
            "schema", AttributeKind.OBJECT_LIST, Mutability.USER_OPTIONAL,
            default=[], key="name", nested=FIELD_SCHEMA,
        ),
        _rule("list_rule", "list records"),
        _rule("view_rule", "view a record"),
        _rule("create_rule", "create a record"),
        _rule("update_rule", "update a record"),
        _rule("delete_rule", "delete a record"),
        Attribute("options", AttributeKind.MAP, Mutability.SERVER_COMPUTED_WITH_DEFAULT),
        Attribute("indexes", AttributeKind.LIST, Mutability.USER_OPTIONAL, default=[], unordered=True),
        Attribute("created", AttributeKind.STRING, Mutability.SERVER_COMPUTED),
        Attribute("updated", AttributeKind.STRING, Mutability.SERVER_COMPUTED),
    ),
)


def validate_collection(raw: Any) -> Diagnostics:
    """Validate a desired collection configuration."""
    return COLLECTION_SCHEMA.validate(raw)
