"""Mapping between desired configuration, persisted state and the wire.

Three separate representations are involved:

- ``DesiredConfig``: what the user asked for, one ``Value`` per attribute;
- ``PersistedState``: the recorded result of the last operation;
- ``RemoteResource``: what the API returned.

All functions here are pure.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pocketbase_provider.core.schema import (
    COLLECTION_SCHEMA,
    Attribute,
    AttributeKind,
    ResourceSchema,
)
from pocketbase_provider.core.values import NULL, UNKNOWN, Value, contains_unknown, resolve
from pocketbase_provider.models.collection import PersistedState, RemoteResource

# Attribute name -> wire name, where they differ
WIRE_NAMES = {
    "list_rule": "listRule",
    "view_rule": "viewRule",
    "create_rule": "createRule",
    "update_rule": "updateRule",
    "delete_rule": "deleteRule",
}

_MISSING = object()


def _lift(attr: Attribute, raw: Any) -> Value:
    """Turn one raw configured value into a ``Value``."""
    if raw is _MISSING:
        if attr.default is not None:
            return Value.known(attr.default_value())
        return UNKNOWN if attr.has_client_default else NULL
    value = Value.wrap(raw)
    if value.is_null and attr.default is not None:
        return Value.known(attr.default_value())
    if value.is_known and attr.kind is AttributeKind.OBJECT_LIST:
        assert attr.nested is not None
        return Value.known([_lift_object(attr.nested, item) for item in value.value])
    if value.is_known and attr.kind is AttributeKind.MAP and value.value == []:
        return Value.known({})
    return value


def _lift_object(schema: ResourceSchema, raw: Any) -> Any:
    item = Value.wrap(raw)
    if not item.is_known:
        return item
    return {
        attr.name: UNKNOWN if attr.server_computed else _lift(attr, item.value.get(attr.name, _MISSING))
        for attr in schema.attributes
    }


@dataclass(frozen=True)
class DesiredConfig:
    """Planned attribute values for one resource instance."""

    values: Mapping[str, Value]
    schema: ResourceSchema = field(default=COLLECTION_SCHEMA)

    @classmethod
    def from_raw(
        cls, raw: Mapping[str, Any], schema: ResourceSchema = COLLECTION_SCHEMA,
    ) -> DesiredConfig:
        """Build a plan from an already-validated configuration mapping.

        Omitted optional attributes take their default. Omitted attributes
        the server can fill in are unknown. Server-computed attributes are
        always unknown, whatever the caller supplied.
        """
        values: dict[str, Value] = {}
        for attr in schema.attributes:
            if attr.server_computed:
                values[attr.name] = UNKNOWN
            else:
                values[attr.name] = _lift(attr, raw.get(attr.name, _MISSING))
        return cls(values, schema)

    def __getitem__(self, name: str) -> Value:
        return self.values.get(name, UNKNOWN)

    @property
    def name(self) -> str | None:
        return self["name"].get()

    def to_raw(self) -> dict[str, Any]:
        """Known user-facing values as plain data (unknowns left out)."""
        return {
            name: resolve(value)
            for name, value in self.values.items()
            if value.is_known and not self.schema[name].server_computed
        }


def desired_from_state(state: PersistedState) -> DesiredConfig:
    """A plan that asks for exactly what *state* records."""
    attrs = state.to_attributes()
    raw = {
        attr.name: attrs[attr.name]
        for attr in COLLECTION_SCHEMA.attributes
        if not attr.server_computed
    }
    return DesiredConfig.from_raw(raw)


def remote_attributes(remote: RemoteResource) -> dict[str, Any]:
    """Attributes the server actually sent, keyed by schema attribute name."""
    wire_to_attr = {wire: name for name, wire in WIRE_NAMES.items()}
    sent = remote.model_fields_set
    data = remote.model_dump(by_alias=True)
    result: dict[str, Any] = {}
    for key, value in data.items():
        field_name = "fields" if key == "schema" else key
        if field_name not in sent:
            continue
        name = wire_to_attr.get(key, key)
        if name not in COLLECTION_SCHEMA:
            continue
        if name in WIRE_NAMES or name in ("created", "updated"):
            value = "" if value is None else value
        if name == "schema":
            value = [_field_attributes(f) for f in value]
        result[name] = value
    return result


def _field_attributes(wire_field: Mapping[str, Any]) -> dict[str, Any]:
    return {name: wire_field[name] for name in COLLECTION_SCHEMA["schema"].nested.names if name in wire_field}


def state_from_remote(remote: RemoteResource) -> PersistedState:
    """Map a full API response to persisted state."""
    return PersistedState.from_attributes_map(remote_attributes(remote))


def refresh_state(prior: PersistedState, remote: RemoteResource) -> PersistedState:
    """Overlay a fresh read onto *prior*; attributes not returned are kept."""
    attrs = prior.to_attributes()
    attrs.update(remote_attributes(remote))
    return PersistedState.from_attributes_map(attrs)


def build_payload(
    desired: DesiredConfig,
    observed: PersistedState | None = None,
    only: Iterable[str] | None = None,
) -> dict[str, Any]:
    """Request body (wire names) for *desired*.

    Unknown values are left out so the server fills them in. Field ids not
    given by the user are taken from *observed* by field name, which makes
    PocketBase keep the existing column and its data.
    """
    wanted = set(only) if only is not None else None
    observed_ids = {f.name: f.id for f in observed.fields} if observed else {}
    payload: dict[str, Any] = {}
    for attr in desired.schema.attributes:
        if attr.server_computed or (wanted is not None and attr.name not in wanted):
            continue
        value = desired[attr.name]
        if value.is_unknown:
            continue
        if attr.kind is AttributeKind.OBJECT_LIST and value.is_known:
            payload[attr.name] = [
                _field_payload(item, observed_ids) for item in value.value
                if not (isinstance(item, Value) and item.is_unknown)
            ]
        else:
            payload[WIRE_NAMES.get(attr.name, attr.name)] = resolve(value)
    return payload


def _field_payload(item: Any, observed_ids: Mapping[str, str]) -> dict[str, Any]:
    if isinstance(item, Value):
        item = item.value
    body = {
        name: resolve(value)
        for name, value in item.items()
        if not (isinstance(value, Value) and value.is_unknown)
    }
    if "id" not in body:
        existing = observed_ids.get(body.get("name", ""))
        if existing:
            body["id"] = existing
    return body


def _merge_value(attr: Attribute, prior: Any, planned: Value, returned: Any) -> Any:
    if attr.server_computed:
        return prior if returned is _MISSING else returned
    if attr.user_owned:
        if planned.is_known and not contains_unknown(planned):
            return resolve(planned)
        return prior if returned is _MISSING else returned
    # Server-computed with client default: the server's answer wins
    if returned is not _MISSING:
        return returned
    if planned.is_known:
        return resolve(planned)
    return prior


def _merge_objects(attr: Attribute, prior: Any, planned: Value, returned: Any) -> Any:
    items = planned.value if planned.is_known else None
    if items is None or any(not isinstance(i, Mapping) for i in items):
        return prior if returned is _MISSING else returned
    assert attr.nested is not None and attr.key is not None
    key = attr.key
    prior_by_key = {i[key]: i for i in prior or []}
    returned_by_key = {} if returned is _MISSING else {i[key]: i for i in returned}
    merged = []
    for item in items:
        name = item[key].get()
        prior_item = prior_by_key.get(name, {})
        returned_item = returned_by_key.get(name)
        entry = {}
        for nested in attr.nested.attributes:
            value = _merge_value(
                nested,
                prior_item.get(nested.name, _MISSING),
                item[nested.name],
                _MISSING if returned_item is None else returned_item.get(nested.name, _MISSING),
            )
            if value is not _MISSING:
                entry[nested.name] = value
        merged.append(entry)
    return merged


def merge_state(
    prior: PersistedState | None,
    plan: DesiredConfig,
    remote: RemoteResource,
) -> PersistedState:
    """Combine the prior state, the applied plan and the API response.

    Server-computed attributes take the response value. User-owned
    attributes take the planned value. Anything the response left out keeps
    the prior value.
    """
    base = prior.to_attributes() if prior else {}
    returned = remote_attributes(remote)
    merged: dict[str, Any] = {}
    for attr in plan.schema.attributes:
        prior_value = base.get(attr.name, _MISSING)
        returned_value = returned.get(attr.name, _MISSING)
        if attr.kind is AttributeKind.OBJECT_LIST:
            value = _merge_objects(
                attr, None if prior_value is _MISSING else prior_value,
                plan[attr.name], returned_value,
            )
        else:
            value = _merge_value(attr, prior_value, plan[attr.name], returned_value)
        if value is not _MISSING:
            merged[attr.name] = value
    return PersistedState.from_attributes_map(merged)


def _overlay(attr: Attribute, current: Any, value: Any) -> Any:
    if (
        attr.kind is AttributeKind.MAP
        and attr.has_client_default
        and isinstance(current, Mapping)
        and isinstance(value, Mapping)
    ):
        return {**current, **value}
    return value


def project_attributes(prior: PersistedState | None, plan: DesiredConfig) -> dict[str, Any]:
    """Attributes *prior* is expected to have once *plan* is applied.

    Server-assigned values keep their current value, or are left out on
    create. Option bags are laid over the current ones, the same way they
    are compared, and fields keep their current order.
    """
    base = prior.to_attributes() if prior else {}
    projected: dict[str, Any] = {}
    for attr in plan.schema.attributes:
        current = base.get(attr.name, _MISSING)
        if attr.kind is AttributeKind.OBJECT_LIST:
            value = _merge_objects(
                attr, None if current is _MISSING else current, plan[attr.name], _MISSING,
            )
            if isinstance(value, list) and isinstance(current, list):
                value = _project_objects(attr, current, value)
        else:
            value = _overlay(attr, current, _merge_value(attr, current, plan[attr.name], _MISSING))
        if value is not _MISSING:
            projected[attr.name] = value
    return projected


def _project_objects(attr: Attribute, current: list[Any], items: list[Any]) -> list[Any]:
    assert attr.nested is not None and attr.key is not None
    key = attr.key
    by_key = {i[key]: i for i in current}
    order = list(by_key)
    for item in items:
        existing = by_key.get(item.get(key), {})
        for nested in attr.nested.attributes:
            if nested.name in item:
                item[nested.name] = _overlay(nested, existing.get(nested.name), item[nested.name])
    return sorted(items, key=lambda i: order.index(i[key]) if i.get(key) in by_key else len(order))
