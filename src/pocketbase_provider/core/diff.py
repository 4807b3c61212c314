"""Attribute-level diff between a plan and observed state."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pocketbase_provider.client.errors import ReplacementRequiredError
from pocketbase_provider.core.schema import Attribute, AttributeKind
from pocketbase_provider.core.state import DesiredConfig
from pocketbase_provider.core.values import Value, contains_unknown, resolve, values_match
from pocketbase_provider.models.collection import PersistedState

KNOWN_AFTER_APPLY = "(known after apply)"


class PlanAction(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    NOOP = "noop"


@dataclass(frozen=True)
class AttributeChange:
    path: str
    before: Any
    after: Any
    requires_replace: bool = False

    @property
    def attribute(self) -> str:
        """Top-level attribute the change belongs to."""
        return self.path.split("[", 1)[0].split(".", 1)[0]


@dataclass
class Plan:
    action: PlanAction
    changes: list[AttributeChange] = field(default_factory=list)
    resource_id: str | None = None

    @property
    def requires_replacement(self) -> bool:
        return self.action is PlanAction.REPLACE

    @property
    def replace_paths(self) -> list[str]:
        return [c.path for c in self.changes if c.requires_replace]

    def changed_attributes(self) -> set[str]:
        return {c.attribute for c in self.changes}

    def raise_for_replacement(self) -> None:
        if self.requires_replacement:
            raise ReplacementRequiredError(self.replace_paths)


def _display(value: Any) -> Any:
    if isinstance(value, Value) and value.is_unknown:
        return KNOWN_AFTER_APPLY
    if contains_unknown(value):
        return KNOWN_AFTER_APPLY
    return resolve(value)


def attribute_matches(attr: Attribute, desired: Value, observed: Any) -> bool:
    """Whether *observed* already satisfies *desired* for one attribute."""
    if desired.is_unknown:
        return True
    if attr.has_client_default:
        return values_match(desired, observed, partial=True)
    if attr.unordered and desired.is_known:
        if not isinstance(observed, (list, tuple)):
            return False
        pending = sum(1 for v in desired.value if isinstance(v, Value) and v.is_unknown)
        wanted = {resolve(v) for v in desired.value if not (isinstance(v, Value) and v.is_unknown)}
        have = set(observed)
        # each unknown item may stand for one observed item not otherwise wanted
        return wanted <= have and len(have - wanted) <= pending
    return values_match(desired, observed)


def _diff_objects(attr: Attribute, desired: Value, observed: Any) -> list[AttributeChange]:
    if desired.is_unknown:
        return []
    assert attr.nested is not None and attr.key is not None
    key = attr.key
    items = desired.value if desired.is_known else []
    have = {o[key]: o for o in observed or []}
    changes: list[AttributeChange] = []
    seen: set[str] = set()
    unresolved = False
    for item in items:
        if not isinstance(item, Mapping) or not item[key].is_known:
            unresolved = True
            continue
        name = item[key].value
        seen.add(name)
        path = f"{attr.name}[{name}]"
        current = have.get(name)
        if current is None:
            changes.append(AttributeChange(path, None, _display(item)))
            continue
        for nested in attr.nested.attributes:
            if nested.server_computed:
                continue
            if not attribute_matches(nested, item[nested.name], current.get(nested.name)):
                changes.append(AttributeChange(
                    f"{path}.{nested.name}",
                    current.get(nested.name),
                    _display(item[nested.name]),
                    nested.requires_replace,
                ))
    if not unresolved:
        for name, current in have.items():
            if name not in seen:
                changes.append(AttributeChange(f"{attr.name}[{name}]", current, None))
    return changes


def diff(desired: DesiredConfig, observed: PersistedState) -> list[AttributeChange]:
    """Changes needed to take *observed* to *desired*.

    Object lists are matched by key, so reordering fields is not a change.
    """
    current = observed.to_attributes()
    changes: list[AttributeChange] = []
    for attr in desired.schema.attributes:
        if attr.server_computed:
            continue
        want = desired[attr.name]
        have = current.get(attr.name)
        if attr.kind is AttributeKind.OBJECT_LIST:
            changes.extend(_diff_objects(attr, want, have))
        elif not attribute_matches(attr, want, have):
            changes.append(AttributeChange(attr.name, have, _display(want), attr.requires_replace))
    return changes


def plan_create(desired: DesiredConfig) -> Plan:
    changes = [
        AttributeChange(attr.name, None, _display(desired[attr.name]))
        for attr in desired.schema.attributes
        if not desired[attr.name].is_null
    ]
    return Plan(PlanAction.CREATE, changes)


def plan_update(desired: DesiredConfig, observed: PersistedState) -> Plan:
    changes = diff(desired, observed)
    if not changes:
        action = PlanAction.NOOP
    elif any(c.requires_replace for c in changes):
        action = PlanAction.REPLACE
    else:
        action = PlanAction.UPDATE
    return Plan(action, changes, resource_id=observed.id)


def plan_delete(observed: PersistedState) -> Plan:
    return Plan(PlanAction.DELETE, resource_id=observed.id)
