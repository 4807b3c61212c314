"""Tri-state attribute values: known, null, or not yet resolvable.

A planned attribute may depend on something that does not exist yet (for
example the id of a collection created in the same run). Such values are
``UNKNOWN`` and never count as a difference. ``NULL`` is an explicit absence
and is a real value for comparison purposes.

Unknown values may also sit inside a known container, e.g.
``Value.known({"collectionId": UNKNOWN})``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ValueKind(str, Enum):
    KNOWN = "known"
    NULL = "null"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Value:
    kind: ValueKind
    value: Any = None

    @classmethod
    def known(cls, value: Any) -> Value:
        return cls(ValueKind.KNOWN, value)

    @classmethod
    def null(cls) -> Value:
        return NULL

    @classmethod
    def unknown(cls) -> Value:
        return UNKNOWN

    @classmethod
    def wrap(cls, raw: Any) -> Value:
        """Lift a plain value: ``None`` is null, ``Value`` passes through."""
        if isinstance(raw, Value):
            return raw
        if raw is None:
            return NULL
        return cls.known(raw)

    @property
    def is_known(self) -> bool:
        return self.kind is ValueKind.KNOWN

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    @property
    def is_unknown(self) -> bool:
        return self.kind is ValueKind.UNKNOWN

    def get(self, default: Any = None) -> Any:
        """Return the known value, or *default* for null and unknown."""
        return self.value if self.is_known else default

    def __repr__(self) -> str:
        if self.is_known:
            return f"Known({self.value!r})"
        return "Null" if self.is_null else "Unknown"


NULL = Value(ValueKind.NULL)
UNKNOWN = Value(ValueKind.UNKNOWN)


def contains_unknown(raw: Any) -> bool:
    """True if *raw* is, or contains anywhere, an unknown value."""
    if isinstance(raw, Value):
        return raw.is_unknown or (raw.is_known and contains_unknown(raw.value))
    if isinstance(raw, Mapping):
        return any(contains_unknown(v) for v in raw.values())
    if isinstance(raw, (list, tuple)):
        return any(contains_unknown(v) for v in raw)
    return False


def resolve(raw: Any, default: Any = None) -> Any:
    """Strip ``Value`` wrappers, replacing null/unknown by *default*.

    Mapping entries whose value is unknown are dropped rather than defaulted,
    so an unresolved option is left for the server to fill.
    """
    if isinstance(raw, Value):
        return resolve(raw.value, default) if raw.is_known else default
    if isinstance(raw, Mapping):
        return {
            k: resolve(v, default)
            for k, v in raw.items()
            if not (isinstance(v, Value) and v.is_unknown)
        }
    if isinstance(raw, (list, tuple)):
        return [resolve(v, default) for v in raw]
    return raw


def values_match(desired: Any, observed: Any, *, partial: bool = False) -> bool:
    """Compare a desired value against an observed plain value.

    Unknown matches anything. Null only matches ``None``. With *partial*,
    mappings only compare the keys present in *desired*, which is how
    server-filled option bags are compared.
    """
    if isinstance(desired, Value):
        if desired.is_unknown:
            return True
        if desired.is_null:
            return observed is None
        return values_match(desired.value, observed, partial=partial)
    if isinstance(desired, Mapping):
        if not isinstance(observed, Mapping):
            return False
        keys = set(desired) if partial else set(desired) | set(observed)
        return all(
            values_match(desired.get(k), observed.get(k), partial=partial)
            for k in keys
        )
    if isinstance(desired, (list, tuple)):
        if not isinstance(observed, (list, tuple)) or len(desired) != len(observed):
            return False
        return all(
            values_match(d, o, partial=partial) for d, o in zip(desired, observed)
        )
    return bool(desired == observed)
