"""Accumulated error and warning records returned alongside results."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A single problem report, optionally tied to an attribute path."""

    severity: Severity
    summary: str
    detail: str = ""
    path: str | None = None

    def __str__(self) -> str:
        where = f" [{self.path}]" if self.path else ""
        text = f"{self.severity.value}: {self.summary}{where}"
        if self.detail:
            text += f": {self.detail}"
        return text


class Diagnostics:
    """Append-only collection of diagnostics.

    Operations keep appending after an error; callers check ``has_error()``
    before doing anything with side effects.
    """

    def __init__(self, items: Iterable[Diagnostic] = ()) -> None:
        self._items: list[Diagnostic] = list(items)

    def append(self, *diagnostics: Diagnostic) -> None:
        self._items.extend(diagnostics)

    def extend(self, other: Iterable[Diagnostic]) -> None:
        self._items.extend(other)

    def add_error(self, summary: str, detail: str = "", path: str | None = None) -> None:
        self._items.append(Diagnostic(Severity.ERROR, summary, detail, path))

    def add_warning(self, summary: str, detail: str = "", path: str | None = None) -> None:
        self._items.append(Diagnostic(Severity.WARNING, summary, detail, path))

    def has_error(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self._items)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self._items if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self._items if d.severity is Severity.WARNING]

    def paths(self) -> list[str]:
        return [d.path for d in self._items if d.path]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"Diagnostics({self._items!r})"
