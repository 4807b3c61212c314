"""Rich table rendering helpers."""

from __future__ import annotations

from typing import Any, Sequence

from rich.table import Table

from pocketbase_provider.core.diagnostics import Diagnostics, Severity
from pocketbase_provider.core.diff import Plan


def _cell(value: Any) -> str:
    return str(value) if value is not None else ""


def make_table(
    title: str | None,
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    *,
    show_lines: bool = False,
) -> Table:
    """Build a Rich Table from column headers and row data."""
    table = Table(title=title, show_lines=show_lines)
    for col in columns:
        table.add_column(col, no_wrap=False)
    for row in rows:
        table.add_row(*(_cell(cell) for cell in row))
    return table


def kv_table(data: dict[str, Any], *, title: str | None = None) -> Table:
    """Render a key-value dict as a two-column table."""
    table = Table(title=title, show_header=False, show_lines=False)
    table.add_column("Key", style="bold cyan", no_wrap=True)
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(key, _cell(value))
    return table


def plan_table(plan: Plan, *, title: str | None = None) -> Table:
    """Render the attribute changes of a plan."""
    table = Table(title=title or f"Plan: {plan.action.value}")
    table.add_column("Attribute", style="bold")
    table.add_column("Before")
    table.add_column("After")
    table.add_column("Replace", justify="center")
    for change in plan.changes:
        table.add_row(
            change.path,
            _cell(change.before),
            _cell(change.after),
            "[red]yes[/]" if change.requires_replace else "",
        )
    return table


def diagnostics_table(diagnostics: Diagnostics) -> Table:
    table = Table(title="Diagnostics", show_lines=True)
    table.add_column("Severity", no_wrap=True)
    table.add_column("Path", no_wrap=True)
    table.add_column("Summary")
    table.add_column("Detail")
    for d in diagnostics:
        style = "red" if d.severity is Severity.ERROR else "yellow"
        table.add_row(f"[{style}]{d.severity.value}[/]", _cell(d.path), d.summary, d.detail)
    return table
