"""Output dispatcher — renders data in table, JSON, or YAML format."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from pocketbase_provider.core.diagnostics import Diagnostics
from pocketbase_provider.output.tables import diagnostics_table, kv_table, make_table

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbosity: int) -> None:
    """Route library logging to stderr through Rich."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def output_json(data: Any) -> None:
    """Print data as formatted JSON."""
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", by_alias=True)
    console.print_json(json.dumps(data, indent=2, default=str))


def output_yaml(data: Any) -> None:
    """Print data as YAML."""
    import yaml

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", by_alias=True)
    console.print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), end="")


def output_table(
    data: Any,
    *,
    columns: Sequence[str] | None = None,
    rows: Sequence[Sequence[Any]] | None = None,
    title: str | None = None,
    kv: bool = False,
) -> None:
    """Print data as a Rich table."""
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", by_alias=True)
    if kv and isinstance(data, dict):
        console.print(kv_table(data, title=title))
    elif columns and rows is not None:
        console.print(make_table(title, columns, rows))
    elif isinstance(data, dict):
        console.print(kv_table(data, title=title))
    else:
        console.print(data)


def output(
    data: Any,
    fmt: str = "table",
    *,
    columns: Sequence[str] | None = None,
    rows: Sequence[Sequence[Any]] | None = None,
    title: str | None = None,
    kv: bool = False,
) -> None:
    """Dispatch output to the appropriate formatter."""
    if fmt == "json":
        output_json(data)
    elif fmt == "yaml":
        output_yaml(data)
    else:
        output_table(data, columns=columns, rows=rows, title=title, kv=kv)


def render_diagnostics(diagnostics: Diagnostics) -> None:
    """Print accumulated diagnostics to stderr, if there are any."""
    if diagnostics:
        err_console.print(diagnostics_table(diagnostics))
