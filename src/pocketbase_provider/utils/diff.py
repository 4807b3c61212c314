"""State diff utilities — colored unified diff between two recorded states."""

from __future__ import annotations

import difflib
import json
from typing import Any

from rich.console import Console
from rich.syntax import Syntax


def diff_states(
    name: str,
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
    console: Console,
    labels: tuple[str, str] = ("current", "planned"),
) -> bool:
    """Show a colored diff between two states. Returns True if they differ."""
    before_json = json.dumps(before or {}, indent=2, sort_keys=True).splitlines(keepends=True)
    after_json = json.dumps(after or {}, indent=2, sort_keys=True).splitlines(keepends=True)

    diff_lines = list(difflib.unified_diff(
        before_json,
        after_json,
        fromfile=f"{name} ({labels[0]})",
        tofile=f"{name} ({labels[1]})",
        lineterm="",
    ))

    if not diff_lines:
        console.print(f"[green]No differences found for collection '{name}'.[/]")
        return False

    diff_text = "\n".join(line.rstrip() for line in diff_lines)
    console.print(Syntax(diff_text, "diff", theme="monokai", line_numbers=True))
    return True
