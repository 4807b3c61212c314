"""Shared helpers for CLI commands — client factory, options, file handling."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml

from pocketbase_provider.client.collections import CollectionsFacade
from pocketbase_provider.client.errors import ProviderError, ValidationError
from pocketbase_provider.client.pocketbase import PocketbaseClient
from pocketbase_provider.config.manager import ConfigManager
from pocketbase_provider.core.schema import validate_collection
from pocketbase_provider.models.collection import PersistedState
from pocketbase_provider.output.formatter import render_diagnostics

# Shared Typer option type aliases
ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Server profile"),
]
UrlOpt = Annotated[
    str | None,
    typer.Option("--url", help="Server URL override"),
]
TokenOpt = Annotated[
    str | None,
    typer.Option("--token", help="Admin token override"),
]
FormatOpt = Annotated[
    str,
    typer.Option("--format", "-f", help="Output format (table, json, yaml)"),
]
StateOpt = Annotated[
    Path,
    typer.Option("--state", "-s", help="State file tracking the managed collection"),
]


def make_client(
    profile: str | None,
    url: str | None,
    token: str | None,
) -> PocketbaseClient:
    """Create a PocketbaseClient from CLI options, env vars, or config profile."""
    mgr = ConfigManager()
    server = mgr.resolve_server(profile_name=profile, url=url, token=token)
    return PocketbaseClient(server)


def make_facade(client: PocketbaseClient) -> CollectionsFacade:
    return CollectionsFacade(client)


def load_desired(path: Path) -> dict[str, Any]:
    """Load and validate a desired collection from a YAML or JSON file.

    Errors are printed before raising. Warnings are left to whoever reports
    on the configuration next, so they show up once.
    """
    if not path.exists():
        raise ProviderError(f"Configuration file not found: {path}")
    text = path.read_text()
    try:
        data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ProviderError(f"Cannot parse {path}: {exc}") from exc
    diagnostics = validate_collection(data)
    if diagnostics.has_error():
        render_diagnostics(diagnostics)
        raise ValidationError(
            f"{path} has {len(diagnostics.errors)} configuration error(s)", diagnostics,
        )
    result: dict[str, Any] = data
    return result


def load_state(path: Path) -> PersistedState | None:
    """Read the recorded state, or None when nothing is tracked yet."""
    if not path.exists():
        return None
    try:
        return PersistedState.model_validate_json(path.read_text())
    except ValueError as exc:
        raise ProviderError(f"Corrupt state file {path}: {exc}") from exc


def save_state(path: Path, state: PersistedState | None) -> None:
    """Write *state* atomically, or remove the file when nothing is tracked."""
    if state is None:
        path.unlink(missing_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    temp = path.with_suffix(path.suffix + ".tmp")
    fd = os.open(str(temp), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        os.write(fd, state.model_dump_json(by_alias=True, indent=2).encode())
    finally:
        os.close(fd)
    temp.replace(path)
