"""Collection commands — validate, plan, apply, destroy and import.

The desired collection is read from a YAML or JSON file, for example::

    name: posts
    type: base
    list_rule: ""
    schema:
      - name: title
        type: text
        required: true

The applied state is recorded in a JSON state file given with ``--state``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.prompt import Confirm

from pocketbase_provider.client.errors import ReplacementRequiredError, error_handler
from pocketbase_provider.commands._common import (
    FormatOpt,
    ProfileOpt,
    StateOpt,
    TokenOpt,
    UrlOpt,
    load_desired,
    load_state,
    make_client,
    make_facade,
    save_state,
)
from pocketbase_provider.core.diff import PlanAction
from pocketbase_provider.core.reconciler import ReconcileResult, Reconciler
from pocketbase_provider.core.schema import validate_collection
from pocketbase_provider.core.state import DesiredConfig, project_attributes, state_from_remote
from pocketbase_provider.output.formatter import output, render_diagnostics
from pocketbase_provider.output.tables import plan_table
from pocketbase_provider.utils.diff import diff_states

app = typer.Typer(name="collection", help="Reconcile PocketBase collections.")
console = Console()

ConfigArg = Annotated[
    Path,
    typer.Argument(help="Desired collection (YAML or JSON)"),
]


def _check(result: ReconcileResult) -> None:
    render_diagnostics(result.diagnostics)
    if result.diagnostics.has_error():
        raise typer.Exit(1)


@app.command()
@error_handler
def validate(config: ConfigArg) -> None:
    """Validate a desired collection without contacting the server."""
    data = load_desired(config)
    render_diagnostics(validate_collection(data))
    console.print(f"[green]Collection '{data.get('name')}' is valid.[/]")


@app.command()
@error_handler
def plan(
    config: ConfigArg,
    state: StateOpt = Path("collection.state.json"),
    profile: ProfileOpt = None,
    url: UrlOpt = None,
    token: TokenOpt = None,
) -> None:
    """Show what apply would change."""
    desired = load_desired(config)
    prior = load_state(state)
    with make_client(profile, url, token) as client:
        result = Reconciler(make_facade(client)).plan(prior, desired)
    _check(result)
    assert result.plan is not None
    if result.plan.action is PlanAction.NOOP:
        console.print("[green]No changes. The collection is up to date.[/]")
        return
    console.print(plan_table(result.plan))
    before = result.state.to_attributes() if result.state else None
    after = project_attributes(result.state, DesiredConfig.from_raw(desired))
    diff_states(str(desired.get("name")), before, after, console)
    if result.requires_replacement:
        console.print(
            "[yellow]The collection must be destroyed and recreated "
            "(apply with --allow-replace).[/]"
        )


@app.command()
@error_handler
def apply(
    config: ConfigArg,
    state: StateOpt = Path("collection.state.json"),
    allow_replace: Annotated[
        bool,
        typer.Option("--allow-replace", help="Destroy and recreate when an immutable attribute changes"),
    ] = False,
    profile: ProfileOpt = None,
    url: UrlOpt = None,
    token: TokenOpt = None,
) -> None:
    """Create or update the collection to match the configuration."""
    desired = load_desired(config)
    prior = load_state(state)
    with make_client(profile, url, token) as client:
        reconciler = Reconciler(make_facade(client))
        result = reconciler.reconcile(prior, desired)
        if result.requires_replacement:
            if not allow_replace:
                render_diagnostics(result.diagnostics)
                assert result.plan is not None
                raise ReplacementRequiredError(result.plan.replace_paths)
            assert result.state is not None
            deleted = reconciler.delete(result.state)
            _check(deleted)
            save_state(state, None)
            result = reconciler.create(desired)
    _check(result)
    save_state(state, result.state)
    before = prior.to_attributes() if prior else None
    after = result.state.to_attributes() if result.state else None
    diff_states(str(desired.get("name")), before, after, console, labels=("previous", "applied"))
    action = result.plan.action.value if result.plan else "noop"
    console.print(f"[green]Apply complete ({action}). State written to {state}.[/]")


@app.command()
@error_handler
def destroy(
    state: StateOpt = Path("collection.state.json"),
    force: Annotated[bool, typer.Option("--force", help="Skip confirmation")] = False,
    profile: ProfileOpt = None,
    url: UrlOpt = None,
    token: TokenOpt = None,
) -> None:
    """Delete the tracked collection."""
    prior = load_state(state)
    if prior is None:
        console.print(f"[yellow]Nothing tracked in {state}.[/]")
        return
    if not force and not Confirm.ask(f"Delete collection '{prior.name}' ({prior.id})?"):
        console.print("Cancelled.")
        return
    with make_client(profile, url, token) as client:
        result = Reconciler(make_facade(client)).delete(prior)
    _check(result)
    save_state(state, None)
    console.print(f"[green]Collection '{prior.name}' deleted.[/]")


@app.command("import")
@error_handler
def import_collection(
    collection_id: Annotated[str, typer.Argument(help="Collection id or name")],
    state: StateOpt = Path("collection.state.json"),
    profile: ProfileOpt = None,
    url: UrlOpt = None,
    token: TokenOpt = None,
) -> None:
    """Start tracking an existing collection."""
    with make_client(profile, url, token) as client:
        result = Reconciler(make_facade(client)).import_state(collection_id)
    _check(result)
    save_state(state, result.state)
    assert result.state is not None
    console.print(
        f"[green]Imported collection '{result.state.name}' ({result.state.id}) into {state}.[/]"
    )


@app.command()
@error_handler
def show(
    collection_id: Annotated[str, typer.Argument(help="Collection id or name")],
    profile: ProfileOpt = None,
    url: UrlOpt = None,
    token: TokenOpt = None,
    fmt: FormatOpt = "table",
) -> None:
    """Show a collection as it exists on the server."""
    with make_client(profile, url, token) as client:
        remote = make_facade(client).read(collection_id)
    current = state_from_remote(remote)
    if fmt == "table":
        data = current.to_attributes()
        data["schema"] = ", ".join(f"{f['name']} ({f['type']})" for f in data["schema"]) or "(none)"
        data["indexes"] = "\n".join(data["indexes"]) or "(none)"
        output(data, fmt, kv=True, title=f"Collection: {current.name}")
    else:
        output(current, fmt)


@app.command("list")
@error_handler
def list_collections(
    profile: ProfileOpt = None,
    url: UrlOpt = None,
    token: TokenOpt = None,
    fmt: FormatOpt = "table",
) -> None:
    """List collections on the server."""
    with make_client(profile, url, token) as client:
        items = make_facade(client).list()
    rows = [[c.name, c.id, c.type, len(c.fields), "yes" if c.system else ""] for c in items]
    output(
        [state_from_remote(c).to_attributes() for c in items],
        fmt,
        columns=["Name", "ID", "Type", "Fields", "System"],
        rows=rows,
        title="Collections",
    )
