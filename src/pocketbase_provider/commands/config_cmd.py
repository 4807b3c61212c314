"""Config commands — server profiles and admin credentials."""

from __future__ import annotations

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.prompt import Confirm

from pocketbase_provider.client.errors import ConfigurationError, error_handler
from pocketbase_provider.client.pocketbase import PocketbaseClient
from pocketbase_provider.commands._common import FormatOpt, TokenOpt, UrlOpt
from pocketbase_provider.config.constants import DEFAULT_TIMEOUT
from pocketbase_provider.config.manager import ConfigManager
from pocketbase_provider.config.models import AuthMethod, ServerProfile
from pocketbase_provider.output.formatter import output

app = typer.Typer(name="config", help="Manage server profiles and admin credentials.")
console = Console()

NameArg = Annotated[str, typer.Argument(help="Profile name")]


def _get_manager() -> ConfigManager:
    return ConfigManager()


def _probe(profile: ServerProfile) -> int:
    """Check the server is up and the credentials can list collections.

    Returns the number of collections visible to the admin.
    """
    with PocketbaseClient(profile) as client:
        client.get_json("/health")
        page = client.get_json("/collections", params={"perPage": 1})
    return int(page.get("totalItems", 0)) if isinstance(page, dict) else len(page)


@app.command()
@error_handler
def add(
    name: NameArg,
    url: Annotated[str, typer.Option("--url", "-u", help="Server URL")],
    token: Annotated[Optional[str], typer.Option("--token", "-t", help="Pre-issued admin token")] = None,
    identity: Annotated[
        Optional[str],
        typer.Option("--identity", "-i", help="Admin email; the password is prompted for if not given"),
    ] = None,
    password: Annotated[Optional[str], typer.Option("--password", help="Admin password")] = None,
    timeout: Annotated[float, typer.Option("--timeout", help="Request timeout in seconds")] = DEFAULT_TIMEOUT,
    no_verify_ssl: Annotated[bool, typer.Option("--no-verify-ssl", help="Disable SSL verification")] = False,
    make_default: Annotated[bool, typer.Option("--default", help="Use this profile by default")] = False,
    replace: Annotated[bool, typer.Option("--replace", help="Overwrite an existing profile")] = False,
    check: Annotated[bool, typer.Option("--check", help="Log in once before saving")] = False,
) -> None:
    """Add a server profile using a token or admin email and password."""
    mgr = _get_manager()
    if name in mgr.config.profiles and not replace:
        raise ConfigurationError(f"Profile '{name}' already exists. Pass --replace to overwrite it.")
    if identity and password is None and not token:
        password = typer.prompt(f"Password for {identity}", hide_input=True)

    profile = ServerProfile(
        name=name,
        url=url,
        token=token,
        identity=identity,
        password=password,
        timeout=timeout,
        verify_ssl=not no_verify_ssl,
    )
    if check:
        total = _probe(profile)
        console.print(f"Login works ({total} collections visible).")
    mgr.store(profile, make_default=make_default)
    how = "no credentials" if profile.auth_method is AuthMethod.NONE else profile.auth_method.value
    console.print(f"[green]Profile '{name}' added ({how}).[/]")


@app.command("list")
@error_handler
def list_profiles(fmt: FormatOpt = "table") -> None:
    """List configured profiles; secrets are masked."""
    mgr = _get_manager()
    if not mgr.config.profiles:
        console.print("[yellow]No profiles configured. Run 'pocketbase-provider config add' to get started.[/]")
        return
    views = [p.masked() for p in mgr.config.profiles.values()]
    rows = [
        [
            v["name"],
            v["url"],
            v["auth"] + (f" ({v['identity']})" if "identity" in v else ""),
            "*" if v["name"] == mgr.config.default_profile else "",
        ]
        for v in views
    ]
    output(
        {"default_profile": mgr.config.default_profile, "profiles": views},
        fmt,
        columns=["Name", "URL", "Auth", "Default"],
        rows=rows,
        title="Server Profiles",
    )


@app.command()
@error_handler
def show(
    name: Annotated[Optional[str], typer.Argument(help="Profile name (default profile if omitted)")] = None,
    fmt: FormatOpt = "table",
) -> None:
    """Show one profile with its token and password masked."""
    mgr = _get_manager()
    profile = mgr.profile(name) if name else mgr.default()
    if profile is None:
        raise ConfigurationError("No default profile. Name one or run 'pocketbase-provider config add'.")
    data = profile.masked()
    data["default"] = profile.name == mgr.config.default_profile
    output(data, fmt, kv=True, title=f"Profile: {profile.name}")


@app.command("set-default")
@error_handler
def set_default(name: NameArg) -> None:
    """Use a profile when no --profile is given."""
    _get_manager().use(name)
    console.print(f"[green]Default profile set to '{name}'.[/]")


@app.command()
@error_handler
def test(
    name: Annotated[Optional[str], typer.Argument(help="Profile name (default profile if omitted)")] = None,
    url: UrlOpt = None,
    token: TokenOpt = None,
) -> None:
    """Check the server answers and the credentials grant admin access."""
    profile = _get_manager().resolve_server(profile_name=name, url=url, token=token)
    if profile.auth_method is AuthMethod.NONE:
        console.print("[yellow]No credentials configured; listing collections will likely fail.[/]")
    elif profile.auth_method is AuthMethod.ADMIN_PASSWORD:
        console.print(f"Logging in to [bold]{profile.url}[/] as {profile.identity}...")
    else:
        console.print(f"Testing connection to [bold]{profile.url}[/] with a token...")
    total = _probe(profile)
    console.print(f"[green]Connected![/] Admin access works ({total} collections visible).")


@app.command()
@error_handler
def remove(
    name: NameArg,
    force: Annotated[bool, typer.Option("--force", help="Skip confirmation")] = False,
) -> None:
    """Delete a profile and its stored credentials."""
    mgr = _get_manager()
    profile = mgr.profile(name)
    if not force and not Confirm.ask(f"Remove profile '{name}' ({profile.url})?"):
        console.print("Cancelled.")
        return
    mgr.forget(name)
    default = mgr.config.default_profile
    suffix = f" Default is now '{default}'." if default else ""
    console.print(f"[green]Profile '{name}' removed.[/]{suffix}")
