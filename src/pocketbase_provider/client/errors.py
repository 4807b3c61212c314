"""Typed exceptions and error handling decorator."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from rich.console import Console

if TYPE_CHECKING:
    from pocketbase_provider.core.diagnostics import Diagnostics

F = TypeVar("F", bound=Callable[..., Any])

err_console = Console(stderr=True)


class ProviderError(Exception):
    """Base exception for pocketbase-provider."""

    exit_code: int = 1


class RemoteOperationError(ProviderError):
    """Transport, auth or server error reported by the PocketBase API."""

    def __init__(self, status_code: int | None = None, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        if status_code is None:
            super().__init__(detail)
        else:
            super().__init__(f"Server returned {status_code}: {detail}")


class ServerConnectionError(RemoteOperationError):
    """Cannot connect to the server."""

    exit_code = 2

    def __init__(self, detail: str) -> None:
        super().__init__(None, detail)


class AuthenticationError(RemoteOperationError):
    """Authentication failed (401/403)."""

    exit_code = 3

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(None, detail)
        self.status_code = status_code


class BadRequestError(RemoteOperationError):
    """Request rejected by server-side validation (400)."""

    exit_code = 5

    def __init__(self, detail: str, data: dict[str, Any] | None = None) -> None:
        super().__init__(400, detail)
        self.data = data or {}

    def __str__(self) -> str:
        msg = super().__str__()
        if not self.data:
            return msg
        parts = []
        for key, err in self.data.items():
            if isinstance(err, dict):
                parts.append(f"{key}: {err.get('message', err)}")
            else:
                parts.append(f"{key}: {err}")
        return f"{msg} ({'; '.join(parts)})"


class NotFoundError(ProviderError):
    """Resource not found (404)."""

    exit_code = 4


class ConfigurationError(ProviderError):
    """No usable server configuration."""

    exit_code = 6


class ValidationError(ProviderError):
    """Desired configuration does not satisfy the resource schema."""

    exit_code = 7

    def __init__(self, message: str = "", diagnostics: Diagnostics | None = None) -> None:
        self.diagnostics = diagnostics
        super().__init__(message or "Validation error")


class ReplacementRequiredError(ProviderError):
    """The change touches an attribute that cannot be updated in place."""

    exit_code = 8

    def __init__(self, attributes: list[str]) -> None:
        self.attributes = attributes
        super().__init__(
            "Cannot update in place, must destroy and recreate: "
            + ", ".join(attributes)
        )


def error_handler(func: F) -> F:
    """Decorator that catches ProviderError and prints user-friendly messages."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ProviderError as exc:
            err_console.print(f"[bold red]Error:[/] {exc}")
            raise SystemExit(exc.exit_code)
        except ValueError as exc:
            err_console.print(f"[bold red]Error:[/] {exc}")
            raise SystemExit(1)

    return wrapper  # type: ignore[return-value]
