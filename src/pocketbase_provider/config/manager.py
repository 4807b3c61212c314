"""Configuration manager — profiles in ``config.toml`` and connection resolution."""

from __future__ import annotations

import os
from pathlib import Path

import tomli_w

from pocketbase_provider.client.errors import ConfigurationError
from pocketbase_provider.config.constants import (
    CONFIG_FILE,
    DEFAULT_TIMEOUT,
    ENV_IDENTITY,
    ENV_PASSWORD,
    ENV_PROFILE,
    ENV_SERVER_URL,
    ENV_TOKEN,
)
from pocketbase_provider.config.models import CLIConfig, ServerProfile

try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib

_CREDENTIALS = ("token", "identity", "password")


class ConfigManager:
    """Stores server profiles and resolves the connection a command uses."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path = config_path or CONFIG_FILE
        self._config: CLIConfig | None = None

    @property
    def config(self) -> CLIConfig:
        if self._config is None:
            self._config = self._load()
        return self._config

    def _load(self) -> CLIConfig:
        if not self.config_path.exists():
            return CLIConfig()
        try:
            return CLIConfig.model_validate(tomllib.loads(self.config_path.read_text()))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid configuration file {self.config_path}: {exc}") from exc

    def save(self) -> None:
        """Write the whole config atomically, readable by the owner only."""
        self.config_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        body = tomli_w.dumps(self.config.to_toml()).encode()
        temp = self.config_path.with_name(f".{self.config_path.name}.tmp")
        fd = os.open(str(temp), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, body)
        finally:
            os.close(fd)
        temp.replace(self.config_path)

    def profile(self, name: str) -> ServerProfile:
        try:
            return self.config.profiles[name]
        except KeyError:
            raise ConfigurationError(f"Profile '{name}' not found.") from None

    def default(self) -> ServerProfile | None:
        name = self.config.default_profile
        return self.config.profiles.get(name) if name else None

    def store(self, profile: ServerProfile, *, make_default: bool = False) -> None:
        """Add or replace *profile*. The first profile stored becomes the default."""
        self.config.profiles[profile.name] = profile
        if make_default or self.default() is None:
            self.config.default_profile = profile.name
        self.save()

    def forget(self, name: str) -> ServerProfile:
        removed = self.profile(name)
        del self.config.profiles[name]
        if self.config.default_profile == name:
            self.config.default_profile = next(iter(self.config.profiles), None)
        self.save()
        return removed

    def use(self, name: str) -> ServerProfile:
        chosen = self.profile(name)
        self.config.default_profile = name
        self.save()
        return chosen

    def resolve_server(
        self,
        profile_name: str | None = None,
        url: str | None = None,
        token: str | None = None,
        identity: str | None = None,
        password: str | None = None,
    ) -> ServerProfile:
        """Resolve the server connection.

        Each setting comes from the first of: command-line flags, the
        ``POCKETBASE_*`` environment, the selected profile. Credentials are
        taken together from the first source that has any, so a ``--token``
        flag never mixes with a profile's admin password.
        """
        name = profile_name or os.environ.get(ENV_PROFILE)
        profile = self.profile(name) if name else self.default()

        sources: list[tuple[str, dict[str, str | None]]] = [
            ("command line", {"url": url, "token": token, "identity": identity, "password": password}),
            ("environment", {
                "url": os.environ.get(ENV_SERVER_URL),
                "token": os.environ.get(ENV_TOKEN),
                "identity": os.environ.get(ENV_IDENTITY),
                "password": os.environ.get(ENV_PASSWORD),
            }),
        ]
        if profile is not None:
            sources.append((f"profile '{profile.name}'", profile.model_dump(include={"url", *_CREDENTIALS})))

        resolved_url = next((values["url"] for _, values in sources if values["url"]), None)
        if not resolved_url:
            raise ConfigurationError(
                "No server URL configured. Use 'pocketbase-provider config add' or set "
                f"{ENV_SERVER_URL} or pass --url."
            )

        origin, credentials = next(
            ((o, values) for o, values in sources if any(values[k] for k in _CREDENTIALS)),
            ("", dict.fromkeys(_CREDENTIALS)),
        )
        if credentials["token"] and (credentials["identity"] or credentials["password"]):
            raise ConfigurationError(
                f"The {origin} sets both a token and admin credentials; keep one."
            )
        if bool(credentials["identity"]) != bool(credentials["password"]):
            raise ConfigurationError(
                f"The {origin} sets only half of the admin identity and password."
            )

        return ServerProfile(
            name=profile.name if profile else "cli",
            url=resolved_url,
            token=credentials["token"] or None,
            identity=credentials["identity"] or None,
            password=credentials["password"] or None,
            verify_ssl=profile.verify_ssl if profile else True,
            timeout=profile.timeout if profile else DEFAULT_TIMEOUT,
        )
