"""Pydantic models for CLI configuration."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from pocketbase_provider.config.constants import DEFAULT_TIMEOUT


class AuthMethod(str, Enum):
    TOKEN = "token"
    ADMIN_PASSWORD = "admin password"
    NONE = "none"


def mask_secret(value: str | None) -> str | None:
    """Keep just enough of a secret to tell two apart."""
    if value is None:
        return None
    return value[:4] + "..." if len(value) > 12 else "***"


class ServerProfile(BaseModel):
    """A named PocketBase server connection.

    Admin access is either a pre-issued ``token`` or an ``identity`` and
    ``password`` pair exchanged for a token on first use, never both.
    """

    name: str
    url: str = Field(description="Server base URL, e.g. https://pb.example.com")
    token: str | None = Field(default=None, description="Pre-issued admin token")
    identity: str | None = Field(default=None, description="Admin email")
    password: str | None = Field(default=None, description="Admin password")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    timeout: float = Field(
        default=DEFAULT_TIMEOUT, gt=0, le=600, description="Request timeout in seconds",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    @model_validator(mode="after")
    def check_credentials(self) -> ServerProfile:
        if self.token and (self.identity or self.password):
            raise ValueError("Use either a token or an identity/password pair, not both")
        if (self.identity is None) != (self.password is None):
            raise ValueError("An admin identity and password must be given together")
        return self

    @property
    def auth_method(self) -> AuthMethod:
        if self.token:
            return AuthMethod.TOKEN
        if self.identity:
            return AuthMethod.ADMIN_PASSWORD
        return AuthMethod.NONE

    @property
    def auth_configured(self) -> bool:
        return self.auth_method is not AuthMethod.NONE

    def masked(self) -> dict[str, Any]:
        """Profile fields safe to print: secrets are shortened or starred."""
        data = self.model_dump(exclude_none=True)
        for secret in ("token", "password"):
            if secret in data:
                data[secret] = mask_secret(data[secret])
        data["auth"] = self.auth_method.value
        return data


class CLIConfig(BaseModel):
    """Root configuration model, as stored in ``config.toml``.

    Profiles are stored as ``[profiles.<name>]`` tables, so the name is
    taken from the table key when loading.
    """

    default_profile: str | None = None
    default_format: str = "table"
    profiles: dict[str, ServerProfile] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def name_profiles_from_keys(cls, v: Any) -> Any:
        if isinstance(v, dict) and isinstance(v.get("profiles"), dict):
            v = {
                **v,
                "profiles": {
                    name: {**body, "name": name} if isinstance(body, dict) else body
                    for name, body in v["profiles"].items()
                },
            }
        return v

    @model_validator(mode="after")
    def check_default(self) -> CLIConfig:
        if self.default_profile is not None and self.default_profile not in self.profiles:
            self.default_profile = next(iter(self.profiles), None)
        return self

    def to_toml(self) -> dict[str, Any]:
        """Serializable form with defaults and empty values left out."""
        data = self.model_dump(exclude={"profiles"}, exclude_defaults=True)
        if self.profiles:
            data["profiles"] = {
                name: profile.model_dump(exclude={"name"}, exclude_defaults=True)
                for name, profile in self.profiles.items()
            }
        return data
