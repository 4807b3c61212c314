"""Authentication strategies for the PocketBase API.

Every strategy ends in a bearer session: an ``Authorization`` header carrying
an admin token.
"""

from __future__ import annotations

import logging
from collections.abc import Generator

import httpx

from pocketbase_provider.client.errors import AuthenticationError
from pocketbase_provider.config.constants import ADMIN_AUTH_PATH, DEFAULT_API_BASE
from pocketbase_provider.config.models import ServerProfile

logger = logging.getLogger(__name__)


class TokenAuth(httpx.Auth):
    """Authenticate using a pre-issued admin token."""

    def __init__(self, token: str) -> None:
        self.token = token

    def auth_flow(
        self, request: httpx.Request,
    ) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request


class AdminPasswordAuth(httpx.Auth):
    """Exchange admin credentials for a token, then reuse it.

    The token is fetched lazily on the first request and fetched again once
    if the server rejects it with a 401.
    """

    requires_response_body = True

    def __init__(self, url: str, identity: str, password: str) -> None:
        self.login_url = f"{url}{DEFAULT_API_BASE}{ADMIN_AUTH_PATH}"
        self.identity = identity
        self.password = password
        self.token: str | None = None

    def _login_request(self) -> httpx.Request:
        return httpx.Request(
            "POST",
            self.login_url,
            json={"identity": self.identity, "password": self.password},
            headers={"Accept": "application/json"},
        )

    def _store_token(self, response: httpx.Response) -> None:
        if not response.is_success:
            raise AuthenticationError(
                f"Admin login as {self.identity} failed. Check the identity and password.",
                status_code=response.status_code,
            )
        try:
            self.token = response.json()["token"]
        except (ValueError, KeyError) as exc:
            raise AuthenticationError(
                "Admin login response did not contain a token."
            ) from exc
        logger.debug("Obtained admin token for %s", self.identity)

    def auth_flow(
        self, request: httpx.Request,
    ) -> Generator[httpx.Request, httpx.Response, None]:
        if self.token is None:
            self._store_token((yield self._login_request()))
        request.headers["Authorization"] = f"Bearer {self.token}"
        response = yield request
        if response.status_code == 401:
            logger.debug("Admin token rejected, logging in again")
            self._store_token((yield self._login_request()))
            request.headers["Authorization"] = f"Bearer {self.token}"
            yield request


def resolve_auth(profile: ServerProfile) -> httpx.Auth | None:
    """Resolve authentication from a server profile."""
    if profile.token:
        return TokenAuth(profile.token)
    if profile.identity and profile.password:
        return AdminPasswordAuth(profile.url, profile.identity, profile.password)
    return None
