"""PocketBase HTTP client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pocketbase_provider.client.auth import resolve_auth
from pocketbase_provider.client.errors import (
    AuthenticationError,
    BadRequestError,
    NotFoundError,
    RemoteOperationError,
    ServerConnectionError,
)
from pocketbase_provider.config.constants import (
    DEFAULT_API_BASE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PAGE_SIZE,
)
from pocketbase_provider.config.models import ServerProfile
from pocketbase_provider.models.common import ErrorResponse, PaginatedResponse

logger = logging.getLogger(__name__)


class PocketbaseClient:
    """Synchronous HTTP client for the PocketBase REST API."""

    def __init__(self, profile: ServerProfile) -> None:
        self.profile = profile
        self.base_url = f"{profile.url}{DEFAULT_API_BASE}"
        if not profile.verify_ssl:
            logger.warning("TLS certificate verification is disabled")
        transport = httpx.HTTPTransport(retries=DEFAULT_MAX_RETRIES, verify=profile.verify_ssl)
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=resolve_auth(profile),
            timeout=profile.timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> PocketbaseClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        if response.is_success:
            return response
        status = response.status_code
        data: dict[str, Any] = {}
        try:
            body = ErrorResponse.model_validate(response.json())
            detail, data = body.message, body.data
        except ValueError:
            # not JSON, or not the standard error shape
            detail = response.text
        if status == 400:
            raise BadRequestError(detail, data)
        if status in (401, 403):
            msg = "Authentication failed. Check your admin token or credentials."
            raise AuthenticationError(msg, status_code=status)
        if status == 404:
            raise NotFoundError(f"Not found: {detail}")
        raise RemoteOperationError(status, detail)

    def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.ConnectError as exc:
            raise ServerConnectionError(
                f"Cannot connect to server at {self.profile.url}: {exc}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise ServerConnectionError(
                f"Request to {self.profile.url} timed out: {exc}"
            ) from exc
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise ServerConnectionError(
                f"Invalid URL for server at {self.profile.url}: {exc}"
            ) from exc
        return self._handle_response(response)

    def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", path, **kwargs)

    def get_json(self, path: str, **kwargs: Any) -> Any:
        return self.get(path, **kwargs).json()

    def get_all_items(
        self,
        path: str,
        *,
        per_page: int = DEFAULT_PAGE_SIZE,
        **kwargs: Any,
    ) -> list[Any]:
        """Walk every page of a list endpoint, returning all items."""
        all_items: list[Any] = []
        page = 1
        caller_params = kwargs.pop("params", {})
        while True:
            params = {**caller_params, "page": page, "perPage": per_page}
            data = self.get_json(path, params=params, **kwargs)
            if isinstance(data, list):
                all_items.extend(data)
                break
            result = PaginatedResponse.model_validate(data)
            all_items.extend(result.items)
            if result.totalPages is None or page >= result.totalPages or not result.items:
                break
            page += 1
        return all_items
