"""Collection CRUD against ``/api/collections``."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from pocketbase_provider.client.errors import NotFoundError, ProviderError
from pocketbase_provider.client.pocketbase import PocketbaseClient
from pocketbase_provider.models.collection import RemoteResource

logger = logging.getLogger(__name__)


class CollectionsFacade:
    """Remote facade for the collection resource.

    Errors are raised, not returned: ``NotFoundError`` for a missing
    collection and ``RemoteOperationError`` subclasses for everything else.
    Transport retries are configured on the underlying client.
    """

    resource_type = "collection"

    def __init__(self, client: PocketbaseClient) -> None:
        self.client = client

    @staticmethod
    def _path(resource_id: str) -> str:
        return f"/collections/{quote(resource_id, safe='')}"

    def create(self, resource_type: str, attributes: dict[str, Any]) -> RemoteResource:
        if resource_type != self.resource_type:
            raise ProviderError(f"Unsupported resource type: {resource_type}")
        logger.debug("Creating collection %s", attributes.get("name"))
        data = self.client.post("/collections", json=attributes).json()
        return RemoteResource.model_validate(data)

    def read(self, resource_id: str) -> RemoteResource:
        return RemoteResource.model_validate(self.client.get_json(self._path(resource_id)))

    def update(self, resource_id: str, changed: dict[str, Any]) -> RemoteResource:
        logger.debug("Updating collection %s: %s", resource_id, sorted(changed))
        data = self.client.patch(self._path(resource_id), json=changed).json()
        return RemoteResource.model_validate(data)

    def delete(self, resource_id: str) -> None:
        try:
            self.client.delete(self._path(resource_id))
        except NotFoundError:
            logger.debug("Collection %s already deleted", resource_id)

    def list(self, filter_expr: str | None = None) -> list[RemoteResource]:
        params = {"filter": filter_expr} if filter_expr else {}
        items = self.client.get_all_items("/collections", params=params)
        return [RemoteResource.model_validate(item) for item in items]
