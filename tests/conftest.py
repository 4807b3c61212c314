"""Shared test fixtures."""

from __future__ import annotations

import copy
import itertools
from pathlib import Path
from typing import Any

import pytest

from pocketbase_provider.client.errors import NotFoundError, ProviderError
from pocketbase_provider.config.manager import ConfigManager
from pocketbase_provider.config.models import ServerProfile
from pocketbase_provider.core.state import state_from_remote
from pocketbase_provider.models.collection import RemoteResource

FIELD_OPTION_DEFAULTS: dict[str, dict[str, Any]] = {
    "text": {"min": None, "max": None, "pattern": ""},
    "number": {"min": None, "max": None, "noDecimal": False},
    "bool": {},
}


class FakeCollections:
    """In-memory stand-in for the collections API.

    Behaves like PocketBase: assigns ids and timestamps, fills field option
    defaults, and reports missing collections with ``NotFoundError``.
    """

    resource_type = "collection"

    def __init__(self) -> None:
        self.store: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.failures: dict[str, ProviderError] = {}
        self._ids = (f"abc{n}" for n in itertools.count(123))
        self._field_ids = (f"fld{n}" for n in itertools.count(1))
        self._clock = (f"2024-01-01 00:00:{n:02d}.000Z" for n in itertools.count())

    @property
    def mutating_calls(self) -> list[tuple[str, Any]]:
        return [c for c in self.calls if c[0] in ("create", "update", "delete")]

    def _fail(self, op: str) -> None:
        if op in self.failures:
            raise self.failures[op]

    def _fill_fields(self, fields: list[dict[str, Any]]) -> list[dict[str, Any]]:
        filled = []
        for f in fields:
            f = copy.deepcopy(f)
            f.setdefault("id", next(self._field_ids))
            f.setdefault("system", False)
            f.setdefault("required", False)
            f.setdefault("unique", False)
            options = dict(FIELD_OPTION_DEFAULTS.get(f.get("type", ""), {}))
            options.update(f.get("options") or {})
            f["options"] = options
            filled.append(f)
        return filled

    def seed(self, data: dict[str, Any]) -> RemoteResource:
        """Put a collection on the "server" without recording a call."""
        self.store[data["id"]] = copy.deepcopy(data)
        return RemoteResource.model_validate(data)

    def create(self, resource_type: str, attributes: dict[str, Any]) -> RemoteResource:
        self.calls.append(("create", copy.deepcopy(attributes)))
        self._fail("create")
        now = next(self._clock)
        data = {
            "id": next(self._ids),
            "system": False,
            "listRule": None,
            "viewRule": None,
            "createRule": None,
            "updateRule": None,
            "deleteRule": None,
            "options": {},
            "indexes": [],
            **copy.deepcopy(attributes),
            "created": now,
            "updated": now,
        }
        data["schema"] = self._fill_fields(data.get("schema", []))
        self.store[data["id"]] = data
        return RemoteResource.model_validate(data)

    def read(self, resource_id: str) -> RemoteResource:
        self.calls.append(("read", resource_id))
        self._fail("read")
        for data in self.store.values():
            if resource_id in (data["id"], data["name"]):
                return RemoteResource.model_validate(copy.deepcopy(data))
        raise NotFoundError(f"Not found: {resource_id}")

    def update(self, resource_id: str, changed: dict[str, Any]) -> RemoteResource:
        self.calls.append(("update", (resource_id, copy.deepcopy(changed))))
        self._fail("update")
        if resource_id not in self.store:
            raise NotFoundError(f"Not found: {resource_id}")
        data = self.store[resource_id]
        data.update(copy.deepcopy(changed))
        if "schema" in changed:
            data["schema"] = self._fill_fields(changed["schema"])
        data["updated"] = next(self._clock)
        return RemoteResource.model_validate(copy.deepcopy(data))

    def delete(self, resource_id: str) -> None:
        self.calls.append(("delete", resource_id))
        self._fail("delete")
        self.store.pop(resource_id, None)


@pytest.fixture
def facade() -> FakeCollections:
    return FakeCollections()


@pytest.fixture
def posts_config() -> dict[str, Any]:
    """Desired configuration for a simple "posts" collection."""
    return {
        "name": "posts",
        "type": "base",
        "schema": [
            {
                "name": "title",
                "type": "text",
                "required": True,
                "unique": False,
                "system": False,
                "options": [],
            },
        ],
        "list_rule": "",
        "view_rule": "",
        "create_rule": "",
        "update_rule": "",
        "delete_rule": "",
    }


@pytest.fixture
def remote_posts() -> dict[str, Any]:
    """A "posts" collection as PocketBase returns it."""
    return {
        "id": "abc123",
        "name": "posts",
        "type": "base",
        "system": False,
        "schema": [
            {
                "id": "fld1",
                "name": "title",
                "type": "text",
                "system": False,
                "required": True,
                "unique": False,
                "presentable": False,
                "options": {"min": None, "max": None, "pattern": ""},
            },
            {
                "id": "fld2",
                "name": "views",
                "type": "number",
                "system": False,
                "required": False,
                "unique": False,
                "presentable": False,
                "options": {"min": 0, "max": None, "noDecimal": True},
            },
        ],
        "listRule": "",
        "viewRule": "",
        "createRule": "@request.auth.id != ''",
        "updateRule": None,
        "deleteRule": None,
        "options": {},
        "indexes": ["CREATE INDEX idx_title ON posts (title)"],
        "created": "2024-01-01 00:00:00.000Z",
        "updated": "2024-01-02 00:00:00.000Z",
    }


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Return a temporary config file path."""
    return tmp_path / "config.toml"


@pytest.fixture
def config_manager(tmp_config: Path) -> ConfigManager:
    """Return a ConfigManager pointed at a temp config file."""
    return ConfigManager(config_path=tmp_config)


@pytest.fixture
def sample_profile() -> ServerProfile:
    """Return a sample server profile for testing."""
    return ServerProfile(
        name="test-pb",
        url="https://pb.local:8090",
        token="testtoken",
    )


@pytest.fixture
def posts_state(facade: FakeCollections, remote_posts: dict[str, Any]):
    """Seed ``remote_posts`` on the fake server and return its state."""
    return state_from_remote(facade.seed(remote_posts))


@pytest.fixture
def posts_desired(posts_state) -> dict[str, Any]:
    """Raw configuration asking for exactly what ``posts_state`` records."""
    data = posts_state.to_attributes()
    for name in ("id", "system", "created", "updated"):
        data.pop(name)
    return data
