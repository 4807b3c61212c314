"""Integration tests for collection commands — validate, plan, apply, destroy, import."""

from __future__ import annotations

import copy
import functools
import json
from pathlib import Path
from typing import Any

import httpx
import pytest
import respx
import yaml
from typer.testing import CliRunner

from pocketbase_provider.app import app
from pocketbase_provider.commands._common import save_state
from pocketbase_provider.config.manager import ConfigManager
from pocketbase_provider.core.state import state_from_remote
from pocketbase_provider.models.collection import RemoteResource

runner = CliRunner()

BASE = "https://pb.local:8090/api"
COMMON_OPTS = ["--url", "https://pb.local:8090", "--token", "tok"]


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    for var in (
        "POCKETBASE_URL", "POCKETBASE_TOKEN", "POCKETBASE_IDENTITY",
        "POCKETBASE_PASSWORD", "POCKETBASE_PROFILE",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(
        "pocketbase_provider.commands._common.ConfigManager",
        functools.partial(ConfigManager, config_path=tmp_path / "config.toml"),
    )


@pytest.fixture
def created(remote_posts: dict[str, Any]) -> dict[str, Any]:
    """What the server answers after creating ``posts_config``."""
    data = copy.deepcopy(remote_posts)
    data["schema"] = data["schema"][:1]
    data.update(createRule="", updateRule="", deleteRule="", indexes=[])
    return data


@pytest.fixture
def config_file(tmp_path: Path, posts_config: dict[str, Any]) -> Path:
    path = tmp_path / "posts.yaml"
    path.write_text(yaml.safe_dump(posts_config))
    return path


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    return tmp_path / "posts.state.json"


@pytest.fixture
def tracked(state_file: Path, created: dict[str, Any]) -> Path:
    save_state(state_file, state_from_remote(RemoteResource.model_validate(created)))
    return state_file


def _write_config(path: Path, config: dict[str, Any]) -> None:
    path.write_text(yaml.safe_dump(config))


class TestValidate:
    def test_valid(self, config_file: Path):
        result = runner.invoke(app, ["collection", "validate", str(config_file)])
        assert result.exit_code == 0
        assert "Collection 'posts' is valid" in result.output

    def test_invalid(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("type: table\nschema:\n  - type: text\n")
        result = runner.invoke(app, ["collection", "validate", str(path)])
        assert result.exit_code == 7

    def test_warnings_shown(self, config_file: Path, posts_config, monkeypatch: pytest.MonkeyPatch):
        posts_config["id"] = "abc123"
        _write_config(config_file, posts_config)
        shown: list[str] = []
        monkeypatch.setattr(
            "pocketbase_provider.commands.collection.render_diagnostics",
            lambda diagnostics: shown.extend(d.path for d in diagnostics),
        )
        result = runner.invoke(app, ["collection", "validate", str(config_file)])
        assert result.exit_code == 0, result.output
        assert shown == ["id"]

    def test_missing_file(self, tmp_path: Path):
        result = runner.invoke(app, ["collection", "validate", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1


class TestApply:
    @respx.mock
    def test_create(self, config_file: Path, state_file: Path, created):
        route = respx.post(f"{BASE}/collections").mock(
            return_value=httpx.Response(200, json=created)
        )
        result = runner.invoke(app, [
            "collection", "apply", str(config_file), "--state", str(state_file), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert "Apply complete (create)" in result.output
        sent = json.loads(route.calls.last.request.content)
        assert sent["name"] == "posts"
        assert "id" not in sent
        assert sent["schema"][0]["name"] == "title"
        state = json.loads(state_file.read_text())
        assert state["id"] == "abc123"
        assert state["schema"][0]["id"] == "fld1"

    @respx.mock
    def test_in_sync_makes_no_changes(self, config_file: Path, tracked: Path, created):
        respx.get(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json=created)
        )
        result = runner.invoke(app, [
            "collection", "apply", str(config_file), "--state", str(tracked), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert "Apply complete (noop)" in result.output
        assert [c.request.method for c in respx.calls] == ["GET"]

    @respx.mock
    def test_update_sends_changed_only(self, config_file: Path, tracked: Path, created, posts_config):
        posts_config["name"] = "articles"
        _write_config(config_file, posts_config)
        respx.get(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json=created)
        )
        patch_route = respx.patch(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json={**created, "name": "articles"})
        )
        result = runner.invoke(app, [
            "collection", "apply", str(config_file), "--state", str(tracked), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert json.loads(patch_route.calls.last.request.content) == {"name": "articles"}
        assert json.loads(tracked.read_text())["name"] == "articles"

    @respx.mock
    def test_replacement_refused(self, config_file: Path, tracked: Path, created, posts_config):
        posts_config["type"] = "auth"
        _write_config(config_file, posts_config)
        before = tracked.read_text()
        respx.get(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json=created)
        )
        result = runner.invoke(app, [
            "collection", "apply", str(config_file), "--state", str(tracked), *COMMON_OPTS,
        ])
        assert result.exit_code == 8
        assert [c.request.method for c in respx.calls] == ["GET"]
        assert tracked.read_text() == before

    @respx.mock
    def test_replacement_allowed(self, config_file: Path, tracked: Path, created, posts_config):
        posts_config["type"] = "auth"
        _write_config(config_file, posts_config)
        respx.get(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json=created)
        )
        delete_route = respx.delete(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(204)
        )
        respx.post(f"{BASE}/collections").mock(
            return_value=httpx.Response(200, json={**created, "id": "xyz789", "type": "auth"})
        )
        result = runner.invoke(app, [
            "collection", "apply", str(config_file), "--state", str(tracked),
            "--allow-replace", *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert delete_route.called
        state = json.loads(tracked.read_text())
        assert state["id"] == "xyz789"
        assert state["type"] == "auth"

    @respx.mock
    def test_server_rejects_create(self, config_file: Path, state_file: Path):
        respx.post(f"{BASE}/collections").mock(
            return_value=httpx.Response(400, json={
                "code": 400,
                "message": "Failed to create collection.",
                "data": {"name": {"code": "validation_collection_name_exists", "message": "Name exists."}},
            })
        )
        result = runner.invoke(app, [
            "collection", "apply", str(config_file), "--state", str(state_file), *COMMON_OPTS,
        ])
        assert result.exit_code == 1
        assert not state_file.exists()

    def test_no_server_configured(self, config_file: Path, state_file: Path):
        result = runner.invoke(app, [
            "collection", "apply", str(config_file), "--state", str(state_file),
        ])
        assert result.exit_code == 6


class TestPlan:
    def test_plan_create(self, config_file: Path, state_file: Path):
        result = runner.invoke(app, [
            "collection", "plan", str(config_file), "--state", str(state_file), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert "Plan: create" in result.output

    @respx.mock
    def test_plan_up_to_date(self, config_file: Path, tracked: Path, created):
        respx.get(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json=created)
        )
        result = runner.invoke(app, [
            "collection", "plan", str(config_file), "--state", str(tracked), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert "No changes" in result.output

    @respx.mock
    def test_plan_shows_drift(self, config_file: Path, tracked: Path, created):
        respx.get(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json={**created, "listRule": "@request.auth.id != ''"})
        )
        result = runner.invoke(app, [
            "collection", "plan", str(config_file), "--state", str(tracked), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert "Plan: update" in result.output
        assert "list_rule" in result.output

    @respx.mock
    def test_plan_replacement_hint(self, config_file: Path, tracked: Path, created, posts_config):
        posts_config["type"] = "view"
        _write_config(config_file, posts_config)
        respx.get(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json=created)
        )
        result = runner.invoke(app, [
            "collection", "plan", str(config_file), "--state", str(tracked), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert "--allow-replace" in result.output

    @respx.mock
    def test_plan_shows_state_diff(self, config_file: Path, tracked: Path, created, posts_config):
        posts_config["name"] = "articles"
        _write_config(config_file, posts_config)
        respx.get(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json=created)
        )
        result = runner.invoke(app, [
            "collection", "plan", str(config_file), "--state", str(tracked), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert "articles (current)" in result.output
        assert "articles (planned)" in result.output
        assert '"name": "articles"' in result.output

    @respx.mock
    def test_warnings_reported_once(
        self, config_file: Path, tracked: Path, created, posts_config, monkeypatch: pytest.MonkeyPatch,
    ):
        posts_config["created"] = "2020-01-01 00:00:00.000Z"
        _write_config(config_file, posts_config)
        respx.get(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(200, json=created)
        )
        shown: list[str] = []

        def record(diagnostics):
            shown.extend(d.summary for d in diagnostics)

        monkeypatch.setattr("pocketbase_provider.commands._common.render_diagnostics", record)
        monkeypatch.setattr("pocketbase_provider.commands.collection.render_diagnostics", record)
        result = runner.invoke(app, [
            "collection", "plan", str(config_file), "--state", str(tracked), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert shown == ["Ignoring server-computed attribute"]


class TestDestroy:
    @respx.mock
    def test_destroy(self, tracked: Path):
        route = respx.delete(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(204)
        )
        result = runner.invoke(app, [
            "collection", "destroy", "--state", str(tracked), "--force", *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert route.called
        assert not tracked.exists()

    @respx.mock
    def test_destroy_already_gone(self, tracked: Path):
        respx.delete(f"{BASE}/collections/abc123").mock(
            return_value=httpx.Response(404, json={"code": 404, "message": "Not found.", "data": {}})
        )
        result = runner.invoke(app, [
            "collection", "destroy", "--state", str(tracked), "--force", *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        assert not tracked.exists()

    def test_nothing_tracked(self, state_file: Path):
        result = runner.invoke(app, [
            "collection", "destroy", "--state", str(state_file), "--force", *COMMON_OPTS,
        ])
        assert result.exit_code == 0
        assert "Nothing tracked" in result.output


class TestImport:
    @respx.mock
    def test_import(self, state_file: Path, remote_posts):
        respx.get(f"{BASE}/collections/posts").mock(
            return_value=httpx.Response(200, json=remote_posts)
        )
        result = runner.invoke(app, [
            "collection", "import", "posts", "--state", str(state_file), *COMMON_OPTS,
        ])
        assert result.exit_code == 0, result.output
        state = json.loads(state_file.read_text())
        assert state["id"] == "abc123"
        assert [f["name"] for f in state["schema"]] == ["title", "views"]

    @respx.mock
    def test_import_missing(self, state_file: Path):
        respx.get(f"{BASE}/collections/nope").mock(
            return_value=httpx.Response(404, json={"code": 404, "message": "Not found.", "data": {}})
        )
        result = runner.invoke(app, [
            "collection", "import", "nope", "--state", str(state_file), *COMMON_OPTS,
        ])
        assert result.exit_code == 1
        assert not state_file.exists()


class TestShowAndList:
    @respx.mock
    def test_show(self, remote_posts):
        respx.get(f"{BASE}/collections/posts").mock(
            return_value=httpx.Response(200, json=remote_posts)
        )
        result = runner.invoke(app, ["collection", "show", "posts", *COMMON_OPTS])
        assert result.exit_code == 0, result.output
        assert "abc123" in result.output
        assert "title (text)" in result.output

    @respx.mock
    def test_show_json(self, remote_posts):
        respx.get(f"{BASE}/collections/posts").mock(
            return_value=httpx.Response(200, json=remote_posts)
        )
        result = runner.invoke(app, ["collection", "show", "posts", "--format", "json", *COMMON_OPTS])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["create_rule"] == "@request.auth.id != ''"

    @respx.mock
    def test_show_missing(self):
        respx.get(f"{BASE}/collections/nope").mock(
            return_value=httpx.Response(404, json={"code": 404, "message": "Not found.", "data": {}})
        )
        result = runner.invoke(app, ["collection", "show", "nope", *COMMON_OPTS])
        assert result.exit_code == 4

    @respx.mock
    def test_list(self, remote_posts):
        respx.get(f"{BASE}/collections").mock(
            return_value=httpx.Response(200, json={"page": 1, "perPage": 200, "totalItems": 1,
                                                   "totalPages": 1, "items": [remote_posts]})
        )
        result = runner.invoke(app, ["collection", "list", *COMMON_OPTS])
        assert result.exit_code == 0, result.output
        assert "posts" in result.output
        assert "abc123" in result.output
