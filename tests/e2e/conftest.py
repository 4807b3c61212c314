"""E2E test configuration — custom CLI options for a live PocketBase server."""

from __future__ import annotations

import pytest


def pytest_addoption(parser):
    parser.addoption("--server-url", action="store", default=None)
    parser.addoption("--server-token", action="store", default=None)


@pytest.fixture
def server_opts(request):
    url = request.config.getoption("--server-url")
    token = request.config.getoption("--server-token")
    if not url or not token:
        pytest.skip("Live server credentials not provided")
    return ["--url", url, "--token", token]
