"""Shared fixtures: keep tests offline and fast."""

import pytest

from constants import Constants
from registry.nuget import cli as nuget_cli
from registry.nuget.client import reset_service_index


@pytest.fixture(autouse=True)
def offline_constants(monkeypatch):
    """Use the default endpoints (no service-index lookup) and no retry delays."""
    monkeypatch.setattr(Constants, "DISCOVER_ENDPOINTS", False)
    monkeypatch.setattr(Constants, "HTTP_RETRY_BASE_DELAY_SEC", 0)
    monkeypatch.setattr(Constants, "CLI_POLL_INTERVAL_SEC", 0.01)
    monkeypatch.setattr(Constants, "CALIBRATE_WITH_CLI", True)
    monkeypatch.setattr(Constants, "VERSION_ORDER", "ordinal")
    monkeypatch.setattr(Constants, "NUGET_EXE_PATH", None)
    monkeypatch.setattr(Constants, "NUGET_CLI_LAUNCHER", None)
    reset_service_index()
    yield
    reset_service_index()


@pytest.fixture
def fresh_locator(monkeypatch):
    """Replace the process-wide nuget.exe locator with an empty one."""
    locator = nuget_cli.NugetExeLocator()
    monkeypatch.setattr(nuget_cli, "_LOCATOR", locator)
    return locator


def url_router(routes):
    """Build a get_json side_effect answering from a {url: document} map.

    A value of None (or a missing URL) answers 404; an int answers that status.
    Every requested URL is appended to the returned list.
    """
    calls = []

    def _get_json(url, **kwargs):
        calls.append(url)
        doc = routes.get(url)
        if doc is None:
            return 404, {}, None
        if isinstance(doc, int):
            return doc, {}, None
        return 200, {}, doc

    return _get_json, calls


@pytest.fixture
def router():
    """Factory fixture for url_router."""
    return url_router
