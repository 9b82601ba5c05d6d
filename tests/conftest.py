"""Shared fixtures for the test suite."""

from __future__ import annotations

import pytest
from helpers import DAY, NOW, FakeClock, make_cookie

from cookie_monitor.config import MonitorSettings
from cookie_monitor.engine import collaborators
from cookie_monitor.models.cookies import RawCookie

# ── Cookie Factories ────────────────────────────────────────────


@pytest.fixture()
def ga_cookie() -> RawCookie:
    """A Google Analytics cookie expiring in 400 days."""
    return make_cookie("_ga", "example.com", expiration_date=NOW + 400 * DAY)


@pytest.fixture()
def session_cookie() -> RawCookie:
    """A hardened first-party session cookie."""
    return make_cookie("session_id", "example.com", session=True, secure=True, http_only=True)


@pytest.fixture()
def functional_cookie() -> RawCookie:
    """A plain preference cookie with a short expiry."""
    return make_cookie("theme", "example.com", value="dark", expiration_date=NOW + 7 * DAY)


# ── Collaborators ───────────────────────────────────────────────


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cookie_store() -> collaborators.InMemoryCookieStore:
    return collaborators.InMemoryCookieStore()


@pytest.fixture()
def kv_store() -> collaborators.InMemoryKeyValueStore:
    return collaborators.InMemoryKeyValueStore()


@pytest.fixture()
def navigation() -> collaborators.InMemoryNavigationNotifier:
    return collaborators.InMemoryNavigationNotifier()


@pytest.fixture()
def settings(tmp_path) -> MonitorSettings:
    """Settings isolated from the environment and the working directory."""
    return MonitorSettings(state_file=tmp_path / "state.json")
