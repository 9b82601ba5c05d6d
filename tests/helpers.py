"""Shared test doubles, constants and cookie factory."""

from __future__ import annotations

from cookie_monitor.engine import collaborators
from cookie_monitor.models.cookies import CookieKey, RawCookie

NOW = 1_800_000_000.0
DAY = 24 * 60 * 60


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: float = NOW) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyCookieStore(collaborators.InMemoryCookieStore):
    """In-memory cookie store whose removals fail for selected keys."""

    def __init__(self, cookies=(), *, failing: set[CookieKey] | None = None, refusing: set[CookieKey] | None = None):
        super().__init__(cookies)
        self.failing = failing or set()
        self.refusing = refusing or set()
        self.remove_calls: list[CookieKey] = []

    async def remove(self, key: CookieKey) -> bool:
        self.remove_calls.append(key)
        if key in self.failing:
            raise ConnectionError("cookie store unavailable")
        if key in self.refusing:
            return False
        return await super().remove(key)


class FailingKeyValueStore(collaborators.InMemoryKeyValueStore):
    """Key-value store whose writes always fail."""

    def __init__(self, initial=None) -> None:
        super().__init__(initial)
        self.set_calls = 0

    async def set(self, items):
        self.set_calls += 1
        raise OSError("disk full")


def make_cookie(
    name: str = "pref",
    domain: str = "example.com",
    *,
    path: str = "/",
    value: str = "v",
    expiration_date: float | None = None,
    secure: bool = False,
    http_only: bool = False,
    session: bool = False,
) -> RawCookie:
    """Build a raw cookie observation with sensible defaults."""
    return RawCookie(
        name=name,
        value=value,
        domain=domain,
        path=path,
        expiration_date=expiration_date,
        secure=secure,
        http_only=http_only,
        session=session,
    )
