"""External collaborators the monitor talks to.

The engine only depends on the three protocols below.  In-memory
implementations are provided for tests and the replay entry point,
plus a JSON-file-backed key-value store for durable preferences.
"""

from __future__ import annotations

import asyncio
import json
import pathlib
from collections.abc import Callable, Iterable
from typing import Any, Protocol

from cookie_monitor.models.cookies import CookieKey, RawCookie
from cookie_monitor.utils import logger, url
from cookie_monitor.utils.errors import ExternalStoreError

log = logger.create_logger("Collaborators")

CookieListener = Callable[[RawCookie, bool], None]
NavigationListener = Callable[[int, str], None]
Unsubscribe = Callable[[], None]


# ============================================================================
# Protocols
# ============================================================================


class CookieStore(Protocol):
    """The browser's cookie store."""

    async def list(self, domain: str | None = None) -> list[RawCookie]:
        """Return cookies whose domain matches *domain* (all when ``None``)."""
        ...

    async def remove(self, key: CookieKey) -> bool:
        """Remove one cookie; returns False or raises on failure."""
        ...

    def subscribe(self, listener: CookieListener) -> Unsubscribe:
        """Deliver ``(cookie, removed)`` for every change."""
        ...


class NavigationNotifier(Protocol):
    """Source of page-load-complete notifications."""

    def subscribe(self, listener: NavigationListener) -> Unsubscribe:
        """Deliver ``(tab_id, hostname)`` when a page finishes loading."""
        ...


class KeyValueStore(Protocol):
    """Opaque persistent preference storage."""

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return the stored values for the keys that exist."""
        ...

    async def set(self, items: dict[str, Any]) -> None:
        """Merge *items* into the store."""
        ...


# ============================================================================
# In-memory implementations
# ============================================================================


class InMemoryCookieStore:
    """Dict-backed cookie store that notifies subscribers synchronously."""

    def __init__(self, cookies: Iterable[RawCookie] = ()) -> None:
        self._cookies: dict[CookieKey, RawCookie] = {c.key: c for c in cookies}
        self._listeners: list[CookieListener] = []

    def __len__(self) -> int:
        return len(self._cookies)

    def __contains__(self, key: object) -> bool:
        return key in self._cookies

    def _notify(self, cookie: RawCookie, removed: bool) -> None:
        for listener in list(self._listeners):
            listener(cookie, removed)

    def set(self, cookie: RawCookie) -> None:
        """Add or overwrite a cookie, as a page setting it would."""
        self._cookies[cookie.key] = cookie
        self._notify(cookie, False)

    async def list(self, domain: str | None = None) -> list[RawCookie]:
        if domain is None:
            return list(self._cookies.values())
        return [c for c in self._cookies.values() if url.is_same_or_subdomain(c.domain, domain)]

    async def remove(self, key: CookieKey) -> bool:
        cookie = self._cookies.pop(key, None)
        if cookie is None:
            return False
        self._notify(cookie, True)
        return True

    def subscribe(self, listener: CookieListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


class InMemoryNavigationNotifier:
    """Navigation source driven explicitly by callers."""

    def __init__(self) -> None:
        self._listeners: list[NavigationListener] = []

    def complete(self, tab_id: int, location: str) -> None:
        """Signal that *tab_id* finished loading *location* (URL or hostname)."""
        hostname = url.extract_domain(location)
        if not hostname:
            log.debug("Ignoring navigation without hostname", {"tabId": tab_id, "location": location})
            return
        for listener in list(self._listeners):
            listener(tab_id, hostname)

    def subscribe(self, listener: NavigationListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


class InMemoryKeyValueStore:
    """Dict-backed key-value store holding JSON-compatible values."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(initial or {})

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {k: self.data[k] for k in keys if k in self.data}

    async def set(self, items: dict[str, Any]) -> None:
        self.data.update(items)


class JsonFileKeyValueStore:
    """Key-value store persisted as a single JSON document.

    The whole document is rewritten on every ``set`` via a temporary
    file and an atomic rename, so a crash mid-write leaves the
    previous document intact.
    """

    def __init__(self, path: pathlib.Path | str) -> None:
        self.path = pathlib.Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ExternalStoreError(f"Failed to read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ExternalStoreError(f"Expected a JSON object in {self.path}")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            raise ExternalStoreError(f"Failed to write {self.path}: {exc}") from exc

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        data = await asyncio.to_thread(self._read)
        return {k: data[k] for k in keys if k in data}

    async def set(self, items: dict[str, Any]) -> None:
        def merge() -> None:
            data = self._read()
            data.update(items)
            self._write(data)

        await asyncio.to_thread(merge)
