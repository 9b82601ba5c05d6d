"""Best-effort mirroring of monitor state into the key-value store.

Writes never raise: a failed write is logged and the in-memory state
stays authoritative.  The next successful write carries the full
current state, so the persisted copy converges on its own.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pydantic

from cookie_monitor.engine.collaborators import KeyValueStore
from cookie_monitor.models import state
from cookie_monitor.models.cookies import CookieRecord
from cookie_monitor.utils import logger
from cookie_monitor.utils.errors import get_error_message
from cookie_monitor.utils.serialization import to_camel_json

log = logger.create_logger("Persistence")


class StatePersister:
    """Serialises monitor state into a :class:`KeyValueStore`."""

    def __init__(self, kv_store: KeyValueStore) -> None:
        self._kv_store = kv_store
        self.failed_writes = 0

    async def _write(self, items: dict[str, Any]) -> bool:
        try:
            await self._kv_store.set(items)
            return True
        except Exception as exc:
            self.failed_writes += 1
            log.warn("Persistence write failed", {"keys": list(items), "error": get_error_message(exc)})
            return False

    async def save_records(self, records: Iterable[CookieRecord]) -> bool:
        """Write the full cookie record snapshot."""
        data = [to_camel_json(r) for r in records]
        return await self._write({state.COOKIE_DATA_KEY: data})

    async def save_sandboxed_sites(self, domains: Iterable[str]) -> bool:
        """Write the sandboxed domain list."""
        return await self._write({state.SANDBOXED_SITES_KEY: sorted(domains)})

    async def save_monitoring_enabled(self, enabled: bool) -> bool:
        """Write the global monitoring flag."""
        return await self._write({state.MONITORING_ENABLED_KEY: enabled})

    async def load(self) -> state.PersistedState:
        """Read persisted state, falling back to defaults on any failure.

        Malformed cookie entries are skipped individually so one bad
        record does not discard the whole snapshot.
        """
        try:
            raw = await self._kv_store.get(state.STATE_KEYS)
        except Exception as exc:
            log.warn("Failed to load persisted state, using defaults", {"error": get_error_message(exc)})
            return state.PersistedState()

        stored = raw.get(state.COOKIE_DATA_KEY)
        if stored is not None and not isinstance(stored, list):
            log.warn("Persisted cookie snapshot is not a list, ignoring it", {"type": type(stored).__name__})
            stored = None

        records: list[CookieRecord] = []
        for item in stored or []:
            try:
                records.append(CookieRecord.model_validate(item))
            except pydantic.ValidationError as exc:
                log.warn("Skipping malformed persisted cookie", {"error": str(exc).splitlines()[0]})

        try:
            loaded = state.PersistedState.model_validate(
                {
                    state.SANDBOXED_SITES_KEY: raw.get(state.SANDBOXED_SITES_KEY),
                    state.MONITORING_ENABLED_KEY: raw.get(state.MONITORING_ENABLED_KEY),
                }
            )
        except pydantic.ValidationError as exc:
            log.warn("Malformed persisted preferences, using defaults", {"error": str(exc).splitlines()[0]})
            loaded = state.PersistedState()

        loaded.cookie_data = records
        log.info(
            "Persisted state loaded",
            {
                "sandboxedSites": len(loaded.sandboxed_sites),
                "monitoringEnabled": loaded.monitoring_enabled,
                "cookies": len(records),
            },
        )
        return loaded
