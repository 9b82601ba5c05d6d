"""Cookie Record Store: one merged record per logical cookie.

Records are keyed by :class:`CookieKey`.  Re-observing a key updates
the existing record in place, preserving ``first_seen`` and bumping
``access_count``.  Every mutation mirrors the full record set into
the persistent store through :class:`StatePersister`.
"""

from __future__ import annotations

import time
from collections.abc import Collection, Iterable, ValuesView

from cookie_monitor.analysis import categorizer, risk_score
from cookie_monitor.models.cookies import CookieKey, CookieRecord, RawCookie
from cookie_monitor.store.persistence import StatePersister
from cookie_monitor.utils import logger

log = logger.create_logger("RecordStore")


class CookieRecordStore:
    """Owned table of :class:`CookieRecord` keyed by cookie identity."""

    def __init__(self, persister: StatePersister | None = None) -> None:
        self._records: dict[CookieKey, CookieRecord] = {}
        self._persister = persister

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def get(self, key: CookieKey) -> CookieRecord | None:
        """Return the record for *key*, if any."""
        return self._records.get(key)

    def all(self) -> ValuesView[CookieRecord]:
        """Live, restartable view over every record (unordered)."""
        return self._records.values()

    # ── Mutation ────────────────────────────────────────────────

    def _merge(self, raw: RawCookie, now: float) -> CookieRecord:
        key = raw.key
        score = risk_score.calculate(raw, now)
        category = categorizer.categorize(raw)
        existing = self._records.get(key)

        if existing is None:
            record = CookieRecord(
                name=raw.name,
                domain=raw.domain,
                path=raw.path,
                expiration_date=raw.expiration_date,
                secure=raw.secure,
                http_only=raw.http_only,
                session=raw.session,
                value_length=len(raw.value),
                risk_score=score,
                category=category,
                first_seen=now,
                last_seen=now,
                access_count=1,
            )
            self._records[key] = record
            log.debug("New cookie", {"name": raw.name, "domain": raw.domain, "category": category, "risk": score})
            return record

        existing.expiration_date = raw.expiration_date
        existing.secure = raw.secure
        existing.http_only = raw.http_only
        existing.session = raw.session
        existing.value_length = len(raw.value)
        existing.risk_score = score
        existing.category = category
        existing.last_seen = max(now, existing.first_seen)
        existing.access_count += 1
        return existing

    async def _persist(self) -> None:
        if self._persister is not None:
            await self._persister.save_records(self._records.values())

    async def observe(self, raw: RawCookie, now: float | None = None) -> CookieRecord:
        """Merge one observation and persist the record set.

        Args:
            raw: The observed cookie.
            now: Observation time in epoch seconds. Defaults to now.

        Returns:
            The created or updated record.
        """
        record = self._merge(raw, time.time() if now is None else now)
        await self._persist()
        return record

    async def observe_all(self, raws: Iterable[RawCookie], now: float | None = None) -> list[CookieRecord]:
        """Merge a batch of observations with a single persistence write."""
        when = time.time() if now is None else now
        records = [self._merge(raw, when) for raw in raws]
        await self._persist()
        return records

    async def remove(self, key: CookieKey) -> bool:
        """Delete the record for *key*; a missing key is not an error.

        Returns:
            True when a record was deleted.
        """
        if self._records.pop(key, None) is None:
            return False
        await self._persist()
        return True

    async def retain(self, keys: Collection[CookieKey]) -> int:
        """Drop every record whose key is not in *keys*.

        Returns:
            The number of records dropped.
        """
        stale = [k for k in self._records if k not in keys]
        for key in stale:
            del self._records[key]
        if stale:
            log.info("Dropped records no longer in the cookie store", {"count": len(stale)})
            await self._persist()
        return len(stale)

    def restore(self, records: Iterable[CookieRecord]) -> int:
        """Seed the table from a persisted snapshot without writing back."""
        restored = 0
        for record in records:
            self._records[record.key] = record
            restored += 1
        return restored

    def clear(self) -> None:
        """Forget every record (engine shutdown); nothing is persisted."""
        self._records.clear()
