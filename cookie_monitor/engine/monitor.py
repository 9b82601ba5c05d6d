"""
Cookie monitor engine.

Wires the record store, sandbox policy and summary aggregation to
the external collaborators.  Cookie changes, navigation completions
and control requests all land on one ``asyncio.Queue`` drained by a
single worker task, so each handler (including its awaits on the
cookie store and key-value store) runs to completion before the
next event starts.  Events keep their arrival order per source.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from collections.abc import Callable
from typing import assert_never

from cookie_monitor.analysis import summary
from cookie_monitor.config import MonitorSettings
from cookie_monitor.engine.collaborators import CookieStore, KeyValueStore, NavigationNotifier, Unsubscribe
from cookie_monitor.engine.events import ControlReceived, CookieChanged, MonitorEvent, NavigationCompleted
from cookie_monitor.models import control
from cookie_monitor.models.cookies import CookieCategory, CookieKey, RawCookie
from cookie_monitor.models.summary import CookieSummary
from cookie_monitor.sandbox.policy import EnforcementResult, SandboxPolicy
from cookie_monitor.store.persistence import StatePersister
from cookie_monitor.store.record_store import CookieRecordStore
from cookie_monitor.utils import logger, url
from cookie_monitor.utils.errors import InvalidDomainError, get_error_message

log = logger.create_logger("Monitor")


@dataclasses.dataclass
class ClearResult:
    """Outcome of a batch cookie removal."""

    attempted: int = 0
    removed: int = 0
    failed: int = 0

    def acknowledgement(self) -> control.Acknowledgement:
        """Render as a control-channel acknowledgement."""
        return control.Acknowledgement(success=self.failed == 0, removed=self.removed, failed=self.failed)


class CookieMonitor:
    """Event-driven cookie classification and isolation engine.

    Usage::

        async with CookieMonitor(cookie_store, kv_store, navigation) as monitor:
            response = await monitor.request({"action": "getCookieData"})
    """

    def __init__(
        self,
        cookie_store: CookieStore,
        kv_store: KeyValueStore,
        navigation: NavigationNotifier | None = None,
        settings: MonitorSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or MonitorSettings()
        self._cookie_store = cookie_store
        self._navigation = navigation
        self._clock = clock
        self._persister = StatePersister(kv_store)
        self.records = CookieRecordStore(self._persister)
        self.sandbox = SandboxPolicy(cookie_store, self._persister)
        self.monitoring_enabled = True
        self._queue: asyncio.Queue[MonitorEvent] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._unsubscribers: list[Unsubscribe] = []

    # ── Lifecycle ───────────────────────────────────────────────

    @property
    def running(self) -> bool:
        """Whether the worker is accepting events."""
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        """Load preferences, subscribe to collaborators and start the worker."""
        if self.running:
            return

        log.section("Cookie Monitor Starting")
        persisted = await self._persister.load()
        self.sandbox.load(persisted.sandboxed_sites)
        self.monitoring_enabled = persisted.monitoring_enabled

        restored = 0
        if self.settings.restore_snapshot:
            restored = self.records.restore(persisted.cookie_data)

        self._queue = asyncio.Queue()
        self._unsubscribers.append(self._cookie_store.subscribe(self.on_cookie_changed))
        if self._navigation is not None:
            self._unsubscribers.append(self._navigation.subscribe(self.on_navigation_completed))

        if self.settings.scan_on_start and self.monitoring_enabled:
            await self._scan_existing(reconcile=restored > 0)

        self._worker = asyncio.create_task(self._run(), name="cookie-monitor-worker")
        log.success(
            "Cookie monitor started",
            {
                "records": len(self.records),
                "sandboxedSites": len(self.sandbox.domains),
                "monitoringEnabled": self.monitoring_enabled,
            },
        )

    async def stop(self) -> None:
        """Finish queued events, unsubscribe and tear down the record table."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        if self._queue is not None and self.running:
            await self._queue.join()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
        self.records.clear()
        log.info("Cookie monitor stopped")

    async def __aenter__(self) -> CookieMonitor:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def _scan_existing(self, reconcile: bool) -> None:
        log.start_timer("Initial cookie scan")
        try:
            live = await self._cookie_store.list()
        except Exception as exc:
            log.error("Error scanning existing cookies", {"error": get_error_message(exc)})
            return
        await self.records.observe_all(live, now=self._clock())
        if reconcile:
            await self.records.retain({c.key for c in live})
        log.end_timer("Initial cookie scan", f"Scanned {len(live)} existing cookies")

    # ── Event sources ───────────────────────────────────────────

    def _enqueue(self, event: MonitorEvent) -> bool:
        if self._queue is None:
            log.debug("Monitor not running, dropping event", {"event": type(event).__name__})
            return False
        self._queue.put_nowait(event)
        return True

    def on_cookie_changed(self, cookie: RawCookie, removed: bool) -> None:
        """Cookie store subscription callback."""
        self._enqueue(CookieChanged(cookie=cookie, removed=removed))

    def on_navigation_completed(self, tab_id: int, hostname: str) -> None:
        """Navigation notifier subscription callback."""
        self._enqueue(NavigationCompleted(tab_id=tab_id, hostname=hostname))

    async def request(self, payload: object) -> control.ControlResponse | None:
        """Submit a control request and wait for its response.

        Args:
            payload: A request model or its raw dict form.

        Returns:
            The response, or ``None`` when the request is unknown or
            malformed (such requests are ignored).
        """
        request = control.parse_request(payload)
        if request is None:
            log.debug("Ignoring unknown control request", {"payload": str(payload)})
            return None
        if self._queue is None:
            raise RuntimeError("CookieMonitor is not running")
        reply: asyncio.Future[control.ControlResponse] = asyncio.get_running_loop().create_future()
        self._enqueue(ControlReceived(request=request, reply=reply))
        return await reply

    # ── Worker ──────────────────────────────────────────────────

    async def _run(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            event = await queue.get()
            try:
                await self._dispatch(event)
            except Exception as exc:
                log.error("Event handler failed", {"event": type(event).__name__, "error": get_error_message(exc)})
                if isinstance(event, ControlReceived) and not event.reply.done():
                    event.reply.set_exception(exc)
            finally:
                queue.task_done()

    async def _dispatch(self, event: MonitorEvent) -> None:
        match event:
            case CookieChanged(cookie=cookie, removed=removed):
                await self.handle_cookie_change(cookie, removed)
            case NavigationCompleted(tab_id=tab_id, hostname=hostname):
                await self.handle_navigation(tab_id, hostname)
            case ControlReceived(request=request, reply=reply):
                response = await self.handle_request(request)
                if not reply.done():
                    reply.set_result(response)
            case _:
                assert_never(event)

    # ── Handlers ────────────────────────────────────────────────

    async def handle_cookie_change(self, cookie: RawCookie, removed: bool) -> None:
        """Merge or drop a record; ignored entirely while monitoring is off."""
        if not self.monitoring_enabled:
            return
        if removed:
            await self.records.remove(cookie.key)
        else:
            await self.records.observe(cookie, now=self._clock())

    async def handle_navigation(self, tab_id: int, hostname: str) -> EnforcementResult | None:
        """Enforce isolation when a sandboxed site finishes loading."""
        host = url.normalize_domain(hostname)
        if not host or not self.sandbox.is_sandboxed(host):
            return None
        log.info("Sandboxed site loaded", {"tabId": tab_id, "site": host})
        return await self.sandbox.enforce(host)

    async def handle_request(self, request: control.ControlRequest) -> control.ControlResponse:
        """Run one control request to completion."""
        match request:
            case control.GetCookieData():
                return self.get_cookie_data()
            case control.ClearTrackerCookies():
                return (await self.clear_tracker_cookies()).acknowledgement()
            case control.ClearCategory(category=category):
                return (await self.clear_by_category(category)).acknowledgement()
            case control.UpdateSandbox(domain=domain, add=add):
                try:
                    if add:
                        await self.sandbox.add_domain(domain)
                    else:
                        await self.sandbox.remove_domain(domain)
                except InvalidDomainError as exc:
                    log.warn("Rejected sandbox update", {"domain": domain})
                    return control.Acknowledgement(success=False, error=str(exc))
                return control.Acknowledgement()
            case control.ToggleMonitoring(enabled=enabled):
                await self.set_monitoring(enabled)
                return control.Acknowledgement()
            case control.DeleteCookie(name=name, domain=domain, path=path):
                removed = await self.delete_cookie(CookieKey(name=name, domain=domain, path=path))
                return control.Acknowledgement(success=removed, removed=int(removed), failed=int(not removed))
            case control.ClearAllCookies():
                return (await self.clear_all_cookies()).acknowledgement()
            case _:
                assert_never(request)

    # ── Operations ──────────────────────────────────────────────

    async def set_monitoring(self, enabled: bool) -> None:
        """Toggle processing of cookie-change events and persist the flag."""
        self.monitoring_enabled = enabled
        log.info("Monitoring toggled", {"enabled": enabled})
        await self._persister.save_monitoring_enabled(enabled)

    def summary(self) -> CookieSummary:
        """Summarise the current record store."""
        return summary.summarize(
            self.records.all(), now=self._clock(), recent_window=self.settings.recent_window_seconds
        )

    def get_cookie_data(self) -> control.CookieDataResponse:
        """Build the dashboard payload from copies of the current records."""
        records = [record.model_copy() for record in self.records.all()]
        return control.CookieDataResponse(
            cookies=records,
            summary=self.summary(),
            sandboxed_sites=self.sandbox.domains,
            monitoring_enabled=self.monitoring_enabled,
            recent_cookies=summary.recent_cookies(records, limit=self.settings.recent_cookie_limit),
        )

    async def delete_cookie(self, key: CookieKey) -> bool:
        """Ask the cookie store to remove one cookie; failures are logged."""
        try:
            removed = await self._cookie_store.remove(key)
        except Exception as exc:
            log.warn(
                "Failed to remove cookie",
                {"name": key.name, "domain": key.domain, "error": get_error_message(exc)},
            )
            return False
        if not removed:
            log.warn("Cookie store did not remove cookie", {"name": key.name, "domain": key.domain})
        return removed

    async def _remove_each(self, keys: list[CookieKey]) -> ClearResult:
        result = ClearResult(attempted=len(keys))
        for key in keys:
            if await self.delete_cookie(key):
                result.removed += 1
            else:
                result.failed += 1
        return result

    async def clear_by_category(self, category: CookieCategory) -> ClearResult:
        """Remove every stored cookie in *category*, each independently."""
        keys = [r.key for r in self.records.all() if r.category == category]
        result = await self._remove_each(keys)
        log.info(
            "Cleared cookies by category",
            {"category": category, "removed": result.removed, "failed": result.failed},
        )
        return result

    async def clear_tracker_cookies(self) -> ClearResult:
        """Remove every stored tracker cookie."""
        return await self.clear_by_category("tracker")

    async def clear_all_cookies(self) -> ClearResult:
        """Remove every cookie the live cookie store reports."""
        try:
            live = await self._cookie_store.list()
        except Exception as exc:
            log.error("Failed to list cookies for clearing", {"error": get_error_message(exc)})
            return ClearResult(failed=1)
        result = await self._remove_each([c.key for c in live])
        log.info("Cleared all cookies", {"removed": result.removed, "failed": result.failed})
        return result
