"""End-to-end tests for the CookieMonitor engine.

Drives the engine through in-memory collaborators: cookie-store
changes, navigation completions and control requests.
"""

from __future__ import annotations

import pytest
from helpers import DAY, NOW, FlakyCookieStore, make_cookie

from cookie_monitor.engine.collaborators import InMemoryCookieStore, InMemoryKeyValueStore
from cookie_monitor.engine.monitor import CookieMonitor
from cookie_monitor.models import control, state


def _monitor(cookie_store, kv_store, navigation, settings, clock) -> CookieMonitor:
    return CookieMonitor(cookie_store, kv_store, navigation, settings=settings, clock=clock)


class TestStartup:
    """Tests for start() and stop()."""

    @pytest.mark.asyncio
    async def test_scans_existing_cookies(
        self, kv_store, navigation, settings, clock, ga_cookie, session_cookie
    ) -> None:
        store = InMemoryCookieStore([ga_cookie, session_cookie])
        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            assert monitor.running
            assert len(monitor.records) == 2
            assert len(kv_store.data[state.COOKIE_DATA_KEY]) == 2

    @pytest.mark.asyncio
    async def test_starts_with_corrupted_snapshot(self, navigation, settings, clock, ga_cookie) -> None:
        store = InMemoryCookieStore([ga_cookie])
        kv = InMemoryKeyValueStore({state.COOKIE_DATA_KEY: 5})
        async with _monitor(store, kv, navigation, settings, clock) as monitor:
            assert monitor.running
            assert len(monitor.records) == 1

    @pytest.mark.asyncio
    async def test_loads_preferences(self, cookie_store, navigation, settings, clock) -> None:
        kv = InMemoryKeyValueStore({state.SANDBOXED_SITES_KEY: ["example.com"], state.MONITORING_ENABLED_KEY: False})
        async with _monitor(cookie_store, kv, navigation, settings, clock) as monitor:
            assert monitor.sandbox.domains == ["example.com"]
            assert monitor.monitoring_enabled is False

    @pytest.mark.asyncio
    async def test_no_scan_while_monitoring_disabled(self, navigation, settings, clock, ga_cookie) -> None:
        store = InMemoryCookieStore([ga_cookie])
        kv = InMemoryKeyValueStore({state.MONITORING_ENABLED_KEY: False})
        async with _monitor(store, kv, navigation, settings, clock) as monitor:
            assert len(monitor.records) == 0

    @pytest.mark.asyncio
    async def test_restores_snapshot_and_reconciles(self, navigation, settings, clock, ga_cookie) -> None:
        earlier = NOW - 10 * DAY
        snapshot = [
            {
                "name": "_ga",
                "domain": "example.com",
                "path": "/",
                "riskScore": 60,
                "category": "tracker",
                "firstSeen": earlier,
                "lastSeen": earlier,
                "accessCount": 4,
            },
            {
                "name": "gone",
                "domain": "example.com",
                "path": "/",
                "riskScore": 0,
                "category": "functional",
                "firstSeen": earlier,
                "lastSeen": earlier,
                "accessCount": 1,
            },
        ]
        kv = InMemoryKeyValueStore({state.COOKIE_DATA_KEY: snapshot})
        store = InMemoryCookieStore([ga_cookie])

        async with _monitor(store, kv, navigation, settings, clock) as monitor:
            record = monitor.records.get(ga_cookie.key)
            assert record is not None
            assert record.first_seen == earlier
            assert record.last_seen == NOW
            assert record.access_count == 5
            assert len(monitor.records) == 1
            assert [r["name"] for r in kv.data[state.COOKIE_DATA_KEY]] == ["_ga"]

    @pytest.mark.asyncio
    async def test_snapshot_ignored_when_disabled(self, cookie_store, navigation, settings, clock) -> None:
        kv = InMemoryKeyValueStore(
            {
                state.COOKIE_DATA_KEY: [
                    {
                        "name": "a",
                        "domain": "example.com",
                        "riskScore": 0,
                        "category": "functional",
                        "firstSeen": NOW,
                        "lastSeen": NOW,
                    }
                ]
            }
        )
        settings = settings.model_copy(update={"restore_snapshot": False})
        async with _monitor(cookie_store, kv, navigation, settings, clock) as monitor:
            assert len(monitor.records) == 0

    @pytest.mark.asyncio
    async def test_stop_tears_down(self, cookie_store, kv_store, navigation, settings, clock, ga_cookie) -> None:
        monitor = _monitor(cookie_store, kv_store, navigation, settings, clock)
        await monitor.start()
        cookie_store.set(ga_cookie)
        await monitor.stop()

        assert not monitor.running
        assert len(monitor.records) == 0
        # Events after stop are dropped without error.
        cookie_store.set(make_cookie("late"))
        with pytest.raises(RuntimeError):
            await monitor.request({"action": "getCookieData"})


class TestCookieEvents:
    """Tests for cookie-change handling."""

    @pytest.mark.asyncio
    async def test_set_and_reobserve(self, cookie_store, kv_store, navigation, settings, clock, ga_cookie) -> None:
        async with _monitor(cookie_store, kv_store, navigation, settings, clock) as monitor:
            cookie_store.set(ga_cookie)
            await monitor.drain()
            clock.advance(60)
            cookie_store.set(ga_cookie)
            await monitor.drain()

            record = monitor.records.get(ga_cookie.key)
            assert record.first_seen == NOW
            assert record.last_seen == NOW + 60
            assert record.access_count == 2
            assert record.category == "tracker"
            assert record.risk_score == 60

    @pytest.mark.asyncio
    async def test_removal(self, cookie_store, kv_store, navigation, settings, clock, ga_cookie) -> None:
        async with _monitor(cookie_store, kv_store, navigation, settings, clock) as monitor:
            cookie_store.set(ga_cookie)
            await cookie_store.remove(ga_cookie.key)
            await monitor.drain()
            assert ga_cookie.key not in monitor.records

    @pytest.mark.asyncio
    async def test_monitoring_gate(
        self, kv_store, navigation, settings, clock, ga_cookie, session_cookie
    ) -> None:
        store = InMemoryCookieStore([ga_cookie])
        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            ack = await monitor.request({"action": "toggleMonitoring", "enabled": False})
            assert ack == control.Acknowledgement()
            assert kv_store.data[state.MONITORING_ENABLED_KEY] is False

            before = [r.model_copy() for r in monitor.records.all()]
            store.set(session_cookie)
            store.set(ga_cookie)
            await store.remove(ga_cookie.key)
            await monitor.drain()
            assert [r.model_copy() for r in monitor.records.all()] == before

            data = await monitor.request({"action": "getCookieData"})
            assert data.summary.total == 1

            await monitor.request({"action": "toggleMonitoring", "enabled": True})
            store.set(session_cookie)
            await monitor.drain()
            assert session_cookie.key in monitor.records

    @pytest.mark.asyncio
    async def test_handler_failure_does_not_stop_worker(
        self, cookie_store, kv_store, navigation, settings, clock, monkeypatch, ga_cookie
    ) -> None:
        async with _monitor(cookie_store, kv_store, navigation, settings, clock) as monitor:

            async def broken(*args, **kwargs):
                raise RuntimeError("boom")

            monkeypatch.setattr(monitor.records, "observe", broken)
            cookie_store.set(ga_cookie)
            await monitor.drain()

            response = await monitor.request({"action": "getCookieData"})
            assert isinstance(response, control.CookieDataResponse)


class TestNavigation:
    """Tests for sandbox enforcement on navigation."""

    @pytest.mark.asyncio
    async def test_sandboxed_visit_evicts_third_party(self, kv_store, navigation, settings, clock) -> None:
        own = make_cookie("sid", "shop.example.com")
        nested = make_cookie("ad", "ads.shop.example.com")
        elsewhere = make_cookie("x", "other.org")
        store = InMemoryCookieStore([own, nested, elsewhere])

        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            await monitor.request({"action": "updateSandbox", "domain": "shop.example.com", "add": True})
            navigation.complete(7, "https://shop.example.com/basket")
            await monitor.drain()

            assert own.key in store
            assert elsewhere.key in store
            assert nested.key not in store
            assert nested.key not in monitor.records

    @pytest.mark.asyncio
    async def test_unsandboxed_visit_is_ignored(self, kv_store, navigation, settings, clock) -> None:
        nested = make_cookie("ad", "ads.shop.example.com")
        store = InMemoryCookieStore([nested])

        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            navigation.complete(1, "https://shop.example.com/")
            await monitor.drain()
            assert nested.key in store

    @pytest.mark.asyncio
    async def test_subdomain_of_sandboxed_site_is_not_sandboxed(self, kv_store, navigation, settings, clock) -> None:
        nested = make_cookie("ad", "ads.www.example.com")
        store = InMemoryCookieStore([nested])
        kv = InMemoryKeyValueStore({state.SANDBOXED_SITES_KEY: ["example.com"]})

        async with _monitor(store, kv, navigation, settings, clock) as monitor:
            navigation.complete(1, "https://www.example.com/")
            await monitor.drain()
            assert nested.key in store

    @pytest.mark.asyncio
    async def test_handle_navigation_returns_result(self, kv_store, navigation, settings, clock) -> None:
        store = InMemoryCookieStore([make_cookie("ad", "ads.example.com")])
        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            await monitor.sandbox.add_domain("example.com")
            result = await monitor.handle_navigation(3, "Example.com")
            assert result is not None
            assert len(result.evicted) == 1
            assert await monitor.handle_navigation(3, "other.org") is None


class TestControlRequests:
    """Tests for the control channel."""

    @pytest.mark.asyncio
    async def test_get_cookie_data(
        self, kv_store, navigation, settings, clock, ga_cookie, session_cookie, functional_cookie
    ) -> None:
        store = InMemoryCookieStore([ga_cookie, session_cookie, functional_cookie])
        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            await monitor.sandbox.add_domain("example.com")
            data = await monitor.request(control.GetCookieData())

            assert isinstance(data, control.CookieDataResponse)
            assert len(data.cookies) == 3
            assert data.summary.total == 3
            assert data.summary.by_category == {"tracker": 1, "session": 1, "functional": 1}
            assert data.summary.recent_activity == 3
            assert data.sandboxed_sites == ["example.com"]
            assert data.monitoring_enabled is True
            assert len(data.recent_cookies) == 3

            dumped = data.model_dump(mode="json", by_alias=True)
            assert {"cookies", "summary", "sandboxedSites", "monitoringEnabled", "recentCookies"} <= set(dumped)

    @pytest.mark.asyncio
    async def test_cookie_data_is_detached_from_live_records(
        self, cookie_store, kv_store, navigation, settings, clock, ga_cookie
    ) -> None:
        async with _monitor(cookie_store, kv_store, navigation, settings, clock) as monitor:
            cookie_store.set(ga_cookie)
            await monitor.drain()
            data = await monitor.request(control.GetCookieData())

            clock.advance(60)
            cookie_store.set(ga_cookie)
            await monitor.drain()

            assert data.cookies[0].access_count == 1
            assert data.cookies[0].last_seen == NOW
            assert data.recent_cookies[0].access_count == 1
            assert monitor.records.get(ga_cookie.key).access_count == 2

    @pytest.mark.asyncio
    async def test_recent_activity_ages_out(
        self, kv_store, navigation, settings, clock, ga_cookie
    ) -> None:
        store = InMemoryCookieStore([ga_cookie])
        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            clock.advance(2 * DAY)
            data = await monitor.request({"action": "getCookieData"})
            assert data.summary.recent_activity == 0
            assert data.summary.total == 1

    @pytest.mark.asyncio
    async def test_clear_tracker_cookies(
        self, kv_store, navigation, settings, clock, ga_cookie, session_cookie
    ) -> None:
        store = InMemoryCookieStore([ga_cookie, session_cookie, make_cookie("IDE", ".doubleclick.net")])
        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            ack = await monitor.request({"action": "clearTrackerCookies"})
            await monitor.drain()

            assert ack == control.Acknowledgement(success=True, removed=2, failed=0)
            assert [r.name for r in monitor.records.all()] == ["session_id"]
            assert len(store) == 1

    @pytest.mark.asyncio
    async def test_clear_category_continues_after_failure(self, kv_store, navigation, settings, clock) -> None:
        first = make_cookie("_ga", "a.com")
        second = make_cookie("_gid", "b.com")
        third = make_cookie("_fbp", "c.com")
        store = FlakyCookieStore([first, second, third], failing={first.key})

        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            result = await monitor.clear_by_category("tracker")

            assert set(store.remove_calls) == {first.key, second.key, third.key}
            assert (result.attempted, result.removed, result.failed) == (3, 2, 1)
            assert result.acknowledgement().success is False

    @pytest.mark.asyncio
    async def test_clear_category_request(
        self, kv_store, navigation, settings, clock, session_cookie, ga_cookie
    ) -> None:
        store = InMemoryCookieStore([session_cookie, ga_cookie])
        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            ack = await monitor.request({"action": "clearCategory", "category": "session"})
            assert ack.removed == 1
            assert session_cookie.key not in store

    @pytest.mark.asyncio
    async def test_update_sandbox(self, cookie_store, kv_store, navigation, settings, clock) -> None:
        async with _monitor(cookie_store, kv_store, navigation, settings, clock) as monitor:
            ack = await monitor.request({"action": "updateSandbox", "domain": ".News.Example.com", "add": True})
            assert ack.success is True
            assert monitor.sandbox.domains == ["news.example.com"]
            assert kv_store.data[state.SANDBOXED_SITES_KEY] == ["news.example.com"]

            ack = await monitor.request({"action": "updateSandbox", "domain": "news.example.com", "add": False})
            assert ack.success is True
            assert monitor.sandbox.domains == []

    @pytest.mark.asyncio
    async def test_update_sandbox_rejects_malformed(self, cookie_store, kv_store, navigation, settings, clock) -> None:
        async with _monitor(cookie_store, kv_store, navigation, settings, clock) as monitor:
            ack = await monitor.request({"action": "updateSandbox", "domain": "not a domain", "add": True})
            assert ack.success is False
            assert "not a domain" in ack.error
            assert monitor.sandbox.domains == []
            assert state.SANDBOXED_SITES_KEY not in kv_store.data

    @pytest.mark.asyncio
    async def test_delete_cookie(
        self, kv_store, navigation, settings, clock, functional_cookie
    ) -> None:
        store = InMemoryCookieStore([functional_cookie])
        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            ack = await monitor.request({"action": "deleteCookie", "name": "theme", "domain": "example.com"})
            await monitor.drain()
            assert ack == control.Acknowledgement(success=True, removed=1, failed=0)
            assert functional_cookie.key not in monitor.records

            missing = await monitor.request({"action": "deleteCookie", "name": "nope", "domain": "example.com"})
            assert missing.success is False

    @pytest.mark.asyncio
    async def test_clear_all_cookies(
        self, kv_store, navigation, settings, clock, ga_cookie, session_cookie
    ) -> None:
        store = InMemoryCookieStore([ga_cookie, session_cookie])
        async with _monitor(store, kv_store, navigation, settings, clock) as monitor:
            ack = await monitor.request({"action": "clearAllCookies"})
            await monitor.drain()
            assert ack.removed == 2
            assert len(store) == 0
            assert len(monitor.records) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{"action": "explode"}, {"nope": 1}, "getCookieData", None])
    async def test_unknown_request_ignored(self, cookie_store, kv_store, navigation, settings, clock, payload) -> None:
        async with _monitor(cookie_store, kv_store, navigation, settings, clock) as monitor:
            assert await monitor.request(payload) is None
