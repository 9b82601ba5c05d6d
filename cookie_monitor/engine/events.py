"""Event envelopes queued for the monitor's single worker."""

from __future__ import annotations

import asyncio
import dataclasses

from cookie_monitor.models.control import ControlRequest, ControlResponse
from cookie_monitor.models.cookies import RawCookie


@dataclasses.dataclass(frozen=True)
class CookieChanged:
    """A cookie was set or removed in the browser store."""

    cookie: RawCookie
    removed: bool = False


@dataclasses.dataclass(frozen=True)
class NavigationCompleted:
    """A tab finished loading a page on *hostname*."""

    tab_id: int
    hostname: str


@dataclasses.dataclass(frozen=True)
class ControlReceived:
    """A control request whose response is delivered through *reply*."""

    request: ControlRequest
    reply: asyncio.Future[ControlResponse]


MonitorEvent = CookieChanged | NavigationCompleted | ControlReceived
