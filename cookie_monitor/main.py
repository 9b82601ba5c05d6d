"""
Replay entry point for the cookie monitor.

Feeds a JSON file of recorded events through an engine wired to
in-memory cookie and navigation sources and the JSON-file key-value
store, then prints the dashboard payload as JSON.

Event file format: a JSON list of objects, each one of::

    {"type": "cookie", "cookie": {...}, "removed": false}
    {"type": "navigation", "tabId": 1, "url": "https://news.example.com/"}
    {"type": "request", "request": {"action": "updateSandbox", "domain": "example.com"}}
"""

from __future__ import annotations

import argparse
import asyncio
import json
import pathlib
import sys
from typing import Any

import dotenv
import pydantic

from cookie_monitor.config import MonitorSettings
from cookie_monitor.engine.collaborators import (
    InMemoryCookieStore,
    InMemoryNavigationNotifier,
    JsonFileKeyValueStore,
)
from cookie_monitor.engine.monitor import CookieMonitor
from cookie_monitor.models.cookies import RawCookie
from cookie_monitor.utils import logger
from cookie_monitor.utils.errors import get_error_message
from cookie_monitor.utils.serialization import to_camel_json

log = logger.create_logger("Replay")


async def replay(events: list[dict[str, Any]], settings: MonitorSettings) -> dict[str, Any]:
    """Run *events* through a fresh monitor and return the final cookie data."""
    cookie_store = InMemoryCookieStore()
    navigation = InMemoryNavigationNotifier()
    kv_store = JsonFileKeyValueStore(settings.state_file)

    async with CookieMonitor(cookie_store, kv_store, navigation, settings=settings) as monitor:
        for index, event in enumerate(events):
            kind = event.get("type")
            try:
                if kind == "cookie":
                    cookie = RawCookie.model_validate(event["cookie"])
                    if event.get("removed"):
                        await cookie_store.remove(cookie.key)
                    else:
                        cookie_store.set(cookie)
                elif kind == "navigation":
                    navigation.complete(int(event.get("tabId", 0)), str(event["url"]))
                elif kind == "request":
                    response = await monitor.request(event["request"])
                    log.info("Request handled", {"index": index, "answered": response is not None})
                else:
                    log.warn("Skipping unknown event type", {"index": index, "type": kind})
            except (KeyError, ValueError, pydantic.ValidationError) as exc:
                log.warn("Skipping malformed event", {"index": index, "error": get_error_message(exc)})
            await monitor.drain()

        return to_camel_json(monitor.get_cookie_data())


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``cookie-monitor`` command."""
    dotenv.load_dotenv()

    parser = argparse.ArgumentParser(description="Replay cookie events through the cookie monitor")
    parser.add_argument("events", type=pathlib.Path, help="JSON file containing a list of events")
    parser.add_argument("-s", "--state-file", type=pathlib.Path, help="Key-value store JSON file")
    args = parser.parse_args(argv)

    settings = MonitorSettings()
    if args.state_file is not None:
        settings = settings.model_copy(update={"state_file": args.state_file})

    try:
        events = json.loads(args.events.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        log.error("Failed to read events file", {"path": str(args.events), "error": get_error_message(exc)})
        return 1
    if not isinstance(events, list):
        log.error("Events file must contain a JSON list", {"path": str(args.events)})
        return 1

    logger.start_log_file("replay")
    try:
        result = asyncio.run(replay(events, settings))
    finally:
        logger.end_log_file()

    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
