"""
Console logging for the cookie monitor.

Each line carries a timestamp, a level glyph and the component name,
followed by ``key=value`` pairs rendered with ANSI colours.  Output
goes to stderr so the replay command can keep stdout for JSON.

Setting ``WRITE_TO_FILE=true`` mirrors every line, uncoloured, into
``.logs/<session>_<timestamp>.log`` between ``start_log_file`` and
``end_log_file``.
"""

from __future__ import annotations

import io
import os
import pathlib
import re
import sys
import time
from datetime import UTC, datetime

_ANSI_RE = re.compile(r"\033\[[0-9;]*m")

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
MAGENTA = "\033[35m"
CYAN = "\033[36m"
GRAY = "\033[90m"

# level -> (colour, glyph)
_LEVELS: dict[str, tuple[str, str]] = {
    "info": (CYAN, "ℹ"),
    "success": (GREEN, "✓"),
    "warn": (YELLOW, "⚠"),
    "error": (RED, "✗"),
    "debug": (GRAY, "•"),
    "timing": (MAGENTA, "⏱"),
}

# "<component>:<label>" -> (monotonic start in ms, wall-clock start)
_timers: dict[str, tuple[float, str]] = {}

_write_to_file = os.environ.get("WRITE_TO_FILE", "").lower() == "true"
_log_stream: io.TextIOWrapper | None = None


# ============================================================================
# Log file
# ============================================================================


def start_log_file(session: str) -> str | None:
    """Open a fresh log file for *session*.

    Returns:
        The file path, or ``None`` when file logging is off or the file
        could not be opened.
    """
    global _log_stream

    if not _write_to_file:
        return None
    end_log_file()

    directory = pathlib.Path.cwd() / ".logs"
    directory.mkdir(parents=True, exist_ok=True)
    stem = re.sub(r"[^A-Za-z0-9.-]", "_", session)[:50]
    opened = datetime.now(UTC)
    path = directory / f"{stem}_{opened:%Y-%m-%d_%H-%M-%S}.log"

    try:
        _log_stream = path.open("a", encoding="utf-8")
    except OSError as exc:
        print(f"{RED}✗ [Logger] Cannot open {path}: {exc}{RESET}", file=sys.stderr)
        return None

    rule = "=" * 80
    _log_stream.write(f"\n{rule}\n  Cookie Monitor - {session}\n  Opened: {opened.isoformat()}\n{rule}\n")
    return str(path)


def end_log_file() -> None:
    """Close the current log file, if any."""
    global _log_stream

    if _log_stream is None:
        return
    try:
        _log_stream.close()
    except OSError:
        print(f"{YELLOW}⚠ [Logger] Log file did not close cleanly{RESET}", file=sys.stderr)
    _log_stream = None


def _mirror(line: str) -> None:
    if _log_stream is not None:
        _log_stream.write(_ANSI_RE.sub("", line) + "\n")
        _log_stream.flush()


# ============================================================================
# Formatting
# ============================================================================


def _clock() -> str:
    now = datetime.now(UTC)
    return f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}"


def _format_duration(ms: float) -> str:
    """Render *ms* as ``850ms``, ``2.35s`` or ``1m 4.2s``."""
    if ms < 1_000:
        return f"{int(ms)}ms"
    if ms < 60_000:
        return f"{ms / 1_000:.2f}s"
    minutes, rest = divmod(ms, 60_000)
    return f"{int(minutes)}m {rest / 1_000:.1f}s"


def _render(value: object) -> str:
    match value:
        case None:
            return f"{DIM}None{RESET}"
        case bool():
            return f"{GREEN if value else RED}{value}{RESET}"
        case int() | float():
            return f"{YELLOW}{value}{RESET}"
        case str():
            text = value if len(value) <= 200 else value[:197] + "..."
            return f'{GREEN}"{text}"{RESET}'
        case list() | tuple() | set() | frozenset():
            return f"{CYAN}[{len(value)} items]{RESET}"
        case dict():
            return f"{CYAN}{{{len(value)} keys}}{RESET}"
        case _:
            return str(value)


# ============================================================================
# Logger
# ============================================================================


class Logger:
    """Component-scoped logger.

    ``data`` arguments are flat dicts appended to the message as
    ``key=value`` pairs.
    """

    def __init__(self, component: str = "Monitor") -> None:
        self._component = component

    def _emit(self, line: str) -> None:
        print(line, file=sys.stderr)
        _mirror(line)

    def _log(self, level: str, message: str, data: dict[str, object] | None = None) -> None:
        colour, glyph = _LEVELS.get(level, _LEVELS["info"])
        line = f"{GRAY}[{_clock()}]{RESET} {colour}{glyph}{RESET} {BOLD}[{self._component}]{RESET} {message}"
        if data:
            line += " " + " ".join(f"{DIM}{key}={RESET}{_render(value)}" for key, value in data.items())
        self._emit(line)

    def info(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("info", message, data)

    def success(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("success", message, data)

    def warn(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("warn", message, data)

    def error(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("error", message, data)

    def debug(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("debug", message, data)

    def start_timer(self, label: str) -> None:
        """Start timing *label*; pair with :meth:`end_timer`."""
        _timers[f"{self._component}:{label}"] = (time.monotonic() * 1000, _clock())
        self._log("timing", f"Starting: {label}")

    def end_timer(self, label: str, message: str | None = None) -> float:
        """Log and return the milliseconds elapsed since ``start_timer(label)``."""
        entry = _timers.pop(f"{self._component}:{label}", None)
        if entry is None:
            self.warn(f'Timer "{label}" was not started')
            return 0.0
        started_ms, started_at = entry
        elapsed = time.monotonic() * 1000 - started_ms
        self._log(
            "timing",
            f"{message or f'Completed: {label}'} {DIM}took{RESET} "
            f"{MAGENTA}{_format_duration(elapsed)}{RESET} {DIM}(started {started_at}){RESET}",
        )
        return elapsed

    def section(self, title: str) -> None:
        """Print a banner separating phases of a run."""
        rule = f"{BLUE}{'─' * 60}{RESET}"
        for line in ("", rule, f"{BLUE}{BOLD}  {title}{RESET}", rule, ""):
            self._emit(line)


def create_logger(component: str) -> Logger:
    """Return a logger whose lines are tagged with *component*."""
    return Logger(component)
