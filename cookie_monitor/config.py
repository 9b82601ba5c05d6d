"""
Runtime configuration for the cookie monitor.

Uses ``pydantic_settings.BaseSettings`` for automatic environment
variable binding (prefix ``COOKIE_MONITOR_``), type coercion, and
validation.
"""

from __future__ import annotations

import pathlib

import pydantic
import pydantic_settings


class MonitorSettings(pydantic_settings.BaseSettings):
    """Settings for the monitor engine and replay entry point.

    Attributes:
        state_file: JSON document used by the file-backed key-value store.
        recent_window_hours: Window for the summary's recent activity count.
        recent_cookie_limit: Number of records in the recent-cookie list.
        restore_snapshot: Seed the record store from the persisted
            snapshot on start-up.
        scan_on_start: Observe every cookie already in the store on start-up.
    """

    model_config = pydantic_settings.SettingsConfigDict(env_prefix="COOKIE_MONITOR_")

    state_file: pathlib.Path = pathlib.Path(".state") / "cookie-monitor.json"
    recent_window_hours: float = pydantic.Field(default=24.0, gt=0)
    recent_cookie_limit: int = pydantic.Field(default=10, ge=0)
    restore_snapshot: bool = True
    scan_on_start: bool = True

    @property
    def recent_window_seconds(self) -> float:
        """The recent activity window in seconds."""
        return self.recent_window_hours * 60 * 60
