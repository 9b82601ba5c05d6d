"""Persisted state shape and the key-value keys it is stored under."""

from __future__ import annotations

import pydantic

from cookie_monitor.models.cookies import CookieRecord
from cookie_monitor.utils.serialization import snake_to_camel

SANDBOXED_SITES_KEY = "sandboxedSites"
MONITORING_ENABLED_KEY = "monitoringEnabled"
COOKIE_DATA_KEY = "cookieData"

STATE_KEYS = (SANDBOXED_SITES_KEY, MONITORING_ENABLED_KEY, COOKIE_DATA_KEY)


class PersistedState(pydantic.BaseModel):
    """Everything the monitor mirrors into the key-value store.

    Missing keys fall back to defaults so a fresh store loads as an
    empty, monitoring-enabled state.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel, populate_by_name=True
    )

    sandboxed_sites: list[str] = pydantic.Field(default_factory=list)
    monitoring_enabled: bool = True
    cookie_data: list[CookieRecord] = pydantic.Field(default_factory=list)

    @pydantic.field_validator("monitoring_enabled", mode="before")
    @classmethod
    def _none_means_enabled(cls, value: object) -> object:
        return True if value is None else value

    @pydantic.field_validator("sandboxed_sites", "cookie_data", mode="before")
    @classmethod
    def _none_means_empty(cls, value: object) -> object:
        return [] if value is None else value
