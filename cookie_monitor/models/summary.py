"""Pydantic models for the derived cookie summary."""

from __future__ import annotations

import pydantic

from cookie_monitor.models.cookies import CookieCategory
from cookie_monitor.utils.serialization import snake_to_camel


class RiskBreakdown(pydantic.BaseModel):
    """Record counts per risk tier."""

    low: int = 0
    medium: int = 0
    high: int = 0


class CookieSummary(pydantic.BaseModel):
    """Statistical rollup of the record store; recomputed on every request."""

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel, populate_by_name=True
    )

    total: int = 0
    by_category: dict[CookieCategory, int] = pydantic.Field(default_factory=dict)
    by_risk: RiskBreakdown = pydantic.Field(default_factory=RiskBreakdown)
    recent_activity: int = 0
