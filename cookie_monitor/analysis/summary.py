"""On-demand rollups over the stored cookie records.

Nothing here is cached; every call recomputes from the records it
is given.
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Iterable

from cookie_monitor.models.cookies import CookieRecord
from cookie_monitor.models.summary import CookieSummary, RiskBreakdown
from cookie_monitor.utils import risk

RECENT_WINDOW_SECONDS = 24 * 60 * 60


def summarize(
    records: Iterable[CookieRecord],
    now: float | None = None,
    recent_window: float = RECENT_WINDOW_SECONDS,
) -> CookieSummary:
    """Count records by category, risk tier and recent activity.

    Args:
        records: The records to summarise.
        now: Reference epoch seconds. Defaults to the current time.
        recent_window: Records whose ``last_seen`` falls within this
            many seconds of *now* count as recent activity.

    Returns:
        A freshly computed :class:`CookieSummary`.
    """
    if now is None:
        now = time.time()

    total = 0
    recent = 0
    categories: Counter[str] = Counter()
    tiers: Counter[str] = Counter()

    for record in records:
        total += 1
        categories[record.category] += 1
        tiers[risk.risk_tier(record.risk_score)] += 1
        if now - record.last_seen < recent_window:
            recent += 1

    return CookieSummary(
        total=total,
        by_category=dict(categories),
        by_risk=RiskBreakdown(low=tiers["low"], medium=tiers["medium"], high=tiers["high"]),
        recent_activity=recent,
    )


def recent_cookies(records: Iterable[CookieRecord], limit: int = 10) -> list[CookieRecord]:
    """Return up to *limit* records, most recently seen first."""
    return sorted(records, key=lambda r: r.last_seen, reverse=True)[:limit]
