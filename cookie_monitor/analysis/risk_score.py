"""Per-cookie privacy risk scoring.

Adds points for long expiry horizons, oversized payloads and known
tracker signatures, subtracts points for security hardening flags,
then clamps the sum to 0-100.
"""

from __future__ import annotations

import time

from cookie_monitor.analysis import categorizer
from cookie_monitor.models.cookies import RawCookie

SECONDS_PER_DAY = 24 * 60 * 60

LONG_EXPIRY_DAYS = 365
MEDIUM_EXPIRY_DAYS = 30
LARGE_VALUE_LENGTH = 1000

LONG_EXPIRY_POINTS = 25
MEDIUM_EXPIRY_POINTS = 15
LARGE_VALUE_POINTS = 10
KNOWN_TRACKER_POINTS = 35
SECURE_FLAG_CREDIT = 5
HTTP_ONLY_FLAG_CREDIT = 5

MIN_SCORE = 0
MAX_SCORE = 100


def _expiry_points(expiration_date: float | None, now: float) -> int:
    # Session cookies carry no expiration and score nothing here.
    if not expiration_date:
        return 0
    days_to_expire = (expiration_date - now) / SECONDS_PER_DAY
    if days_to_expire > LONG_EXPIRY_DAYS:
        return LONG_EXPIRY_POINTS
    if days_to_expire > MEDIUM_EXPIRY_DAYS:
        return MEDIUM_EXPIRY_POINTS
    return 0


def calculate(cookie: RawCookie, now: float | None = None) -> int:
    """Score a single cookie observation.

    Args:
        cookie: The observed cookie.
        now: Reference epoch seconds for the expiry horizon.
            Defaults to the current time.

    Returns:
        An integer in ``[0, 100]``; higher means more privacy risk.
    """
    if now is None:
        now = time.time()

    score = _expiry_points(cookie.expiration_date, now)

    if len(cookie.value) > LARGE_VALUE_LENGTH:
        score += LARGE_VALUE_POINTS

    if categorizer.is_known_tracker(cookie):
        score += KNOWN_TRACKER_POINTS

    if cookie.secure:
        score -= SECURE_FLAG_CREDIT
    if cookie.http_only:
        score -= HTTP_ONLY_FLAG_CREDIT

    return max(MIN_SCORE, min(MAX_SCORE, score))
