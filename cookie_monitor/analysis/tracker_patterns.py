"""
Known tracker signatures consulted by risk scoring and categorisation.

Two immutable tables: tracker domains (matched as case-insensitive
substrings of a cookie's domain) and tracking cookie name patterns
(matched as unanchored regex searches against the raw cookie name).
"""

from __future__ import annotations

import re

# ============================================================================
# Tracker Domains
# ============================================================================

TRACKER_DOMAINS: tuple[str, ...] = (
    "google-analytics.com",
    "googlesyndication.com",
    "doubleclick.net",
    "facebook.com",
    "fbcdn.net",
    "scorecardresearch.com",
    "twitter.com",
    "adsystem.com",
    "adnxs.com",
    "amazon-adsystem.com",
)

# ============================================================================
# Tracking Cookie Name Patterns
# ============================================================================

TRACKER_COOKIE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"_ga"),
    re.compile(r"_gid"),
    re.compile(r"_gat"),
    re.compile(r"fbp"),
    re.compile(r"fbc"),
    re.compile(r"tr"),
    re.compile(r"_fbp"),
    re.compile(r"_pin"),
    re.compile(r"track"),
    re.compile(r"uid"),
    re.compile(r"user_id"),
)

# Single alternation equivalent to searching every pattern in turn.
TRACKER_COOKIE_COMBINED: re.Pattern[str] = re.compile(
    "|".join(f"(?:{p.pattern})" for p in TRACKER_COOKIE_PATTERNS)
)


def matches_tracker_domain(domain: str) -> bool:
    """Return True if *domain* contains any known tracker domain."""
    lowered = domain.lower()
    return any(tracker in lowered for tracker in TRACKER_DOMAINS)


def matches_tracker_name(name: str) -> bool:
    """Return True if the raw cookie *name* matches any tracking pattern."""
    return TRACKER_COOKIE_COMBINED.search(name) is not None
