"""Cookie categorisation and the known-tracker signature check."""

from __future__ import annotations

from cookie_monitor.analysis import tracker_patterns
from cookie_monitor.models.cookies import CookieCategory, RawCookie


def is_known_tracker(cookie: RawCookie) -> bool:
    """Check a cookie against the tracker signature tables.

    A cookie is a known tracker when its domain contains a listed
    tracker domain (case-insensitive) or its raw name matches one of
    the tracking name patterns anywhere in the string.
    """
    return tracker_patterns.matches_tracker_domain(cookie.domain) or tracker_patterns.matches_tracker_name(
        cookie.name
    )


def categorize(cookie: RawCookie) -> CookieCategory:
    """Assign exactly one category to *cookie*.

    Known trackers win; otherwise session cookies are ``session`` and
    everything else is ``functional``.
    """
    if is_known_tracker(cookie):
        return "tracker"
    if cookie.session:
        return "session"
    return "functional"
