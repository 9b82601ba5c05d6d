"""
URL and domain utility functions for cookie isolation.
"""

from __future__ import annotations

import re
from urllib import parse

_LABEL_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
_TLD_RE = re.compile(r"^(?:[a-z]{2,63}|xn--[a-z0-9-]{1,59})$")


def extract_domain(url: str) -> str:
    """Extract the hostname from a URL string.

    Bare hostnames (no scheme) are returned lowercased as-is.
    Returns an empty string when nothing usable is found.
    """
    if "://" not in url:
        return url.strip().lower()
    try:
        return parse.urlparse(url).hostname or ""
    except ValueError:
        return ""


def normalize_domain(domain: str) -> str:
    """Lowercase a domain and strip surrounding whitespace and leading dots.

    Args:
        domain: A hostname or cookie domain such as ``".Example.com"``.

    Returns:
        The normalized form, e.g. ``"example.com"``.
    """
    return domain.strip().lower().lstrip(".")


def is_valid_hostname(domain: str) -> bool:
    """Check that *domain* (already normalized) looks like a hostname.

    Labels are letters, digits and hyphens without a leading or
    trailing hyphen; the final label is alphabetic and at least two
    characters long, or an IDNA ``xn--`` label.  At least two labels
    are required.
    """
    if not domain or len(domain) > 253:
        return False
    labels = domain.split(".")
    if len(labels) < 2:
        return False
    if not _TLD_RE.match(labels[-1]):
        return False
    return all(_LABEL_RE.match(label) for label in labels[:-1])


def is_same_or_subdomain(host: str, domain: str) -> bool:
    """Return True when *host* equals *domain* or is a strict subdomain of it.

    Both arguments are normalized first.  This is a plain suffix
    match on label boundaries and is not public-suffix aware.
    """
    host = normalize_domain(host)
    domain = normalize_domain(domain)
    return host == domain or host.endswith("." + domain)
