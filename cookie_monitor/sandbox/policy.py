"""Sandbox Policy Engine: evict third-party cookies from isolated sites.

The sandboxed set holds normalized hostnames.  When a sandboxed site
finishes loading, :meth:`SandboxPolicy.enforce` re-reads the live
cookie store for that site and removes every cookie that is not
first-party for it.  Eviction happens after the fact on each visit;
cookie creation is never blocked.

First-party is decided with a plain suffix rule: the site equals the
cookie domain or is a subdomain of it.  It is not public-suffix
aware, so sibling subdomains under a shared multi-tenant parent
domain are treated as first-party.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

from cookie_monitor.engine.collaborators import CookieStore
from cookie_monitor.models.cookies import CookieKey, RawCookie
from cookie_monitor.store.persistence import StatePersister
from cookie_monitor.utils import logger, url
from cookie_monitor.utils.errors import InvalidDomainError, get_error_message

log = logger.create_logger("Sandbox")


@dataclasses.dataclass
class EnforcementResult:
    """Outcome of one :meth:`SandboxPolicy.enforce` run."""

    site: str
    inspected: int = 0
    kept: list[CookieKey] = dataclasses.field(default_factory=list)
    evicted: list[CookieKey] = dataclasses.field(default_factory=list)
    failed: list[CookieKey] = dataclasses.field(default_factory=list)


def is_first_party(cookie: RawCookie, site_domain: str) -> bool:
    """Return True if *cookie* is first-party for *site_domain*.

    Leading dots are ignored on both sides.  The cookie is first-party
    when the site equals its domain or is a strict subdomain of it.
    """
    return url.is_same_or_subdomain(site_domain, cookie.domain)


def _normalize_or_reject(domain: str) -> str:
    normalized = url.normalize_domain(domain)
    if not url.is_valid_hostname(normalized):
        raise InvalidDomainError(domain)
    return normalized


class SandboxPolicy:
    """Owns the sandboxed domain set and enforces isolation on visit."""

    def __init__(self, cookie_store: CookieStore, persister: StatePersister | None = None) -> None:
        self._cookie_store = cookie_store
        self._persister = persister
        self._domains: set[str] = set()

    @property
    def domains(self) -> list[str]:
        """Sorted snapshot of the sandboxed domains."""
        return sorted(self._domains)

    def load(self, domains: Iterable[str]) -> None:
        """Replace the set from persisted state, skipping invalid entries."""
        self._domains.clear()
        for domain in domains:
            normalized = url.normalize_domain(domain)
            if url.is_valid_hostname(normalized):
                self._domains.add(normalized)
            else:
                log.warn("Ignoring invalid persisted sandbox domain", {"domain": domain})

    def is_sandboxed(self, hostname: str) -> bool:
        """Exact membership test on the normalized *hostname*."""
        return url.normalize_domain(hostname) in self._domains

    async def _persist(self) -> None:
        if self._persister is not None:
            await self._persister.save_sandboxed_sites(self._domains)

    async def add_domain(self, domain: str) -> bool:
        """Sandbox *domain*.

        Raises:
            InvalidDomainError: *domain* is not a valid hostname; the
                set is left untouched.

        Returns:
            True if the domain was newly added.
        """
        normalized = _normalize_or_reject(domain)
        if normalized in self._domains:
            log.debug("Domain already sandboxed", {"domain": normalized})
            return False
        self._domains.add(normalized)
        log.info("Domain sandboxed", {"domain": normalized})
        await self._persist()
        return True

    async def remove_domain(self, domain: str) -> bool:
        """Stop sandboxing *domain*.

        Raises:
            InvalidDomainError: *domain* is empty after normalization.

        Returns:
            True if the domain was present.
        """
        normalized = url.normalize_domain(domain)
        if not normalized:
            raise InvalidDomainError(domain)
        if normalized not in self._domains:
            return False
        self._domains.discard(normalized)
        log.info("Domain removed from sandbox", {"domain": normalized})
        await self._persist()
        return True

    async def enforce(self, site_domain: str) -> EnforcementResult:
        """Remove every non-first-party cookie the store reports for *site_domain*.

        The live cookie store is queried on every call.  Removal
        failures are logged per cookie and never stop the remaining
        removals.  A failure listing the store aborts the run.
        """
        site = url.normalize_domain(site_domain)
        result = EnforcementResult(site=site)

        try:
            cookies = await self._cookie_store.list(site)
        except Exception as exc:
            log.error("Failed to list cookies for sandboxed site", {"site": site, "error": get_error_message(exc)})
            return result

        result.inspected = len(cookies)
        for cookie in cookies:
            key = cookie.key
            if is_first_party(cookie, site):
                result.kept.append(key)
                continue
            try:
                removed = await self._cookie_store.remove(key)
            except Exception as exc:
                log.warn(
                    "Failed to evict cookie",
                    {"name": key.name, "domain": key.domain, "error": get_error_message(exc)},
                )
                result.failed.append(key)
                continue
            if removed:
                result.evicted.append(key)
            else:
                log.warn("Cookie store refused eviction", {"name": key.name, "domain": key.domain})
                result.failed.append(key)

        log.info(
            "Sandbox enforced",
            {"site": site, "inspected": result.inspected, "evicted": len(result.evicted), "failed": len(result.failed)},
        )
        return result
