"""Pydantic models for cookie observations and the records kept per cookie."""

from __future__ import annotations

from typing import Literal

import pydantic

from cookie_monitor.utils.serialization import snake_to_camel

CookieCategory = Literal["tracker", "session", "functional"]

COOKIE_CATEGORIES: tuple[CookieCategory, ...] = ("tracker", "session", "functional")


class RawCookie(pydantic.BaseModel):
    """A single cookie as surfaced by the browser's cookie store.

    Accepts both snake_case and the browser's camelCase keys
    (``expirationDate``, ``httpOnly`` ...).  ``expiration_date`` is
    in epoch seconds and is ``None`` for session cookies.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel, populate_by_name=True, extra="ignore"
    )

    name: str
    value: str = ""
    domain: str
    path: str = "/"
    expiration_date: float | None = None
    secure: bool = False
    http_only: bool = False
    session: bool = False
    host_only: bool = False
    same_site: str = "unspecified"
    store_id: str | None = None

    @property
    def key(self) -> CookieKey:
        """The logical identity of this cookie."""
        return CookieKey(name=self.name, domain=self.domain, path=self.path)


class CookieKey(pydantic.BaseModel):
    """Immutable ``(name, domain, path)`` identity of a logical cookie."""

    model_config = pydantic.ConfigDict(frozen=True)

    name: str
    domain: str
    path: str = "/"

    def removal_url(self) -> str:
        """URL a browser cookie API expects when removing this cookie."""
        return f"https://{self.domain.lstrip('.')}{self.path}"


class CookieRecord(pydantic.BaseModel):
    """Everything the monitor knows about one logical cookie.

    Created on first observation and updated in place afterwards;
    ``first_seen`` never changes and ``access_count`` counts every
    merge applied to the key.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel, populate_by_name=True, validate_assignment=True
    )

    name: str
    domain: str
    path: str = "/"
    expiration_date: float | None = None
    secure: bool = False
    http_only: bool = False
    session: bool = False
    value_length: int = pydantic.Field(default=0, ge=0)
    risk_score: int = pydantic.Field(ge=0, le=100)
    category: CookieCategory
    first_seen: float
    last_seen: float
    access_count: int = pydantic.Field(default=1, ge=1)

    @pydantic.model_validator(mode="after")
    def _check_seen_order(self) -> CookieRecord:
        if self.first_seen > self.last_seen:
            raise ValueError("first_seen must not be later than last_seen")
        return self

    @property
    def key(self) -> CookieKey:
        """The logical identity of this record."""
        return CookieKey(name=self.name, domain=self.domain, path=self.path)
