"""Control-channel request variants and their responses.

Requests form a closed tagged union discriminated by ``action``;
the monitor dispatches on the concrete variant with ``match``.
Payloads use the browser extension's camelCase action names.
"""

from __future__ import annotations

from typing import Annotated, Literal

import pydantic

from cookie_monitor.models.cookies import CookieCategory, CookieRecord
from cookie_monitor.models.summary import CookieSummary
from cookie_monitor.utils.serialization import snake_to_camel

# ── Requests ────────────────────────────────────────────────────


class GetCookieData(pydantic.BaseModel):
    """Fetch stored cookies, the summary and the sandbox list."""

    action: Literal["getCookieData"] = "getCookieData"


class ClearTrackerCookies(pydantic.BaseModel):
    """Remove every stored cookie categorised as a tracker."""

    action: Literal["clearTrackerCookies"] = "clearTrackerCookies"


class ClearCategory(pydantic.BaseModel):
    """Remove every stored cookie in *category*."""

    action: Literal["clearCategory"] = "clearCategory"
    category: CookieCategory


class UpdateSandbox(pydantic.BaseModel):
    """Add *domain* to, or remove it from, the sandboxed set."""

    action: Literal["updateSandbox"] = "updateSandbox"
    domain: str
    add: bool = True


class ToggleMonitoring(pydantic.BaseModel):
    """Enable or disable processing of cookie-change events."""

    action: Literal["toggleMonitoring"] = "toggleMonitoring"
    enabled: bool


class DeleteCookie(pydantic.BaseModel):
    """Remove a single cookie from the browser store."""

    action: Literal["deleteCookie"] = "deleteCookie"
    name: str
    domain: str
    path: str = "/"


class ClearAllCookies(pydantic.BaseModel):
    """Remove every cookie currently in the browser store."""

    action: Literal["clearAllCookies"] = "clearAllCookies"


ControlRequest = Annotated[
    GetCookieData
    | ClearTrackerCookies
    | ClearCategory
    | UpdateSandbox
    | ToggleMonitoring
    | DeleteCookie
    | ClearAllCookies,
    pydantic.Field(discriminator="action"),
]

_request_adapter: pydantic.TypeAdapter[ControlRequest] = pydantic.TypeAdapter(ControlRequest)


def parse_request(payload: object) -> ControlRequest | None:
    """Validate a raw control payload.

    Returns:
        The matching request variant, or ``None`` when the payload
        names an unknown action or is otherwise malformed.
    """
    try:
        return _request_adapter.validate_python(payload)
    except pydantic.ValidationError:
        return None


# ── Responses ───────────────────────────────────────────────────


class Acknowledgement(pydantic.BaseModel):
    """Result of a mutating control request."""

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel, populate_by_name=True
    )

    success: bool = True
    error: str | None = None
    removed: int | None = None
    failed: int | None = None


class CookieDataResponse(pydantic.BaseModel):
    """Answer to :class:`GetCookieData`."""

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel, populate_by_name=True
    )

    cookies: list[CookieRecord]
    summary: CookieSummary
    sandboxed_sites: list[str]
    monitoring_enabled: bool
    recent_cookies: list[CookieRecord] = pydantic.Field(default_factory=list)


ControlResponse = Acknowledgement | CookieDataResponse
