"""
Error types and helpers for consistent error message extraction.
"""


class CookieMonitorError(Exception):
    """Base class for errors raised by the cookie monitor."""


class InvalidDomainError(CookieMonitorError, ValueError):
    """Raised when a domain string is rejected before any state change."""

    def __init__(self, domain: str) -> None:
        super().__init__(f"Invalid domain: {domain!r}")
        self.domain = domain


class ExternalStoreError(CookieMonitorError):
    """Raised by collaborator implementations when a store call fails."""


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.
    """
    if isinstance(error, Exception):
        return str(error) or type(error).__name__
    return "Unknown error"
