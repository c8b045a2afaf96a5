"""
Support Relay Exception Taxonomy

Defines the error types raised by helpdesk providers and consumed by the
delivery task, which is the single authority deciding whether a failure
is retried.

Design Considerations:
- Configuration problems are never retried
- Transport, auth and API failures are retryable
- API errors carry the helpdesk status code and raw body for diagnostics
"""

from typing import Optional


class SupportError(Exception):
    """Base class for all support relay errors."""

    retryable: bool = True


class ConfigurationError(SupportError):
    """Provider or pipeline configuration is unusable."""

    retryable = False


class TransportError(SupportError):
    """Network failure or timeout while talking to the helpdesk."""


class AuthError(SupportError):
    """Access token exchange or authenticated request was rejected."""


class ApiError(SupportError):
    """
    Non-2xx response from the helpdesk API.

    Attributes:
        status: HTTP status code returned by the helpdesk
        body: Raw response body
    """

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"{base} (status={self.status})"
