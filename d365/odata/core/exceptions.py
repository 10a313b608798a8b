"""Custom exception hierarchy.

Two families are raised by the library. ``AuthError`` covers token acquisition,
``ODataError`` covers data retrieval. Authentication failures met while fetching
data surface as ``ODataAuthError`` with the original ``AuthError`` chained as
its cause, so callers can catch either family or the shared ``D365Error`` base.
"""

from __future__ import annotations


class D365Error(Exception):
    """Base exception for all library errors."""

    pass


class ConfigError(D365Error):
    """Configuration is incomplete or invalid."""

    pass


class AuthError(D365Error):
    """Base exception for token acquisition failures."""

    pass


class TokenRequestError(AuthError):
    """Token endpoint answered with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Token request failed: Status: {status_code}, Body: {body}")
        self.status_code = status_code
        self.body = body


class AuthTransportError(AuthError):
    """Token endpoint could not be reached."""

    pass


class TokenParseError(AuthError):
    """Token endpoint returned a body that is not a valid token response."""

    pass


class MissingCredentialsError(AuthError):
    """Authentication configuration lacks a required value."""

    pass


class ODataError(D365Error):
    """Base exception for OData retrieval failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ODataAuthError(ODataError):
    """Bearer token could not be obtained for a data call."""

    def __init__(self, auth_error: AuthError) -> None:
        super().__init__(f"Authentication error: {auth_error}")
        self.auth_error = auth_error


class TransportError(ODataError):
    """Data endpoint could not be reached (connection failure or timeout)."""

    pass


class RateLimitError(ODataError):
    """Service kept answering 429 until the retry budget ran out."""

    def __init__(self, retry_after: float) -> None:
        super().__init__(
            f"Rate limited (429): retry after {retry_after:g} seconds", status_code=429
        )
        self.retry_after = retry_after


class ServerError(ODataError):
    """Non-success status that is either not retryable or retried to exhaustion."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Server error ({status_code}): {body}", status_code=status_code)
        self.body = body


class NotFoundError(ODataError):
    """Requested resource does not exist (404). Never retried."""

    def __init__(self, body: str) -> None:
        super().__init__(f"Not found: {body}", status_code=404)
        self.body = body


class ParseError(ODataError):
    """Response body could not be decoded into the expected shape."""

    pass
