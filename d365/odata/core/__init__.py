"""Core components."""

from .enums import AuthType, ProductType
from .exceptions import (
    AuthError,
    AuthTransportError,
    ConfigError,
    D365Error,
    MissingCredentialsError,
    NotFoundError,
    ODataAuthError,
    ODataError,
    ParseError,
    RateLimitError,
    ServerError,
    TokenParseError,
    TokenRequestError,
    TransportError,
)

__all__ = [
    "AuthType",
    "ProductType",
    "D365Error",
    "ConfigError",
    "AuthError",
    "TokenRequestError",
    "AuthTransportError",
    "TokenParseError",
    "MissingCredentialsError",
    "ODataError",
    "ODataAuthError",
    "TransportError",
    "RateLimitError",
    "ServerError",
    "NotFoundError",
    "ParseError",
]
