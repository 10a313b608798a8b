"""D365 OData - async client for Microsoft Dynamics 365 OData APIs."""

__version__ = "0.1.0"

from .auth import AuthConfig, CachedToken, OAuth2Auth, resource_from_endpoint
from .clients import ODataClient
from .config import RuntimeConfig, load_config, load_default
from .core import (
    AuthError,
    AuthTransportError,
    AuthType,
    ConfigError,
    D365Error,
    MissingCredentialsError,
    NotFoundError,
    ODataAuthError,
    ODataError,
    ParseError,
    ProductType,
    RateLimitError,
    ServerError,
    TokenParseError,
    TokenRequestError,
    TransportError,
)
from .models import EntityInfo, ODataPage, QueryOptions, to_query_string
from .runtime import HTTPClient, HTTPResponse, PageWalker, RetryExecutor, RetryPolicy

__all__ = [
    "__version__",
    # Clients
    "ODataClient",
    # Auth
    "AuthConfig",
    "CachedToken",
    "OAuth2Auth",
    "resource_from_endpoint",
    # Config
    "RuntimeConfig",
    "load_config",
    "load_default",
    # Models
    "EntityInfo",
    "ODataPage",
    "QueryOptions",
    "to_query_string",
    # Runtime
    "HTTPClient",
    "HTTPResponse",
    "PageWalker",
    "RetryExecutor",
    "RetryPolicy",
    # Enums
    "AuthType",
    "ProductType",
    # Exceptions
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
