"""HTTP runtime: transport, retry policy and pagination."""

from .http_client import DEFAULT_TIMEOUT_SECONDS, HTTPClient, HTTPResponse
from .pager import FetchPage, PageWalker
from .retry import (
    ODATA_HEADERS,
    RetryExecutor,
    RetryPolicy,
    bearer_headers,
    parse_retry_after,
)

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "HTTPClient",
    "HTTPResponse",
    "FetchPage",
    "PageWalker",
    "ODATA_HEADERS",
    "RetryExecutor",
    "RetryPolicy",
    "bearer_headers",
    "parse_retry_after",
]
