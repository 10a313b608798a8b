"""OAuth2 credential store."""

from .credentials import EXPIRY_MARGIN_SECONDS, AuthConfig, CachedToken, TokenResponse
from .flows import AdfsFlow, AzureAdFlow, TokenFlow, flow_for, scope_for_resource
from .oauth2 import OAuth2Auth, resource_from_endpoint

__all__ = [
    "AuthConfig",
    "CachedToken",
    "TokenResponse",
    "EXPIRY_MARGIN_SECONDS",
    "TokenFlow",
    "AzureAdFlow",
    "AdfsFlow",
    "flow_for",
    "scope_for_resource",
    "OAuth2Auth",
    "resource_from_endpoint",
]
