"""Token request flows for the two OAuth2 authorities.

Architecture:
    Each flow knows two things about its authority: where the token endpoint
    lives and what the client-credentials form looks like. ``OAuth2Auth`` picks
    one flow at construction time and never branches on the auth type again.

    - AzureAdFlow: Entra ID v2 endpoint, audience passed as ``<resource>/.default`` scope
    - AdfsFlow: ADFS endpoint, audience passed as ``resource``
"""

from __future__ import annotations

from typing import Protocol

from ..core.enums import AuthType
from .credentials import AuthConfig

AZURE_AD_TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
ADFS_TOKEN_URL = "https://{tenant}/adfs/oauth2/token"


class TokenFlow(Protocol):
    """Authority-specific token request shape."""

    def token_endpoint(self, config: AuthConfig) -> str: ...

    def build_form(self, config: AuthConfig, resource: str) -> dict[str, str]: ...


def _client_credentials(config: AuthConfig) -> dict[str, str]:
    return {
        "grant_type": "client_credentials",
        "client_id": config.client_id,
        "client_secret": config.client_secret,
    }


def scope_for_resource(resource: str) -> str:
    """``https://host`` -> ``https://host/.default``; trailing slash kept once."""
    if resource.endswith("/"):
        return f"{resource}.default"
    return f"{resource}/.default"


class AzureAdFlow:
    """Entra ID (cloud) client-credentials flow."""

    def token_endpoint(self, config: AuthConfig) -> str:
        return AZURE_AD_TOKEN_URL.format(tenant=config.tenant_id)

    def build_form(self, config: AuthConfig, resource: str) -> dict[str, str]:
        form = _client_credentials(config)
        form["scope"] = scope_for_resource(resource)
        return form


class AdfsFlow:
    """ADFS (on-premises) client-credentials flow."""

    def token_endpoint(self, config: AuthConfig) -> str:
        if config.token_url:
            return config.token_url
        return ADFS_TOKEN_URL.format(tenant=config.tenant_id)

    def build_form(self, config: AuthConfig, resource: str) -> dict[str, str]:
        form = _client_credentials(config)
        form["resource"] = config.resource or resource
        return form


_FLOWS: dict[AuthType, type[AzureAdFlow] | type[AdfsFlow]] = {
    AuthType.AZURE_AD: AzureAdFlow,
    AuthType.ADFS: AdfsFlow,
}


def flow_for(auth_type: AuthType) -> TokenFlow:
    """Return the token flow for an auth type."""
    return _FLOWS[auth_type]()
