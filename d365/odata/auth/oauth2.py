"""OAuth2 client-credentials token acquisition with caching.

Architecture:
    ``OAuth2Auth`` is the credential store used by the OData client:
    - get_token(): return a cached bearer token or acquire a new one
    - clear_cache(): force the next call to re-acquire
    - resource_from_endpoint(): derive the audience from a service URL

Design Decisions:
    - Cache keyed by resource: tokens for different audiences never evict
      each other
    - Single-flight acquisition: concurrent callers asking for the same
      resource share one in-progress request instead of each posting to
      the token endpoint
    - Flow selected once: the authority variant is resolved to a TokenFlow
      in __init__, acquisition code has no auth type branches
    - Cached tokens are replaced wholesale, never mutated
"""

from __future__ import annotations

import asyncio
import json
import logging
from urllib.parse import urlsplit

import aiohttp
from pydantic import ValidationError

from ..core.enums import AuthType
from ..core.exceptions import (
    AuthTransportError,
    MissingCredentialsError,
    TokenParseError,
    TokenRequestError,
)
from ..runtime.http_client import HTTPClient
from ..runtime.telemetry import log_token_acquired, log_token_error
from .credentials import AuthConfig, CachedToken, TokenResponse
from .flows import TokenFlow, flow_for

logger = logging.getLogger(__name__)


def resource_from_endpoint(endpoint: str) -> str:
    """Return ``scheme://host`` for a service URL.

    >>> resource_from_endpoint("https://org.crm.dynamics.com/api/data/v9.2/")
    'https://org.crm.dynamics.com'
    """
    parts = urlsplit(endpoint)
    if parts.scheme and parts.hostname:
        return f"{parts.scheme}://{parts.hostname}"
    return "/".join(endpoint.split("/")[:3])


class OAuth2Auth:
    """Unified OAuth2 authentication helper for Entra ID and ADFS."""

    def __init__(self, config: AuthConfig, http: HTTPClient | None = None) -> None:
        self.config = config
        self._flow: TokenFlow = flow_for(config.auth_type)
        self._http = http or HTTPClient()
        self._tokens: dict[str, CachedToken] = {}
        self._inflight: dict[str, asyncio.Task[str]] = {}
        self._lock = asyncio.Lock()
        # Bumped by clear_cache(); acquisitions started earlier do not populate the cache
        self._generation = 0

    @classmethod
    def azure(cls, tenant_id: str, client_id: str, client_secret: str) -> OAuth2Auth:
        """Create an Entra ID auth helper."""
        return cls(
            AuthConfig(
                auth_type=AuthType.AZURE_AD,
                tenant_id=tenant_id,
                client_id=client_id,
                client_secret=client_secret,
            )
        )

    resource_from_endpoint = staticmethod(resource_from_endpoint)

    @property
    def token_endpoint(self) -> str:
        return self._flow.token_endpoint(self.config)

    def cached_token(self, resource: str) -> CachedToken | None:
        return self._tokens.get(resource)

    async def get_token(self, resource: str) -> str:
        """Acquire or return a cached access token for the given resource.

        Raises:
            AuthError: If a new token was needed and could not be acquired
        """
        cached = self._tokens.get(resource)
        if cached is not None and cached.is_valid():
            logger.debug("Using cached token", extra={"resource": resource})
            return cached.access_token

        async with self._lock:
            # Another caller may have finished acquiring while we waited
            cached = self._tokens.get(resource)
            if cached is not None and cached.is_valid():
                return cached.access_token

            task = self._inflight.get(resource)
            if task is None:
                logger.info("Acquiring new access token", extra={"resource": resource})
                task = asyncio.create_task(self._acquire_token(resource, self._generation))
                self._inflight[resource] = task
                task.add_done_callback(lambda t: self._forget(resource, t))

        # shield: one waiter being cancelled must not cancel the shared request
        return await asyncio.shield(task)

    def _forget(self, resource: str, task: asyncio.Task[str]) -> None:
        if self._inflight.get(resource) is task:
            del self._inflight[resource]
        # Mark the failure retrieved in case every waiter was cancelled
        if not task.cancelled():
            task.exception()

    async def _acquire_token(self, resource: str, generation: int) -> str:
        missing = self.config.missing_fields()
        if missing:
            raise MissingCredentialsError(f"Missing credentials: {', '.join(missing)}")

        endpoint = self.token_endpoint
        form = self._flow.build_form(self.config, resource)
        logger.debug(
            "Token endpoint: %s",
            endpoint,
            extra={"auth_type": self.config.auth_type.value},
        )

        try:
            response = await self._http.post_form(endpoint, form)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log_token_error(
                auth_type=self.config.auth_type.value, status_code=None, error_message=str(e)
            )
            raise AuthTransportError(f"HTTP error: {e}") from e

        if not response.ok:
            log_token_error(
                auth_type=self.config.auth_type.value,
                status_code=response.status,
                error_message=response.body,
            )
            raise TokenRequestError(response.status, response.body)

        try:
            token = TokenResponse.model_validate(json.loads(response.body))
        except (ValueError, ValidationError) as e:
            raise TokenParseError(f"Failed to parse token response: {e}") from e

        if generation == self._generation:
            self._tokens[resource] = CachedToken.issued(token.access_token, token.expires_in)
        log_token_acquired(
            auth_type=self.config.auth_type.value,
            resource=resource,
            expires_in=token.expires_in,
        )
        return token.access_token

    async def clear_cache(self) -> None:
        """Drop every cached token and detach in-progress acquisitions.

        Callers already waiting on an acquisition still receive its result,
        but that token is not cached and the next get_token() starts afresh.
        """
        async with self._lock:
            self._generation += 1
            self._tokens.clear()
            self._inflight.clear()

    async def close(self) -> None:
        await self._http.close()
