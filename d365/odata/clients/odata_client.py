"""OData client for Dynamics 365 APIs.

Architecture:
    Facade over the credential store, retry executor and page walker:
    - fetch_metadata(): raw $metadata XML, single attempt
    - fetch_entity_page(): one page of an entity set
    - fetch_all_pages() / iter_pages(): full entity set walk
    - get_entity(): single record by key

    One instance is meant to be shared by any number of concurrent tasks.
    It owns its HTTP transport and credential store; close() releases both.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import aiohttp
from pydantic import ValidationError

from ..auth.oauth2 import OAuth2Auth, resource_from_endpoint
from ..core.enums import ProductType
from ..core.exceptions import (
    AuthError,
    ConfigError,
    ODataAuthError,
    ParseError,
    ServerError,
    TransportError,
)
from ..models.page import ODataPage
from ..models.query import QueryOptions
from ..runtime.http_client import DEFAULT_TIMEOUT_SECONDS, HTTPClient
from ..runtime.pager import PageWalker
from ..runtime.retry import RetryExecutor, RetryPolicy, bearer_headers

if TYPE_CHECKING:
    from ..config.settings import RuntimeConfig

logger = logging.getLogger(__name__)

_EMPTY_OPTIONS = QueryOptions()


class ODataClient:
    """OData client for D365 APIs.

    Args:
        auth: Credential store used for every request
        endpoint: Service root URL (e.g. "https://org.crm.dynamics.com/api/data/v9.2/")
        product: Product variant (Dataverse or F&O)
        retry_policy: Retry budget for data requests
        max_pages: Optional safety cutoff for full entity set walks
        timeout: Per-request timeout in seconds
        insecure_ssl: Skip TLS certificate verification
        http: Transport override
    """

    def __init__(
        self,
        auth: OAuth2Auth,
        endpoint: str,
        product: ProductType = ProductType.DATAVERSE,
        *,
        retry_policy: RetryPolicy | None = None,
        max_pages: int | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        insecure_ssl: bool = False,
        http: HTTPClient | None = None,
    ) -> None:
        self._auth = auth
        self._endpoint = endpoint if endpoint.endswith("/") else f"{endpoint}/"
        self._product = ProductType.parse(product)
        self._resource = resource_from_endpoint(self._endpoint)
        self._http = http or HTTPClient(timeout, insecure_ssl=insecure_ssl)
        self._executor = RetryExecutor(self._http, retry_policy)
        self._max_pages = max_pages

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> ODataClient:
        """Build a client and its credential store from resolved configuration.

        Raises:
            ConfigError: If the retry or pagination settings are inconsistent
        """
        try:
            retry_policy = RetryPolicy(
                max_retries=config.max_retries,
                retry_delay_ms=config.retry_delay_ms,
                max_delay_ms=config.max_retry_delay_ms,
            )
            if config.max_pages is not None and config.max_pages < 1:
                raise ValueError("max_pages must be at least 1")
        except ValueError as e:
            raise ConfigError(f"Invalid client settings: {e}") from e

        token_http = HTTPClient(config.timeout_seconds, insecure_ssl=config.insecure_ssl)
        return cls(
            OAuth2Auth(config.auth_config(), http=token_http),
            config.endpoint,
            config.product,
            retry_policy=retry_policy,
            max_pages=config.max_pages,
            timeout=config.timeout_seconds,
            insecure_ssl=config.insecure_ssl,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def product(self) -> ProductType:
        return self._product

    @property
    def resource(self) -> str:
        """Audience requested for every token."""
        return self._resource

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._executor.policy

    async def _token(self) -> str:
        try:
            return await self._auth.get_token(self._resource)
        except AuthError as e:
            raise ODataAuthError(e) from e

    async def fetch_metadata(self) -> str:
        """Fetch the service $metadata document as XML text.

        Raises:
            ServerError: On any non-success status (no retry)
        """
        url = f"{self._endpoint}$metadata"
        token = await self._token()
        headers = bearer_headers(token, base={"Accept": "application/xml"})

        try:
            response = await self._http.get(url, headers=headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"HTTP error: {e}") from e

        if not response.ok:
            raise ServerError(response.status, response.body)
        return response.body

    def entity_url(self, entity: str, options: QueryOptions | None = None) -> str:
        query = (options or _EMPTY_OPTIONS).to_query_string(self._product)
        return f"{self._endpoint}{entity}{query}"

    async def fetch_entity_page(
        self,
        entity: str,
        next_link: str | None = None,
        options: QueryOptions | None = None,
    ) -> ODataPage:
        """Fetch one page of an entity set.

        Args:
            entity: Entity set name (e.g. "contacts", "accounts")
            next_link: Continuation link from the previous page; when given,
                ``options`` is ignored
            options: Query options for the first page
        """
        url = next_link if next_link is not None else self.entity_url(entity, options)
        logger.debug("Fetching: %s", url)

        token = await self._token()
        response = await self._executor.execute(url, token)

        try:
            page = ODataPage.model_validate(json.loads(response.body))
        except (ValueError, ValidationError) as e:
            raise ParseError(f"Failed to parse OData response: {e}") from e

        logger.debug(
            "Fetched %d records, next_link: %s", len(page.value), page.next_link is not None
        )
        return page

    def _walker(self, entity: str, options: QueryOptions | None) -> PageWalker:
        async def fetch(link: str | None) -> ODataPage:
            return await self.fetch_entity_page(entity, link, options)

        return PageWalker(fetch, entity=entity, max_pages=self._max_pages)

    async def iter_pages(
        self, entity: str, options: QueryOptions | None = None
    ) -> AsyncIterator[ODataPage]:
        """Yield every page of an entity set in arrival order."""
        async for page in self._walker(entity, options).iter_pages():
            yield page

    async def fetch_all_pages(
        self, entity: str, options: QueryOptions | None = None
    ) -> list[Any]:
        """Fetch every record of an entity set, following next links."""
        return await self._walker(entity, options).fetch_all()

    async def get_entity(self, entity: str, key: str) -> Any:
        """Fetch a single record by key, e.g. ``get_entity("accounts", "<guid>")``."""
        url = f"{self._endpoint}{entity}({key})"
        token = await self._token()
        response = await self._executor.execute(url, token)

        try:
            return json.loads(response.body)
        except ValueError as e:
            raise ParseError(f"Failed to parse entity: {e}") from e

    async def close(self) -> None:
        """Close the data transport and the credential store."""
        await self._http.close()
        await self._auth.close()

    async def __aenter__(self) -> ODataClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
