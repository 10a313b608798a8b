"""HTTP client helper."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import aiohttp

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class HTTPResponse:
    """Fully-read HTTP response.

    The body is read while the connection is held so callers can classify
    the status and decode the payload after the connection is released.
    """

    status: int
    body: str
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())


class HTTPClient:
    """Async HTTP client wrapper."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        *,
        insecure_ssl: bool = False,
    ) -> None:
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.insecure_ssl = insecure_ssl
        self._session: aiohttp.ClientSession | None = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(ssl=False) if self.insecure_ssl else None
            self._session = aiohttp.ClientSession(timeout=self.timeout, connector=connector)
        return self._session

    async def get(self, url: str, headers: dict[str, str] | None = None) -> HTTPResponse:
        """GET request. Non-success statuses are returned, not raised."""
        async with self.session.get(url, headers=headers) as response:
            return await self._read(response)

    async def post_form(
        self,
        url: str,
        data: Mapping[str, Any],
        headers: dict[str, str] | None = None,
    ) -> HTTPResponse:
        """POST a form-encoded body."""
        async with self.session.post(url, data=dict(data), headers=headers) as response:
            return await self._read(response)

    @staticmethod
    async def _read(response: aiohttp.ClientResponse) -> HTTPResponse:
        body = await response.text()
        headers = {key.lower(): value for key, value in response.headers.items()}
        return HTTPResponse(status=response.status, body=body, headers=headers)

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
