"""Authenticated GET with bounded retries.

Architecture:
    Every attempt ends in one of three outcomes:
    - success (200/201/204): response returned immediately
    - retry after a delay (429, 5xx) while attempts remain
    - failure: typed exception raised to the caller

    429 waits for ``Retry-After`` seconds when the header is present and for the
    current backoff delay otherwise. 5xx always waits for the backoff delay.
    The delay doubles after every retry; ``max_delay_ms`` optionally caps it.
    404 and every other status fail on first occurrence.

Design Decisions:
    - Policy is client configuration, not a per-call argument
    - Backoff sleeps suspend only the calling task
    - Transport failures (connection refused, timeout) are not retried
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import aiohttp

from ..core.exceptions import NotFoundError, RateLimitError, ServerError, TransportError
from .http_client import HTTPClient, HTTPResponse
from .telemetry import log_retry_scheduled

SUCCESS_STATUSES = frozenset({200, 201, 204})

ODATA_HEADERS = {
    "Accept": "application/json",
    "OData-MaxVersion": "4.0",
    "OData-Version": "4.0",
    "Prefer": "odata.include-annotations=*",
}


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for data requests.

    Attributes:
        max_retries: Total attempts allowed, including the first
        retry_delay_ms: Initial backoff delay in milliseconds
        max_delay_ms: Optional ceiling for the doubling delay (None = uncapped)
    """

    max_retries: int = 3
    retry_delay_ms: int = 1000
    max_delay_ms: int | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms cannot be negative")
        if self.max_delay_ms is not None and self.max_delay_ms < self.retry_delay_ms:
            raise ValueError("max_delay_ms cannot be lower than retry_delay_ms")

    def next_delay_ms(self, delay_ms: int) -> int:
        """Doubled delay, capped when a ceiling is configured."""
        doubled = delay_ms * 2
        if self.max_delay_ms is not None:
            return min(doubled, self.max_delay_ms)
        return doubled


def bearer_headers(token: str, base: dict[str, str] | None = None) -> dict[str, str]:
    headers = dict(ODATA_HEADERS if base is None else base)
    headers["Authorization"] = f"Bearer {token}"
    return headers


def parse_retry_after(value: str | None) -> float | None:
    """Seconds from a ``Retry-After`` header; None when absent or not numeric."""
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


class RetryExecutor:
    """Issues authenticated GETs and applies the retry policy."""

    def __init__(
        self,
        http: HTTPClient,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._http = http
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def execute(self, url: str, token: str) -> HTTPResponse:
        """GET ``url`` with the bearer token, retrying 429 and 5xx.

        Raises:
            RateLimitError: 429 on the last allowed attempt
            ServerError: 5xx on the last allowed attempt, or any other non-success status
            NotFoundError: 404
            TransportError: connection failure or timeout
        """
        headers = bearer_headers(token)
        max_retries = self.policy.max_retries
        delay_ms = self.policy.retry_delay_ms
        attempt = 0

        while True:
            attempt += 1
            try:
                response = await self._http.get(url, headers=headers)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise TransportError(f"HTTP error: {e}") from e

            status = response.status
            if status in SUCCESS_STATUSES:
                return response

            if status == 429:
                retry_after = parse_retry_after(response.header("Retry-After"))
                wait = retry_after if retry_after is not None else delay_ms / 1000
                if attempt >= max_retries:
                    raise RateLimitError(wait)
                log_retry_scheduled(
                    url=url,
                    status_code=status,
                    attempt=attempt,
                    max_retries=max_retries,
                    delay_seconds=wait,
                )
                await self._sleep(wait)
                delay_ms = self.policy.next_delay_ms(delay_ms)
                continue

            if status == 404:
                raise NotFoundError(response.body)

            if 500 <= status < 600:
                if attempt >= max_retries:
                    raise ServerError(status, response.body)
                log_retry_scheduled(
                    url=url,
                    status_code=status,
                    attempt=attempt,
                    max_retries=max_retries,
                    delay_seconds=delay_ms / 1000,
                )
                await self._sleep(delay_ms / 1000)
                delay_ms = self.policy.next_delay_ms(delay_ms)
                continue

            raise ServerError(status, response.body)
