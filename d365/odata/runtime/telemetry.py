"""Structured logging for token, request and paging operations.

Each helper emits a single event-name message with its fields in ``extra``
so log pipelines can index them without parsing the message text.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def log_token_acquired(*, auth_type: str, resource: str, expires_in: int) -> None:
    """Log a successful token acquisition.

    Args:
        auth_type: Authority variant that issued the token
        resource: Resource/audience the token was requested for
        expires_in: Token lifetime in seconds as reported by the authority
    """
    logger.info(
        "token_acquired",
        extra={"auth_type": auth_type, "resource": resource, "expires_in": expires_in},
    )


def log_token_error(*, auth_type: str, status_code: int | None, error_message: str) -> None:
    """Log a failed token acquisition."""
    logger.error(
        "token_error",
        extra={
            "auth_type": auth_type,
            "status_code": status_code,
            "error_message": error_message,
        },
    )


def log_retry_scheduled(
    *,
    url: str,
    status_code: int,
    attempt: int,
    max_retries: int,
    delay_seconds: float,
) -> None:
    """Log a retryable response and the delay before the next attempt.

    Args:
        url: Request URL
        status_code: Status that triggered the retry (429 or 5xx)
        attempt: One-based number of the attempt that failed
        max_retries: Attempt budget
        delay_seconds: Sleep before the next attempt
    """
    logger.warning(
        "retry_scheduled",
        extra={
            "url": url,
            "status_code": status_code,
            "attempt": attempt,
            "max_retries": max_retries,
            "delay_seconds": delay_seconds,
        },
    )


def log_page_fetched(
    *,
    entity: str,
    page: int,
    records: int,
    has_next_link: bool,
    latency_ms: float | None = None,
) -> None:
    """Log completion of a single page."""
    logger.info(
        "page_fetched",
        extra={
            "entity": entity,
            "page": page,
            "records": records,
            "has_next_link": has_next_link,
            "latency_ms": latency_ms,
        },
    )


def log_fetch_all_complete(*, entity: str, pages: int, total_records: int) -> None:
    """Log completion of a full collection walk."""
    logger.info(
        "fetch_all_complete",
        extra={"entity": entity, "pages": pages, "total_records": total_records},
    )


def log_page_limit_reached(*, entity: str, max_pages: int, records: int) -> None:
    """Log that the page walk stopped at the safety cutoff."""
    logger.warning(
        "page_limit_reached",
        extra={"entity": entity, "max_pages": max_pages, "records": records},
    )
