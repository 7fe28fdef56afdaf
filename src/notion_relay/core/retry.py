"""
Retry Module
Provides exponential backoff helpers for HTTP calls.
"""

import time
from typing import Callable, Iterable, Optional

import requests

from notion_relay.constants import (
    API_MAX_RETRIES,
    API_RETRY_BASE_DELAY,
    API_RETRYABLE_STATUS_CODES,
    API_TIMEOUT,
)
from notion_relay.logger import logger


def backoff_delay(base_delay: float, retry_index: int) -> float:
    """Delay before the retry_index-th retry (0-based): base, 2*base, 4*base, ..."""
    return base_delay * (2 ** retry_index)


def _retry_after(response: requests.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def api_request_with_retry(
    session: requests.Session,
    method: str,
    url: str,
    max_retries: int = API_MAX_RETRIES,
    base_delay: float = API_RETRY_BASE_DELAY,
    retryable_status_codes: Iterable[int] = API_RETRYABLE_STATUS_CODES,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs
) -> requests.Response:
    """
    Make an HTTP request with automatic retry and exponential backoff.

    Args:
        session: Session used to send the request
        method: HTTP method ('GET', 'POST', 'PATCH', ...)
        url: Request URL
        max_retries: Maximum retry attempts after the first one
        base_delay: Base delay between retries
        retryable_status_codes: Statuses that trigger a retry
        sleep: Sleep function (injectable for tests)
        **kwargs: Additional arguments passed to session.request

    Returns:
        The last response; a retryable status is returned as-is once
        retries are exhausted.

    Raises:
        requests.exceptions.RequestException: If the last attempt fails
            at the transport level
    """
    retryable = set(retryable_status_codes)
    kwargs.setdefault("timeout", API_TIMEOUT)

    for attempt in range(max_retries + 1):
        try:
            response = session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            if attempt >= max_retries:
                raise
            delay = backoff_delay(base_delay, attempt)
            logger.warning(f"{method} {url} failed: {e}, retrying in {delay:.1f}s ({attempt + 1}/{max_retries})")
            sleep(delay)
            continue

        if response.status_code not in retryable or attempt >= max_retries:
            return response

        delay = backoff_delay(base_delay, attempt)
        retry_after = _retry_after(response)
        if retry_after is not None:
            delay = max(delay, retry_after)
        logger.warning(f"{method} {url} returned {response.status_code}, retrying in {delay:.1f}s "
                       f"({attempt + 1}/{max_retries})")
        sleep(delay)

    # unreachable: the last iteration always returns or raises
    raise requests.exceptions.RequestException(f"All retries failed for {method} {url}")
