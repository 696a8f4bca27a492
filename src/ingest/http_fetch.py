"""HTTP fetch helper shared by feed clients.

This module wraps one GET request with a timeout and bounded
retry-with-exponential-backoff on transport and status failures.
"""

from __future__ import annotations

import time
from typing import Any, Callable

import requests

from core.errors import BrandsIngestError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


def get_with_retries(
    session: requests.Session,
    url: str,
    *,
    timeout: float,
    max_retries: int,
    backoff_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    **request_kwargs: Any,
) -> requests.Response:
    """Issue a GET request, retrying failed attempts with backoff.

    Args:
        session: Session carrying auth and shared headers.
        url: Request URL.
        timeout: Per-attempt timeout in seconds.
        max_retries: Retries after the first failed attempt.
        backoff_seconds: Base delay, doubled after each failed attempt.
        sleep: Delay function, replaceable in tests.
        **request_kwargs: Extra ``requests`` arguments such as ``params``.

    Returns:
        Successful response.

    Raises:
        BrandsIngestError: If every attempt fails.
    """
    attempt = 0
    while True:
        try:
            response = session.get(url, timeout=timeout, **request_kwargs)
            response.raise_for_status()
            return response
        except requests.RequestException as error:
            if attempt >= max_retries:
                _LOGGER.error("http_fetch_failed", url=url, attempts=attempt + 1, error=str(error))
                raise BrandsIngestError(
                    f"Failed to fetch {url} after {attempt + 1} attempt(s): {error}. "
                    "Check the feed URL and credentials."
                ) from error
            wait_seconds = backoff_seconds * (2**attempt)
            _LOGGER.warning(
                "http_fetch_retrying",
                url=url,
                attempt=attempt + 1,
                wait_seconds=wait_seconds,
                error=str(error),
            )
            sleep(wait_seconds)
            attempt += 1
