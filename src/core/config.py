"""Runtime configuration model for the brand cache.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_CACHE_FILE,
    DEFAULT_HTTP_MAX_RETRIES,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_RECORDS,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_STORE_LOCK_TIMEOUT_SECONDS,
    DEFAULT_TAXONOMY_NAME,
    DEFAULT_TME_BASE_URL,
)
from core.errors import BrandsConfigError


@dataclass(frozen=True)
class BrandsConfig:
    """Validated runtime configuration.

    Attributes:
        cache_file: On-disk store file holding the brand snapshot.
        base_url: Public base URL used to render brand links.
        tme_base_url: Base URL of the term-authority service.
        tme_username: Basic-auth user for the term-authority service.
        tme_password: Basic-auth password for the term-authority service.
        tme_token: Access token sent with every term-authority request.
        taxonomy_name: Taxonomy requested from the term-authority service.
        max_records: Page size and offset increment for term paging.
        queue_size: Bound of the ingestion to persistence handoff queue.
        override_url: Optional curated override feed URL.
        http_timeout: Per-request timeout in seconds.
        http_max_retries: Retries per request before a fetch fails.
        store_lock_timeout: Seconds to wait for the store lock on open.
        log_level: Minimum structured log level.
    """

    cache_file: Path
    base_url: str
    tme_base_url: str
    tme_username: str
    tme_password: str
    tme_token: str
    taxonomy_name: str
    max_records: int
    queue_size: int
    override_url: str | None
    http_timeout: float
    http_max_retries: int
    store_lock_timeout: float
    log_level: str

    @classmethod
    def from_env(cls) -> "BrandsConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            BrandsConfigError: If environment values are invalid.
        """
        cache_file_value = os.getenv("BRANDS_CACHE_FILE", str(DEFAULT_CACHE_FILE))
        return cls(
            cache_file=Path(cache_file_value).expanduser(),
            base_url=os.getenv("BRANDS_BASE_URL", DEFAULT_BASE_URL),
            tme_base_url=os.getenv("BRANDS_TME_BASE_URL", DEFAULT_TME_BASE_URL),
            tme_username=os.getenv("BRANDS_TME_USERNAME", ""),
            tme_password=os.getenv("BRANDS_TME_PASSWORD", ""),
            tme_token=os.getenv("BRANDS_TME_TOKEN", ""),
            taxonomy_name=os.getenv("BRANDS_TAXONOMY_NAME", DEFAULT_TAXONOMY_NAME),
            max_records=_parse_positive_int("BRANDS_MAX_RECORDS", DEFAULT_MAX_RECORDS),
            queue_size=_parse_positive_int("BRANDS_QUEUE_SIZE", DEFAULT_QUEUE_SIZE),
            override_url=os.getenv("BRANDS_OVERRIDE_URL") or None,
            http_timeout=_parse_positive_float(
                "BRANDS_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS
            ),
            http_max_retries=_parse_non_negative_int(
                "BRANDS_HTTP_MAX_RETRIES", DEFAULT_HTTP_MAX_RETRIES
            ),
            store_lock_timeout=_parse_positive_float(
                "BRANDS_STORE_LOCK_TIMEOUT", DEFAULT_STORE_LOCK_TIMEOUT_SECONDS
            ),
            log_level=os.getenv("BRANDS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )


def _parse_positive_int(name: str, default: int) -> int:
    """Parse a strictly positive integer environment value.

    Args:
        name: Environment variable name.
        default: Value used when the variable is unset.

    Returns:
        Parsed integer.

    Raises:
        BrandsConfigError: If value is not a positive integer.
    """
    value = _parse_non_negative_int(name, default)
    if value == 0:
        raise BrandsConfigError(
            f"Invalid {name} value: expected a positive integer, got 0. "
            f"Set {name} to 1 or more."
        )
    return value


def _parse_non_negative_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        value = int(raw_value)
    except ValueError as error:
        raise BrandsConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a numeric value."
        ) from error
    if value < 0:
        raise BrandsConfigError(
            f"Invalid {name} value: expected a non-negative integer, got {value}."
        )
    return value


def _parse_positive_float(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        value = float(raw_value)
    except ValueError as error:
        raise BrandsConfigError(
            f"Invalid {name} value: expected a number of seconds, got '{raw_value}'."
        ) from error
    if value <= 0:
        raise BrandsConfigError(
            f"Invalid {name} value: expected a positive number of seconds, got {value}."
        )
    return value
