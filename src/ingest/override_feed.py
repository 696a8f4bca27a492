"""Curated override feed clients.

This module defines the one-shot override feed interface with an HTTP
client for the curated JSON feed and an in-memory variant.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol, Sequence

import requests

from core.config import BrandsConfig
from core.errors import BrandsIngestError
from core.logging_config import get_logger
from core.types import OverrideRecord
from ingest.http_fetch import get_with_retries

_LOGGER = get_logger(__name__)

_STRING_FIELDS = {
    "tmeidentifier": "tme_identifier",
    "tmeparentidentifier": "tme_parent_identifier",
    "prefLabel": "pref_label",
    "strapline": "strapline",
    "descriptionxml": "description_xml",
    "imageurl": "image_url",
}


class OverrideFeed(Protocol):
    """One-shot source of curated override records."""

    def fetch_all(self) -> list[OverrideRecord]:
        ...


class BerthaOverrideFeed:
    """Override feed backed by the curated JSON endpoint."""

    def __init__(
        self,
        url: str,
        config: BrandsConfig,
        session: requests.Session | None = None,
        backoff_seconds: float = 1.0,
    ) -> None:
        self._url = url
        self._timeout = config.http_timeout
        self._max_retries = config.http_max_retries
        self._backoff_seconds = backoff_seconds
        self._session = session or requests.Session()

    def fetch_all(self) -> list[OverrideRecord]:
        """Fetch every curated override record.

        Returns:
            Parsed override records in feed order.

        Raises:
            BrandsIngestError: If the feed cannot be fetched or parsed.
        """
        response = get_with_retries(
            self._session,
            self._url,
            timeout=self._timeout,
            max_retries=self._max_retries,
            backoff_seconds=self._backoff_seconds,
        )
        records = parse_override_json(response.text)
        _LOGGER.info("override_feed_fetched", url=self._url, record_count=len(records))
        return records


class StaticOverrideFeed:
    """In-memory override feed returning a fixed record list."""

    def __init__(self, records: Sequence[OverrideRecord]) -> None:
        self._records = tuple(records)

    @classmethod
    def from_json_file(cls, path: Path) -> "StaticOverrideFeed":
        """Load a feed from a curated override JSON file.

        Raises:
            BrandsIngestError: If the file cannot be read or parsed.
        """
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as error:
            raise BrandsIngestError(
                f"Failed to read override file {path}: {error}."
            ) from error
        return cls(parse_override_json(content))

    def fetch_all(self) -> list[OverrideRecord]:
        return list(self._records)


def parse_override_json(content: str) -> list[OverrideRecord]:
    """Parse the curated feed body into override records.

    Args:
        content: JSON array of curated brand objects.

    Returns:
        Override records in feed order.

    Raises:
        BrandsIngestError: If the body is not a JSON array of objects.
    """
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as error:
        raise BrandsIngestError(
            f"Failed to parse override feed JSON: {error.msg} at line {error.lineno}."
        ) from error
    if not isinstance(payload, list):
        raise BrandsIngestError("Failed to parse override feed JSON: expected a JSON array.")
    return [override_record_from_payload(item, index) for index, item in enumerate(payload)]


def override_record_from_payload(item: Any, index: int) -> OverrideRecord:
    """Build one override record from a curated feed object.

    Args:
        item: Decoded JSON object.
        index: Position in the feed, used for error context.

    Returns:
        Override record; missing string fields default to empty.

    Raises:
        BrandsIngestError: If the object or one of its fields has the wrong type.
    """
    if not isinstance(item, dict):
        raise BrandsIngestError(
            f"Invalid override record at index {index}: expected a JSON object."
        )
    values: dict[str, Any] = {}
    for source_name, field_name in _STRING_FIELDS.items():
        value = item.get(source_name)
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise BrandsIngestError(
                f"Invalid override record at index {index}: field '{source_name}' "
                "must be a string."
            )
        values[field_name] = value
    active = item.get("active", True)
    if not isinstance(active, bool):
        raise BrandsIngestError(
            f"Invalid override record at index {index}: field 'active' must be a boolean."
        )
    return OverrideRecord(active=active, **values)
