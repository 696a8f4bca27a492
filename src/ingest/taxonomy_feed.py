"""Term-authority taxonomy feed clients.

This module defines the paginated taxonomy feed interface with an HTTP
client for the term-authority service and an in-memory variant.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence

from lxml import etree
import requests

from core.config import BrandsConfig
from core.constants import TME_TERMS_PATH_TEMPLATE
from core.errors import BrandsIngestError
from core.logging_config import get_logger
from core.types import RawTerm
from ingest.http_fetch import get_with_retries

_LOGGER = get_logger(__name__)
_CLIENT_TOKEN_HEADER = "ClientToken"


class TaxonomyFeed(Protocol):
    """Paginated source of raw taxonomy terms.

    An empty page signals the end of data.
    """

    page_size: int

    def fetch_page(self, offset: int) -> list[RawTerm]:
        ...


class TmeTaxonomyFeed:
    """Taxonomy feed backed by the term-authority HTTP service."""

    def __init__(
        self,
        config: BrandsConfig,
        session: requests.Session | None = None,
        backoff_seconds: float = 1.0,
    ) -> None:
        self.page_size = config.max_records
        self._url = config.tme_base_url.rstrip("/") + TME_TERMS_PATH_TEMPLATE.format(
            taxonomy=config.taxonomy_name
        )
        self._timeout = config.http_timeout
        self._max_retries = config.http_max_retries
        self._backoff_seconds = backoff_seconds
        self._session = session or requests.Session()
        if config.tme_username or config.tme_password:
            self._session.auth = (config.tme_username, config.tme_password)
        if config.tme_token:
            self._session.headers[_CLIENT_TOKEN_HEADER] = config.tme_token

    def fetch_page(self, offset: int) -> list[RawTerm]:
        """Fetch one page of terms starting at offset.

        Args:
            offset: Zero-based record offset.

        Returns:
            Parsed terms; empty when the feed is exhausted.

        Raises:
            BrandsIngestError: If the page cannot be fetched or parsed.
        """
        response = get_with_retries(
            self._session,
            self._url,
            timeout=self._timeout,
            max_retries=self._max_retries,
            backoff_seconds=self._backoff_seconds,
            params={"maxresults": self.page_size, "fromrecord": offset},
        )
        terms = parse_taxonomy_xml(response.content)
        _LOGGER.debug("taxonomy_page_fetched", offset=offset, term_count=len(terms))
        return terms


class StaticTaxonomyFeed:
    """In-memory taxonomy feed paging over a fixed term list."""

    def __init__(self, terms: Sequence[RawTerm], page_size: int) -> None:
        if page_size <= 0:
            raise BrandsIngestError(
                f"Invalid page size {page_size}: expected a positive integer."
            )
        self.page_size = page_size
        self._terms = tuple(terms)

    @classmethod
    def from_xml_file(cls, path: Path, page_size: int) -> "StaticTaxonomyFeed":
        """Load a feed from a taxonomy XML file.

        Args:
            path: Taxonomy XML file.
            page_size: Terms returned per page.

        Returns:
            Feed over every term in the file.

        Raises:
            BrandsIngestError: If the file cannot be read or parsed.
        """
        try:
            content = path.read_bytes()
        except OSError as error:
            raise BrandsIngestError(
                f"Failed to read taxonomy file {path}: {error}."
            ) from error
        return cls(parse_taxonomy_xml(content), page_size)

    def fetch_page(self, offset: int) -> list[RawTerm]:
        return list(self._terms[offset : offset + self.page_size])


def parse_taxonomy_xml(content: bytes) -> list[RawTerm]:
    """Parse a taxonomy XML document into raw terms.

    Args:
        content: XML body with a ``taxonomy`` root of ``term`` elements.

    Returns:
        Terms in document order.

    Raises:
        BrandsIngestError: If the document is malformed.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as error:
        raise BrandsIngestError(f"Failed to parse taxonomy XML: {error}.") from error
    if root is None:
        raise BrandsIngestError("Failed to parse taxonomy XML: document is empty.")
    return [_term_from_element(element) for element in root.iterfind("term")]


def _term_from_element(element: etree._Element) -> RawTerm:
    aliases = tuple(
        (variation.findtext("name") or "").strip()
        for variation in element.iterfind("variations/variation")
    )
    return RawTerm(
        raw_id=(element.findtext("id") or "").strip(),
        canonical_name=(element.findtext("name") or "").strip(),
        aliases=aliases,
    )
