"""Unit tests for taxonomy feed clients."""

from __future__ import annotations

from dataclasses import replace

import pytest

from core.config import BrandsConfig
from core.errors import BrandsIngestError
from core.types import RawTerm
from ingest.taxonomy_feed import StaticTaxonomyFeed, TmeTaxonomyFeed, parse_taxonomy_xml
from tests.fixture_paths import fixture_bytes, fixture_path

_PAGE_XML = fixture_bytes("taxonomy_page.xml")


class _FakeResponse:
    def __init__(self, content: bytes) -> None:
        self.content = content

    def raise_for_status(self) -> None:
        return None


class _FakeSession:
    def __init__(self, content: bytes) -> None:
        self._content = content
        self.auth: tuple[str, str] | None = None
        self.headers: dict[str, str] = {}
        self.calls: list[tuple[str, dict[str, object]]] = []

    def get(self, url: str, **kwargs: object) -> _FakeResponse:
        self.calls.append((url, kwargs))
        return _FakeResponse(self._content)

    def close(self) -> None:
        return None


def test_parse_taxonomy_xml_reads_terms_and_aliases() -> None:
    """Each term element should become a raw term with its variations."""
    terms = parse_taxonomy_xml(_PAGE_XML)

    assert terms == [
        RawTerm(raw_id="bob", canonical_name="Bob", aliases=("B", "b")),
        RawTerm(raw_id="fred", canonical_name="Fred"),
    ]


def test_parse_taxonomy_xml_returns_empty_page() -> None:
    """A taxonomy without terms signals the end of data."""
    assert parse_taxonomy_xml(b"<taxonomy/>") == []


def test_parse_taxonomy_xml_raises_for_malformed_document() -> None:
    """A truncated page should fail as a whole."""
    with pytest.raises(BrandsIngestError):
        parse_taxonomy_xml(b"<taxonomy><term><name>Bob</name>")


def test_tme_feed_requests_page_with_offset_and_credentials() -> None:
    """The client should page with maxresults/fromrecord and send credentials."""
    config = replace(
        BrandsConfig.from_env(),
        tme_base_url="https://tme.example/",
        tme_username="user",
        tme_password="secret",
        tme_token="token",
        taxonomy_name="Brands",
        max_records=2,
    )
    session = _FakeSession(_PAGE_XML)
    feed = TmeTaxonomyFeed(config, session=session)  # type: ignore[arg-type]

    terms = feed.fetch_page(4)
    url, kwargs = session.calls[0]

    assert len(terms) == 2
    assert url == "https://tme.example/rs/authorityfiles/GL/Brands/terms"
    assert kwargs["params"] == {"maxresults": 2, "fromrecord": 4}
    assert session.auth == ("user", "secret") and session.headers["ClientToken"] == "token"


def test_static_feed_pages_by_offset() -> None:
    """Static feeds should slice pages and end with an empty page."""
    terms = [RawTerm(raw_id=str(index), canonical_name=str(index)) for index in range(3)]
    feed = StaticTaxonomyFeed(terms, page_size=2)

    pages = [feed.fetch_page(0), feed.fetch_page(2), feed.fetch_page(4)]

    assert [len(page) for page in pages] == [2, 1, 0]


def test_static_feed_loads_xml_file() -> None:
    """Static feeds can be loaded from a taxonomy XML file."""
    feed = StaticTaxonomyFeed.from_xml_file(fixture_path("taxonomy_page.xml"), page_size=10)

    assert [term.raw_id for term in feed.fetch_page(0)] == ["bob", "fred"]
