"""Integration tests for full brand cache rebuild cycles."""

from __future__ import annotations

import json
from pathlib import Path

from core.constants import ROOT_BRAND_UUID
from core.types import AlternativeIdentifiers, Brand, OverrideRecord, RawTerm
from ingest.override_feed import StaticOverrideFeed
from ingest.taxonomy_feed import StaticTaxonomyFeed
from serve.brand_service import BrandService
from store.brand_store import BrandStore
from transforms.brand_identity import build_natural_key, derive_brand_uuid

_FT_DESCRIPTION_XML = (
    "<p>The Financial Times (FT) is one of the world’s leading business news and "
    "information organisations.</p>"
)
_CURATED_FT = OverrideRecord(
    tme_identifier="1234567890",
    tme_parent_identifier="TmeParentIdentifier",
    pref_label="Financial Times",
    strapline="Make the right connections",
    description_xml=_FT_DESCRIPTION_XML,
    image_url="http://aboutus.ft.com/files/2010/11/ft-logo.gif",
)
_CURATED_FT_DATA = OverrideRecord(
    tme_identifier="MGY2ZTQ3MTYtYjJiNS00ODVhLTlkYTktNzZlNzc3YTcxOWYy-QnJhbmRz",
    pref_label="FT Data",
    strapline="Strapline",
    description_xml="<p>DescriptionXML</p>",
    image_url="http://some.ft.com/image/url",
)


def _service(
    path: Path,
    terms: list[RawTerm],
    taxonomy_name: str = "Brands",
    overrides: list[OverrideRecord] | None = None,
) -> BrandService:
    return BrandService(
        store=BrandStore(path),
        taxonomy_feed=StaticTaxonomyFeed(terms, page_size=1),
        taxonomy_name=taxonomy_name,
        queue_size=2,
        base_url="/base/url",
        override_feed=StaticOverrideFeed(overrides) if overrides is not None else None,
    )


def test_end_to_end_rebuild_serves_derived_brands(tmp_path: Path) -> None:
    """Ingested terms should be counted, listed and retrieved by UUID."""
    terms = [
        RawTerm(raw_id="bob", canonical_name="Bob"),
        RawTerm(raw_id="fred", canonical_name="Fred"),
    ]
    service = _service(tmp_path / "cache.db", terms, taxonomy_name="taxonomy_string")
    expected_uuids = sorted(
        derive_brand_uuid(build_natural_key(term.raw_id, "taxonomy_string")) for term in terms
    )

    service.reload()
    listed_uuids = [json.loads(line)["ID"] for line in service.list_ids()]
    labels = [service.get_brand(brand_uuid).pref_label for brand_uuid in listed_uuids]
    missing = service.get_brand("xxxxxxxx-bb56-363d-80c1-f2d957ef58cf")
    count = service.count()
    service.shutdown()

    assert count == 2 and listed_uuids == expected_uuids
    assert sorted(labels) == ["Bob", "Fred"] and missing is None


def test_consecutive_rebuilds_produce_identical_snapshots(tmp_path: Path) -> None:
    """Rebuilding from unchanged feeds should not change any stored value."""
    terms = [
        RawTerm(raw_id="bob", canonical_name="Bob", aliases=("B", "b")),
        RawTerm(raw_id="Brands_86", canonical_name="Business blog"),
    ]
    service = _service(tmp_path / "cache.db", terms, overrides=[_CURATED_FT])

    service.reload()
    first_snapshot = list(service.list_all())
    service.reload()
    second_snapshot = list(service.list_all())
    service.shutdown()

    assert first_snapshot == second_snapshot and len(first_snapshot) == 3


def test_overrides_win_over_authority_feed(tmp_path: Path) -> None:
    """Curated data replaces ingested fields and keeps ingested identifiers."""
    terms = [
        RawTerm(raw_id="some tme identifier", canonical_name="awesome brand"),
        RawTerm(raw_id="0f6e4716-b2b5-485a-9da9-76e777a719f2", canonical_name="FT Data"),
    ]
    service = _service(
        tmp_path / "cache.db", terms, overrides=[_CURATED_FT, _CURATED_FT_DATA]
    )

    service.reload()
    count = service.count()
    ft_data = service.get_brand("b8513403-7892-4901-bb97-1765fc0ba190")
    service.shutdown()

    assert count == 3
    assert ft_data == Brand(
        uuid="b8513403-7892-4901-bb97-1765fc0ba190",
        pref_label="FT Data",
        parent_uuid=ROOT_BRAND_UUID,
        brand_type="Brand",
        aliases=("FT Data",),
        strapline="Strapline",
        description="DescriptionXML",
        description_xml="<p>DescriptionXML</p>",
        image_url="http://some.ft.com/image/url",
        alternative_identifiers=AlternativeIdentifiers(
            tme_identifiers=("MGY2ZTQ3MTYtYjJiNS00ODVhLTlkYTktNzZlNzc3YTcxOWYy-QnJhbmRz",),
            uuids=(
                "c4316c4a-da19-3a29-bf48-75761174756f",
                "b8513403-7892-4901-bb97-1765fc0ba190",
            ),
        ),
    )


def test_curated_brand_missing_from_feed_is_added(tmp_path: Path) -> None:
    """Curated brands absent from the authority feed are synthesized."""
    service = _service(tmp_path / "cache.db", [], overrides=[_CURATED_FT])

    service.reload()
    brand = service.get_brand("e807f1fc-f82d-332f-9bb0-18ca6738a19f")
    service.shutdown()

    assert brand == Brand(
        uuid="e807f1fc-f82d-332f-9bb0-18ca6738a19f",
        pref_label="Financial Times",
        parent_uuid="17b1538f-eda4-3402-9304-98853fb58c4d",
        brand_type="Brand",
        strapline="Make the right connections",
        description=(
            "The Financial Times (FT) is one of the world’s leading business news and "
            "information organisations."
        ),
        description_xml=_FT_DESCRIPTION_XML,
        image_url="http://aboutus.ft.com/files/2010/11/ft-logo.gif",
        alternative_identifiers=AlternativeIdentifiers(
            tme_identifiers=("1234567890",),
            uuids=("e807f1fc-f82d-332f-9bb0-18ca6738a19f",),
        ),
    )


def test_curated_root_brand_has_no_parent(tmp_path: Path) -> None:
    """The root brand curated by UUID is stored without a parent or TME key."""
    root_record = OverrideRecord(
        tme_identifier=ROOT_BRAND_UUID,
        pref_label="Financial Times",
        description_xml="<p>Root</p>",
    )
    service = _service(tmp_path / "cache.db", [], overrides=[root_record])

    service.reload()
    count = service.count()
    root = service.get_brand(ROOT_BRAND_UUID)
    service.shutdown()

    assert count == 1 and root is not None
    assert root.parent_uuid == ""
    assert root.alternative_identifiers == AlternativeIdentifiers(uuids=(ROOT_BRAND_UUID,))


def test_unresolvable_override_does_not_change_count(tmp_path: Path) -> None:
    """Curated records without an identifier never enter the snapshot."""
    record = OverrideRecord(
        tme_identifier="",
        tme_parent_identifier="some TmeParentIdentifier",
        pref_label="Funky Chicken",
    )
    service = _service(tmp_path / "cache.db", [], overrides=[record])

    summary = service.reload()
    count = service.count()
    service.shutdown()

    assert count == 0 and summary.overrides_skipped == 1
