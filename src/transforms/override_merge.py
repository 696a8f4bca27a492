"""Curated override merge rules.

This module applies one curated override record to a cached brand.
Curated fields win; identity bookkeeping from the authority feed is kept.
"""

from __future__ import annotations

from dataclasses import replace

from core.constants import BRAND_TYPE, ROOT_BRAND_UUID
from core.types import AlternativeIdentifiers, Brand, OverrideRecord
from transforms.brand_identity import resolve_curated_uuid
from transforms.markup_text import markup_to_text


def resolve_parent_uuid(record: OverrideRecord, brand_uuid: str) -> str:
    """Resolve the parent UUID of a curated brand.

    Args:
        record: Curated override record.
        brand_uuid: Resolved UUID of the record itself.

    Returns:
        Parent UUID; the root brand when none is curated, and empty for
        the root brand itself.
    """
    parent_uuid = resolve_curated_uuid(record.tme_parent_identifier)
    if parent_uuid is not None:
        return parent_uuid
    if brand_uuid == ROOT_BRAND_UUID:
        return ""
    return ROOT_BRAND_UUID


def brand_from_override(record: OverrideRecord, brand_uuid: str) -> Brand:
    """Build a brand from a curated record that has no cached counterpart.

    Args:
        record: Curated override record.
        brand_uuid: Resolved UUID of the record.

    Returns:
        New brand carrying only curated information.

    Raises:
        BrandsTransformError: If the description markup cannot be converted.
    """
    description = markup_to_text(record.description_xml)
    natural_key = record.tme_identifier.strip()
    tme_identifiers: tuple[str, ...] = ()
    if natural_key and natural_key != ROOT_BRAND_UUID:
        tme_identifiers = (natural_key,)
    return Brand(
        uuid=brand_uuid,
        pref_label=record.pref_label,
        parent_uuid=resolve_parent_uuid(record, brand_uuid),
        brand_type=BRAND_TYPE,
        strapline=record.strapline,
        description=description,
        description_xml=record.description_xml,
        image_url=record.image_url,
        alternative_identifiers=AlternativeIdentifiers(
            tme_identifiers=tme_identifiers,
            uuids=(brand_uuid,),
        ),
    )


def merge_override(existing: Brand, record: OverrideRecord, brand_uuid: str) -> Brand:
    """Overlay a curated record on a cached brand.

    Args:
        existing: Brand currently cached under the resolved UUID.
        record: Curated override record.
        brand_uuid: Resolved UUID of the record.

    Returns:
        Merged brand keyed by the resolved UUID, with the cached aliases
        and alternative identifiers preserved.

    Raises:
        BrandsTransformError: If the description markup cannot be converted.
    """
    description = markup_to_text(record.description_xml)
    identifiers = existing.alternative_identifiers
    if brand_uuid not in identifiers.uuids:
        identifiers = replace(identifiers, uuids=identifiers.uuids + (brand_uuid,))
    return replace(
        existing,
        uuid=brand_uuid,
        pref_label=record.pref_label,
        parent_uuid=resolve_parent_uuid(record, brand_uuid),
        brand_type=BRAND_TYPE,
        strapline=record.strapline,
        description=description,
        description_xml=record.description_xml,
        image_url=record.image_url,
        alternative_identifiers=identifiers,
    )
