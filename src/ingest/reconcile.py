"""Curated override reconciliation.

This module merges curated override records into the stored snapshot
in one write transaction, dropping records without a resolvable identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from core.errors import BrandsDecodeError, BrandsTransformError
from core.logging_config import get_logger
from core.types import Brand, OverrideRecord
from store.brand_payload import decode_brand, encode_brand
from store.brand_store import BrandStore, BucketWriter
from transforms.brand_identity import resolve_curated_uuid
from transforms.override_merge import brand_from_override, merge_override

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Counters of one override reconciliation."""

    applied: int
    skipped: int


def merge_overrides(store: BrandStore, records: Iterable[OverrideRecord]) -> ReconcileResult:
    """Merge curated records into the stored brands.

    Args:
        store: Open store holding the ingested snapshot.
        records: Curated override records.

    Returns:
        Applied and skipped record counts.

    Raises:
        BrandsStoreError: If the transaction fails; no record is kept.
    """
    applied = 0
    skipped = 0
    with store.update() as writer:
        for record in records:
            brand = _reconcile_record(writer, record)
            if brand is None:
                skipped += 1
                continue
            writer.put(brand.uuid, encode_brand(brand))
            applied += 1
    _LOGGER.info("overrides_merged", applied=applied, skipped=skipped)
    return ReconcileResult(applied=applied, skipped=skipped)


def _reconcile_record(writer: BucketWriter, record: OverrideRecord) -> Brand | None:
    brand_uuid = resolve_curated_uuid(record.tme_identifier)
    if brand_uuid is None:
        _LOGGER.warning(
            "curated_brand_skipped",
            reason="missing_identifier",
            pref_label=record.pref_label,
        )
        return None
    stored_value = writer.get(brand_uuid)
    try:
        if stored_value is None:
            return brand_from_override(record, brand_uuid)
        existing = decode_brand(stored_value, brand_uuid)
        return merge_override(existing, record, brand_uuid)
    except (BrandsDecodeError, BrandsTransformError) as error:
        _LOGGER.error(
            "curated_brand_skipped",
            reason="invalid_record",
            uuid=brand_uuid,
            error=str(error),
        )
        return None
