"""Term to brand transform.

This module converts one term-authority term into a cacheable brand.
It is pure and safe to call concurrently for distinct terms.
"""

from __future__ import annotations

from typing import Iterable

from core.constants import BRAND_TYPE
from core.types import AlternativeIdentifiers, Brand, RawTerm
from transforms.brand_identity import (
    build_natural_key,
    hash_brand_uuid,
    legacy_brand_uuid,
)


def transform_term(term: RawTerm, taxonomy_name: str) -> Brand:
    """Transform a raw term into a brand.

    Args:
        term: Parsed term from the authority feed.
        taxonomy_name: Taxonomy the term was read from.

    Returns:
        Brand with derived identity and no parent assigned.
    """
    natural_key = build_natural_key(term.raw_id, taxonomy_name)
    brand_uuid = hash_brand_uuid(natural_key)
    known_uuids = [brand_uuid]
    legacy_uuid = legacy_brand_uuid(natural_key)
    if legacy_uuid is not None:
        brand_uuid = legacy_uuid
        known_uuids.append(legacy_uuid)
    return Brand(
        uuid=brand_uuid,
        pref_label=term.canonical_name,
        brand_type=BRAND_TYPE,
        aliases=build_aliases(term.aliases, term.canonical_name),
        alternative_identifiers=AlternativeIdentifiers(
            tme_identifiers=(natural_key,),
            uuids=remove_duplicates(known_uuids),
        ),
    )


def transform_terms(terms: Iterable[RawTerm], taxonomy_name: str) -> list[Brand]:
    """Transform a page of terms, preserving page order."""
    return [transform_term(term, taxonomy_name) for term in terms]


def build_aliases(aliases: Iterable[str], canonical_name: str) -> tuple[str, ...]:
    """Build the alias list: aliases then canonical name, first occurrence wins."""
    return remove_duplicates([*aliases, canonical_name])


def remove_duplicates(values: Iterable[str]) -> tuple[str, ...]:
    """Remove repeated values while keeping first-seen order."""
    return tuple(dict.fromkeys(values))
