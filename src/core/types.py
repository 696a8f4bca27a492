"""Shared typed models.

This module defines immutable data models used by ingest, store,
and serving layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class RawTerm:
    """One term parsed from the term-authority taxonomy feed.

    Attributes:
        raw_id: Source-local term identifier.
        canonical_name: Display name of the term.
        aliases: Alternative names in feed order.
    """

    raw_id: str
    canonical_name: str
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class AlternativeIdentifiers:
    """Every identifier a brand has been known by.

    Attributes:
        tme_identifiers: Natural keys from the term-authority feed.
        uuids: Brand UUIDs, always including the brand's own UUID.
    """

    tme_identifiers: tuple[str, ...] = ()
    uuids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Brand:
    """Cached brand entity, keyed by UUID in the store.

    Attributes:
        uuid: Stable primary key.
        pref_label: Display label.
        parent_uuid: Hierarchical parent; empty only for the root brand.
        brand_type: Entity type name.
        aliases: Deduplicated alternative labels.
        strapline: Curated strapline.
        description: Plain-text description.
        description_xml: Source markup of the description.
        image_url: Curated image reference.
        alternative_identifiers: Identity bookkeeping across both feeds.
    """

    uuid: str
    pref_label: str = ""
    parent_uuid: str = ""
    brand_type: str = ""
    aliases: tuple[str, ...] = ()
    strapline: str = ""
    description: str = ""
    description_xml: str = ""
    image_url: str = ""
    alternative_identifiers: AlternativeIdentifiers = field(
        default_factory=AlternativeIdentifiers
    )

    def with_default_parent(self, root_uuid: str) -> "Brand":
        """Return a copy parented to the root when no parent is set."""
        if self.parent_uuid or self.uuid == root_uuid:
            return self
        return replace(self, parent_uuid=root_uuid)


@dataclass(frozen=True)
class OverrideRecord:
    """Curated override record from the override feed.

    Attributes:
        tme_identifier: Natural key of the brand itself.
        tme_parent_identifier: Natural key of the parent brand, if any.
        pref_label: Curated display label.
        strapline: Curated strapline.
        description_xml: Description markup.
        image_url: Curated image reference.
        active: Whether editorial marks the brand as active.
    """

    tme_identifier: str
    tme_parent_identifier: str = ""
    pref_label: str = ""
    strapline: str = ""
    description_xml: str = ""
    image_url: str = ""
    active: bool = True


@dataclass(frozen=True)
class ServiceState:
    """Lifecycle flags of the brand service.

    Attributes:
        initialised: Store confirmed openable.
        data_loaded: A full rebuild cycle completed without fatal error.
    """

    initialised: bool = False
    data_loaded: bool = False


@dataclass(frozen=True)
class RebuildSummary:
    """Counters reported by one completed rebuild cycle.

    Attributes:
        pages_fetched: Non-empty term pages read from the authority feed.
        terms_ingested: Terms transformed and handed to persistence.
        batches_failed: Batches dropped because their write failed.
        overrides_applied: Curated records merged or inserted.
        overrides_skipped: Curated records dropped as unresolvable or invalid.
    """

    pages_fetched: int = 0
    terms_ingested: int = 0
    batches_failed: int = 0
    overrides_applied: int = 0
    overrides_skipped: int = 0
