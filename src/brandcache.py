"""Public SDK surface for the brand cache.

This module provides a stable import path for service users.
It re-exports the service, its feeds, and the typed models.
"""

from __future__ import annotations

from core.config import BrandsConfig
from core.errors import (
    BrandsConfigError,
    BrandsDecodeError,
    BrandsError,
    BrandsIngestError,
    BrandsServiceError,
    BrandsStoreError,
    BrandsTransformError,
)
from core.types import Brand, OverrideRecord, RawTerm, RebuildSummary, ServiceState
from ingest.override_feed import BerthaOverrideFeed, OverrideFeed, StaticOverrideFeed
from ingest.taxonomy_feed import StaticTaxonomyFeed, TaxonomyFeed, TmeTaxonomyFeed
from serve.brand_service import BrandCatalog, BrandService, create_brand_service
from store.brand_store import BrandStore

__all__ = [
    "BerthaOverrideFeed",
    "Brand",
    "BrandCatalog",
    "BrandService",
    "BrandStore",
    "BrandsConfig",
    "BrandsConfigError",
    "BrandsDecodeError",
    "BrandsError",
    "BrandsIngestError",
    "BrandsServiceError",
    "BrandsStoreError",
    "BrandsTransformError",
    "OverrideFeed",
    "OverrideRecord",
    "RawTerm",
    "RebuildSummary",
    "ServiceState",
    "StaticOverrideFeed",
    "StaticTaxonomyFeed",
    "TaxonomyFeed",
    "TmeTaxonomyFeed",
    "create_brand_service",
]
