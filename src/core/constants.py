"""Core constants used across brand cache modules.

Defaults for configuration plus the fixed brand identifiers
shared by identity derivation and reconciliation.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_CACHE_FILE = Path("cache.db")
DEFAULT_BASE_URL = "http://localhost:8080/transformers/brands"
DEFAULT_TME_BASE_URL = "https://tme.ft.com"
DEFAULT_TAXONOMY_NAME = "Brands"
DEFAULT_MAX_RECORDS = 10000
DEFAULT_QUEUE_SIZE = 10
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
DEFAULT_HTTP_MAX_RETRIES = 5
DEFAULT_STORE_LOCK_TIMEOUT_SECONDS = 1.0
DEFAULT_LOG_LEVEL = "INFO"
CACHE_BUCKET_NAME = "brand"
BRAND_TYPE = "Brand"
ROOT_BRAND_UUID = "dbb0bdae-1f0c-11e4-b0cb-b2227cce2b54"
LEGACY_UUIDS_FILE_NAME = "legacy_uuids.yaml"
TME_TERMS_PATH_TEMPLATE = "/rs/authorityfiles/GL/{taxonomy}/terms"
