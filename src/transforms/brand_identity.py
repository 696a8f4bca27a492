"""Deterministic brand identity derivation.

This module turns term-authority natural keys into stable brand UUIDs.
Legacy editorial assignments win over the name-based hash.
"""

from __future__ import annotations

import base64
import hashlib
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping
import uuid

import yaml

from core.constants import LEGACY_UUIDS_FILE_NAME, ROOT_BRAND_UUID
from core.errors import BrandsConfigError


def build_natural_key(raw_id: str, taxonomy_name: str) -> str:
    """Build the natural key of a term within its taxonomy.

    Args:
        raw_id: Source-local term identifier.
        taxonomy_name: Taxonomy the term belongs to.

    Returns:
        Base64 term id and base64 taxonomy joined by a dash.
    """
    return f"{_encode(raw_id)}-{_encode(taxonomy_name)}"


def hash_brand_uuid(natural_key: str) -> str:
    """Return the name-based (version 3) UUID of a natural key.

    The MD5 digest covers the key bytes alone, with no namespace prefix.
    """
    digest = hashlib.md5(natural_key.encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest, version=3))


def legacy_brand_uuid(natural_key: str) -> str | None:
    """Return the editorially assigned UUID for a natural key, if any."""
    return load_legacy_uuids().get(natural_key)


def derive_brand_uuid(natural_key: str) -> str:
    """Derive the brand UUID for a natural key.

    Args:
        natural_key: Natural key of the term.

    Returns:
        Legacy UUID when one was assigned, else the name-based UUID.
    """
    legacy_uuid = legacy_brand_uuid(natural_key)
    if legacy_uuid is not None:
        return legacy_uuid
    return hash_brand_uuid(natural_key)


def resolve_curated_uuid(natural_key: str) -> str | None:
    """Resolve a curated record's natural key to a brand UUID.

    The root brand is curated under its own UUID instead of a natural key.

    Args:
        natural_key: Natural key as entered by editorial.

    Returns:
        Brand UUID, or None when the key is empty.
    """
    natural_key = natural_key.strip()
    if not natural_key:
        return None
    if natural_key == ROOT_BRAND_UUID:
        return ROOT_BRAND_UUID
    return derive_brand_uuid(natural_key)


@lru_cache(maxsize=1)
def load_legacy_uuids() -> Mapping[str, str]:
    """Load the legacy natural key to UUID table shipped with the package.

    Returns:
        Read-only mapping of natural keys to UUIDs.

    Raises:
        BrandsConfigError: If the table file is missing or malformed.
    """
    table_path = Path(__file__).resolve().parent / LEGACY_UUIDS_FILE_NAME
    try:
        payload = yaml.safe_load(table_path.read_text(encoding="utf-8"))
    except OSError as error:
        raise BrandsConfigError(
            f"Failed to read legacy UUID table at {table_path}: {error}. "
            "Reinstall the package to restore data files."
        ) from error
    except yaml.YAMLError as error:
        raise BrandsConfigError(
            f"Failed to parse legacy UUID table at {table_path}: {error}."
        ) from error
    if payload is None:
        return MappingProxyType({})
    if not isinstance(payload, dict):
        raise BrandsConfigError(
            f"Invalid legacy UUID table at {table_path}: expected a mapping at top level."
        )
    return MappingProxyType({str(key): str(value) for key, value in payload.items()})


def _encode(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")
