"""Shared JSON serialization for Brand payloads.

This module centralizes the stored and streamed brand encoding.
Empty fields are omitted and keys are sorted so values are byte-stable.
"""

from __future__ import annotations

import json
from typing import Any

from core.errors import BrandsDecodeError
from core.types import AlternativeIdentifiers, Brand


def brand_to_payload(brand: Brand) -> dict[str, object]:
    """Serialize a Brand into a JSON-safe payload.

    Args:
        brand: Brand instance.

    Returns:
        Dictionary payload using the published field names.
    """
    payload: dict[str, object] = {"uuid": brand.uuid}
    optional_fields = {
        "parentUUID": brand.parent_uuid,
        "prefLabel": brand.pref_label,
        "type": brand.brand_type,
        "strapline": brand.strapline,
        "description": brand.description,
        "descriptionXML": brand.description_xml,
        "_imageUrl": brand.image_url,
    }
    payload.update({key: value for key, value in optional_fields.items() if value})
    if brand.aliases:
        payload["aliases"] = list(brand.aliases)
    identifiers = _identifiers_to_payload(brand.alternative_identifiers)
    if identifiers:
        payload["alternativeIdentifiers"] = identifiers
    return payload


def encode_brand(brand: Brand) -> str:
    """Encode a Brand as its stored JSON value."""
    return json.dumps(brand_to_payload(brand), sort_keys=True, ensure_ascii=False)


def decode_brand(value: str, key: str) -> Brand:
    """Decode a stored JSON value into a Brand.

    Args:
        value: Stored JSON text.
        key: Store key, used for error context.

    Returns:
        Parsed Brand.

    Raises:
        BrandsDecodeError: If the value is not a valid brand payload.
    """
    try:
        payload = json.loads(value)
    except json.JSONDecodeError as error:
        raise BrandsDecodeError(
            f"Failed to decode cached brand '{key}': {error.msg}. "
            "Reload the cache to rebuild the stored value."
        ) from error
    if not isinstance(payload, dict):
        raise BrandsDecodeError(
            f"Failed to decode cached brand '{key}': expected JSON object."
        )
    try:
        return brand_from_payload(payload)
    except (KeyError, TypeError) as error:
        raise BrandsDecodeError(
            f"Failed to decode cached brand '{key}': invalid field {error}."
        ) from error


def brand_from_payload(payload: dict[str, Any]) -> Brand:
    """Deserialize a JSON payload into a Brand.

    Raises:
        KeyError: If the uuid field is missing.
        TypeError: If a field has the wrong JSON type.
    """
    identifiers_payload = payload.get("alternativeIdentifiers") or {}
    if not isinstance(identifiers_payload, dict):
        raise TypeError("alternativeIdentifiers")
    return Brand(
        uuid=_expect_str(payload["uuid"], "uuid"),
        pref_label=_expect_str(payload.get("prefLabel", ""), "prefLabel"),
        parent_uuid=_expect_str(payload.get("parentUUID", ""), "parentUUID"),
        brand_type=_expect_str(payload.get("type", ""), "type"),
        aliases=_expect_str_list(payload.get("aliases", []), "aliases"),
        strapline=_expect_str(payload.get("strapline", ""), "strapline"),
        description=_expect_str(payload.get("description", ""), "description"),
        description_xml=_expect_str(payload.get("descriptionXML", ""), "descriptionXML"),
        image_url=_expect_str(payload.get("_imageUrl", ""), "_imageUrl"),
        alternative_identifiers=AlternativeIdentifiers(
            tme_identifiers=_expect_str_list(identifiers_payload.get("TME", []), "TME"),
            uuids=_expect_str_list(identifiers_payload.get("uuids", []), "uuids"),
        ),
    )


def _identifiers_to_payload(identifiers: AlternativeIdentifiers) -> dict[str, list[str]]:
    payload: dict[str, list[str]] = {}
    if identifiers.tme_identifiers:
        payload["TME"] = list(identifiers.tme_identifiers)
    if identifiers.uuids:
        payload["uuids"] = list(identifiers.uuids)
    return payload


def _expect_str(value: object, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(field_name)
    return value


def _expect_str_list(value: object, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise TypeError(field_name)
    return tuple(value)
