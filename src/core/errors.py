"""Brand cache exception hierarchy.

Each failure boundary raises its own error type.
Not-found results are None and never raise.
"""

from __future__ import annotations


class BrandsError(Exception):
    """Base exception for all brand cache failures."""


class BrandsConfigError(BrandsError):
    """Raised for invalid runtime configuration."""


class BrandsIngestError(BrandsError):
    """Raised when an upstream feed cannot be fetched or parsed."""


class BrandsTransformError(BrandsError):
    """Raised when a single record cannot be transformed."""


class BrandsStoreError(BrandsError):
    """Raised when the on-disk store cannot be opened, read, or written."""


class BrandsDecodeError(BrandsStoreError):
    """Raised when a stored brand value cannot be deserialized."""


class BrandsServiceError(BrandsError):
    """Raised when the brand service is used outside its lifecycle."""
