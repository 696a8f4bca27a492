"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

import pytest

if TYPE_CHECKING:
    from store.brand_store import BrandStore


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def store(tmp_path: Path) -> Iterator[BrandStore]:
    """Open a brand store on a temporary file, closing it after the test."""
    from store.brand_store import BrandStore

    brand_store = BrandStore(tmp_path / "cache.db", lock_timeout=0.2)
    brand_store.open()
    yield brand_store
    brand_store.close()
