"""Unit tests for the on-disk brand store."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import BrandsStoreError
from store.brand_store import BrandStore


def _open_store(path: Path) -> BrandStore:
    store = BrandStore(path, lock_timeout=0.2)
    store.open()
    return store


def test_open_creates_empty_bucket(tmp_path: Path) -> None:
    """Opening a new file should create an empty bucket."""
    store = _open_store(tmp_path / "cache.db")

    count = store.count()
    store.close()

    assert count == 0


def test_open_is_idempotent(tmp_path: Path) -> None:
    """Opening an open store should be a no-op."""
    store = _open_store(tmp_path / "cache.db")

    store.open()
    is_open = store.is_open
    store.close()

    assert is_open


def test_open_raises_for_directory_path(tmp_path: Path) -> None:
    """A directory cannot back the store."""
    store = BrandStore(tmp_path, lock_timeout=0.2)

    with pytest.raises(BrandsStoreError):
        store.open()

    assert not store.is_open


def test_open_raises_when_file_is_locked(tmp_path: Path) -> None:
    """A store held in a write transaction elsewhere should fail to open."""
    path = tmp_path / "cache.db"
    holder = _open_store(path)
    contender = BrandStore(path, lock_timeout=0.1)

    with holder.update():
        with pytest.raises(BrandsStoreError):
            contender.open()
    holder.close()

    assert not contender.is_open


def test_open_raises_while_idle_handle_holds_store(tmp_path: Path) -> None:
    """An open store keeps other handles out even between transactions."""
    path = tmp_path / "cache.db"
    holder = _open_store(path)
    contender = BrandStore(path, lock_timeout=0.1)

    with pytest.raises(BrandsStoreError):
        contender.open()
    holder.close()

    assert not contender.is_open


def test_open_succeeds_after_holder_closes(tmp_path: Path) -> None:
    """Closing a store releases its lock for the next handle."""
    path = tmp_path / "cache.db"
    holder = _open_store(path)
    holder.close()
    contender = BrandStore(path, lock_timeout=0.1)

    contender.open()
    is_open = contender.is_open
    contender.close()

    assert is_open


def test_update_commits_writes(tmp_path: Path) -> None:
    """Values written in an update should be readable afterwards."""
    store = _open_store(tmp_path / "cache.db")

    with store.update() as writer:
        writer.put("b", "2")
        writer.put("a", "1")
    value = store.get("a")
    count = store.count()
    store.close()

    assert (value, count) == ("1", 2)


def test_update_rolls_back_on_error(tmp_path: Path) -> None:
    """A failed update should leave no partial writes."""
    store = _open_store(tmp_path / "cache.db")

    with pytest.raises(RuntimeError):
        with store.update() as writer:
            writer.put("a", "1")
            raise RuntimeError("boom")
    value = store.get("a")
    store.close()

    assert value is None


def test_update_delete_removes_key(tmp_path: Path) -> None:
    """Deleted keys should no longer be readable."""
    store = _open_store(tmp_path / "cache.db")
    with store.update() as writer:
        writer.put("a", "1")

    with store.update() as writer:
        writer.delete("a")
    value = store.get("a")
    store.close()

    assert value is None


def test_get_returns_none_for_missing_key(tmp_path: Path) -> None:
    """Missing keys are not an error."""
    store = _open_store(tmp_path / "cache.db")

    value = store.get("missing")
    store.close()

    assert value is None


def test_reset_bucket_discards_values(tmp_path: Path) -> None:
    """Resetting the bucket should drop every stored value."""
    store = _open_store(tmp_path / "cache.db")
    with store.update() as writer:
        writer.put("a", "1")

    store.reset_bucket()
    count = store.count()
    store.close()

    assert count == 0


def test_scan_items_yields_in_key_order(tmp_path: Path) -> None:
    """Scans should follow key order, not insertion order."""
    store = _open_store(tmp_path / "cache.db")
    with store.update() as writer:
        writer.put("c", "3")
        writer.put("a", "1")
        writer.put("b", "2")

    items = list(store.scan_items())
    store.close()

    assert items == [("a", "1"), ("b", "2"), ("c", "3")]


def test_scan_keeps_snapshot_across_reset(tmp_path: Path) -> None:
    """A scan started before a reset should still see its snapshot."""
    store = _open_store(tmp_path / "cache.db")
    with store.update() as writer:
        writer.put("a", "1")
        writer.put("b", "2")

    keys = store.scan_keys()
    first_key = next(keys)
    store.reset_bucket()
    with store.update() as writer:
        writer.put("z", "26")
    remaining_keys = list(keys)
    count = store.count()
    store.close()

    assert [first_key, *remaining_keys] == ["a", "b"] and count == 1


def test_scan_does_not_block_writes_when_abandoned(tmp_path: Path) -> None:
    """Closing a partly consumed scan should release its transaction."""
    store = _open_store(tmp_path / "cache.db")
    with store.update() as writer:
        writer.put("a", "1")
        writer.put("b", "2")

    items = store.scan_items()
    next(items)
    items.close()
    store.reset_bucket()
    count = store.count()
    store.close()

    assert count == 0


def test_reads_raise_when_store_is_closed(tmp_path: Path) -> None:
    """Using a closed store should raise a store error."""
    store = BrandStore(tmp_path / "cache.db")

    with pytest.raises(BrandsStoreError):
        store.count()


def test_close_is_idempotent(tmp_path: Path) -> None:
    """Closing twice should be a no-op."""
    store = _open_store(tmp_path / "cache.db")

    store.close()
    store.close()

    assert not store.is_open


def test_invalid_bucket_name_is_rejected(tmp_path: Path) -> None:
    """Bucket names are used as table names and must be identifiers."""
    with pytest.raises(BrandsStoreError):
        BrandStore(tmp_path / "cache.db", bucket_name="brand; DROP")


def test_closing_unstarted_scan_releases_connection(tmp_path: Path) -> None:
    """A scan closed before its first row should release its transaction."""
    store = _open_store(tmp_path / "cache.db")
    with store.update() as writer:
        writer.put("a", "1")

    keys = store.scan_keys()
    keys.close()
    remaining_keys = list(keys)
    store.close()

    assert keys.closed and remaining_keys == []


def test_exhausted_scan_releases_connection(tmp_path: Path) -> None:
    """Reading a scan to the end should release its transaction."""
    store = _open_store(tmp_path / "cache.db")
    with store.update() as writer:
        writer.put("a", "1")

    items = store.scan_items()
    rows = list(items)
    store.close()

    assert rows == [("a", "1")] and items.closed
