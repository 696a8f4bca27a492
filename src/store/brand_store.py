"""On-disk brand store.

This module owns the single-file key/value store holding the brand snapshot.
One SQLite table acts as the bucket; WAL journaling lets readers keep a
consistent snapshot while a rebuild resets and rewrites the bucket. An
exclusive lock on a sidecar file keeps other processes out for as long as
the store is open.
"""

from __future__ import annotations

from contextlib import closing, contextmanager
import fcntl
from pathlib import Path
import re
import sqlite3
import threading
import time
from typing import IO, Callable, Iterator, TypeVar

from core.constants import CACHE_BUCKET_NAME, DEFAULT_STORE_LOCK_TIMEOUT_SECONDS
from core.errors import BrandsStoreError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)
_BUCKET_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SCAN_FETCH_SIZE = 256
_LOCK_POLL_SECONDS = 0.05
_RowT = TypeVar("_RowT")


class BucketWriter:
    """Key/value access inside one open write transaction."""

    def __init__(self, connection: sqlite3.Connection, bucket: str) -> None:
        self._connection = connection
        self._bucket = bucket

    def get(self, key: str) -> str | None:
        """Return the value stored under key, or None."""
        try:
            row = self._connection.execute(
                f"SELECT value FROM {self._bucket} WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as error:
            raise BrandsStoreError(f"Failed to read key '{key}': {error}.") from error
        return None if row is None else str(row[0])

    def put(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        try:
            self._connection.execute(
                f"INSERT OR REPLACE INTO {self._bucket} (key, value) VALUES (?, ?)",
                (key, value),
            )
        except sqlite3.Error as error:
            raise BrandsStoreError(f"Failed to write key '{key}': {error}.") from error

    def delete(self, key: str) -> None:
        """Delete key if present."""
        try:
            self._connection.execute(f"DELETE FROM {self._bucket} WHERE key = ?", (key,))
        except sqlite3.Error as error:
            raise BrandsStoreError(f"Failed to delete key '{key}': {error}.") from error


class RowScan(Iterator[_RowT]):
    """Forward-only scan holding one read transaction.

    The read connection is released once the scan is exhausted or closed,
    including when it is closed before the first row is read.
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        cursor: sqlite3.Cursor,
        path: Path,
        project: Callable[[tuple], _RowT],
    ) -> None:
        self._connection = connection
        self._cursor = cursor
        self._path = path
        self._project = project
        self._batch: Iterator[tuple] = iter(())
        self._closed = False

    @property
    def closed(self) -> bool:
        """Return whether the read connection has been released."""
        return self._closed

    def __iter__(self) -> RowScan[_RowT]:
        return self

    def __next__(self) -> _RowT:
        row = next(self._batch, None)
        while row is None:
            if self._closed:
                raise StopIteration
            try:
                rows = self._cursor.fetchmany(_SCAN_FETCH_SIZE)
            except sqlite3.Error as error:
                self.close()
                raise BrandsStoreError(f"Failed while scanning {self._path}: {error}.") from error
            if not rows:
                self.close()
                raise StopIteration
            self._batch = iter(rows)
            row = next(self._batch, None)
        return self._project(row)

    def close(self) -> None:
        """Release the read transaction; further iteration yields nothing."""
        if self._closed:
            return
        self._closed = True
        self._batch = iter(())
        self._cursor.close()
        self._connection.close()


class BrandStore:
    """Single-bucket transactional key/value store.

    Writes go through one writer connection serialized by a lock. Every
    read opens its own connection, so a long scan never blocks a writer.
    """

    def __init__(
        self,
        path: Path,
        bucket_name: str = CACHE_BUCKET_NAME,
        lock_timeout: float = DEFAULT_STORE_LOCK_TIMEOUT_SECONDS,
    ) -> None:
        """Create a closed store handle.

        Args:
            path: Store file path.
            bucket_name: Bucket holding brand values.
            lock_timeout: Seconds to wait for the store lock.

        Raises:
            BrandsStoreError: If the bucket name is not a plain identifier.
        """
        if not _BUCKET_NAME_PATTERN.match(bucket_name):
            raise BrandsStoreError(
                f"Invalid bucket name '{bucket_name}': use an identifier such as 'brand'."
            )
        self._path = Path(path)
        self._bucket = bucket_name
        self._lock_timeout = lock_timeout
        self._writer: sqlite3.Connection | None = None
        self._lock_file: IO[bytes] | None = None
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Return the store file path."""
        return self._path

    @property
    def lock_path(self) -> Path:
        """Return the sidecar file holding the exclusive process lock."""
        return self._path.with_name(self._path.name + ".lock")

    @property
    def is_open(self) -> bool:
        """Return whether the store handle is open."""
        return self._writer is not None

    def open(self) -> None:
        """Open the store, creating the file and bucket when missing.

        The exclusive lock is held until ``close``. Opening an already open
        store is a no-op.

        Raises:
            BrandsStoreError: If the file cannot be opened, or another handle
                keeps it locked past the lock timeout.
        """
        with self._write_lock:
            if self._writer is not None:
                return
            _LOGGER.info("store_opening", path=str(self._path))
            lock_file = self._acquire_file_lock()
            try:
                self._writer = self._connect_writer()
            except BrandsStoreError:
                lock_file.close()
                raise
            self._lock_file = lock_file

    def reset_bucket(self) -> None:
        """Discard every stored brand by recreating the bucket atomically."""
        with self._transaction() as connection:
            connection.execute(f"DROP TABLE IF EXISTS {self._bucket}")
            connection.execute(self._create_bucket_sql())
        _LOGGER.info("bucket_reset", path=str(self._path), bucket=self._bucket)

    @contextmanager
    def update(self) -> Iterator[BucketWriter]:
        """Run one atomic write transaction.

        Yields:
            Writer bound to the open transaction; rolled back on any error.

        Raises:
            BrandsStoreError: If the transaction cannot begin or commit.
        """
        with self._transaction() as connection:
            yield BucketWriter(connection, self._bucket)

    def get(self, key: str) -> str | None:
        """Return the value stored under key, or None when absent."""
        with self._reader() as connection:
            try:
                row = connection.execute(
                    f"SELECT value FROM {self._bucket} WHERE key = ?", (key,)
                ).fetchone()
            except sqlite3.Error as error:
                raise BrandsStoreError(
                    f"Failed to read key '{key}' from {self._path}: {error}."
                ) from error
        return None if row is None else str(row[0])

    def count(self) -> int:
        """Return the number of keys in the bucket."""
        with self._reader() as connection:
            try:
                row = connection.execute(f"SELECT COUNT(*) FROM {self._bucket}").fetchone()
            except sqlite3.Error as error:
                raise BrandsStoreError(
                    f"Failed to count bucket '{self._bucket}' in {self._path}: {error}."
                ) from error
        return int(row[0])

    def scan_items(self) -> RowScan[tuple[str, str]]:
        """Iterate ``(key, value)`` pairs in key order.

        The read transaction starts before this method returns and stays open
        until the scan is exhausted or closed.
        """
        return self._scan(
            f"SELECT key, value FROM {self._bucket} ORDER BY key",
            lambda row: (str(row[0]), str(row[1])),
        )

    def scan_keys(self) -> RowScan[str]:
        """Iterate keys in key order under one held read transaction."""
        return self._scan(
            f"SELECT key FROM {self._bucket} ORDER BY key",
            lambda row: str(row[0]),
        )

    def close(self) -> None:
        """Close the store after any in-flight write transaction finishes."""
        with self._write_lock:
            if self._writer is None:
                return
            self._writer.close()
            self._writer = None
            if self._lock_file is not None:
                self._lock_file.close()
                self._lock_file = None
        _LOGGER.info("store_closed", path=str(self._path))

    def _acquire_file_lock(self) -> IO[bytes]:
        lock_path = self.lock_path
        try:
            lock_file = lock_path.open("a+b")
        except OSError as error:
            raise BrandsStoreError(
                f"Failed to open store lock file {lock_path}: {error}. "
                "Check the store directory exists and is writable."
            ) from error
        deadline = time.monotonic() + self._lock_timeout
        while True:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return lock_file
            except BlockingIOError as error:
                if time.monotonic() >= deadline:
                    lock_file.close()
                    raise BrandsStoreError(
                        f"Store at {self._path} is locked by another handle; "
                        f"gave up after {self._lock_timeout}s."
                    ) from error
            except OSError as error:
                lock_file.close()
                raise BrandsStoreError(
                    f"Failed to lock store at {self._path}: {error}."
                ) from error
            time.sleep(_LOCK_POLL_SECONDS)

    def _connect_writer(self) -> sqlite3.Connection:
        connection = self._connect()
        try:
            connection.execute("PRAGMA journal_mode=WAL")
            connection.execute("BEGIN IMMEDIATE")
            connection.execute(self._create_bucket_sql())
            connection.execute("COMMIT")
        except sqlite3.Error as error:
            connection.close()
            raise BrandsStoreError(
                f"Failed to open store at {self._path}: {error}. "
                "Check the path is a writable file not locked by another process."
            ) from error
        return connection

    def _connect(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(
                str(self._path),
                timeout=self._lock_timeout,
                isolation_level=None,
                check_same_thread=False,
            )
        except sqlite3.Error as error:
            raise BrandsStoreError(
                f"Failed to open store at {self._path}: {error}. "
                "Check the path points to a writable file."
            ) from error

    @contextmanager
    def _reader(self) -> Iterator[sqlite3.Connection]:
        self._require_open()
        with closing(self._connect()) as connection:
            yield connection

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._write_lock:
            connection = self._require_open()
            try:
                connection.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as error:
                raise BrandsStoreError(
                    f"Failed to start write transaction on {self._path}: {error}."
                ) from error
            try:
                yield connection
            except BaseException:
                if connection.in_transaction:
                    connection.execute("ROLLBACK")
                raise
            try:
                connection.execute("COMMIT")
            except sqlite3.Error as error:
                if connection.in_transaction:
                    connection.execute("ROLLBACK")
                raise BrandsStoreError(
                    f"Failed to commit write transaction on {self._path}: {error}."
                ) from error

    def _scan(self, query: str, project: Callable[[tuple], _RowT]) -> RowScan[_RowT]:
        self._require_open()
        connection = self._connect()
        try:
            connection.execute("BEGIN")
            cursor = connection.execute(query)
        except sqlite3.Error as error:
            connection.close()
            raise BrandsStoreError(
                f"Failed to scan bucket '{self._bucket}' in {self._path}: {error}."
            ) from error
        return RowScan(connection, cursor, self._path, project)

    def _require_open(self) -> sqlite3.Connection:
        if self._writer is None:
            raise BrandsStoreError(
                f"Store at {self._path} is not open. Open the store before using it."
            )
        return self._writer

    def _create_bucket_sql(self) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self._bucket} "
            "(key TEXT PRIMARY KEY, value TEXT NOT NULL) WITHOUT ROWID"
        )
