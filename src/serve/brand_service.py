"""Brand cache service.

This module owns the service state flags, the rebuild cycle that
repopulates the store, plus the read operations over the snapshot.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
import json
import threading
from typing import Iterable, Iterator, Protocol

from core.config import BrandsConfig
from core.errors import BrandsError, BrandsServiceError, BrandsStoreError
from core.logging_config import get_logger
from core.types import Brand, OverrideRecord, RebuildSummary, ServiceState
from ingest.override_feed import BerthaOverrideFeed, OverrideFeed
from ingest.pipeline import ingest_taxonomy
from ingest.reconcile import ReconcileResult, merge_overrides
from ingest.taxonomy_feed import TaxonomyFeed, TmeTaxonomyFeed
from store.brand_payload import decode_brand
from store.brand_store import BrandStore, RowScan

_LOGGER = get_logger(__name__)
_COMPACT_SEPARATORS = (",", ":")


class BrandCatalog(Protocol):
    """Operations the transport layer needs from the brand cache."""

    def get_brand(self, brand_uuid: str) -> Brand | None:
        ...

    def list_all(self) -> Iterator[str]:
        ...

    def list_ids(self) -> Iterator[str]:
        ...

    def list_links(self, base_url: str | None = None) -> Iterator[str]:
        ...

    def count(self) -> int:
        ...

    def is_initialised(self) -> bool:
        ...

    def is_data_loaded(self) -> bool:
        ...

    def reload(self) -> RebuildSummary:
        ...

    def trigger_reload(self) -> Future[bool]:
        ...

    def merge_overrides(self, records: Iterable[OverrideRecord]) -> ReconcileResult:
        ...

    def shutdown(self) -> None:
        ...


class BrandService:
    """Brand cache backed by one on-disk store.

    State flags are replaced as a whole under one lock, which also
    serializes store open and bucket reset against shutdown. A second
    lock admits one rebuild cycle at a time.
    """

    def __init__(
        self,
        store: BrandStore,
        taxonomy_feed: TaxonomyFeed,
        taxonomy_name: str,
        queue_size: int,
        base_url: str,
        override_feed: OverrideFeed | None = None,
    ) -> None:
        self._store = store
        self._taxonomy_feed = taxonomy_feed
        self._taxonomy_name = taxonomy_name
        self._queue_size = queue_size
        self._base_url = base_url
        self._override_feed = override_feed
        self._state = ServiceState()
        self._state_lock = threading.Lock()
        self._rebuild_lock = threading.Lock()
        self._shut_down = False
        self._pending_reloads = 0
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="brand-rebuild")

    @property
    def state(self) -> ServiceState:
        """Return the current state flags."""
        with self._state_lock:
            return self._state

    def is_initialised(self) -> bool:
        return self.state.initialised

    def is_data_loaded(self) -> bool:
        return self.state.data_loaded

    def reload(self) -> RebuildSummary:
        """Run one full rebuild cycle and wait for it to finish.

        Returns:
            Counters of the completed cycle.

        Raises:
            BrandsServiceError: If the service has been shut down.
            BrandsStoreError: If the store cannot be opened or written.
            BrandsIngestError: If a feed fetch fails.
        """
        with self._rebuild_lock:
            try:
                return self._rebuild()
            except BrandsError as error:
                _LOGGER.error("rebuild_failed", error=str(error), error_type=type(error).__name__)
                raise

    def open_existing(self) -> None:
        """Serve the snapshot already in the store file without rebuilding.

        Raises:
            BrandsServiceError: If the service has been shut down.
            BrandsStoreError: If the store cannot be opened.
        """
        with self._state_lock:
            self._ensure_running()
            try:
                self._store.open()
            except BrandsStoreError:
                self._state = replace(self._state, initialised=False)
                raise
            self._state = ServiceState(initialised=True, data_loaded=True)
        _LOGGER.info("existing_snapshot_opened", path=str(self._store.path))

    def trigger_reload(self) -> Future[bool]:
        """Start a rebuild in the background.

        Data is reported as not loaded from this call until the cycle
        completes. Triggers queue behind a running cycle, which then leaves
        data unloaded for the queued one to finish. Cycle failures are
        logged, never raised to the caller.

        Returns:
            Future resolving to whether the cycle completed.

        Raises:
            BrandsServiceError: If the service has been shut down.
        """
        with self._state_lock:
            self._ensure_running()
            self._state = replace(self._state, data_loaded=False)
            try:
                future = self._executor.submit(self._reload_in_background)
            except RuntimeError as error:
                raise BrandsServiceError(
                    "Cannot reload: the rebuild executor has stopped."
                ) from error
            self._pending_reloads += 1
        _LOGGER.info("reload_triggered")
        return future

    def count(self) -> int:
        """Return the number of cached brands, or 0 while data is not loaded."""
        if not self.is_data_loaded():
            return 0
        return self._store.count()

    def get_brand(self, brand_uuid: str) -> Brand | None:
        """Look up one brand by UUID.

        Args:
            brand_uuid: Brand UUID.

        Returns:
            The cached brand, or None when absent.

        Raises:
            BrandsDecodeError: If the stored value is corrupt.
            BrandsStoreError: If the store cannot be read.
        """
        value = self._store.get(brand_uuid)
        if value is None:
            _LOGGER.debug("brand_not_found", uuid=brand_uuid)
            return None
        return decode_brand(value, brand_uuid)

    def list_all(self) -> LineStream:
        """Stream every stored brand as newline-delimited JSON.

        The read transaction is taken before this call returns and is
        released once the stream is exhausted or closed.
        """
        rows = self._store.scan_items()
        return LineStream(rows, _stream_values(rows))

    def list_ids(self) -> LineStream:
        """Stream ``{"ID": uuid}`` lines in key order."""
        keys = self._store.scan_keys()
        return LineStream(keys, _stream_ids(keys))

    def list_links(self, base_url: str | None = None) -> LineStream:
        """Stream one JSON array of brand API links in key order.

        Args:
            base_url: Link prefix; defaults to the configured base URL.
        """
        prefix = (base_url or self._base_url).rstrip("/")
        keys = self._store.scan_keys()
        return LineStream(keys, _stream_links(keys, prefix))

    def merge_overrides(self, records: Iterable[OverrideRecord]) -> ReconcileResult:
        """Merge curated records into the current snapshot."""
        return merge_overrides(self._store, records)

    def is_good_to_go(self) -> bool:
        """Return whether the service is initialised and holds brands."""
        if not self.is_initialised():
            return False
        try:
            return self.count() > 0
        except BrandsStoreError as error:
            _LOGGER.warning("good_to_go_check_failed", error=str(error))
            return False

    def health(self) -> dict[str, object]:
        """Return a health summary for status endpoints."""
        state = self.state
        return {
            "initialised": state.initialised,
            "data_loaded": state.data_loaded,
            "good_to_go": self.is_good_to_go(),
        }

    def shutdown(self) -> None:
        """Stop accepting reloads and close the store with both flags cleared.

        Calling shutdown more than once is a no-op.
        """
        with self._state_lock:
            if self._shut_down:
                return
            self._shut_down = True
            self._state = ServiceState(initialised=False, data_loaded=False)
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._store.close()
        _LOGGER.info("service_shut_down")

    def _rebuild(self) -> RebuildSummary:
        with self._state_lock:
            self._ensure_running()
            self._state = replace(self._state, data_loaded=False)
            try:
                self._store.open()
            except BrandsStoreError:
                self._state = replace(self._state, initialised=False)
                raise
            self._state = replace(self._state, initialised=True)
            self._store.reset_bucket()
        _LOGGER.info("rebuild_started", taxonomy=self._taxonomy_name)
        ingest_result = ingest_taxonomy(
            self._taxonomy_feed, self._store, self._taxonomy_name, self._queue_size
        )
        reconcile_result = self._reconcile()
        with self._state_lock:
            self._ensure_running()
            # A queued trigger promised unloaded data until its own cycle ends.
            if self._pending_reloads == 0:
                self._state = replace(self._state, data_loaded=True)
            else:
                _LOGGER.info("data_load_deferred", pending_reloads=self._pending_reloads)
        summary = RebuildSummary(
            pages_fetched=ingest_result.pages_fetched,
            terms_ingested=ingest_result.terms_ingested,
            batches_failed=ingest_result.batches_failed,
            overrides_applied=reconcile_result.applied,
            overrides_skipped=reconcile_result.skipped,
        )
        _LOGGER.info(
            "rebuild_completed",
            pages_fetched=summary.pages_fetched,
            terms_ingested=summary.terms_ingested,
            batches_failed=summary.batches_failed,
            overrides_applied=summary.overrides_applied,
            overrides_skipped=summary.overrides_skipped,
        )
        return summary

    def _reconcile(self) -> ReconcileResult:
        if self._override_feed is None:
            _LOGGER.info("override_feed_skipped", reason="not_configured")
            return ReconcileResult(applied=0, skipped=0)
        records = self._override_feed.fetch_all()
        return merge_overrides(self._store, records)

    def _reload_in_background(self) -> bool:
        with self._state_lock:
            self._pending_reloads -= 1
        try:
            self.reload()
        except BrandsError:
            return False
        return True

    def _ensure_running(self) -> None:
        if self._shut_down:
            raise BrandsServiceError(
                "Brand service has been shut down. Create a new service to rebuild."
            )


def create_brand_service(
    config: BrandsConfig,
    taxonomy_feed: TaxonomyFeed | None = None,
    override_feed: OverrideFeed | None = None,
) -> BrandService:
    """Wire a brand service from config.

    Args:
        config: Runtime configuration.
        taxonomy_feed: Feed to ingest; defaults to the term-authority service.
        override_feed: Curated feed; defaults to the configured override URL,
            or none when no URL is set.

    Returns:
        Service with a closed store; call ``reload`` to build the snapshot.
    """
    if taxonomy_feed is None:
        taxonomy_feed = TmeTaxonomyFeed(config)
    if override_feed is None and config.override_url:
        override_feed = BerthaOverrideFeed(config.override_url, config)
    store = BrandStore(config.cache_file, lock_timeout=config.store_lock_timeout)
    return BrandService(
        store=store,
        taxonomy_feed=taxonomy_feed,
        taxonomy_name=config.taxonomy_name,
        queue_size=config.queue_size,
        base_url=config.base_url,
        override_feed=override_feed,
    )


class LineStream(Iterator[str]):
    """Serialized lines over a scan; closing releases the scan even if unstarted."""

    def __init__(self, scan: RowScan, lines: Iterator[str]) -> None:
        self._scan = scan
        self._lines = lines

    @property
    def closed(self) -> bool:
        """Return whether the underlying scan has been released."""
        return self._scan.closed

    def __iter__(self) -> LineStream:
        return self

    def __next__(self) -> str:
        try:
            return next(self._lines)
        except StopIteration:
            self._scan.close()
            raise

    def close(self) -> None:
        self._lines.close()
        self._scan.close()


def _stream_values(rows: Iterator[tuple[str, str]]) -> Iterator[str]:
    for _, value in rows:
        yield value + "\n"


def _stream_ids(keys: Iterator[str]) -> Iterator[str]:
    for key in keys:
        yield json.dumps({"ID": key}, separators=_COMPACT_SEPARATORS) + "\n"


def _stream_links(keys: Iterator[str], prefix: str) -> Iterator[str]:
    yield "["
    separator = ""
    for key in keys:
        link = json.dumps({"apiUrl": f"{prefix}/{key}"}, separators=_COMPACT_SEPARATORS)
        yield separator + link
        separator = ","
    yield "]"
