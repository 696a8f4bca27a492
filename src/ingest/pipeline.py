"""Taxonomy ingestion pipeline.

This module pages through the taxonomy feed, transforms each page, and
hands batches over a bounded queue to a single persistence consumer.
"""

from __future__ import annotations

from dataclasses import dataclass
import queue
import threading
from typing import Sequence

from core.constants import ROOT_BRAND_UUID
from core.errors import BrandsError
from core.logging_config import get_logger
from core.types import Brand
from ingest.taxonomy_feed import TaxonomyFeed
from store.brand_payload import encode_brand
from store.brand_store import BrandStore
from transforms.brand_transform import transform_terms

_LOGGER = get_logger(__name__)
_STOP = object()


@dataclass(frozen=True)
class IngestResult:
    """Counters of one taxonomy ingestion run."""

    pages_fetched: int
    terms_ingested: int
    batches_failed: int


class BatchPersister:
    """Single consumer thread committing brand batches to the store.

    The bounded queue blocks producers when full. Its unfinished-task
    count doubles as the barrier awaited before ingestion is complete.
    """

    def __init__(self, store: BrandStore, queue_size: int) -> None:
        self._store = store
        self._queue: queue.Queue[object] = queue.Queue(maxsize=queue_size)
        self._thread = threading.Thread(
            target=self._run, name="brand-batch-persister", daemon=True
        )
        self._batches_failed = 0

    @property
    def batches_failed(self) -> int:
        return self._batches_failed

    def start(self) -> None:
        self._thread.start()

    def submit(self, batch: list[Brand]) -> None:
        """Queue one batch, blocking while the queue is full."""
        self._queue.put(batch)

    def wait_drained(self) -> None:
        """Block until every submitted batch has been applied or dropped."""
        self._queue.join()

    def stop(self) -> None:
        """Stop the consumer after it finishes the queued batches."""
        self._queue.put(_STOP)
        self._thread.join()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._apply(item)  # type: ignore[arg-type]
            finally:
                self._queue.task_done()

    def _apply(self, batch: list[Brand]) -> None:
        try:
            store_brand_batch(self._store, batch)
        except BrandsError as error:
            self._batches_failed += 1
            _LOGGER.error("brand_batch_failed", batch_size=len(batch), error=str(error))
            return
        _LOGGER.debug("brand_batch_stored", batch_size=len(batch))


def store_brand_batch(store: BrandStore, batch: Sequence[Brand]) -> None:
    """Write one batch of brands in a single transaction.

    Brands without a parent are parented to the root brand.

    Raises:
        BrandsStoreError: If the transaction fails; nothing from the batch is kept.
    """
    with store.update() as writer:
        for brand in batch:
            stored_brand = brand.with_default_parent(ROOT_BRAND_UUID)
            writer.put(stored_brand.uuid, encode_brand(stored_brand))


def ingest_taxonomy(
    feed: TaxonomyFeed,
    store: BrandStore,
    taxonomy_name: str,
    queue_size: int,
) -> IngestResult:
    """Ingest every taxonomy page into the store.

    Args:
        feed: Paginated taxonomy feed.
        store: Open store with a freshly reset bucket.
        taxonomy_name: Taxonomy used to build natural keys.
        queue_size: Bound of the handoff queue.

    Returns:
        Ingestion counters, available once every batch has drained.

    Raises:
        BrandsIngestError: If any page fetch fails; the run is aborted.
    """
    persister = BatchPersister(store, queue_size)
    persister.start()
    pages_fetched = 0
    terms_ingested = 0
    offset = 0
    try:
        while True:
            terms = feed.fetch_page(offset)
            if not terms:
                break
            persister.submit(transform_terms(terms, taxonomy_name))
            pages_fetched += 1
            terms_ingested += len(terms)
            offset += feed.page_size
        persister.wait_drained()
    finally:
        persister.stop()
    _LOGGER.info(
        "taxonomy_ingested",
        pages_fetched=pages_fetched,
        terms_ingested=terms_ingested,
        batches_failed=persister.batches_failed,
    )
    return IngestResult(
        pages_fetched=pages_fetched,
        terms_ingested=terms_ingested,
        batches_failed=persister.batches_failed,
    )
