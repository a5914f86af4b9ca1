"""Index setup and deduplicating bulk ingestion.

This module is the **primary public interface** of the package.

Usage::

    from bulk_indexer.config import IndexerConfig
    from bulk_indexer.indexer import BulkIngestPipeline, IndexManager

    with IndexManager(IndexerConfig(index="Events", servers=["https://es:9200"])) as manager:
        pipeline = BulkIngestPipeline(manager)
        print(pipeline.index([{"a": 1}, {"a": 1}, {"b": 2}]))
    # Indexing finished in 48ms: created=2 redundantskipped=1
"""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

from bulk_indexer.config import IndexerConfig, IndexingOpts
from bulk_indexer.errors import ConfigurationError, SessionError, StoreConnectionError, StoreError
from bulk_indexer.ingestion.bulk import BulkSession
from bulk_indexer.ingestion.hashing import document_id, encode_document
from bulk_indexer.ingestion.stats import IngestionReport, OutcomeStats
from bulk_indexer.store.base import IndexStoreBase
from bulk_indexer.store.models import BulkItem, BulkItemFailure

logger = logging.getLogger(__name__)


class IndexManager:
    """Owns the store connection and makes sure the target index exists.

    Setup happens in the constructor: the cluster must answer a health
    request with ``200`` and the index is created when missing.  The manager
    can be used as a context manager; leaving it closes the store.

    Parameters
    ----------
    config:
        Target index and connection details.
    store:
        A concrete store backend.  When *None*, an
        :class:`~bulk_indexer.store.elastic_store.ElasticsearchStore` is
        built from *config*.

    Raises
    ------
    ConfigurationError
        Empty index name, or the index could not be created.
    StoreConnectionError
        The client could not be built or the health check failed.
    """

    def __init__(self, config: IndexerConfig, *, store: IndexStoreBase | None = None) -> None:
        if not config.index:
            raise ConfigurationError("index name not specified")
        self._index_name = config.index.lower()

        owns_store = store is None
        if store is None:
            from bulk_indexer.store.elastic_store import ElasticsearchStore

            store = ElasticsearchStore(
                config.servers,
                insecure_skip_verify=config.insecure_skip_verify,
            )
        self._store = store

        try:
            self._check_health()
            self._ensure_index()
        except Exception:
            if owns_store:
                self.close()
            raise

    @property
    def index_name(self) -> str:
        return self._index_name

    @property
    def store(self) -> IndexStoreBase:
        return self._store

    def close(self) -> None:
        """Release the store connection."""
        self._store.close()

    def __enter__(self) -> IndexManager:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def _check_health(self) -> None:
        try:
            status = self._store.health()
        except StoreError as exc:
            raise StoreConnectionError(f"ES health check failed: {exc}") from exc
        if status != 200:
            raise StoreConnectionError(f"unexpected ES status code: {status}")

    def _ensure_index(self) -> None:
        # A failed existence check is treated as "missing"; creation decides.
        try:
            exists = self._store.index_exists(self._index_name)
        except StoreError as exc:
            logger.warning("Could not check index %s, attempting creation: %s", self._index_name, exc)
            exists = False
        if exists:
            return
        try:
            self._store.create_index(self._index_name)
        except StoreError as exc:
            raise ConfigurationError(f"error creating index {self._index_name} on ES: {exc}") from exc
        logger.info("Created index %s", self._index_name)


class BulkIngestPipeline:
    """Deduplicates documents by content hash and bulk-writes them.

    Each call is independent; only the manager's store handle is shared.

    Parameters
    ----------
    manager:
        A ready :class:`IndexManager`.
    """

    def __init__(self, manager: IndexManager) -> None:
        self._manager = manager

    # -- public API -----------------------------------------------------------

    def index(self, documents: Sequence[Any], opts: IndexingOpts | None = None) -> str:
        """Ingest *documents* and return the human-readable summary."""
        return self.ingest(documents, opts).summary()

    def ingest(self, documents: Sequence[Any], opts: IndexingOpts | None = None) -> IngestionReport:
        """Ingest *documents* and return the structured report.

        Duplicate documents (identical canonical encoding) are written once;
        later copies are counted as redundant.  A document the store rejects
        is logged and counted as failed without aborting the call.

        Raises
        ------
        EncodingError
            A document could not be serialised.  Nothing is reported.
        SessionError
            The bulk session could not be opened, refused an item, or failed
            to drain.  Nothing is reported.
        """
        if len(documents) <= 0:
            return IngestionReport(document_count=len(documents))

        opts = (opts or IndexingOpts()).resolved()
        stats = OutcomeStats()
        seen: set[str] = set()
        redundant_skipped = 0

        def on_failure(failure: BulkItemFailure) -> None:
            logger.warning("Failed to index document with ID %s: %s", failure.id, failure)
            stats.record_failure(failure)

        start = time.monotonic_ns()
        with self._open_session(opts) as session:
            for document in documents:
                body = encode_document(document)
                doc_id = document_id(body)
                if doc_id in seen:
                    logger.debug("Skipping redundant document with ID: %s", doc_id)
                    redundant_skipped += 1
                    continue
                seen.add(doc_id)
                try:
                    session.add(BulkItem(id=doc_id, body=body), on_success=stats.record, on_failure=on_failure)
                except SessionError as exc:
                    logger.info("Error adding document with ID %s: %s", doc_id, exc)
                    raise
            session.close()

        report = IngestionReport(
            document_count=len(documents),
            elapsed_ns=time.monotonic_ns() - start,
            outcomes=stats.snapshot(),
            failed=stats.failed,
            redundant_skipped=redundant_skipped,
        )
        logger.info("%s into %s", report.summary(), self._manager.index_name)
        return report

    # -- internals ------------------------------------------------------------

    def _open_session(self, opts: IndexingOpts) -> BulkSession:
        try:
            return BulkSession(
                self._manager.store,
                self._manager.index_name,
                flush_bytes=opts.flush_bytes,
                flush_items=opts.flush_items,
                num_workers=opts.num_workers,
                timeout=opts.timeout_seconds,
            )
        except (SessionError, ValueError) as exc:
            raise SessionError(f"error creating the bulk indexer: {exc}") from exc
