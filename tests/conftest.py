"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import threading
import time
from collections import Counter
from typing import Any, Iterable, Iterator

import pytest

from bulk_indexer.config import IndexerConfig
from bulk_indexer.errors import StoreError
from bulk_indexer.store.base import IndexStoreBase
from bulk_indexer.store.models import BulkItem, BulkItemFailure, BulkItemResult


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── In-memory store for deterministic testing ──────────────────────────


class FakeIndexStore(IndexStoreBase):
    """In-memory store with ``_bulk`` overwrite-by-id semantics.

    Batches are cut with the same byte and count thresholds as the real
    backend but sent one at a time.

    Failure knobs are plain attributes so tests can flip them after setup.
    """

    def __init__(self) -> None:
        self.health_status = 200
        self.health_error: StoreError | None = None
        self.exists_error: StoreError | None = None
        self.create_error: StoreError | None = None
        self.bulk_error: StoreError | None = None
        self.bulk_delay = 0.0
        self.rejected: dict[str, str] = {}
        self.drop_last_item = False

        self.indices: dict[str, dict[str, bytes]] = {}
        self.calls: Counter[str] = Counter()
        self.bulk_requests: list[list[BulkItem]] = []
        self.bulk_options: dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def interactions(self) -> int:
        return sum(self.calls.values())

    def documents(self, index: str) -> dict[str, bytes]:
        return dict(self.indices.get(index, {}))

    def health(self) -> int:
        self.calls["health"] += 1
        if self.health_error is not None:
            raise self.health_error
        return self.health_status

    def index_exists(self, name: str) -> bool:
        self.calls["index_exists"] += 1
        if self.exists_error is not None:
            raise self.exists_error
        return name in self.indices

    def create_index(self, name: str) -> None:
        self.calls["create_index"] += 1
        if self.create_error is not None:
            raise self.create_error
        self.indices.setdefault(name, {})

    def bulk_index(
        self,
        index: str,
        items: Iterable[BulkItem],
        *,
        flush_bytes: int,
        flush_items: int = 0,
        num_workers: int = 1,
        timeout: float | None = None,
    ) -> Iterator[BulkItemResult]:
        self.bulk_options = {
            "flush_bytes": flush_bytes,
            "flush_items": flush_items,
            "num_workers": num_workers,
            "timeout": timeout,
        }
        batch: list[BulkItem] = []
        size = 0
        for item in items:
            if batch and size + item.size > flush_bytes:
                yield from self._send(index, batch)
                batch, size = [], 0
            batch.append(item)
            size += item.size
            if flush_items and len(batch) >= flush_items:
                yield from self._send(index, batch)
                batch, size = [], 0
        if batch:
            yield from self._send(index, batch)

    def close(self) -> None:
        self.calls["close"] += 1

    def _send(self, index: str, batch: list[BulkItem]) -> list[BulkItemResult]:
        self.calls["bulk"] += 1
        self.bulk_requests.append(list(batch))
        if self.bulk_delay:
            time.sleep(self.bulk_delay)
        if self.bulk_error is not None:
            raise self.bulk_error
        results = [self._apply(index, item) for item in batch]
        if self.drop_last_item:
            results = results[:-1]
        return results

    def _apply(self, index: str, item: BulkItem) -> BulkItemResult:
        if item.id in self.rejected:
            failure = BulkItemFailure(
                id=item.id,
                reason=self.rejected[item.id],
                status=400,
                error_type="mapper_parsing_exception",
            )
            return BulkItemResult(id=item.id, failure=failure)
        with self._lock:
            docs = self.indices.setdefault(index, {})
            result = "updated" if item.id in docs else "created"
            docs[item.id] = item.body
        return BulkItemResult(id=item.id, result=result)

# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def fake_store() -> FakeIndexStore:
    return FakeIndexStore()


@pytest.fixture()
def indexer_config() -> IndexerConfig:
    return IndexerConfig(index="Test-Docs", servers=["http://localhost:9200"])
