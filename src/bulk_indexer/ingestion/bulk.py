"""Concurrent bulk-write session.

A session feeds items to :meth:`IndexStoreBase.bulk_index` from a
background thread.  The store does the batching, the flush thresholds and
the concurrent requests; the session adds what a caller needs on top:
per-item hooks, a bounded hand-off queue so :meth:`BulkSession.add` blocks
while the store falls behind, and one timeout for the whole session.

Hooks fire on the session thread, in the order the store reports results.
:meth:`BulkSession.close` returns only after every result has been
reported and every hook has returned.

Usage::

    with BulkSession(store, "docs", num_workers=4) as session:
        session.add(BulkItem(id=doc_id, body=body), on_success=stats.record)
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Iterator

from bulk_indexer.errors import SessionError, StoreError
from bulk_indexer.store.base import IndexStoreBase
from bulk_indexer.store.models import BulkItem, BulkItemFailure, BulkItemResult

logger = logging.getLogger(__name__)

SuccessHook = Callable[[str], None]
FailureHook = Callable[[BulkItemFailure], None]

DEFAULT_FLUSH_BYTES = 5_000_000
DEFAULT_TIMEOUT_SECONDS = 600.0
DEFAULT_MAX_QUEUED = 1000

_POLL_SECONDS = 0.05
_CLOSE = object()


@dataclass
class BulkSessionStats:
    """Counters for one session."""

    num_added: int = 0
    num_flushed: int = 0
    num_failed: int = 0


@dataclass(frozen=True)
class _Pending:
    item: BulkItem
    on_success: SuccessHook | None
    on_failure: FailureHook | None

    def succeed(self, result: str) -> None:
        if self.on_success is not None:
            self.on_success(result)

    def fail(self, failure: BulkItemFailure) -> None:
        if self.on_failure is not None:
            self.on_failure(failure)


class BulkSession:
    """Streams ``index`` actions for one index through a store.

    Parameters
    ----------
    store:
        Backend the items are written to.
    index:
        Target index name.
    flush_bytes:
        Request-size threshold that triggers a flush.
    flush_items:
        Item-count threshold that triggers a flush; ``0`` disables it.
    num_workers:
        Concurrent requests the store may have in flight.
    timeout:
        Budget in seconds for the whole session, from construction to the
        end of :meth:`close`.  Also used as the per-request timeout.
    max_queued:
        Items accepted ahead of the store before :meth:`add` blocks.
    """

    def __init__(
        self,
        store: IndexStoreBase,
        index: str,
        *,
        flush_bytes: int = DEFAULT_FLUSH_BYTES,
        flush_items: int = 0,
        num_workers: int | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_queued: int = DEFAULT_MAX_QUEUED,
    ) -> None:
        num_workers = num_workers or os.cpu_count() or 1
        if flush_bytes <= 0:
            raise SessionError(f"flush_bytes must be positive, got {flush_bytes}")
        if timeout <= 0:
            raise SessionError(f"timeout must be positive, got {timeout}")

        self._store = store
        self._index = index
        self._flush_bytes = flush_bytes
        self._flush_items = flush_items
        self._num_workers = num_workers
        self._timeout = timeout
        self._deadline = time.monotonic() + timeout

        self._queue: queue.Queue[object] = queue.Queue(maxsize=max_queued)
        self._lock = threading.Lock()
        self._pending: defaultdict[str, deque[_Pending]] = defaultdict(deque)
        self._failure: Exception | None = None
        self._aborted = threading.Event()
        self._stats = BulkSessionStats()
        self._closed = False

        self._thread = threading.Thread(target=self._run, name=f"bulk-{index}", daemon=True)
        self._thread.start()

    # -- public API -----------------------------------------------------------

    def add(
        self,
        item: BulkItem,
        on_success: SuccessHook | None = None,
        on_failure: FailureHook | None = None,
    ) -> None:
        """Queue *item*; blocks while the hand-off queue is full.

        Raises
        ------
        SessionError
            The session is closed, timed out, or the store could not be
            reached.
        """
        if self._closed:
            raise SessionError("bulk session is closed")
        self._raise_on_failure()

        with self._lock:
            self._pending[item.id].append(_Pending(item, on_success, on_failure))
            self._stats.num_added += 1
        self._put(item)

    def close(self) -> None:
        """Send the remaining items and wait until every result is in."""
        if self._closed:
            return
        self._closed = True
        try:
            self._put(_CLOSE)
        except SessionError:
            self._aborted.set()
            raise

        self._thread.join(timeout=max(self._remaining(), 0))
        if self._thread.is_alive():
            self._aborted.set()
            raise SessionError(f"bulk session timed out with {self._outstanding()} items outstanding")

        self._fail_unreported()
        self._raise_on_failure()
        logger.debug("Bulk session for %s closed: %s", self._index, self.stats())

    def abort(self) -> None:
        """Stop feeding the store; queued items are dropped unsent."""
        self._closed = True
        self._aborted.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break

    def stats(self) -> BulkSessionStats:
        with self._lock:
            return BulkSessionStats(**vars(self._stats))

    def __enter__(self) -> BulkSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        if exc_type is not None:
            self.abort()
        else:
            self.close()

    # -- internals ------------------------------------------------------------

    def _remaining(self) -> float:
        return self._deadline - time.monotonic()

    def _outstanding(self) -> int:
        with self._lock:
            return sum(len(waiting) for waiting in self._pending.values())

    def _raise_on_failure(self) -> None:
        with self._lock:
            failure = self._failure
        if failure is None:
            return
        if isinstance(failure, StoreError):
            raise SessionError(f"bulk request failed: {failure}") from failure
        raise SessionError(f"bulk flush failed: {failure}") from failure

    def _put(self, entry: object) -> None:
        while True:
            remaining = self._remaining()
            if remaining <= 0:
                raise SessionError("bulk session timed out")
            try:
                self._queue.put(entry, timeout=min(remaining, _POLL_SECONDS))
                return
            except queue.Full:
                self._raise_on_failure()

    def _items(self) -> Iterator[BulkItem]:
        while True:
            try:
                entry = self._queue.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                entry = None
            # Raising rather than returning keeps the store from sending a
            # partly filled batch.
            if self._aborted.is_set():
                raise SessionError("bulk session aborted")
            if entry is _CLOSE:
                return
            if entry is not None:
                yield entry

    def _run(self) -> None:
        results = self._store.bulk_index(
            self._index,
            self._items(),
            flush_bytes=self._flush_bytes,
            flush_items=self._flush_items,
            num_workers=self._num_workers,
            timeout=self._timeout,
        )
        try:
            for result in results:
                self._dispatch(result)
        except Exception as exc:
            with self._lock:
                if self._failure is None:
                    self._failure = exc
            logger.debug("Bulk session for %s failed: %s", self._index, exc)
            results.close()

    def _dispatch(self, result: BulkItemResult) -> None:
        with self._lock:
            waiting = self._pending.get(result.id)
            pending = waiting.popleft() if waiting else None
            if waiting is not None and not waiting:
                del self._pending[result.id]
            if pending is not None:
                if result.ok:
                    self._stats.num_flushed += 1
                else:
                    self._stats.num_failed += 1
        if pending is None:
            logger.warning("Bulk response for unknown item %s", result.id)
            return
        if result.failure is None:
            pending.succeed(result.result or "unknown")
        else:
            pending.fail(result.failure)

    def _fail_unreported(self) -> None:
        """Fail items the store never reported on."""
        with self._lock:
            leftovers = [pending for waiting in self._pending.values() for pending in waiting]
            self._pending.clear()
            self._stats.num_failed += len(leftovers)
            failure = self._failure
        reason = str(failure) if failure is not None else "missing from bulk response"
        for pending in leftovers:
            pending.fail(BulkItemFailure(id=pending.item.id, reason=reason))
