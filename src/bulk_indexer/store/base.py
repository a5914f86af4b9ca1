"""Abstract base class for index-store backends.

Adding a new backend (OpenSearch, a test double …) only requires
subclassing :class:`IndexStoreBase` and implementing the four abstract
methods.  The ingestion stack is backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generator, Iterable

from bulk_indexer.store.models import BulkItem, BulkItemResult


class IndexStoreBase(ABC):
    """Backend-agnostic store interface.

    Every method raises :class:`~bulk_indexer.errors.StoreError` when the
    underlying client fails.
    """

    # -- administration -------------------------------------------------------

    @abstractmethod
    def health(self) -> int:
        """Run a cluster-health request and return its HTTP status code."""
        ...

    @abstractmethod
    def index_exists(self, name: str) -> bool:
        """Return ``True`` when index *name* exists."""
        ...

    @abstractmethod
    def create_index(self, name: str) -> None:
        """Create index *name* with default settings and dynamic mappings."""
        ...

    # -- writes ---------------------------------------------------------------

    @abstractmethod
    def bulk_index(
        self,
        index: str,
        items: Iterable[BulkItem],
        *,
        flush_bytes: int,
        flush_items: int = 0,
        num_workers: int = 1,
        timeout: float | None = None,
    ) -> Generator[BulkItemResult, None, None]:
        """Stream *items* into *index* as batched ``_bulk`` requests.

        *items* is consumed lazily.  A request is sent when the next item
        would push it past *flush_bytes*, or once it holds *flush_items*
        items (``0`` disables the count threshold).  At most *num_workers*
        requests are in flight at a time.

        Parameters
        ----------
        index:
            Target index for every action.
        items:
            Documents to write; bodies are raw JSON ``bytes`` sent as-is.
        flush_bytes:
            Request-size threshold.
        flush_items:
            Item-count threshold; ``0`` disables it.
        num_workers:
            Concurrent requests.
        timeout:
            Per-request timeout in seconds.

        Yields
        ------
        BulkItemResult
            One per item the store reported on.  Items rejected individually
            (mapping errors, a ``4xx`` on the whole request …) come back as
            failures; they do not stop the stream.
        """
        ...

    # -- optional overrides ---------------------------------------------------

    def close(self) -> None:
        """Release client resources.  No-op by default."""
