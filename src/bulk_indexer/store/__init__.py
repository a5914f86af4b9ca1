"""
Store — the index-store capability the ingestion pipeline writes through.

Public surface
--------------
- :class:`IndexStoreBase` — abstract backend (subclass for OpenSearch, etc.).
- :class:`ElasticsearchStore` — default Elasticsearch backend.
- :class:`BulkItem`, :class:`BulkItemFailure`, :class:`BulkItemResult` — bulk-write value types.
"""

from bulk_indexer.store.base import IndexStoreBase
from bulk_indexer.store.models import BulkItem, BulkItemFailure, BulkItemResult

__all__ = [
    "BulkItem",
    "BulkItemFailure",
    "BulkItemResult",
    "ElasticsearchStore",
    "IndexStoreBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ElasticsearchStore to avoid pulling in elasticsearch at import time."""
    if name == "ElasticsearchStore":
        from bulk_indexer.store.elastic_store import ElasticsearchStore

        return ElasticsearchStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
