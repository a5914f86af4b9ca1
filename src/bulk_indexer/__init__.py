"""bulk_indexer — deduplicating bulk ingestion into a search index."""

from bulk_indexer.config import IndexerConfig, IndexingOpts, Settings, settings
from bulk_indexer.errors import (
    ConfigurationError,
    EncodingError,
    IndexerError,
    SessionError,
    StoreConnectionError,
    StoreError,
)
from bulk_indexer.indexer import BulkIngestPipeline, IndexManager
from bulk_indexer.ingestion.stats import IngestionReport

__all__ = [
    "BulkIngestPipeline",
    "ConfigurationError",
    "EncodingError",
    "IndexManager",
    "IndexerConfig",
    "IndexerError",
    "IndexingOpts",
    "IngestionReport",
    "SessionError",
    "Settings",
    "StoreConnectionError",
    "StoreError",
    "settings",
]
