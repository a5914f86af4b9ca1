"""Exception hierarchy for the bulk indexer.

Setup raises :class:`ConfigurationError` or :class:`StoreConnectionError`;
an ingestion call raises :class:`EncodingError` or :class:`SessionError`.
Store backends raise :class:`StoreError`, which callers translate into one of
the above.  Per-document failures reported by the store are not exceptions,
see :class:`~bulk_indexer.store.models.BulkItemFailure`.
"""

from __future__ import annotations


class IndexerError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(IndexerError):
    """Invalid indexer configuration or the target index could not be created."""


class StoreConnectionError(IndexerError, ConnectionError):
    """The store client could not be built or the cluster is not healthy."""


class EncodingError(IndexerError):
    """A document could not be serialised to canonical JSON."""


class SessionError(IndexerError):
    """The bulk session failed to open, accept an item, or drain."""


class StoreError(IndexerError):
    """A store backend call failed at the API or transport level."""
