"""
Ingestion — content hashing, the concurrent bulk session, and outcome stats.

This package turns a batch of arbitrary documents into ``_bulk`` requests:
each document is encoded canonically, keyed by its SHA-256 digest, and
streamed to the store through a bounded queue.
"""
