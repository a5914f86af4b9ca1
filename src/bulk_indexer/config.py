"""Shared configuration loaded from environment / ``.env``."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Store
    es_servers: list[str] = Field(
        default_factory=lambda: ["http://localhost:9200"],
        description="Elasticsearch node URLs, JSON-encoded when set from the environment",
    )
    es_index: str = "documents"
    es_insecure_skip_verify: bool = Field(
        default=False,
        description="Disable TLS certificate verification (self-signed / dev clusters only)",
    )

    # Bulk writes
    bulk_flush_bytes: int = 5_000_000
    bulk_flush_items: int = Field(default=0, description="Flush after this many items; 0 disables")
    bulk_num_workers: int = Field(default_factory=lambda: os.cpu_count() or 1)
    bulk_timeout_seconds: float = 600.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton — import `settings` wherever needed.
settings = Settings()


class IndexerConfig(BaseModel):
    """Connection and target for one :class:`~bulk_indexer.indexer.IndexManager`.

    Attributes
    ----------
    index:
        Target index name.  Lowercased by the manager; must not be empty.
    servers:
        Elasticsearch node URLs.
    insecure_skip_verify:
        Skip TLS certificate verification.
    """

    index: str
    servers: list[str] = Field(default_factory=list)
    insecure_skip_verify: bool = False

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> IndexerConfig:
        source = source or settings
        return cls(
            index=source.es_index,
            servers=list(source.es_servers),
            insecure_skip_verify=source.es_insecure_skip_verify,
        )


class IndexingOpts(BaseModel):
    """Per-call batching overrides.  ``None`` falls back to :data:`settings`."""

    flush_bytes: int | None = Field(default=None, gt=0)
    flush_items: int | None = Field(default=None, ge=0)
    num_workers: int | None = Field(default=None, gt=0)
    timeout_seconds: float | None = Field(default=None, gt=0)

    def resolved(self, source: Settings | None = None) -> IndexingOpts:
        """Return a copy with every field filled in."""
        source = source or settings
        return IndexingOpts(
            flush_bytes=self.flush_bytes or source.bulk_flush_bytes,
            flush_items=self.flush_items if self.flush_items is not None else source.bulk_flush_items,
            num_workers=self.num_workers or source.bulk_num_workers,
            timeout_seconds=self.timeout_seconds or source.bulk_timeout_seconds,
        )
