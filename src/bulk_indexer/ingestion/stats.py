"""Outcome accounting and the per-call ingestion report."""

from __future__ import annotations

import threading
from collections import Counter

from pydantic import BaseModel, ConfigDict, Field

from bulk_indexer.store.models import BulkItemFailure


def format_duration(nanos: int) -> str:
    """Render *nanos* truncated to milliseconds.

    Examples: ``0s``, ``12ms``, ``1.001s``, ``2m3.004s``, ``1h0m0s``.
    """
    millis = nanos // 1_000_000
    if millis <= 0:
        return "0s"
    if millis < 1000:
        return f"{millis}ms"
    seconds, millis = divmod(millis, 1000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    secs = f"{seconds}.{millis:03d}".rstrip("0") if millis else str(seconds)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


class OutcomeStats:
    """Thread-safe ``result → count`` tally fed by bulk completion hooks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcomes: Counter[str] = Counter()
        self._failed = 0

    def record(self, result: str) -> None:
        with self._lock:
            self._outcomes[result] += 1

    def record_failure(self, failure: BulkItemFailure) -> None:
        with self._lock:
            self._failed += 1

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    def snapshot(self) -> dict[str, int]:
        """Return a copy of the outcome counts."""
        with self._lock:
            return dict(self._outcomes)


class IngestionReport(BaseModel):
    """Immutable result of one ingestion call.

    Attributes
    ----------
    document_count:
        Number of documents passed in, duplicates included.
    elapsed_ns:
        Monotonic time from session open to drained close, in nanoseconds.
    outcomes:
        Store result name (``created``, ``updated`` …) to count.
    failed:
        Documents the store rejected.
    redundant_skipped:
        Later copies of documents already seen in the same call.
    """

    model_config = ConfigDict(frozen=True)

    document_count: int = 0
    elapsed_ns: int = 0
    outcomes: dict[str, int] = Field(default_factory=dict)
    failed: int = 0
    redundant_skipped: int = 0

    @property
    def elapsed_seconds(self) -> float:
        return self.elapsed_ns / 1e9

    @property
    def skipped(self) -> bool:
        return self.document_count == 0

    @property
    def submitted(self) -> int:
        """Documents handed to the store, whatever their outcome."""
        return sum(self.outcomes.values()) + self.failed

    def summary(self) -> str:
        if self.skipped:
            return f"Indexing skipped due to {self.document_count} docs"
        stats = "".join(f" {name}={count}" for name, count in self.outcomes.items())
        if self.failed > 0:
            stats += f" failed={self.failed}"
        if self.redundant_skipped > 0:
            stats += f" redundantskipped={self.redundant_skipped}"
        return f"Indexing finished in {format_duration(self.elapsed_ns)}:{stats}"

    def __str__(self) -> str:  # noqa: D105
        return self.summary()
