"""Value types exchanged with the bulk-write engine."""

from __future__ import annotations

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class BulkItem:
    """One ``index`` action: a document body keyed by its identity.

    Attributes
    ----------
    id:
        Document ID written to the store (the content hash).
    body:
        Canonical JSON bytes of the document.
    """

    id: str
    body: bytes

    @property
    def action(self) -> dict:
        return {"index": {"_id": self.id}}

    @property
    def size(self) -> int:
        """Bytes this item adds to a ``_bulk`` request (both NDJSON lines)."""
        header = json.dumps(self.action, separators=(",", ":"))
        return len(header) + len(self.body) + 2


@dataclass(frozen=True)
class BulkItemFailure:
    """A store-reported failure for a single document.

    Non-fatal to the call; handed to the item's failure hook.
    """

    id: str
    reason: str
    status: int | None = None
    error_type: str | None = None

    def __str__(self) -> str:  # noqa: D105
        kind = f"{self.error_type}: " if self.error_type else ""
        return f"{kind}{self.reason}"


@dataclass(frozen=True)
class BulkItemResult:
    """Outcome of one ``index`` action as reported by the store.

    Exactly one of *result* (``created``, ``updated`` …) and *failure* is set.
    """

    id: str
    result: str | None = None
    failure: BulkItemFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None
