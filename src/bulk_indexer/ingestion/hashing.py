"""Canonical document encoding and content-derived document IDs."""

from __future__ import annotations

import dataclasses
import hashlib
import json
from typing import Any

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError, to_jsonable_python

from bulk_indexer.errors import EncodingError


def _dumps(value: Any) -> str:
    return json.dumps(
        value,
        default=_to_jsonable,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def _to_jsonable(value: Any) -> Any:
    # Sets iterate in hash order, which varies per process; order members by
    # their own canonical encoding instead.
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=_dumps)
    # Containers are dumped in python mode so nested sets reach this hook.
    if isinstance(value, BaseModel):
        return value.model_dump(mode="python")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return to_jsonable_python(value)


def encode_document(document: Any) -> bytes:
    """Serialise *document* to canonical JSON bytes.

    Object keys are sorted, set members are ordered by their encoding, and
    separators are compact, so two documents with equal content always
    encode to the same bytes in every process.  Values that pydantic knows
    how to dump (models, dataclasses, datetimes, UUIDs …) are converted
    first.

    Raises
    ------
    EncodingError
        When the document holds a value that has no JSON form, including
        NaN and infinities.
    """
    try:
        text = _dumps(document)
    except (TypeError, ValueError, PydanticSerializationError) as exc:
        raise EncodingError(f"cannot encode document {document!r}: {exc}") from exc
    return text.encode("utf-8")


def document_id(body: bytes) -> str:
    """Return the hex SHA-256 digest of *body* (64 characters)."""
    return hashlib.sha256(body).hexdigest()
