"""Unit tests for canonical encoding and content-derived IDs."""

from __future__ import annotations

import hashlib
import math
import os
import subprocess
import sys
from datetime import datetime, timezone
from uuid import UUID

import pytest
from pydantic import BaseModel

from bulk_indexer.errors import EncodingError
from bulk_indexer.ingestion.hashing import document_id, encode_document


class _Event(BaseModel):
    name: str
    at: datetime


class TestEncodeDocument:
    def test_compact_and_sorted(self) -> None:
        assert encode_document({"b": 2, "a": [1, {"d": 4, "c": 3}]}) == b'{"a":[1,{"c":3,"d":4}],"b":2}'

    def test_key_order_does_not_matter(self) -> None:
        assert encode_document({"x": 1, "y": 2}) == encode_document({"y": 2, "x": 1})

    def test_non_ascii_kept_as_utf8(self) -> None:
        assert encode_document({"city": "Zürich"}) == '{"city":"Zürich"}'.encode("utf-8")

    def test_scalars_and_lists(self) -> None:
        assert encode_document("plain") == b'"plain"'
        assert encode_document([1, None, True]) == b"[1,null,true]"

    def test_pydantic_model_and_rich_values(self) -> None:
        at = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        body = encode_document({"event": _Event(name="deploy", at=at), "id": UUID(int=1)})
        assert body == (
            b'{"event":{"at":"2024-01-02T03:04:05Z","name":"deploy"},'
            b'"id":"00000000-0000-0000-0000-000000000001"}'
        )

    def test_unserialisable_value_raises(self) -> None:
        with pytest.raises(EncodingError, match="cannot encode document"):
            encode_document({"handle": object()})

    def test_nan_is_rejected(self) -> None:
        with pytest.raises(EncodingError):
            encode_document({"score": math.nan})


class _Tagged(BaseModel):
    name: str
    tags: set[str]


class TestSetEncoding:
    def test_set_members_are_sorted(self) -> None:
        assert encode_document({"tags": {"b", "c", "a"}}) == b'{"tags":["a","b","c"]}'
        assert encode_document(frozenset({3, 1, 2})) == b"[1,2,3]"

    def test_mixed_members_sorted_by_encoding(self) -> None:
        assert encode_document({1, "a"}) == b'["a",1]'

    def test_nested_sets(self) -> None:
        body = encode_document({"groups": [{"y", "x"}, {frozenset({"q", "p"})}]})
        assert body == b'{"groups":[["x","y"],[["p","q"]]]}'

    def test_set_inside_pydantic_model(self) -> None:
        body = encode_document(_Tagged(name="n", tags={"zeta", "alpha", "mid"}))
        assert body == b'{"name":"n","tags":["alpha","mid","zeta"]}'

    def test_id_is_stable_across_hash_seeds(self) -> None:
        code = (
            "from bulk_indexer.ingestion.hashing import document_id, encode_document\n"
            "tags = {f'tag-{n}' for n in range(64)}\n"
            "print(document_id(encode_document({'tags': tags, 'nested': [frozenset(tags)]})))\n"
        )
        env = {**os.environ, "PYTHONPATH": os.pathsep.join(sys.path)}
        ids = set()
        for seed in ("1", "2", "3", "4", "5"):
            completed = subprocess.run(
                [sys.executable, "-c", code],
                env={**env, "PYTHONHASHSEED": seed},
                capture_output=True,
                text=True,
                check=True,
            )
            ids.add(completed.stdout.strip())
        assert len(ids) == 1


class TestDocumentId:
    def test_is_sha256_hex(self) -> None:
        body = encode_document({"a": 1})
        doc_id = document_id(body)
        assert doc_id == hashlib.sha256(b'{"a":1}').hexdigest()
        assert len(doc_id) == 64
        assert all(c in "0123456789abcdef" for c in doc_id)

    def test_deterministic(self) -> None:
        body = encode_document({"a": 1})
        assert document_id(body) == document_id(body)

    def test_independent_of_previous_documents(self) -> None:
        """An ID never depends on what was hashed before it."""
        first = document_id(encode_document({"b": 2}))
        document_id(encode_document({"a": 1}))
        document_id(encode_document({"a": 1}))
        assert document_id(encode_document({"b": 2})) == first
