"""Elasticsearch implementation of the index-store abstraction."""

from __future__ import annotations

import logging
import sys
from typing import Any, Generator, Iterable

from elasticsearch import ApiError, Elasticsearch, TransportError
from elasticsearch.helpers import parallel_bulk

from bulk_indexer.config import settings
from bulk_indexer.errors import StoreConnectionError, StoreError
from bulk_indexer.store.base import IndexStoreBase
from bulk_indexer.store.models import BulkItem, BulkItemFailure, BulkItemResult

logger = logging.getLogger(__name__)

_ALREADY_EXISTS = "resource_already_exists_exception"


def _error_type(exc: ApiError) -> str | None:
    body = exc.body if isinstance(exc.body, dict) else {}
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("type")
    return None


def _expand_item(item: BulkItem) -> tuple[dict[str, Any], bytes]:
    return item.action, item.body


def _item_result(ok: bool, info: dict[str, Any]) -> BulkItemResult:
    """Convert one ``(ok, {op_type: item})`` pair from the bulk helpers."""
    _, item = next(iter(info.items()))
    doc_id = item.get("_id", "")
    if ok:
        return BulkItemResult(id=doc_id, result=item.get("result", "unknown"))

    status = item.get("status")
    error = item.get("error")
    # Item-level errors are objects; a rejected request is reported per item
    # as the exception text.
    if isinstance(error, dict):
        failure = BulkItemFailure(
            id=doc_id,
            reason=error.get("reason") or "unknown error",
            status=status,
            error_type=error.get("type"),
        )
    else:
        failure = BulkItemFailure(id=doc_id, reason=str(error or f"status {status}"), status=status)
    return BulkItemResult(id=doc_id, failure=failure)


class ElasticsearchStore(IndexStoreBase):
    """Elasticsearch-backed index store.

    Parameters
    ----------
    servers:
        Node URLs, e.g. ``["https://es-0:9200", "https://es-1:9200"]``.
    insecure_skip_verify:
        Disable TLS certificate verification.  Meant for self-signed
        development clusters.
    client:
        Pre-built client; skips construction from *servers*.
    """

    def __init__(
        self,
        servers: list[str] | None = None,
        *,
        insecure_skip_verify: bool = settings.es_insecure_skip_verify,
        client: Elasticsearch | None = None,
    ) -> None:
        if client is None:
            servers = servers or list(settings.es_servers)
            kwargs: dict[str, Any] = {}
            if insecure_skip_verify:
                kwargs.update(verify_certs=False, ssl_show_warn=False)
            try:
                client = Elasticsearch(servers, **kwargs)
            except (ValueError, TypeError) as exc:
                raise StoreConnectionError(f"error creating the ES client: {exc}") from exc
        self._client = client

    # -- IndexStoreBase overrides ---------------------------------------------

    def health(self) -> int:
        try:
            response = self._client.cluster.health()
        except (ApiError, TransportError) as exc:
            raise StoreError(f"cluster health request failed: {exc}") from exc
        logger.debug("Cluster health: %s", response.body.get("status"))
        return response.meta.status

    def index_exists(self, name: str) -> bool:
        try:
            return bool(self._client.indices.exists(index=name))
        except (ApiError, TransportError) as exc:
            raise StoreError(f"index existence check for {name!r} failed: {exc}") from exc

    def create_index(self, name: str) -> None:
        try:
            self._client.indices.create(index=name)
        except ApiError as exc:
            if _error_type(exc) == _ALREADY_EXISTS:
                logger.info("Index %s was created concurrently", name)
                return
            raise StoreError(f"error creating index {name}: {exc}") from exc
        except TransportError as exc:
            raise StoreError(f"error creating index {name}: {exc}") from exc

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
        client = self._client.options(request_timeout=timeout) if timeout else self._client
        responses = parallel_bulk(
            client,
            items,
            thread_count=num_workers,
            queue_size=num_workers,
            chunk_size=flush_items or sys.maxsize,
            max_chunk_bytes=flush_bytes,
            expand_action_callback=_expand_item,
            raise_on_error=False,
            raise_on_exception=False,
            index=index,
        )
        try:
            for ok, info in responses:
                yield _item_result(ok, info)
        except (ApiError, TransportError) as exc:
            raise StoreError(f"bulk request failed: {exc}") from exc

    def close(self) -> None:
        self._client.close()
