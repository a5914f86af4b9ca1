"""KFP v2 component — Bulk-index JSON documents into Elasticsearch.

Reads a JSON-Lines Dataset (one document per line) and writes every
document into a single index through :mod:`bulk_indexer`.

Documents are keyed by the SHA-256 of their canonical JSON, so re-runs are
idempotent — identical content is overwritten, not duplicated — and
duplicates inside one Dataset are written once.

Image
-----
``bulk_indexer`` is not on a package index, so the component runs on an
image with the project already installed, built from the repository root::

    docker build -t <registry>/bulk-indexer:0.1.0 .
    docker push <registry>/bulk-indexer:0.1.0
    export BULK_INDEXER_IMAGE=<registry>/bulk-indexer:0.1.0

``BULK_INDEXER_IMAGE`` is read when this module is imported, i.e. when the
pipeline is compiled.

Connection details left empty fall back to :class:`bulk_indexer.config.Settings`
(``ES_SERVERS``, ``ES_INDEX`` … in the container environment).

Local testing
-------------
    from pipelines.components.index import index_documents
    index_documents.python_func(
        documents=_FakeArtifact("/tmp/docs.jsonl"),
        metrics=_FakeArtifact("/tmp/metrics"),
        servers='["http://localhost:9200"]',
        index_name="test",
    )
"""

import os

from kfp import dsl

BULK_INDEXER_IMAGE = os.environ.get("BULK_INDEXER_IMAGE", "bulk-indexer:0.1.0")


@dsl.component(
    base_image=BULK_INDEXER_IMAGE,
    install_kfp_package=False,
)
def index_documents(
    documents: dsl.Input[dsl.Dataset],
    metrics: dsl.Output[dsl.Metrics],
    servers: str = "",
    index_name: str = "",
    insecure_skip_verify: bool = False,
    flush_bytes: int = 0,
    num_workers: int = 0,
    timeout_seconds: float = 0.0,
) -> str:
    """Deduplicate and bulk-index documents.

    Parameters
    ----------
    documents:
        Input Dataset — JSON-Lines, one arbitrary JSON document per line.
    metrics:
        Output Metrics artifact with indexing statistics.
    servers:
        JSON list of Elasticsearch node URLs; empty uses ``ES_SERVERS``.
    index_name:
        Target index, lowercased and created when missing; empty uses
        ``ES_INDEX``.
    insecure_skip_verify:
        Disable TLS certificate verification; ``False`` defers to
        ``ES_INSECURE_SKIP_VERIFY``.
    flush_bytes:
        Request-size threshold for each ``_bulk`` flush; ``0`` uses
        ``BULK_FLUSH_BYTES``.
    num_workers:
        Concurrent ``_bulk`` requests; ``0`` uses ``BULK_NUM_WORKERS``.
    timeout_seconds:
        Budget for the whole bulk session; ``0`` uses
        ``BULK_TIMEOUT_SECONDS``.

    Returns
    -------
    str
        Summary, e.g. ``"Indexing finished in 1.2s: created=254 redundantskipped=2"``.
    """
    import json
    import logging

    from bulk_indexer.config import IndexerConfig, IndexingOpts
    from bulk_indexer.indexer import BulkIngestPipeline, IndexManager

    logging.basicConfig(level=logging.INFO)
    log = logging.getLogger("index_documents")

    overrides: dict = {}
    if servers:
        server_list = json.loads(servers)
        if not isinstance(server_list, list) or not server_list:
            raise ValueError("servers must be a non-empty JSON list of URLs")
        overrides["servers"] = server_list
    if index_name:
        overrides["index"] = index_name
    if insecure_skip_verify:
        overrides["insecure_skip_verify"] = True
    config = IndexerConfig.from_settings().model_copy(update=overrides)

    # ── read documents ────────────────────────────────────────────
    records: list = []
    with open(documents.path) as fh:
        for lineno, line in enumerate(fh, 1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as exc:
                log.warning("Skipping malformed line %d: %s", lineno, exc)

    log.info("Read %d documents", len(records))
    metrics.log_metric("documents_read", len(records))

    # ── index ─────────────────────────────────────────────────────
    opts = IndexingOpts(
        flush_bytes=flush_bytes or None,
        num_workers=num_workers or None,
        timeout_seconds=timeout_seconds or None,
    )
    with IndexManager(config) as manager:
        log.info("Indexing into %s on %s", manager.index_name, config.servers)
        report = BulkIngestPipeline(manager).ingest(records, opts)

    # KFP Metrics
    metrics.log_metric("redundant_skipped", report.redundant_skipped)
    metrics.log_metric("documents_failed", report.failed)
    metrics.log_metric("index_elapsed_seconds", round(report.elapsed_seconds, 2))
    for result, count in report.outcomes.items():
        metrics.log_metric(f"result_{result}", count)

    msg = report.summary()
    log.info(msg)
    return msg
