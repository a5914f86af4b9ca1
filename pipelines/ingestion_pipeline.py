"""KFP v2 pipeline — Deduplicating bulk ingestion into Elasticsearch.

Wraps the :func:`~pipelines.components.index.index_documents` component so
a JSON-Lines Dataset produced upstream (or imported from a URI) can be
indexed as a pipeline run.

Compile
-------
    python -m pipelines.ingestion_pipeline --compile
    # then submit the YAML to a KFP-compatible backend
"""

from kfp import compiler, dsl

from pipelines.components.index import index_documents


# ──────────────────────────────────────────────────────────────────────
# Pipeline definition
# ──────────────────────────────────────────────────────────────────────


@dsl.pipeline(
    name="bulk-ingestion-pipeline",
    description=(
        "Import a JSON-Lines Dataset and bulk-index it into one "
        "Elasticsearch index, skipping duplicate documents."
    ),
)
def ingestion_pipeline(
    # ── Source ──────────────────────────────────────────────────────
    documents_uri: str = "gs://bucket/documents.jsonl",
    # ── Store ──────────────────────────────────────────────────────
    servers: str = "",
    index_name: str = "",
    insecure_skip_verify: bool = False,
    # ── Bulk ───────────────────────────────────────────────────────
    flush_bytes: int = 0,
    num_workers: int = 0,
    timeout_seconds: float = 0.0,
) -> None:
    """Import → index.

    Parameters
    ----------
    documents_uri:
        URI of the JSON-Lines file to index.
    servers:
        JSON list of Elasticsearch node URLs; empty uses the image's
        ``ES_SERVERS``.
    index_name:
        Target index; empty uses ``ES_INDEX``.
    insecure_skip_verify:
        Disable TLS certificate verification.
    flush_bytes / num_workers / timeout_seconds:
        Bulk session tuning; zero uses the image's ``BULK_*`` settings.
    """
    importer = dsl.importer(
        artifact_uri=documents_uri,
        artifact_class=dsl.Dataset,
        reimport=False,
    )

    index_documents(
        documents=importer.output,
        servers=servers,
        index_name=index_name,
        insecure_skip_verify=insecure_skip_verify,
        flush_bytes=flush_bytes,
        num_workers=num_workers,
        timeout_seconds=timeout_seconds,
    )


# ──────────────────────────────────────────────────────────────────────
# CLI
# ──────────────────────────────────────────────────────────────────────


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Bulk ingestion pipeline")
    parser.add_argument(
        "--compile",
        action="store_true",
        help="Compile pipeline to YAML",
    )
    parser.add_argument(
        "--output",
        default="pipelines/compiled/ingestion_pipeline.yaml",
        help="Output path for compiled YAML",
    )
    args = parser.parse_args()

    if args.compile:
        compiler.Compiler().compile(ingestion_pipeline, args.output)
        print(f"Pipeline compiled → {args.output}")
