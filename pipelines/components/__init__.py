"""KFP v2 components — each file exports one @dsl.component."""

from pipelines.components.index import index_documents

__all__ = [
    "index_documents",
]
