"""End-to-end pipelines — build, estimate, query."""

from docembed.pipeline.build import CollectionBuilder, IndexPipeline, build_collection
from docembed.pipeline.estimate import estimate
from docembed.pipeline.query import QueryEngine, info, load_collection, search, search_vector
from docembed.pipeline.schemas import BuildReport, CostEstimate, EmbedFailureRecord

__all__ = [
    "BuildReport",
    "CollectionBuilder",
    "CostEstimate",
    "EmbedFailureRecord",
    "IndexPipeline",
    "QueryEngine",
    "build_collection",
    "estimate",
    "info",
    "load_collection",
    "search",
    "search_vector",
]
