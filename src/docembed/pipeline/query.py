"""Query engine — question → embed → top-K cosine similarity.

Read-only over a loaded collection: any number of threads may query the
same frozen collection concurrently.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import numpy as np

from docembed.collection.collection import Collection
from docembed.collection.schemas import CollectionInfo, SearchResult
from docembed.embeddings.base import EmbeddingProvider
from docembed.errors import ContractViolation
from docembed.snapshot.codec import export_collection, import_collection, load_snapshot

logger = logging.getLogger(__name__)


def load_collection(
    path: str | Path | None = None,
    data: bytes | None = None,
) -> Collection:
    """Load a snapshot from a file or from in-memory bytes.

    Exactly one of ``path`` and ``data`` must be given.

    Raises:
        DecodeFailure: The snapshot is corrupt or of another version.
        ContractViolation: Neither or both sources were given.
    """
    if (path is None) == (data is None):
        raise ContractViolation("load_collection needs exactly one of path or data")
    if data is not None:
        return import_collection(data)
    return load_snapshot(path)


def _check_limit(limit: object) -> None:
    if isinstance(limit, bool) or not isinstance(limit, (int, np.integer)) or limit <= 0:
        raise ContractViolation(f"limit must be a positive integer, got {limit!r}")


def search_vector(
    collection: Collection,
    query_vector: Sequence[float] | np.ndarray,
    limit: int,
) -> list[SearchResult]:
    """Return the ``limit`` entries most similar to ``query_vector``.

    Results are ordered by descending cosine similarity; equal scores keep
    the collection's insertion order.

    Raises:
        ContractViolation: ``limit`` is not positive or the vector's
            dimension differs from the collection's.
    """
    _check_limit(limit)
    if len(collection) == 0:
        return []

    query = np.asarray(query_vector, dtype=np.float32)
    if query.ndim != 1 or query.size != collection.dimension:
        raise ContractViolation(
            f"Query vector has dimension {query.size}, collection "
            f"{collection.name!r} uses {collection.dimension}; "
            "build and query must use the same embedding model"
        )

    norm = float(np.linalg.norm(query))
    if norm > 0:
        query = query / norm

    scores = collection.unit_vectors() @ query
    order = np.argsort(-scores, kind="stable")[: int(limit)]

    ids = collection.ids
    results = []
    for idx in order:
        entry = collection.get(ids[idx])
        results.append(SearchResult(
            id=entry.id,
            text=entry.text,
            score=float(scores[idx]),
            metadata=entry.metadata,
        ))
    return results


def search(
    collection: Collection,
    query_text: str,
    limit: int,
    embedding_provider: EmbeddingProvider,
) -> list[SearchResult]:
    """Embed ``query_text`` and return the top ``limit`` matches."""
    _check_limit(limit)
    if len(collection) == 0:
        return []

    query_vector = embedding_provider.embed_query(query_text)
    results = search_vector(collection, query_vector, limit)
    logger.info(
        "Search in %s returned %d results (limit=%d)", collection.name, len(results), limit,
    )
    return results


def info(collection: Collection) -> CollectionInfo:
    """Name, entry count and snapshot size of a collection.

    Collections loaded from a snapshot report the size they were loaded
    from; freshly built ones are measured by encoding them.
    """
    size = collection.snapshot_size
    if size is None:
        size = len(export_collection(collection))
    return CollectionInfo(name=collection.name, entry_count=len(collection), size_bytes=size)


class QueryEngine:
    """A loaded collection bound to the provider used to build it."""

    def __init__(self, collection: Collection, embedding_provider: EmbeddingProvider):
        self.collection = collection.freeze()
        self.embedding_provider = embedding_provider

    @classmethod
    def from_snapshot(
        cls,
        path: str | Path,
        embedding_provider: EmbeddingProvider,
    ) -> QueryEngine:
        return cls(load_collection(path=path), embedding_provider)

    def search(self, query_text: str, limit: int = 5) -> list[SearchResult]:
        return search(self.collection, query_text, limit, self.embedding_provider)

    def info(self) -> CollectionInfo:
        return info(self.collection)
