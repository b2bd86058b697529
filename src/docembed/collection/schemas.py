"""Data models for collection entries and query results."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass
class CollectionEntry:
    """A chunk with its embedding, as stored in a collection."""

    id: str
    text: str
    vector: np.ndarray
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchResult:
    """A single result of a similarity query."""

    id: str
    text: str
    score: float
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CollectionInfo:
    """Introspection data for a collection."""

    name: str
    entry_count: int
    size_bytes: int
