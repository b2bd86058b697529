"""In-memory vector collection.

Vectors are held as ``float32`` rows of a single matrix so that a snapshot
round-trip is exact and a query is one matrix-vector product. A collection
is mutable while the builder fills it and read-only once frozen; frozen
collections are safe to query from several threads.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence

import numpy as np

from docembed.collection.schemas import CollectionEntry

logger = logging.getLogger(__name__)


class Collection:
    """A named set of ``id → (vector, text, metadata)`` entries."""

    def __init__(self, name: str, metadata: Mapping[str, str] | None = None):
        if not name:
            raise ValueError("Collection name must not be empty")
        self._name = name
        self.metadata: dict[str, str] = dict(metadata or {})
        self._ids: list[str] = []
        self._positions: dict[str, int] = {}
        self._texts: list[str] = []
        self._entry_metadata: list[dict[str, str]] = []
        self._rows: list[np.ndarray] = []
        self._dimension: int | None = None
        self._matrix: np.ndarray | None = None
        self._unit_matrix: np.ndarray | None = None
        self._frozen = False
        # Set by the snapshot codec when the collection came from bytes
        self.snapshot_size: int | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add(
        self,
        id: str,
        vector: Sequence[float] | np.ndarray,
        text: str,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        """Insert one entry.

        Raises:
            RuntimeError: The collection is frozen.
            ValueError: Duplicate id, empty vector, non-finite values or a
                dimension different from the entries already stored.
        """
        if self._frozen:
            raise RuntimeError(f"Collection {self._name!r} is frozen")
        if id in self._positions:
            raise ValueError(f"Duplicate entry id {id!r} in collection {self._name!r}")

        row = np.array(vector, dtype=np.float32)
        if row.ndim != 1 or row.size == 0:
            raise ValueError(f"Vector for {id!r} must be a non-empty 1-D sequence")
        if not np.all(np.isfinite(row)):
            raise ValueError(f"Vector for {id!r} contains NaN or infinite values")
        if self._dimension is None:
            self._dimension = int(row.size)
        elif row.size != self._dimension:
            raise ValueError(
                f"Vector for {id!r} has dimension {row.size}, "
                f"collection {self._name!r} uses {self._dimension}"
            )

        self._positions[id] = len(self._ids)
        self._ids.append(id)
        self._texts.append(text)
        self._entry_metadata.append({str(k): str(v) for k, v in (metadata or {}).items()})
        self._rows.append(row)
        self._matrix = None
        self._unit_matrix = None

    @classmethod
    def from_arrays(
        cls,
        name: str,
        ids: Sequence[str],
        texts: Sequence[str],
        metadata: Sequence[Mapping[str, str]],
        vectors: np.ndarray,
        collection_metadata: Mapping[str, str] | None = None,
    ) -> Collection:
        """Rebuild a frozen collection from parallel arrays."""
        collection = cls(name, metadata=collection_metadata)
        for i, entry_id in enumerate(ids):
            collection.add(entry_id, vectors[i], texts[i], metadata[i])
        if vectors.ndim == 2 and vectors.shape[1] > 0:
            collection._dimension = int(vectors.shape[1])
        collection.freeze()
        return collection

    def freeze(self) -> Collection:
        """Make the collection read-only and precompute the search matrix."""
        if not self._frozen:
            self._frozen = True
            self._unit_matrix = self._normalized()
            logger.debug("Collection %s frozen with %d entries", self._name, len(self))
        return self

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def dimension(self) -> int | None:
        return self._dimension

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def count(self) -> int:
        return len(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, id: object) -> bool:
        return id in self._positions

    def __iter__(self) -> Iterator[CollectionEntry]:
        for i in range(len(self._ids)):
            yield self._entry(i)

    def get(self, id: str) -> CollectionEntry:
        """Return the entry stored under ``id`` (``KeyError`` if absent)."""
        return self._entry(self._positions[id])

    def vectors(self) -> np.ndarray:
        """``count × dimension`` float32 matrix, rows in insertion order."""
        if self._matrix is None:
            if self._rows:
                self._matrix = np.vstack(self._rows)
            else:
                self._matrix = np.zeros((0, self._dimension or 0), dtype=np.float32)
            self._matrix.setflags(write=False)
        return self._matrix

    def texts(self) -> list[str]:
        return list(self._texts)

    def entry_metadata(self) -> list[dict[str, str]]:
        return [dict(m) for m in self._entry_metadata]

    def unit_vectors(self) -> np.ndarray:
        """L2-normalized copy of :meth:`vectors`, used for cosine similarity."""
        if self._unit_matrix is not None:
            return self._unit_matrix
        return self._normalized()

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _entry(self, i: int) -> CollectionEntry:
        return CollectionEntry(
            id=self._ids[i],
            text=self._texts[i],
            vector=self._rows[i].copy(),
            metadata=dict(self._entry_metadata[i]),
        )

    def _normalized(self) -> np.ndarray:
        matrix = self.vectors().astype(np.float32, copy=True)
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        matrix /= norms
        matrix.setflags(write=False)
        return matrix

    def __repr__(self) -> str:
        return f"Collection(name={self._name!r}, entries={len(self)}, dimension={self._dimension})"
