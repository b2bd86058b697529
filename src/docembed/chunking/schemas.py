"""Data models for chunks."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Chunk:
    """A single retrievable piece of a corpus file.

    Attributes:
        id: ``"<source_path>_chunk_<n>"``; stable across rebuilds of
            unchanged input.
        content: Non-empty text payload.
        source_path: Path of the originating file, relative to its
            content root, with ``/`` separators.
        category: Name of the content root (``docs``, ``examples``...).
        metadata: String-to-string mapping stored alongside the embedding.
    """

    id: str
    content: str
    source_path: str
    category: str
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def ordinal(self) -> int:
        return int(self.metadata.get("chunk_id", "0"))
