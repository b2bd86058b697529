"""Abstract base class for all chunkers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docembed.chunking.schemas import Chunk


class BaseChunker(ABC):
    """Interface for document chunking strategies."""

    @abstractmethod
    def chunk(self, text: str, source_path: str, category: str) -> list[Chunk]:
        """Split text into chunks.

        Args:
            text: Full file content.
            source_path: Path of the file relative to its content root.
            category: Content root name, propagated to every chunk.

        Returns:
            List of ``Chunk`` objects in emission order.
        """

    @classmethod
    def strategy_name(cls) -> str:
        """Return human-readable strategy name."""
        return cls.__name__
