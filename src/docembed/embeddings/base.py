"""Abstract base class for embedding providers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class EmbeddingProvider(ABC):
    """Interface for text embedding models.

    The build path calls :meth:`embed` once per chunk; the query path calls
    :meth:`embed_query`. Both must map into the same vector space.
    """

    model: str = ""

    @abstractmethod
    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts.

        Args:
            texts: Strings to embed.

        Returns:
            List of embedding vectors (same order as input).
        """

    @abstractmethod
    def embed_query(self, query: str) -> list[float]:
        """Embed a single query string.

        Some providers use different models/prefixes for queries vs documents.
        """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimensionality."""

    def embed(self, text: str) -> list[float]:
        """Embed a single document text."""
        vectors = self.embed_texts([text])
        if len(vectors) != 1:
            raise RuntimeError(f"Provider returned {len(vectors)} vectors for 1 text")
        return vectors[0]

    @classmethod
    def provider_name(cls) -> str:
        """Return human-readable provider name."""
        return cls.__name__
