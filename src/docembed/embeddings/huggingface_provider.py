"""sentence-transformers embedding provider — local neural models.

Runs fully offline once the model is cached. Requires the ``huggingface``
extra. Documentation chunks longer than the model's sequence window are
truncated by the model itself; the provider only logs when that happens.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from docembed.embeddings.base import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "all-MiniLM-L6-v2"
DEFAULT_BATCH_SIZE = 32


class HuggingFaceEmbeddingProvider(EmbeddingProvider):
    """Embed documentation chunks with a sentence-transformers model."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        device: str | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        normalize: bool = True,
    ):
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as exc:
            raise ImportError(
                "sentence-transformers required: pip install docembed[huggingface]"
            ) from exc

        self.model = model
        self.batch_size = batch_size
        self.normalize = normalize
        self._model: Any = SentenceTransformer(model, device=device)
        self._dim: int = self._model.get_sentence_embedding_dimension()
        self._max_chars: int | None = None
        max_seq = getattr(self._model, "max_seq_length", None)
        if max_seq:
            # Rough: ~4 characters per word piece
            self._max_chars = int(max_seq) * 4
        logger.info("Loaded sentence-transformers model %s (dim=%d)", model, self._dim)

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        if self._max_chars is not None:
            for text in texts:
                if len(text) > self._max_chars:
                    logger.debug(
                        "Text of %d chars exceeds %s window, tail will be truncated",
                        len(text), self.model,
                    )
        embeddings = self._model.encode(
            texts,
            batch_size=self.batch_size,
            normalize_embeddings=self.normalize,
            show_progress_bar=False,
        )
        return np.asarray(embeddings, dtype=np.float32).tolist()

    def embed_query(self, query: str) -> list[float]:
        return self.embed_texts([query])[0]

    @property
    def dimension(self) -> int:
        return self._dim
