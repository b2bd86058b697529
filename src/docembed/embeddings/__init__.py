"""Embedding providers — OpenAI, Ollama, HuggingFace, local."""

from docembed.embeddings.base import EmbeddingProvider
from docembed.embeddings.factory import (
    available_providers,
    get_embedding_provider,
    provider_from_settings,
)

__all__ = [
    "EmbeddingProvider",
    "available_providers",
    "get_embedding_provider",
    "provider_from_settings",
]
