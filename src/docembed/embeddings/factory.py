"""Embedding provider factory — registry, lazy import, singleton cache."""

from __future__ import annotations

import importlib
import logging

from docembed.config import EmbeddingSettings
from docembed.embeddings.base import EmbeddingProvider

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Provider registry: (provider_key, module_path, class_name)
# ---------------------------------------------------------------------------

_PROVIDER_REGISTRY: list[tuple[str, str, str]] = [
    ("openai", "docembed.embeddings.openai_provider", "OpenAIEmbeddingProvider"),
    ("ollama", "docembed.embeddings.ollama_provider", "OllamaEmbeddingProvider"),
    ("huggingface", "docembed.embeddings.huggingface_provider", "HuggingFaceEmbeddingProvider"),
    ("local", "docembed.embeddings.local_provider", "LocalEmbeddingProvider"),
]

# Singleton cache
_provider_cache: dict[str, EmbeddingProvider] = {}


def get_embedding_provider(
    provider: str = "openai",
    **kwargs,
) -> EmbeddingProvider:
    """Get an embedding provider by name.

    Args:
        provider: One of ``openai``, ``ollama``, ``huggingface``, ``local``.
        **kwargs: Passed to the provider constructor.

    Returns:
        An ``EmbeddingProvider`` instance.
    """
    key = provider.lower()

    if not kwargs and key in _provider_cache:
        return _provider_cache[key]

    for reg_key, module_path, cls_name in _PROVIDER_REGISTRY:
        if reg_key == key:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, cls_name)
            instance = cls(**kwargs)
            if not kwargs:
                _provider_cache[key] = instance
            logger.debug("Created embedding provider %s", cls_name)
            return instance

    available = [k for k, _, _ in _PROVIDER_REGISTRY]
    raise ValueError(f"Unknown embedding provider '{provider}'. Available: {available}")


def available_providers() -> list[str]:
    """Return names of registered embedding providers."""
    return [k for k, _, _ in _PROVIDER_REGISTRY]


def clear_cache() -> None:
    """Clear singleton cache (for testing)."""
    _provider_cache.clear()


def provider_from_settings(
    settings: EmbeddingSettings,
    provider: str | None = None,
    model: str | None = None,
) -> EmbeddingProvider:
    """Build the provider described by the ``embedding`` settings section.

    ``provider`` and ``model`` override the configured values. Only the
    options a provider understands are passed to it, so a ``local`` or
    ``huggingface`` provider never receives the OpenAI model name.
    """
    key = (provider or settings.provider).lower()
    kwargs: dict = {}
    if key == "openai":
        kwargs = {"model": model or settings.model, "timeout": settings.timeout}
    elif key == "ollama":
        kwargs = {
            "model": model or settings.model,
            "dimension": settings.dimension,
            "timeout": settings.timeout,
        }
    elif key in ("huggingface", "local") and model:
        kwargs = {"model": model}
    return get_embedding_provider(key, **kwargs)
