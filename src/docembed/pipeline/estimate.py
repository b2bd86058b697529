"""Dry-run cost estimate — no provider calls."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from docembed.chunking.schemas import Chunk
from docembed.pipeline.schemas import CostEstimate

logger = logging.getLogger(__name__)

# USD per 1K tokens
_PRICE_PER_1K = {
    "text-embedding-3-small": 0.00002,
    "text-embedding-3-large": 0.00013,
    "text-embedding-ada-002": 0.0001,
}
_DEFAULT_PRICE = 0.00002


def count_tokens(text: str) -> int:
    """Count tokens using tiktoken with graceful fallback."""
    try:
        import tiktoken

        enc = tiktoken.get_encoding("cl100k_base")
        return len(enc.encode(text))
    except ImportError:
        # Rough approximation: ~4 characters per token
        return len(text) // 4


def embedding_cost(model: str, tokens: int) -> float:
    """Price of embedding ``tokens`` tokens; unknown models use the cheapest rate."""
    return tokens / 1000.0 * _PRICE_PER_1K.get(model, _DEFAULT_PRICE)


def estimate(chunks: Sequence[Chunk], model: str) -> CostEstimate:
    tokens = sum(count_tokens(c.content) for c in chunks)
    result = CostEstimate(
        model=model,
        chunks=len(chunks),
        characters=sum(len(c.content) for c in chunks),
        tokens=tokens,
        cost_usd=embedding_cost(model, tokens),
        by_category=dict(Counter(c.category for c in chunks)),
    )
    logger.info(
        "Estimate for %s: %d chunks, %d tokens, $%.4f",
        model, result.chunks, result.tokens, result.cost_usd,
    )
    return result
