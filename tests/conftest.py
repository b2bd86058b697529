"""Shared fixtures for tests — synthetic corpora, no network calls."""

from __future__ import annotations

import hashlib
import textwrap
from pathlib import Path

import numpy as np
import pytest

from docembed.chunking.schemas import Chunk
from docembed.config import ContentRoot
from docembed.embeddings.base import EmbeddingProvider

DIM = 64

# ---------------------------------------------------------------------------
# Mock providers
# ---------------------------------------------------------------------------


class MockEmbedder(EmbeddingProvider):
    """A deterministic embedding provider for tests."""

    def __init__(self, dim: int = DIM):
        self._dim = dim
        self.model = "mock-embed"
        self.calls: list[str] = []

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls.extend(texts)
        return [self._hash_embed(t) for t in texts]

    def embed_query(self, query: str) -> list[float]:
        return self._hash_embed(query)

    @property
    def dimension(self) -> int:
        return self._dim

    def _hash_embed(self, text: str) -> list[float]:
        h = hashlib.sha256(text.encode()).digest()
        vec = np.array([h[i % len(h)] / 255.0 - 0.5 for i in range(self._dim)], dtype=np.float32)
        vec /= np.linalg.norm(vec)
        return vec.tolist()


class FlakyEmbedder(MockEmbedder):
    """Fails for texts containing a marker; optionally only the first N times."""

    def __init__(self, marker: str, error: Exception, times: int | None = None, dim: int = DIM):
        super().__init__(dim)
        self.marker = marker
        self.error = error
        self.times = times
        self.failures = 0

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if any(self.marker in t for t in texts):
            if self.times is None or self.failures < self.times:
                self.failures += 1
                raise self.error
        return super().embed_texts(texts)


@pytest.fixture
def embedder() -> MockEmbedder:
    return MockEmbedder()


# ---------------------------------------------------------------------------
# Synthetic corpus content
# ---------------------------------------------------------------------------


@pytest.fixture
def guide_markdown() -> str:
    return textwrap.dedent("""\
        # Deploying a Static Site

        Static sites are deployed to a bucket fronted by a CDN. The stack
        definition lives in the client configuration file.

        ## Configuration

        Set the `type` field to `cloud-static` and point `bundleDir` at the
        directory produced by your build tool.

        ## Custom Domains

        Add a `domain` entry and the DNS record is created automatically
        during the deployment.
    """)


@pytest.fixture
def corpus(tmp_path: Path, guide_markdown: str) -> dict[str, Path]:
    """Three content roots with docs, an example config and a schema."""
    docs = tmp_path / "docs"
    examples = tmp_path / "examples"
    schemas = tmp_path / "schemas"

    (docs / "guides").mkdir(parents=True)
    (docs / "guides" / "static-site.md").write_text(guide_markdown)
    (docs / "index.md").write_text("# Welcome\n\nStart with the getting started guide.\n")
    (docs / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")

    (examples / "static").mkdir(parents=True)
    (examples / "static" / "client.yaml").write_text(
        "schemaVersion: 1.0\n"
        "stacks:\n"
        "  prod:\n"
        "    type: cloud-static\n"
        "    config:\n"
        "      bundleDir: ./dist\n"
    )

    schemas.mkdir()
    (schemas / "client.json").write_text('{\n  "type": "object",\n  "required": ["stacks"]\n}\n')

    return {"docs": docs, "examples": examples, "schemas": schemas}


@pytest.fixture
def roots(corpus: dict[str, Path]) -> list[ContentRoot]:
    return [ContentRoot(category=cat, path=str(path)) for cat, path in corpus.items()]


@pytest.fixture
def sample_chunks() -> list[Chunk]:
    texts = [
        "Deploy a static site to a bucket with a CDN in front.",
        "Configure secrets with the secrets manager integration.",
        "Kubernetes clusters are provisioned with autopilot mode.",
        "Postgres databases can be attached as stack resources.",
        "Custom domains are registered during deployment.",
    ]
    return [
        Chunk(
            id=f"doc{i}.md_chunk_0",
            content=text,
            source_path=f"doc{i}.md",
            category="docs",
            metadata={
                "path": f"doc{i}.md",
                "type": "docs",
                "chunk_id": "0",
                "file_name": f"doc{i}.md",
                "file_ext": ".md",
            },
        )
        for i, text in enumerate(texts)
    ]
