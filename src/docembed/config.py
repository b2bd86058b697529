"""Application settings loaded from YAML with environment variable overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Settings sections
# ---------------------------------------------------------------------------


class EmbeddingSettings(BaseModel):
    provider: str = "openai"
    model: str = "text-embedding-3-small"
    dimension: int = 1536
    timeout: float = 60.0


class ContentRoot(BaseModel):
    """A directory of content tagged with its category label."""

    category: str
    path: str


class CorpusSettings(BaseModel):
    roots: list[ContentRoot] = Field(
        default_factory=lambda: [
            ContentRoot(category="docs", path="./docs"),
            ContentRoot(category="examples", path="./docs/docs/examples"),
            ContentRoot(category="schemas", path="./docs/schemas"),
        ]
    )
    extensions: list[str] = Field(
        default_factory=lambda: [".md", ".yaml", ".yml", ".json"]
    )


class ChunkingSettings(BaseModel):
    max_size: int = Field(default=1000, gt=0)


class BuildSettings(BaseModel):
    pause_every: int = Field(default=10, ge=0)
    pause_seconds: float = Field(default=0.1, ge=0.0)
    max_retries: int = Field(default=3, ge=0)
    initial_retry_delay: float = 1.0
    max_retry_delay: float = 30.0
    workers: int = Field(default=1, ge=1)


class SnapshotSettings(BaseModel):
    path: str = "local_data/docs.snapshot"
    collection: str = "docs"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    corpus: CorpusSettings = Field(default_factory=CorpusSettings)
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    snapshot: SnapshotSettings = Field(default_factory=SnapshotSettings)


def _find_settings_file() -> Path | None:
    """Walk up from cwd looking for settings.yaml."""
    profile = os.getenv("DOCEMBED_PROFILE", "")
    names = [f"settings-{profile}.yaml", "settings.yaml"] if profile else ["settings.yaml"]

    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        for name in names:
            candidate = parent / name
            if candidate.exists():
                return candidate
    return None


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from YAML file, falling back to defaults.

    Args:
        path: Explicit settings file. When omitted, the nearest
            ``settings.yaml`` above the working directory is used.
    """
    settings_path = Path(path) if path is not None else _find_settings_file()
    if settings_path is None:
        return Settings()

    with open(settings_path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}

    return Settings(**raw)
