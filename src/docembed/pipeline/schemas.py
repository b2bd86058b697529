"""Data models for the build and query pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field

from docembed.collection.collection import Collection


@dataclass(frozen=True)
class EmbedFailureRecord:
    """A chunk the provider could not embed."""

    chunk_id: str
    source_path: str
    error: str
    attempts: int = 1


@dataclass
class BuildReport:
    """Result of a collection build.

    The collection holds every chunk that embedded successfully; the
    shortfall is listed in ``failures``.
    """

    collection: Collection
    total_chunks: int
    failures: list[EmbedFailureRecord] = field(default_factory=list)
    snapshot_path: str | None = None
    snapshot_bytes: int = 0

    @property
    def embedded(self) -> int:
        return len(self.collection)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def failed_ids(self) -> list[str]:
        return [f.chunk_id for f in self.failures]

    @property
    def ok(self) -> bool:
        return not self.failures

    def success_ratio(self) -> float:
        if self.total_chunks == 0:
            return 1.0
        return self.embedded / self.total_chunks


@dataclass
class CostEstimate:
    """Dry-run estimate for embedding a chunk set."""

    model: str
    chunks: int
    characters: int
    tokens: int
    cost_usd: float
    by_category: dict[str, int] = field(default_factory=dict)
