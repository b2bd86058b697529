"""Build pipeline — chunks → embed → collection → snapshot.

Embedding runs window by window: each window of ``pause_every`` chunks is
embedded (sequentially, or on a bounded thread pool), its results are
inserted in input order, then the builder pauses before the next window.
A chunk whose embedding fails after retries is recorded and skipped; it
never aborts the build.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from docembed.chunking.schemas import Chunk
from docembed.collection.collection import Collection
from docembed.config import ContentRoot
from docembed.corpus.walker import CorpusWalker
from docembed.embeddings.base import EmbeddingProvider
from docembed.errors import BuildCancelled, ContractViolation, EmbedFailure
from docembed.pipeline.schemas import BuildReport, EmbedFailureRecord
from docembed.snapshot.codec import save_snapshot

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "docs"
PAUSE_EVERY = 10
PAUSE_SECONDS = 0.1
MAX_RETRIES = 3
INITIAL_RETRY_DELAY = 1.0
MAX_RETRY_DELAY = 30.0
RETRY_GROWTH = 1.5

_RETRYABLE_STATUS = {408, 409, 429, 500, 502, 503, 504}
_RETRYABLE_MESSAGES = (
    "eof",
    "timeout",
    "timed out",
    "connection reset",
    "rate limit",
    "too many requests",
    "internal server error",
    "bad gateway",
    "service unavailable",
    "gateway timeout",
)


def is_retryable(exc: BaseException) -> bool:
    """Whether a provider error is transient and worth retrying."""
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "response", None), "status_code", None)
    if isinstance(status, int):
        return status in _RETRYABLE_STATUS
    message = f"{type(exc).__name__} {exc}".lower()
    return any(token in message for token in _RETRYABLE_MESSAGES)


class CollectionBuilder:
    """Embed chunks into a new named collection."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        collection_name: str = DEFAULT_COLLECTION,
        pause_every: int = PAUSE_EVERY,
        pause_seconds: float = PAUSE_SECONDS,
        max_retries: int = MAX_RETRIES,
        initial_retry_delay: float = INITIAL_RETRY_DELAY,
        max_retry_delay: float = MAX_RETRY_DELAY,
        workers: int = 1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self.embedding_provider = embedding_provider
        self.collection_name = collection_name
        self.pause_every = pause_every
        self.pause_seconds = pause_seconds
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.max_retry_delay = max_retry_delay
        self.workers = workers
        self._sleep = sleep

    def build(
        self,
        chunks: Sequence[Chunk],
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> BuildReport:
        """Embed every chunk and return the collection with a failure report.

        Args:
            chunks: Chunks in the order they should appear in the collection.
            cancel_event: Set by the caller to abandon the build.
            timeout: Overall budget in seconds, checked between chunks.

        Returns:
            A ``BuildReport`` whose collection is frozen.

        Raises:
            ContractViolation: Two input chunks share an id.
            BuildCancelled: ``cancel_event`` was set or ``timeout`` elapsed.
        """
        self._check_unique(chunks)
        deadline = time.monotonic() + timeout if timeout is not None else None

        collection = Collection(self.collection_name, metadata=self._collection_metadata())
        failures: list[EmbedFailureRecord] = []
        window = self.pause_every if self.pause_every > 0 else max(len(chunks), 1)
        total = len(chunks)

        executor = ThreadPoolExecutor(max_workers=self.workers) if self.workers > 1 else None
        try:
            for start in range(0, total, window):
                batch = chunks[start : start + window]
                if executor is not None:
                    self._check_cancel(cancel_event, deadline)
                    outcomes = list(executor.map(self._embed_chunk, batch))
                else:
                    outcomes = []
                    for chunk in batch:
                        self._check_cancel(cancel_event, deadline)
                        outcomes.append(self._embed_chunk(chunk))

                for chunk, (vector, failure) in zip(batch, outcomes, strict=True):
                    if failure is None:
                        failure = self._insert(collection, chunk, vector)
                    if failure is not None:
                        failures.append(failure)

                done = start + len(batch)
                if self.pause_every > 0 and done < total:
                    logger.info("Processed %d/%d chunks...", done, total)
                    if self.pause_seconds > 0:
                        self._sleep(self.pause_seconds)
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        if collection.dimension is not None:
            collection.metadata["dimension"] = str(collection.dimension)
        collection.freeze()

        if failures:
            logger.warning(
                "Build finished with %d/%d chunks embedded; failed: %s",
                len(collection), total, ", ".join(f.chunk_id for f in failures),
            )
        else:
            logger.info("Build finished: %d/%d chunks embedded", len(collection), total)

        return BuildReport(collection=collection, total_chunks=total, failures=failures)

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _embed_chunk(self, chunk: Chunk) -> tuple[list[float] | None, EmbedFailureRecord | None]:
        attempts = 0

        def _count(_: RetryCallState) -> None:
            nonlocal attempts
            attempts += 1

        retrying = Retrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.initial_retry_delay,
                exp_base=RETRY_GROWTH,
                max=self.max_retry_delay,
            ),
            sleep=self._sleep,
            before=_count,
            before_sleep=lambda state: logger.warning(
                "Retrying chunk %s after error (attempt %d/%d): %s",
                chunk.id,
                state.attempt_number,
                self.max_retries + 1,
                state.outcome.exception() if state.outcome else None,
            ),
            reraise=True,
        )

        try:
            vector = retrying(self.embedding_provider.embed, chunk.content)
        except Exception as exc:
            failure = EmbedFailure(chunk.id, exc)
            logger.warning("%s", failure)
            return None, EmbedFailureRecord(
                chunk_id=chunk.id,
                source_path=chunk.source_path,
                error=str(exc) or type(exc).__name__,
                attempts=attempts,
            )
        return vector, None

    @staticmethod
    def _insert(
        collection: Collection,
        chunk: Chunk,
        vector: list[float] | None,
    ) -> EmbedFailureRecord | None:
        try:
            collection.add(chunk.id, vector, chunk.content, chunk.metadata)
        except ValueError as exc:
            # Malformed vector from the provider (wrong dimension, NaN...)
            logger.warning("%s", EmbedFailure(chunk.id, exc))
            return EmbedFailureRecord(
                chunk_id=chunk.id, source_path=chunk.source_path, error=str(exc),
            )
        logger.debug("Embedded chunk %s", chunk.id)
        return None

    def _collection_metadata(self) -> dict[str, str]:
        provider = self.embedding_provider
        return {
            "embedding_provider": provider.provider_name(),
            "embedding_model": str(getattr(provider, "model", "") or "unknown"),
        }

    @staticmethod
    def _check_unique(chunks: Sequence[Chunk]) -> None:
        seen: set[str] = set()
        for chunk in chunks:
            if chunk.id in seen:
                raise ContractViolation(f"Duplicate chunk id {chunk.id!r} in build input")
            seen.add(chunk.id)

    @staticmethod
    def _check_cancel(cancel_event: threading.Event | None, deadline: float | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise BuildCancelled("Build cancelled by caller")
        if deadline is not None and time.monotonic() > deadline:
            raise BuildCancelled("Build timed out")


def build_collection(
    chunks: Sequence[Chunk],
    embedding_provider: EmbeddingProvider,
    collection_name: str = DEFAULT_COLLECTION,
    **kwargs,
) -> BuildReport:
    """Convenience wrapper around ``CollectionBuilder.build``."""
    builder = CollectionBuilder(embedding_provider, collection_name=collection_name, **kwargs)
    return builder.build(chunks)


class IndexPipeline:
    """Orchestrates walk → build → snapshot for a set of content roots.

    The snapshot is written only after the walk succeeded and the build
    returned; a ``ReadFailure`` or cancellation leaves no artifact behind.
    """

    def __init__(self, walker: CorpusWalker, builder: CollectionBuilder):
        self.walker = walker
        self.builder = builder

    def run(
        self,
        roots: Iterable[ContentRoot],
        output_path: str | Path | None = None,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
        require_complete: bool = False,
    ) -> BuildReport:
        """Walk, build and optionally save a snapshot.

        With ``require_complete`` the snapshot is skipped when any chunk
        failed to embed; the report still lists the failures.
        """
        chunks = self.walker.walk_roots(roots)
        report = self.builder.build(chunks, cancel_event=cancel_event, timeout=timeout)

        if require_complete and report.failures:
            logger.warning(
                "Not writing snapshot: %d/%d chunks failed to embed",
                report.failed, report.total_chunks,
            )
        elif output_path is not None:
            report.snapshot_bytes = save_snapshot(report.collection, output_path)
            report.snapshot_path = str(output_path)

        return report
