"""Error kinds raised across the build and query paths.

Each class extends the built-in exception callers would already catch
(``OSError`` for reads, ``ValueError`` for bad input), so existing
``except`` clauses keep working.
"""

from __future__ import annotations

from pathlib import Path


class ReadFailure(OSError):
    """A corpus file could not be read. Fatal to the whole walk."""

    def __init__(self, path: str | Path, cause: BaseException | None = None):
        self.path = str(path)
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to read {self.path}{detail}")


class EmbedFailure(RuntimeError):
    """The embedding provider failed for a single chunk."""

    def __init__(self, chunk_id: str, cause: BaseException | None = None):
        self.chunk_id = chunk_id
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to embed chunk {chunk_id}{detail}")


class DecodeFailure(ValueError):
    """A snapshot could not be decoded. Never yields a partial collection."""


class ContractViolation(ValueError):
    """The caller broke an operation's contract (bad limit, wrong dimension...)."""


class BuildCancelled(RuntimeError):
    """The build was cancelled; the partial collection has been discarded."""
