"""Corpus walker — content roots → eligible files → chunks.

A read error anywhere under a root aborts the walk: a partially read
corpus never reaches the builder.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from docembed.chunking.base import BaseChunker
from docembed.chunking.paragraph_chunker import MAX_SIZE, ParagraphChunker
from docembed.chunking.schemas import Chunk
from docembed.config import ContentRoot
from docembed.errors import ContractViolation, ReadFailure

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".md", ".yaml", ".yml", ".json")


class CorpusWalker:
    """Walk content roots and chunk every eligible file."""

    def __init__(
        self,
        chunker: BaseChunker | None = None,
        extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
    ):
        self.chunker = chunker or ParagraphChunker()
        self.extensions = {e.lower() if e.startswith(".") else f".{e.lower()}" for e in extensions}

    def walk(self, root: str | Path, category: str) -> list[Chunk]:
        """Chunk every eligible file under ``root``.

        Args:
            root: Directory to visit recursively.
            category: Label attached to every chunk from this root.

        Returns:
            Chunks of all files, file by file.

        Raises:
            ReadFailure: A directory or file under ``root`` could not be read.
        """
        root = Path(root)
        if not root.exists():
            logger.warning("Content root %s (%s) does not exist, skipping", root, category)
            return []
        if not root.is_dir():
            raise ReadFailure(root, NotADirectoryError(f"{root} is not a directory"))

        chunks: list[Chunk] = []
        files = 0
        for path in self._eligible_files(root):
            rel = path.relative_to(root).as_posix()
            text = self._read_text(path)
            file_chunks = self.chunker.chunk(text, rel, category)
            chunks.extend(file_chunks)
            files += 1
            logger.debug("Processed %s: %d chunks", path, len(file_chunks))

        logger.info(
            "Walked %s (%s): %d files → %d chunks", root, category, files, len(chunks),
        )
        return chunks

    def walk_roots(self, roots: Iterable[ContentRoot]) -> list[Chunk]:
        """Walk each root independently and concatenate the results.

        A chunk id already produced by an earlier root is qualified with
        its category (``"<category>:<id>"``) so ids stay unique.

        Raises:
            ReadFailure: Propagated from the first failing root.
            ContractViolation: Two chunks still share an id after
                qualification (e.g. the same category configured twice).
        """
        all_chunks: list[Chunk] = []
        seen: set[str] = set()

        for root in roots:
            for chunk in self.walk(root.path, root.category):
                if chunk.id in seen:
                    qualified = f"{chunk.category}:{chunk.id}"
                    logger.debug("Chunk id %s already used, renamed to %s", chunk.id, qualified)
                    chunk.id = qualified
                if chunk.id in seen:
                    raise ContractViolation(
                        f"Duplicate chunk id {chunk.id!r}: check for repeated content roots"
                    )
                seen.add(chunk.id)
                all_chunks.append(chunk)

        logger.info("Corpus total: %d chunks", len(all_chunks))
        return all_chunks

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _eligible_files(self, root: Path) -> list[Path]:
        def _fail(exc: OSError) -> None:
            raise ReadFailure(exc.filename or root, exc) from exc

        found: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=_fail):
            dirnames.sort()
            for name in sorted(filenames):
                if Path(name).suffix.lower() in self.extensions:
                    found.append(Path(dirpath) / name)
        return found

    @staticmethod
    def _read_text(path: Path) -> str:
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ReadFailure(path, exc) from exc

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("%s is not valid UTF-8, decoding as latin-1", path)
            return data.decode("latin-1")


def walk(
    root: str | Path,
    category: str,
    max_size: int = MAX_SIZE,
    extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
) -> list[Chunk]:
    """Walk a single root with a ``ParagraphChunker`` of ``max_size``."""
    walker = CorpusWalker(ParagraphChunker(max_size=max_size), extensions=extensions)
    return walker.walk(root, category)
