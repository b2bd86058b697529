"""Paragraph-packing chunker for documentation, examples and schemas.

Splits on blank lines and greedily joins paragraphs up to a character
budget. A paragraph is never cut: one that is larger than the budget on
its own becomes a chunk by itself.
"""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath

from docembed.chunking.base import BaseChunker
from docembed.chunking.schemas import Chunk

logger = logging.getLogger(__name__)

MAX_SIZE = 1000
SEPARATOR = "\n\n"

# A blank line may still contain spaces or tabs
_BLANK_LINE = re.compile(r"\n[ \t]*\n")
_MARKDOWN_TITLE = re.compile(r"^#\s+(.+?)\s*#*\s*$")


def split_paragraphs(text: str) -> list[str]:
    """Return the trimmed, non-empty paragraphs of ``text`` in order."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    paragraphs = (p.strip() for p in _BLANK_LINE.split(normalized))
    return [p for p in paragraphs if p]


def document_title(text: str, source_path: str) -> str:
    """First level-1 markdown heading, else the file stem."""
    if source_path.lower().endswith(".md"):
        for line in text.splitlines():
            m = _MARKDOWN_TITLE.match(line.strip())
            if m:
                return m.group(1)
    return PurePosixPath(source_path).stem


class ParagraphChunker(BaseChunker):
    """Pack paragraphs into chunks of at most ``max_size`` characters."""

    def __init__(self, max_size: int = MAX_SIZE):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size

    def chunk(self, text: str, source_path: str, category: str) -> list[Chunk]:
        title = document_title(text, source_path)

        bodies: list[str] = []
        current = ""
        for para in split_paragraphs(text):
            # Would exceed budget: save current and start new
            if current and len(current) + len(SEPARATOR) + len(para) > self.max_size:
                bodies.append(current)
                current = para
            elif current:
                current = current + SEPARATOR + para
            else:
                current = para

        if current:
            bodies.append(current)

        chunks = [
            self._make_chunk(body, i, source_path, category, title)
            for i, body in enumerate(bodies)
        ]
        logger.debug(
            "%s produced %d chunks from %s (%d chars)",
            self.strategy_name(), len(chunks), source_path, len(text),
        )
        return chunks

    @staticmethod
    def _make_chunk(
        content: str,
        index: int,
        source_path: str,
        category: str,
        title: str,
    ) -> Chunk:
        posix = PurePosixPath(source_path)
        return Chunk(
            id=f"{source_path}_chunk_{index}",
            content=content,
            source_path=source_path,
            category=category,
            metadata={
                "path": source_path,
                "type": category,
                "chunk_id": str(index),
                "file_name": posix.name,
                "file_ext": posix.suffix,
                "title": title,
            },
        )


def chunk_text(
    content: str,
    source_path: str,
    category: str,
    max_size: int = MAX_SIZE,
) -> list[Chunk]:
    """Chunk a single file's content with a ``ParagraphChunker``."""
    return ParagraphChunker(max_size=max_size).chunk(content, source_path, category)
