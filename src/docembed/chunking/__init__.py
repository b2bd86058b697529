"""Paragraph-aware document chunking."""

from docembed.chunking.base import BaseChunker
from docembed.chunking.paragraph_chunker import ParagraphChunker, chunk_text, split_paragraphs
from docembed.chunking.schemas import Chunk

__all__ = ["BaseChunker", "Chunk", "ParagraphChunker", "chunk_text", "split_paragraphs"]
