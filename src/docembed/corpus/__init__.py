"""Corpus traversal — content roots to ordered chunks."""

from docembed.corpus.walker import SUPPORTED_EXTENSIONS, CorpusWalker, walk

__all__ = ["SUPPORTED_EXTENSIONS", "CorpusWalker", "walk"]
