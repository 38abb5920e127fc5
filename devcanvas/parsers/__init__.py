"""Chunk extraction: per-file chunking and syntactic strategies."""

from .chunker import Chunker, ChunkedFile, split_lines

__all__ = ["ChunkedFile", "Chunker", "split_lines"]
