"""Lexical search primitives."""

from .bm25 import STOP_WORDS, BM25Index, LexicalStats, tokenize
from .synonyms import expand_query

__all__ = ["BM25Index", "LexicalStats", "STOP_WORDS", "expand_query", "tokenize"]
