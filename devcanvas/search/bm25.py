"""BM25 lexical index over the chunk corpus.

# FILE_CONTEXT: Term statistics for lexical scoring and sparse vectors
# LIFECYCLE: Rebuilt wholesale on every reindex (no incremental path)
# PERSISTENCE: stats()/from_stats() carry the document-frequency table across
#              restarts so query-time sparse vectors match corpus-time ones
"""

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
        "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
        "to", "was", "were", "will", "with", "var", "let", "const",
        "if", "else", "return", "true", "false", "null", "undefined",
    }
)

_CAMEL_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_CAMEL_ACRONYM = re.compile(r"([A-Z]+)([A-Z][a-z])")
_SEPARATORS = re.compile(r"[^a-z0-9]+")


def tokenize(text: str) -> list[str]:
    """Tokenize text for lexical scoring.

    Splits camelCase boundaries, lowercases, treats underscores, hyphens,
    dots and all other punctuation as separators, then drops tokens of
    length <= 1, stop words and pure numbers.
    """
    text = _CAMEL_ACRONYM.sub(r"\1 \2", text)
    text = _CAMEL_LOWER_UPPER.sub(r"\1 \2", text)
    tokens = _SEPARATORS.split(text.lower())
    return [
        token
        for token in tokens
        if len(token) > 1 and token not in STOP_WORDS and not token.isdigit()
    ]


@dataclass
class LexicalStats:
    """Corpus-wide statistics needed to weight new text."""

    doc_freq: dict[str, int] = field(default_factory=dict)
    doc_count: int = 0
    avg_doc_length: float = 0.0
    k1: float = 1.2
    b: float = 0.75

    def to_dict(self) -> dict[str, Any]:
        return {
            "doc_freq": dict(self.doc_freq),
            "doc_count": self.doc_count,
            "avg_doc_length": self.avg_doc_length,
            "k1": self.k1,
            "b": self.b,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LexicalStats":
        return cls(
            doc_freq={str(k): int(v) for k, v in data.get("doc_freq", {}).items()},
            doc_count=int(data.get("doc_count", 0)),
            avg_doc_length=float(data.get("avg_doc_length", 0.0)),
            k1=float(data.get("k1", 1.2)),
            b=float(data.get("b", 0.75)),
        )


class BM25Index:
    """Okapi BM25 over a list of documents."""

    def __init__(self, k1: float = 1.2, b: float = 0.75):
        self.k1 = k1
        self.b = b
        self._term_freqs: list[Counter[str]] = []
        self._doc_lengths: list[int] = []
        self._doc_freq: dict[str, int] = {}
        self._avg_doc_length = 0.0
        self._restored_doc_count = 0

    def build(self, documents: list[str]) -> "BM25Index":
        """Compute all statistics from scratch for ``documents``."""
        self._term_freqs = []
        self._doc_lengths = []
        doc_freq: Counter[str] = Counter()

        for doc in documents:
            counts = Counter(tokenize(doc))
            self._term_freqs.append(counts)
            self._doc_lengths.append(sum(counts.values()))
            doc_freq.update(counts.keys())

        self._doc_freq = dict(doc_freq)
        self._restored_doc_count = 0
        n = len(documents)
        self._avg_doc_length = sum(self._doc_lengths) / n if n else 0.0
        return self

    @classmethod
    def from_stats(cls, stats: LexicalStats) -> "BM25Index":
        """Restore an index able to produce sparse vectors (not per-doc scores)."""
        index = cls(k1=stats.k1, b=stats.b)
        index._doc_freq = dict(stats.doc_freq)
        index._avg_doc_length = stats.avg_doc_length
        index._restored_doc_count = stats.doc_count
        return index

    def stats(self) -> LexicalStats:
        return LexicalStats(
            doc_freq=dict(self._doc_freq),
            doc_count=self.document_count,
            avg_doc_length=self._avg_doc_length,
            k1=self.k1,
            b=self.b,
        )

    @property
    def document_count(self) -> int:
        if self._term_freqs:
            return len(self._term_freqs)
        return self._restored_doc_count

    @property
    def vocabulary(self) -> frozenset[str]:
        return frozenset(self._doc_freq)

    @property
    def vocabulary_size(self) -> int:
        return len(self._doc_freq)

    @property
    def average_document_length(self) -> float:
        return self._avg_doc_length

    def document_frequency(self, term: str) -> int:
        return self._doc_freq.get(term, 0)

    def idf(self, term: str) -> float:
        """BM25 idf: ln((N - df + 0.5) / (df + 0.5))."""
        df = self._doc_freq.get(term, 0)
        n = self.document_count
        return math.log((n - df + 0.5) / (df + 0.5))

    def _length_norm(self, doc_length: int) -> float:
        if self._avg_doc_length <= 0:
            return 1.0
        return 1 - self.b + self.b * (doc_length / self._avg_doc_length)

    def _term_score(self, tf: int, doc_length: int, idf: float) -> float:
        norm = self._length_norm(doc_length)
        return idf * (tf * (self.k1 + 1)) / (tf + self.k1 * norm)

    def score(self, query: str, doc_index: int) -> float:
        """BM25 score of one document for ``query``."""
        if doc_index < 0 or doc_index >= len(self._term_freqs):
            return 0.0
        counts = self._term_freqs[doc_index]
        doc_length = self._doc_lengths[doc_index]
        total = 0.0
        for term in tokenize(query):
            tf = counts.get(term, 0)
            if tf:
                total += self._term_score(tf, doc_length, self.idf(term))
        return total

    def score_all(self, query: str) -> list[float]:
        """BM25 scores of every document for ``query``."""
        return [self.score(query, i) for i in range(len(self._term_freqs))]

    def search(self, query: str, k: int = 10) -> list[tuple[int, float]]:
        """Top-k (doc_index, score) pairs with positive score."""
        scored = [(i, s) for i, s in enumerate(self.score_all(query)) if s > 0]
        scored.sort(key=lambda item: (-item[1], item[0]))
        return scored[:k]

    def sparse_vector(self, text: str) -> dict[str, float]:
        """Weight arbitrary text with the corpus document-frequency table.

        Uses a smoothed idf, ln((N + 1) / (df + 1)), which stays non-negative
        for terms present in every document, multiplied by BM25-normalised
        term frequency. Terms absent from the corpus get df = 0.
        """
        counts = Counter(tokenize(text))
        if not counts:
            return {}
        n = self.document_count
        length = sum(counts.values())
        norm = self._length_norm(length)
        vector: dict[str, float] = {}
        for term, tf in counts.items():
            df = self._doc_freq.get(term, 0)
            idf = math.log((n + 1) / (df + 1))
            weight = idf * tf / (tf + self.k1 * norm)
            if weight > 0:
                vector[term] = weight
        return vector
