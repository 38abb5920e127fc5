"""Indexing run state and report."""

from dataclasses import dataclass, field
from enum import Enum


class IndexingPhase(Enum):
    """Phases of one indexing run, in order."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    CHUNKING = "chunking"
    LEXICAL_INDEX_BUILD = "lexical_index_build"
    EMBEDDING_BATCH = "embedding_batch"
    VECTOR_STORE_SWAP = "vector_store_swap"
    FAILED = "failed"


@dataclass
class IndexingReport:
    """Outcome of an indexing run.

    Partial success is a valid outcome: per-file and per-chunk failures are
    counted here instead of aborting the run.
    """

    root_path: str
    total_files: int = 0
    total_chunks: int = 0
    embedded_chunks: int = 0
    provider_errors: int = 0
    discovery_errors: int = 0
    extraction_errors: int = 0
    skipped_files: int = 0
    dropped_oversize: int = 0
    duration_seconds: float = 0.0
    cancelled: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(
            self.provider_errors or self.discovery_errors or self.extraction_errors
        )

    def summary(self) -> str:
        if self.cancelled:
            return f"indexing cancelled after {self.embedded_chunks} embedded chunks"
        parts = [f"indexed {self.embedded_chunks}/{self.total_chunks} chunks"]
        if self.provider_errors:
            parts.append(f"{self.provider_errors} embedding failures")
        if self.extraction_errors:
            parts.append(f"{self.extraction_errors} extraction failures")
        if self.discovery_errors:
            parts.append(f"{self.discovery_errors} unreadable paths")
        return ", ".join(parts)

    def to_dict(self) -> dict:
        return {
            "root_path": self.root_path,
            "total_files": self.total_files,
            "total_chunks": self.total_chunks,
            "embedded_chunks": self.embedded_chunks,
            "provider_errors": self.provider_errors,
            "discovery_errors": self.discovery_errors,
            "extraction_errors": self.extraction_errors,
            "skipped_files": self.skipped_files,
            "dropped_oversize": self.dropped_oversize,
            "duration_seconds": round(self.duration_seconds, 3),
            "cancelled": self.cancelled,
            "warnings": list(self.warnings),
            "summary": self.summary(),
        }
