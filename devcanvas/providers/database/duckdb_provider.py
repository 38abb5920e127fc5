"""DuckDB-backed vector store with hybrid dense + sparse search.

# FILE_CONTEXT: Persistent corpus for one project plus in-memory scoring
# ROLE: Owns the chunks table; answers hybrid, kind and path lookups
# CONCURRENCY: Readers see an immutable snapshot; replace_all commits one
#              transaction and then swaps the snapshot reference
# ORDERING: score desc, importance desc, insertion order asc
"""

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

import duckdb
import numpy as np
from loguru import logger

from devcanvas.core.exceptions import IndexStateError
from devcanvas.core.models.chunk import Chunk, metadata_from_dict
from devcanvas.core.models.query import ScoredChunk
from devcanvas.core.types.common import ChunkKind
from devcanvas.search.bm25 import LexicalStats, tokenize

SCHEMA_VERSION = "1"


@dataclass(frozen=True)
class _Snapshot:
    """Immutable view of the corpus served to readers."""

    chunks: tuple[Chunk, ...]
    matrix: np.ndarray | None
    norms: np.ndarray | None
    generation: int

    @classmethod
    def build(cls, chunks: Sequence[Chunk], generation: int) -> "_Snapshot":
        chunks = tuple(chunks)
        dims = {len(c.dense_vector) for c in chunks}
        matrix = None
        norms = None
        if len(dims) == 1 and 0 not in dims:
            matrix = np.array([c.dense_vector for c in chunks], dtype=np.float64)
            norms = np.linalg.norm(matrix, axis=1)
        return cls(chunks=chunks, matrix=matrix, norms=norms, generation=generation)

    @property
    def dims(self) -> int | None:
        return None if self.matrix is None else int(self.matrix.shape[1])


_EMPTY = _Snapshot(chunks=(), matrix=None, norms=None, generation=0)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for zero vectors or mismatched dimensions."""
    if len(a) != len(b) or not len(a):
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def sparse_dot(a: Mapping[str, float], b: Mapping[str, float]) -> float:
    if len(a) > len(b):
        a, b = b, a
    return float(sum(weight * b[term] for term, weight in a.items() if term in b))


class DuckDBVectorStore:
    """Vector store for one project's corpus.

    ``db_path=None`` keeps everything in an in-memory DuckDB database.
    """

    def __init__(
        self,
        db_path: Path | str | None,
        project_root: Path | str,
        dense_weight: float = 0.5,
        sparse_weight: float = 0.5,
    ):
        if dense_weight < 0 or sparse_weight < 0:
            raise ValueError("Fusion weights must be non-negative")
        self._db_path = Path(db_path) if db_path is not None else None
        self.project_root = str(Path(project_root).resolve())
        self.dense_weight = dense_weight
        self.sparse_weight = sparse_weight
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._snapshot: _Snapshot = _EMPTY

    @classmethod
    def from_config(cls, config: Any) -> "DuckDBVectorStore":
        """Create a store from a top-level Config."""
        return cls(
            config.database.get_db_path(),
            config.target_dir,
            dense_weight=config.search.dense_weight,
            sparse_weight=config.search.sparse_weight,
        )

    @property
    def db_path(self) -> Path | None:
        return self._db_path

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def generation(self) -> int:
        """Index generation of the snapshot readers currently see."""
        return self._snapshot.generation

    # Connection management

    def connect(self) -> None:
        """Open the database, create the schema and load the snapshot.

        Raises:
            IndexStateError: If the file cannot be opened, is corrupt or
                belongs to a different project
        """
        if self._conn is not None:
            return
        target = str(self._db_path) if self._db_path is not None else ":memory:"
        try:
            if self._db_path is not None:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = duckdb.connect(target)
            self._ensure_schema()
        except duckdb.Error as e:
            self._conn = None
            raise IndexStateError(f"Cannot open vector store at {target}: {e}") from e

        stored_root = self._get_meta("project_root")
        if stored_root is not None and stored_root != self.project_root:
            self.disconnect()
            raise IndexStateError(
                f"Vector store at {target} belongs to project {stored_root}, "
                f"not {self.project_root}. Use a different --db path."
            )
        if stored_root is None:
            self._set_meta({"project_root": self.project_root, "schema_version": SCHEMA_VERSION})

        self._snapshot = self._load_snapshot()
        logger.debug(
            f"Connected vector store {target} "
            f"({len(self._snapshot.chunks)} chunks, generation {self._snapshot.generation})"
        )

    def disconnect(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            finally:
                self._conn = None
        self._snapshot = _EMPTY

    def _require_conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise IndexStateError("Vector store is not connected")
        return self._conn

    def _ensure_schema(self) -> None:
        conn = self._require_conn()
        # No key constraints: a rebuild deletes and reinserts the same ids in one transaction
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS chunks (
                seq BIGINT,
                id TEXT,
                kind TEXT,
                content TEXT,
                source_path TEXT,
                start_line BIGINT,
                end_line BIGINT,
                metadata TEXT,
                dense_vector DOUBLE[],
                sparse_vector TEXT
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS lexical_stats (
                id INTEGER,
                stats TEXT
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS index_meta (
                key TEXT,
                value TEXT
            )
            """
        )

    def _get_meta(self, key: str) -> str | None:
        row = self._require_conn().execute(
            "SELECT value FROM index_meta WHERE key = ?", [key]
        ).fetchone()
        return row[0] if row else None

    def _set_meta(self, values: Mapping[str, Any]) -> None:
        conn = self._require_conn()
        for key, value in values.items():
            conn.execute("DELETE FROM index_meta WHERE key = ?", [key])
            conn.execute(
                "INSERT INTO index_meta (key, value) VALUES (?, ?)", [key, str(value)]
            )

    # Serialization

    @staticmethod
    def _to_row(seq: int, chunk: Chunk) -> tuple:
        return (
            seq,
            chunk.id,
            chunk.kind.value,
            chunk.content,
            chunk.source_path,
            chunk.start_line,
            chunk.end_line,
            json.dumps(chunk.metadata.to_dict(), sort_keys=True),
            list(chunk.dense_vector) if chunk.dense_vector else None,
            json.dumps(dict(chunk.sparse_vector), sort_keys=True),
        )

    @staticmethod
    def _from_row(row: Sequence[Any]) -> Chunk:
        (_seq, chunk_id, kind, content, source_path, start_line, end_line,
         metadata, dense, sparse) = row
        chunk_kind = ChunkKind.from_string(kind)
        return Chunk(
            id=chunk_id,
            content=content,
            source_path=source_path,
            start_line=int(start_line),
            end_line=int(end_line),
            kind=chunk_kind,
            metadata=metadata_from_dict(chunk_kind, json.loads(metadata)),
            dense_vector=tuple(float(v) for v in dense) if dense else (),
            sparse_vector={k: float(v) for k, v in json.loads(sparse or "{}").items()},
        )

    def _load_snapshot(self) -> _Snapshot:
        conn = self._require_conn()
        try:
            rows = conn.execute(
                """
                SELECT seq, id, kind, content, source_path, start_line, end_line,
                       metadata, dense_vector, sparse_vector
                FROM chunks
                ORDER BY seq
                """
            ).fetchall()
            chunks = [self._from_row(row) for row in rows]
        except (duckdb.Error, ValueError, KeyError, TypeError) as e:
            raise IndexStateError(f"Vector store is corrupt: {e}") from e
        generation = int(self._get_meta("generation") or 0)
        return _Snapshot.build(chunks, generation)

    # Mutations

    def upsert(self, chunk: Chunk) -> None:
        """Insert or replace one chunk, keeping its insertion position if it exists."""
        conn = self._require_conn()
        chunks = list(self._snapshot.chunks)
        existing = next((i for i, c in enumerate(chunks) if c.id == chunk.id), None)
        if existing is None:
            seq = len(chunks)
            chunks.append(chunk)
        else:
            seq = existing
            chunks[existing] = chunk
        conn.execute("DELETE FROM chunks WHERE id = ?", [chunk.id])
        conn.execute(
            """
            INSERT INTO chunks (
                seq, id, kind, content, source_path, start_line, end_line,
                metadata, dense_vector, sparse_vector
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            self._to_row(seq, chunk),
        )
        self._snapshot = _Snapshot.build(chunks, self._snapshot.generation)

    def clear_all(self) -> None:
        conn = self._require_conn()
        conn.execute("BEGIN TRANSACTION")
        try:
            conn.execute("DELETE FROM chunks")
            conn.execute("DELETE FROM lexical_stats")
            conn.execute("COMMIT")
        except duckdb.Error as e:
            conn.execute("ROLLBACK")
            raise IndexStateError(f"Failed to clear vector store: {e}") from e
        self._snapshot = _Snapshot.build((), self._snapshot.generation)

    def replace_all(self, chunks: Sequence[Chunk], lexical_stats: LexicalStats) -> int:
        """Atomically replace the corpus and its lexical statistics.

        The previous contents stay visible to readers until the transaction
        has committed.

        Returns:
            The new index generation
        """
        conn = self._require_conn()
        generation = self._snapshot.generation + 1
        rows = [self._to_row(seq, chunk) for seq, chunk in enumerate(chunks)]

        conn.execute("BEGIN TRANSACTION")
        try:
            conn.execute("DELETE FROM chunks")
            if rows:
                conn.executemany(
                    """
                    INSERT INTO chunks (
                        seq, id, kind, content, source_path, start_line, end_line,
                        metadata, dense_vector, sparse_vector
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
            conn.execute("DELETE FROM lexical_stats")
            conn.execute(
                "INSERT INTO lexical_stats (id, stats) VALUES (1, ?)",
                [json.dumps(lexical_stats.to_dict(), sort_keys=True)],
            )
            self._set_meta(
                {
                    "project_root": self.project_root,
                    "generation": generation,
                    "indexed_at": time.time(),
                    "schema_version": SCHEMA_VERSION,
                }
            )
            conn.execute("COMMIT")
        except duckdb.Error as e:
            conn.execute("ROLLBACK")
            raise IndexStateError(f"Failed to replace corpus: {e}") from e

        self._snapshot = _Snapshot.build(chunks, generation)
        logger.info(f"Vector store swapped to generation {generation} ({len(rows)} chunks)")
        return generation

    # Reads

    def load_lexical_stats(self) -> LexicalStats | None:
        row = self._require_conn().execute(
            "SELECT stats FROM lexical_stats WHERE id = 1"
        ).fetchone()
        if not row:
            return None
        try:
            return LexicalStats.from_dict(json.loads(row[0]))
        except (ValueError, TypeError) as e:
            raise IndexStateError(f"Lexical statistics are corrupt: {e}") from e

    def all_chunks(self) -> tuple[Chunk, ...]:
        return self._snapshot.chunks

    def count(self) -> int:
        return len(self._snapshot.chunks)

    def search_by_kind(self, kind: ChunkKind, limit: int | None = None) -> list[Chunk]:
        matches = [c for c in self._snapshot.chunks if c.kind is kind]
        return matches if limit is None else matches[:limit]

    def search_by_path(self, path: str, limit: int | None = None) -> list[Chunk]:
        path = Path(path).as_posix()
        matches = [c for c in self._snapshot.chunks if c.source_path == path]
        matches.sort(key=lambda c: c.start_line)
        return matches if limit is None else matches[:limit]

    def _dense_scores(self, snapshot: _Snapshot, query: Sequence[float]) -> np.ndarray:
        n = len(snapshot.chunks)
        if not len(query):
            return np.zeros(n)
        if snapshot.matrix is None:
            return np.array([cosine_similarity(c.dense_vector, query) for c in snapshot.chunks])
        if snapshot.dims != len(query):
            logger.warning(
                f"Query vector has {len(query)} dimensions, corpus has {snapshot.dims}; "
                "dense similarity disabled for this query"
            )
            return np.zeros(n)
        q = np.asarray(query, dtype=np.float64)
        q_norm = float(np.linalg.norm(q))
        if q_norm == 0.0:
            return np.zeros(n)
        denom = snapshot.norms * q_norm
        dots = snapshot.matrix @ q
        return np.divide(dots, denom, out=np.zeros(n), where=denom > 0)

    def hybrid_search(
        self,
        query_text: str,
        dense_query_vector: Sequence[float],
        sparse_query_vector: Mapping[str, float] | None,
        limit: int = 10,
    ) -> list[ScoredChunk]:
        """Rank chunks by weighted cosine + sparse dot product.

        Without a sparse query vector the query text's tokens are used with
        unit weight.
        """
        snapshot = self._snapshot
        if not snapshot.chunks or limit <= 0:
            return []
        if sparse_query_vector is None:
            sparse_query_vector = {token: 1.0 for token in tokenize(query_text)}

        dense_scores = self._dense_scores(snapshot, dense_query_vector)
        scored = []
        for seq, chunk in enumerate(snapshot.chunks):
            dense = float(dense_scores[seq])
            sparse = sparse_dot(sparse_query_vector, chunk.sparse_vector)
            combined = self.dense_weight * dense + self.sparse_weight * sparse
            scored.append((combined, chunk.importance, seq, dense, sparse))

        scored.sort(key=lambda item: (-item[0], -item[1], item[2]))
        return [
            ScoredChunk(
                chunk=snapshot.chunks[seq],
                score=combined,
                dense_score=dense,
                sparse_score=sparse,
            )
            for combined, _importance, seq, dense, sparse in scored[:limit]
        ]

    def get_stats(self) -> dict[str, Any]:
        snapshot = self._snapshot
        by_kind = {kind.value: 0 for kind in ChunkKind}
        for chunk in snapshot.chunks:
            by_kind[chunk.kind.value] += 1
        indexed_at = self._get_meta("indexed_at") if self._conn is not None else None
        return {
            "chunks": len(snapshot.chunks),
            "files": len({c.source_path for c in snapshot.chunks}),
            "by_kind": by_kind,
            "dimensions": snapshot.dims,
            "generation": snapshot.generation,
            "indexed_at": float(indexed_at) if indexed_at else None,
            "project_root": self.project_root,
            "db_path": str(self._db_path) if self._db_path else ":memory:",
        }
