"""Tests for the DuckDB vector store and hybrid search."""

from pathlib import Path

import pytest

from devcanvas.core.exceptions import IndexStateError
from devcanvas.core.models.chunk import BlockMetadata, Chunk, FunctionMetadata
from devcanvas.core.types.common import ChunkKind
from devcanvas.providers.database.duckdb_provider import (
    DuckDBVectorStore,
    cosine_similarity,
    sparse_dot,
)
from devcanvas.search.bm25 import LexicalStats


def block(path, dense, sparse, importance=0.5, line=1, content=None) -> Chunk:
    metadata = BlockMetadata(language="text", importance=importance)
    chunk = Chunk.create(
        ChunkKind.BLOCK, content or f"content of {path}", path, line, line, metadata
    )
    return chunk.with_vectors(dense, sparse)


def function(path, name, line, dense=(0.0, 1.0)) -> Chunk:
    metadata = FunctionMetadata(language="python", importance=0.6, symbol_name=name)
    chunk = Chunk.create(ChunkKind.FUNCTION, f"def {name}(): pass", path, line, line, metadata)
    return chunk.with_vectors(list(dense), {name: 1.0})


STATS = LexicalStats(doc_freq={"alpha": 2, "beta": 1}, doc_count=4, avg_doc_length=3.0)


@pytest.fixture
def store(tmp_path):
    store = DuckDBVectorStore(None, tmp_path)
    store.connect()
    yield store
    store.disconnect()


@pytest.fixture
def corpus() -> list[Chunk]:
    return [
        block("a.txt", [1.0, 0.0], {"alpha": 1.0}),
        block("b.txt", [0.0, 1.0], {"beta": 1.0}),
        block("c.txt", [1.0, 0.0], {"alpha": 1.0}, importance=0.9),
        block("d.txt", [1.0, 0.0], {"alpha": 1.0}),
    ]


def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0


def test_sparse_dot():
    assert sparse_dot({"a": 2.0, "b": 1.0}, {"a": 0.5, "c": 3.0}) == pytest.approx(1.0)
    assert sparse_dot({}, {"a": 1.0}) == 0.0


class TestHybridSearch:
    def test_ordering_and_tie_breaks(self, store, corpus):
        store.replace_all(corpus, STATS)
        results = store.hybrid_search("alpha", [1.0, 0.0], {"alpha": 1.0}, limit=10)

        # c wins the tie on importance, a and d keep insertion order
        assert [r.chunk.source_path for r in results] == ["c.txt", "a.txt", "d.txt", "b.txt"]
        assert results[0].score == pytest.approx(1.0)
        assert results[0].dense_score == pytest.approx(1.0)
        assert results[0].sparse_score == pytest.approx(1.0)
        assert results[-1].score == pytest.approx(0.0)

    def test_deterministic(self, store, corpus):
        store.replace_all(corpus, STATS)
        first = store.hybrid_search("alpha", [0.6, 0.8], {"alpha": 0.3}, limit=4)
        second = store.hybrid_search("alpha", [0.6, 0.8], {"alpha": 0.3}, limit=4)
        assert first == second

    def test_limit(self, store, corpus):
        store.replace_all(corpus, STATS)
        assert len(store.hybrid_search("alpha", [1.0, 0.0], {}, limit=2)) == 2
        assert store.hybrid_search("alpha", [1.0, 0.0], {}, limit=0) == []

    def test_empty_store(self, store):
        assert store.hybrid_search("alpha", [1.0, 0.0], {"alpha": 1.0}) == []

    def test_dimension_mismatch_uses_sparse_only(self, store, corpus):
        store.replace_all(corpus, STATS)
        results = store.hybrid_search("beta", [1.0, 0.0, 0.0], {"beta": 1.0}, limit=4)
        assert results[0].chunk.source_path == "b.txt"
        assert all(r.dense_score == 0.0 for r in results)
        assert results[0].score == pytest.approx(0.5)

    def test_missing_sparse_vector_falls_back_to_tokens(self, store, corpus):
        store.replace_all(corpus, STATS)
        results = store.hybrid_search("beta", [0.0, 1.0], None, limit=1)
        assert results[0].chunk.source_path == "b.txt"
        assert results[0].sparse_score == pytest.approx(1.0)

    def test_fusion_weights(self, tmp_path, corpus):
        dense_only = DuckDBVectorStore(None, tmp_path, dense_weight=1.0, sparse_weight=0.0)
        dense_only.connect()
        dense_only.replace_all(corpus, STATS)
        results = dense_only.hybrid_search("beta", [1.0, 0.0], {"beta": 5.0}, limit=4)
        assert results[-1].chunk.source_path == "b.txt"
        dense_only.disconnect()

    def test_negative_weights_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            DuckDBVectorStore(None, tmp_path, dense_weight=-1.0)


class TestMutations:
    def test_replace_all_swaps_corpus(self, store, corpus):
        assert store.replace_all(corpus, STATS) == 1
        assert store.count() == 4

        generation = store.replace_all(corpus[:1], STATS)
        assert generation == 2
        assert store.generation == 2
        assert [c.source_path for c in store.all_chunks()] == ["a.txt"]

    def test_replace_all_with_same_ids_twice(self, store, corpus):
        store.replace_all(corpus, STATS)
        store.replace_all(corpus, STATS)
        assert [c.id for c in store.all_chunks()] == [c.id for c in corpus]

    def test_failed_replace_keeps_previous_corpus(self, tmp_path, corpus, monkeypatch):
        db_path = tmp_path / "index" / "chunks.duckdb"
        store = DuckDBVectorStore(db_path, tmp_path)
        store.connect()
        store.replace_all(corpus, STATS)

        def broken_meta(values):
            # Runs after the old rows are deleted and the new ones inserted
            store._require_conn().execute("INSERT INTO no_such_table VALUES (1)")

        monkeypatch.setattr(store, "_set_meta", broken_meta)
        replacement = [block("e.txt", [0.0, 1.0], {"gamma": 1.0})]
        new_stats = LexicalStats(doc_freq={"gamma": 1}, doc_count=1, avg_doc_length=1.0)
        with pytest.raises(IndexStateError):
            store.replace_all(replacement, new_stats)

        assert list(store.all_chunks()) == corpus
        assert store.count() == 4
        assert store.generation == 1
        assert store.load_lexical_stats() == STATS
        monkeypatch.undo()
        store.disconnect()

        reopened = DuckDBVectorStore(db_path, tmp_path)
        reopened.connect()
        try:
            assert list(reopened.all_chunks()) == corpus
            assert reopened.generation == 1
            assert reopened.load_lexical_stats() == STATS
        finally:
            reopened.disconnect()

    def test_upsert_keeps_position(self, store, corpus):
        for chunk in corpus[:2]:
            store.upsert(chunk)
        updated = block("a.txt", [0.0, 1.0], {"gamma": 1.0})
        assert updated.id == corpus[0].id

        store.upsert(updated)
        chunks = store.all_chunks()
        assert [c.source_path for c in chunks] == ["a.txt", "b.txt"]
        assert chunks[0].sparse_vector == {"gamma": 1.0}

    def test_clear_all(self, store, corpus):
        store.replace_all(corpus, STATS)
        store.clear_all()
        assert store.count() == 0
        assert store.load_lexical_stats() is None

    def test_requires_connection(self, tmp_path, corpus):
        store = DuckDBVectorStore(None, tmp_path)
        with pytest.raises(IndexStateError):
            store.replace_all(corpus, STATS)


class TestLookups:
    def test_by_kind_and_path(self, store, corpus):
        chunks = corpus + [
            function("src/app.py", "second", 20),
            function("src/app.py", "first", 3),
        ]
        store.replace_all(chunks, STATS)

        functions = store.search_by_kind(ChunkKind.FUNCTION)
        assert [c.symbol_name for c in functions] == ["second", "first"]
        assert len(store.search_by_kind(ChunkKind.BLOCK, limit=2)) == 2

        in_file = store.search_by_path("src/app.py")
        assert [c.symbol_name for c in in_file] == ["first", "second"]
        assert store.search_by_path("missing.py") == []

    def test_stats(self, store, corpus):
        store.replace_all(corpus, STATS)
        stats = store.get_stats()
        assert stats["chunks"] == 4
        assert stats["files"] == 4
        assert stats["by_kind"]["block"] == 4
        assert stats["dimensions"] == 2
        assert stats["generation"] == 1
        assert stats["indexed_at"] is not None
        assert stats["db_path"] == ":memory:"


class TestPersistence:
    def test_round_trip(self, tmp_path, corpus):
        db_path = tmp_path / "index" / "chunks.duckdb"
        store = DuckDBVectorStore(db_path, tmp_path)
        store.connect()
        store.replace_all(corpus, STATS)
        store.disconnect()

        reopened = DuckDBVectorStore(db_path, tmp_path)
        reopened.connect()
        try:
            assert list(reopened.all_chunks()) == corpus
            assert reopened.generation == 1
            assert reopened.load_lexical_stats() == STATS
            results = reopened.hybrid_search("alpha", [1.0, 0.0], {"alpha": 1.0}, limit=1)
            assert results[0].chunk.source_path == "c.txt"
        finally:
            reopened.disconnect()

    def test_other_project_is_rejected(self, tmp_path, corpus):
        db_path = tmp_path / "shared.duckdb"
        project_a = tmp_path / "a"
        project_b = tmp_path / "b"
        project_a.mkdir()
        project_b.mkdir()

        first = DuckDBVectorStore(db_path, project_a)
        first.connect()
        first.replace_all(corpus, STATS)
        first.disconnect()

        second = DuckDBVectorStore(db_path, project_b)
        with pytest.raises(IndexStateError):
            second.connect()
        assert not second.is_connected

    def test_new_database_is_empty(self, tmp_path):
        store = DuckDBVectorStore(Path(tmp_path) / "fresh.duckdb", tmp_path)
        store.connect()
        try:
            assert store.count() == 0
            assert store.generation == 0
            assert store.load_lexical_stats() is None
        finally:
            store.disconnect()
