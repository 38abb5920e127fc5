"""Tests for the chunk model, ID hashing and metadata heuristics."""

import pytest

from devcanvas.core.models.chunk import (
    BlockMetadata,
    Chunk,
    ClassMetadata,
    FileMetadata,
    FunctionMetadata,
)
from devcanvas.core.types.common import ChunkKind, Language
from devcanvas.parsers.metadata import (
    calculate_complexity,
    calculate_importance,
    detect_framework,
)
from devcanvas.utils.chunk_hashing import generate_chunk_id


def _function_chunk(**overrides) -> Chunk:
    metadata = FunctionMetadata(
        language="python",
        importance=0.6,
        symbol_name="login",
        complexity=3,
        parameters=("user", "password"),
    )
    values = dict(
        kind=ChunkKind.FUNCTION,
        content="def login(user, password):\n    return check(user, password)",
        source_path="auth/service.py",
        start_line=10,
        end_line=11,
        metadata=metadata,
    )
    values.update(overrides)
    return Chunk.create(**values)


class TestChunkIds:
    def test_deterministic(self):
        a = generate_chunk_id(ChunkKind.FUNCTION, "auth/service.py", "login")
        b = generate_chunk_id(ChunkKind.FUNCTION, "auth/service.py", "login")
        assert a == b
        assert a.startswith("function_")

    def test_sensitive_to_kind_path_and_anchor(self):
        base = generate_chunk_id(ChunkKind.FUNCTION, "a.py", "x")
        assert base != generate_chunk_id(ChunkKind.CLASS, "a.py", "x")
        assert base != generate_chunk_id(ChunkKind.FUNCTION, "b.py", "x")
        assert base != generate_chunk_id(ChunkKind.FUNCTION, "a.py", "y")

    def test_symbol_anchor_ignores_line_moves(self):
        first = _function_chunk()
        moved = _function_chunk(start_line=40, end_line=41)
        assert first.id == moved.id


class TestChunkValidation:
    def test_metadata_must_match_kind(self):
        with pytest.raises(ValueError):
            Chunk.create(
                ChunkKind.CLASS,
                "x",
                "a.py",
                1,
                1,
                FileMetadata(language="python"),
            )

    def test_line_range(self):
        with pytest.raises(ValueError):
            _function_chunk(start_line=5, end_line=4)
        with pytest.raises(ValueError):
            _function_chunk(start_line=0, end_line=1)

    def test_importance_range(self):
        with pytest.raises(ValueError):
            FileMetadata(language="python", importance=1.5)

    def test_symbol_name_required(self):
        with pytest.raises(ValueError):
            ClassMetadata(language="java", symbol_name="")


class TestChunkBehaviour:
    def test_properties(self):
        chunk = _function_chunk()
        assert chunk.language == "python"
        assert chunk.importance == 0.6
        assert chunk.symbol_name == "login"
        assert chunk.complexity == 3
        assert chunk.framework_tag is None

    def test_file_chunk_has_no_symbol(self):
        chunk = Chunk.create(
            ChunkKind.BLOCK, "text", "notes.md", 3, 4, BlockMetadata(language="markdown")
        )
        assert chunk.symbol_name is None
        assert chunk.complexity is None

    def test_with_vectors_copies(self):
        chunk = _function_chunk()
        enriched = chunk.with_vectors([1, 0.5], {"login": 0.7})
        assert enriched.dense_vector == (1.0, 0.5)
        assert enriched.sparse_vector == {"login": 0.7}
        assert chunk.dense_vector == ()
        assert enriched.id == chunk.id

    def test_dict_round_trip(self):
        chunk = _function_chunk().with_vectors([0.1, 0.2], {"login": 1.0})
        data = chunk.to_dict()
        assert data["metadata"]["parameters"] == ["user", "password"]
        assert Chunk.from_dict(data) == chunk

    def test_consumer_view_has_no_vectors(self):
        view = _function_chunk().with_vectors([0.1], {"login": 1.0}).consumer_view()
        assert "dense_vector" not in view
        assert "sparse_vector" not in view
        assert view["kind"] == "function"


class TestMetadataHeuristics:
    def test_complexity(self):
        assert calculate_complexity("return 1") == 1
        assert calculate_complexity("if a && b:\n    pass") == 3
        assert calculate_complexity("for x in y:\n    if x:\n        pass\n    else:\n        pass") == 4

    def test_framework_detection(self):
        assert detect_framework("import React, { useState } from 'react'") == "react"
        assert detect_framework("from fastapi import FastAPI\napp = FastAPI()") == "fastapi"
        assert detect_framework("print('plain')") is None
        assert detect_framework("anything", Language.VUE) == "vue"

    def test_importance_by_role(self):
        assert calculate_importance(ChunkKind.CLASS, "class A {}", Language.JAVA, "A.java") == 0.8
        assert calculate_importance(ChunkKind.FUNCTION, "f()", Language.JAVA, "A.java") == 0.6
        assert calculate_importance(ChunkKind.FILE, "{}", Language.JSON, "package.json") == 0.7
        assert calculate_importance(ChunkKind.BLOCK, "text", Language.TEXT, "notes.txt") == 0.5

    def test_importance_boosts(self):
        route = '@GetMapping("/x")\npublic String x() { return "x"; }'
        assert calculate_importance(ChunkKind.FUNCTION, route, Language.JAVA, "A.java") == 0.9
        assert calculate_importance(
            ChunkKind.FUNCTION, "def main():\n    pass", Language.PYTHON, "app.py"
        ) == 0.9
        controller = "@RestController\npublic class A { public static void main() {} }"
        assert calculate_importance(ChunkKind.CLASS, controller, Language.JAVA, "A.java") == 1.0
