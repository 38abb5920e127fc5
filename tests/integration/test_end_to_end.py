"""End-to-end: index a small project on disk, reopen it and query it."""

import json

import pytest

from devcanvas.api.cli.main import main
from devcanvas.capabilities import Capabilities
from devcanvas.core.config.config import Config
from devcanvas.core.exceptions import IndexStateError
from devcanvas.core.models.query import QueryType
from devcanvas.core.types.common import ChunkKind
from devcanvas.services.engine import DevCanvasEngine

from tests.fixtures.fake_providers import FakeEmbeddingProvider
from tests.fixtures.sample_projects import sample_project

FAKE_EMBEDDER = "tests.fixtures.fake_providers:FakeEmbeddingProvider"

pytestmark = pytest.mark.integration


@pytest.fixture
def project(tmp_path):
    return sample_project(tmp_path / "project")


def capabilities() -> Capabilities:
    return Capabilities(embedding=FakeEmbeddingProvider())


@pytest.mark.asyncio
async def test_index_then_query_from_a_fresh_engine(project):
    config = Config.load(project, indexing={"batch_delay_seconds": 0.0})

    async with DevCanvasEngine(config, capabilities()) as engine:
        report = await engine.index_codebase()
    assert report.total_chunks == 8
    assert not report.is_partial
    assert (project / ".devcanvas" / "chunks.duckdb").exists()

    async with DevCanvasEngine(config, capabilities()) as engine:
        result = await engine.query("show me the class")
        stats = await engine.stats()

    assert result.intent.type is QueryType.CLASS_DIAGRAM
    top = result.ranked_chunks[0].chunk
    assert top.kind is ChunkKind.CLASS
    assert top.symbol_name == "Account"
    assert top.source_path == "src/account.py"
    assert stats["chunks"] == 8
    assert stats["generation"] == 1


@pytest.mark.asyncio
async def test_database_directory_is_not_indexed(project):
    config = Config.load(project, indexing={"batch_delay_seconds": 0.0})
    async with DevCanvasEngine(config, capabilities()) as engine:
        await engine.index_codebase()
        second = await engine.index_codebase()
        paths = {c.source_path for c in engine.store.all_chunks()}

    assert second.total_files == 3
    assert not any(path.startswith(".devcanvas") for path in paths)


def test_engine_requires_connection(project):
    engine = DevCanvasEngine(Config.load(project))
    with pytest.raises(IndexStateError):
        engine.store


class TestCli:
    def test_search_before_index_fails(self, project):
        assert main(["search", "find login", str(project)]) == 1

    def test_index_then_search(self, project, capsys):
        assert main(
            ["index", str(project), "--no-progress", "--embedding-provider", FAKE_EMBEDDER]
        ) == 0
        capsys.readouterr()

        exit_code = main(
            [
                "search",
                "find the login function",
                str(project),
                "--json",
                "--embedding-provider",
                FAKE_EMBEDDER,
            ]
        )
        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["intent"]["type"] == "code-search"
        assert payload["results"][0]["chunk"]["source_path"] == "src/auth.py"
        assert payload["rewrite"]["rewritten"] is False
        assert "dense_vector" not in payload["results"][0]["chunk"]

        assert main(["stats", str(project), "--json"]) == 0
        stats = json.loads(capsys.readouterr().out)
        assert stats["chunks"] == 8

    def test_index_without_embedding_provider_fails(self, project):
        assert main(["index", str(project), "--no-progress"]) == 1
        assert not (project / ".devcanvas" / "chunks.duckdb").exists()

    def test_no_command_prints_help(self):
        assert main([]) == 2
