"""Tests for configuration precedence and capability loading."""

import argparse

import pytest
from pydantic import ValidationError

from devcanvas.capabilities import Capabilities, load_capabilities
from devcanvas.core.config.config import Config
from devcanvas.core.config.search_config import SearchConfig
from devcanvas.core.exceptions import ConfigurationError

from tests.fixtures.fake_providers import FakeEmbeddingProvider, FakeLLMProvider


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "DEVCANVAS_DATABASE__PATH",
        "DEVCANVAS_SEARCH__DENSE_WEIGHT",
        "DEVCANVAS_SEARCH__MAX_RESULTS",
        "DEVCANVAS_INDEXING__MAX_CHUNK_SIZE",
        "DEVCANVAS_EMBEDDING__PROVIDER",
        "DEVCANVAS_LLM__PROVIDER",
        "DEVCANVAS_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)


def _args(**values) -> argparse.Namespace:
    defaults = dict(
        path=None,
        db=None,
        limit=None,
        dense_weight=None,
        sparse_weight=None,
        no_rewrite=False,
        max_chunk_size=None,
        oversize_policy=None,
        batch_size=None,
        exclude=None,
        embedding_provider=None,
        llm_provider=None,
        verbose=False,
    )
    defaults.update(values)
    return argparse.Namespace(**defaults)


class TestConfigPrecedence:
    def test_defaults(self, tmp_path):
        config = Config.load(tmp_path)
        assert config.target_dir == tmp_path.resolve()
        assert config.database.path == tmp_path.resolve() / ".devcanvas"
        assert config.indexing.max_chunk_size == 1000
        assert config.indexing.oversize_policy == "drop"
        assert config.indexing.embedding_batch_size == 10
        assert config.search.dense_weight == 0.5
        assert config.search.sparse_weight == 0.5
        assert config.search.max_results == 10
        assert config.search.rewrite_query is True
        assert config.search.expand_synonyms is True
        assert config.search.diversify_results is True

    def test_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCANVAS_SEARCH__DENSE_WEIGHT", "0.7")
        monkeypatch.setenv("DEVCANVAS_INDEXING__MAX_CHUNK_SIZE", "400")
        monkeypatch.setenv("DEVCANVAS_DEBUG", "true")
        config = Config.load(tmp_path)
        assert config.search.dense_weight == 0.7
        assert config.indexing.max_chunk_size == 400
        assert config.debug is True

    def test_ranking_toggles_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCANVAS_SEARCH__EXPAND_SYNONYMS", "false")
        monkeypatch.setenv("DEVCANVAS_SEARCH__DIVERSIFY_RESULTS", "0")
        config = Config.load(tmp_path)
        assert config.search.expand_synonyms is False
        assert config.search.diversify_results is False

    def test_cli_beats_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DEVCANVAS_SEARCH__MAX_RESULTS", "7")
        args = _args(
            path=tmp_path,
            db=tmp_path / "custom-db",
            limit=3,
            no_rewrite=True,
            max_chunk_size=500,
            oversize_policy="split",
        )
        config = Config.load(args=args)
        assert config.target_dir == tmp_path.resolve()
        assert config.database.path == tmp_path / "custom-db"
        assert config.search.max_results == 3
        assert config.search.rewrite_query is False
        assert config.indexing.max_chunk_size == 500
        assert config.indexing.oversize_policy == "split"

    def test_cli_excludes_extend_defaults(self, tmp_path):
        config = Config.load(tmp_path, args=_args(exclude=["generated/"]))
        assert "generated/" in config.indexing.exclude
        assert "node_modules/" in config.indexing.exclude

    def test_keyword_overrides_win(self, tmp_path):
        config = Config.load(tmp_path, args=_args(limit=3), search={"max_results": 4})
        assert config.search.max_results == 4

    def test_zero_fusion_weights_rejected(self):
        with pytest.raises(ValidationError):
            SearchConfig(dense_weight=0.0, sparse_weight=0.0)
        assert SearchConfig(dense_weight=0.0, sparse_weight=1.0).sparse_weight == 1.0

    def test_database_paths(self, tmp_path):
        config = Config.load(tmp_path)
        db_path = config.database.get_db_path()
        assert db_path.name == "chunks.duckdb"
        assert db_path.parent.is_dir()
        assert config.database.get_lock_path().name == "index.lock"


class TestCapabilities:
    def test_require_embedding(self):
        with pytest.raises(ConfigurationError):
            Capabilities().require_embedding()
        embedder = FakeEmbeddingProvider()
        assert Capabilities(embedding=embedder).require_embedding() is embedder

    def test_load_from_import_paths(self):
        capabilities = load_capabilities(
            "tests.fixtures.fake_providers:FakeEmbeddingProvider",
            "tests.fixtures.fake_providers:FakeLLMProvider",
        )
        assert isinstance(capabilities.embedding, FakeEmbeddingProvider)
        assert isinstance(capabilities.generation, FakeLLMProvider)
        assert capabilities.has_generation

    def test_nothing_configured(self):
        capabilities = load_capabilities(None, None)
        assert not capabilities.has_embedding
        assert not capabilities.has_generation

    @pytest.mark.parametrize(
        "path",
        [
            "no_colon_here",
            "devcanvas_missing_module:factory",
            "tests.fixtures.fake_providers:Missing",
            "tests.fixtures.fake_providers:FakeLLMProvider",
        ],
    )
    def test_bad_embedding_paths(self, path):
        with pytest.raises(ConfigurationError):
            load_capabilities(path, None)
