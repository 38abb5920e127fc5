"""Top-level configuration for DevCanvas.

Precedence (lowest to highest): defaults, environment variables, CLI
arguments, explicit keyword overrides.
"""

import argparse
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .database_config import DatabaseConfig
from .indexing_config import IndexingConfig
from .search_config import SearchConfig


class Config(BaseModel):
    """Aggregated configuration for one project."""

    target_dir: Path = Field(default_factory=Path.cwd)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)

    # Import paths ("package.module:attribute") of capability factories
    embedding_provider: str | None = None
    llm_provider: str | None = None

    debug: bool = False

    @classmethod
    def load(
        cls,
        target_dir: Path | None = None,
        args: argparse.Namespace | None = None,
        **overrides: Any,
    ) -> "Config":
        """Build a configuration from defaults, env, CLI args and overrides."""
        target = Path(target_dir or getattr(args, "path", None) or Path.cwd()).resolve()

        database = {**DatabaseConfig.load_from_env()}
        indexing = {**IndexingConfig.load_from_env()}
        search = {**SearchConfig.load_from_env()}
        top: dict[str, Any] = {}

        if env_embed := os.getenv("DEVCANVAS_EMBEDDING__PROVIDER"):
            top["embedding_provider"] = env_embed
        if env_llm := os.getenv("DEVCANVAS_LLM__PROVIDER"):
            top["llm_provider"] = env_llm
        if os.getenv("DEVCANVAS_DEBUG", "").lower() in ("true", "1", "yes"):
            top["debug"] = True

        if args is not None:
            database.update(DatabaseConfig.extract_cli_overrides(args))
            indexing.update(IndexingConfig.extract_cli_overrides(args))
            search.update(SearchConfig.extract_cli_overrides(args))
            if getattr(args, "embedding_provider", None):
                top["embedding_provider"] = args.embedding_provider
            if getattr(args, "llm_provider", None):
                top["llm_provider"] = args.llm_provider
            if getattr(args, "verbose", False):
                top["debug"] = True

        database.update(overrides.pop("database", {}) or {})
        indexing.update(overrides.pop("indexing", {}) or {})
        search.update(overrides.pop("search", {}) or {})
        top.update(overrides)

        db_config = DatabaseConfig(**database).resolve_for_project(target)
        return cls(
            target_dir=target,
            database=db_config,
            indexing=IndexingConfig(**indexing),
            search=SearchConfig(**search),
            **top,
        )

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        DatabaseConfig.add_cli_arguments(parser)
        parser.add_argument(
            "--embedding-provider",
            help="Embedding capability factory as 'module:attribute'",
        )
        parser.add_argument(
            "--llm-provider",
            help="Generation capability factory as 'module:attribute'",
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable debug logging"
        )
