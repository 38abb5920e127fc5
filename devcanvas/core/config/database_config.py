"""Database configuration for DevCanvas.

This module provides the storage location of the persisted corpus. One
database directory holds exactly one project's index.
"""

import argparse
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_DATABASE_DIRNAME = ".devcanvas"


class DatabaseConfig(BaseModel):
    """Database configuration.

    Configuration can be provided via:
    - Environment variables (DEVCANVAS_DATABASE__*)
    - CLI arguments
    - Default values (``<project root>/.devcanvas``)
    """

    # Database location
    path: Path | None = Field(default=None, description="Path to database directory")

    @field_validator("path")
    def validate_path(cls, v: Path | None) -> Path | None:
        """Convert string paths to Path objects."""
        if v is not None and not isinstance(v, Path):
            return Path(v)
        return v

    def resolve_for_project(self, project_root: Path) -> "DatabaseConfig":
        """Return a copy whose path defaults to ``<project_root>/.devcanvas``."""
        if self.path is not None:
            return self
        return self.model_copy(update={"path": project_root / DEFAULT_DATABASE_DIRNAME})

    def get_db_path(self) -> Path:
        """Get the DuckDB database file inside the database directory.

        This is the authoritative source for database location checks.
        """
        if self.path is None:
            raise ValueError("Database path not configured")

        # Ensure directory exists
        self.path.mkdir(parents=True, exist_ok=True)

        return self.path / "chunks.duckdb"

    def get_lock_path(self) -> Path:
        """Lock file guarding exclusive reindex of this database."""
        if self.path is None:
            raise ValueError("Database path not configured")
        return self.path / "index.lock"

    def is_configured(self) -> bool:
        """Check if database is properly configured."""
        return self.path is not None

    @classmethod
    def add_cli_arguments(
        cls, parser: argparse.ArgumentParser, required_path: bool = False
    ) -> None:
        """Add database-related CLI arguments."""
        parser.add_argument(
            "--db",
            "--database-path",
            dest="db",
            type=Path,
            help="Database directory (default: <path>/.devcanvas)",
            required=required_path,
        )

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load database config from environment variables."""
        config: dict[str, Any] = {}
        if db_path := os.getenv("DEVCANVAS_DATABASE__PATH"):
            config["path"] = Path(db_path)
        return config

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        """Extract database config from CLI arguments."""
        overrides = {}
        if hasattr(args, "db") and args.db:
            overrides["path"] = args.db
        return overrides

    def __repr__(self) -> str:
        """String representation of database configuration."""
        return f"DatabaseConfig(path={self.path})"
