"""Database utility functions for CLI commands."""

from devcanvas.core.config.config import Config
from devcanvas.core.exceptions import IndexStateError


def verify_database_exists(config: Config) -> None:
    """Verify the project's database exists, raising if not found.

    Args:
        config: Configuration with database settings

    Raises:
        IndexStateError: If the database doesn't exist
        ValueError: If database path not configured
    """
    if not config.database.path:
        raise ValueError("Database path not configured")

    db_file = config.database.path / "chunks.duckdb"
    if not db_file.exists():
        raise IndexStateError(
            f"Index not found at {db_file}. "
            f"Run 'devcanvas index {config.target_dir}' to create it first."
        )
