"""Configuration package for DevCanvas."""

from .config import Config
from .database_config import DatabaseConfig
from .indexing_config import DEFAULT_EXCLUDES, IndexingConfig
from .search_config import SearchConfig

__all__ = [
    "Config",
    "DEFAULT_EXCLUDES",
    "DatabaseConfig",
    "IndexingConfig",
    "SearchConfig",
]
