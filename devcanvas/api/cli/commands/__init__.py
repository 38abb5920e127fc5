"""DevCanvas CLI command implementations."""

from .index import index_command
from .search import search_command
from .stats import stats_command

__all__ = ["index_command", "search_command", "stats_command"]
