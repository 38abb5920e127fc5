"""Argument parsers for DevCanvas CLI commands."""

from .index_parser import add_index_subparser
from .search_parser import add_search_subparser
from .stats_parser import add_stats_subparser

__all__ = ["add_index_subparser", "add_search_subparser", "add_stats_subparser"]
