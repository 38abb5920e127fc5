"""Database providers package for DevCanvas - concrete storage implementations.

Use lazy import to avoid importing heavy backends (e.g., duckdb) on package import.
"""

__all__ = ["DuckDBVectorStore", "IndexLock"]


def __getattr__(name: str):
    if name == "DuckDBVectorStore":
        from .duckdb_provider import DuckDBVectorStore  # lazy import

        return DuckDBVectorStore
    if name == "IndexLock":
        from .locks import IndexLock

        return IndexLock
    raise AttributeError(name)
