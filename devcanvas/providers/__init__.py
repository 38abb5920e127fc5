"""Providers package for DevCanvas - concrete storage implementations.

Use lazy import to avoid importing heavy backends during package import.
"""

__all__ = ["DuckDBVectorStore"]


def __getattr__(name: str):
    if name == "DuckDBVectorStore":
        from .database import DuckDBVectorStore  # lazy

        return DuckDBVectorStore
    raise AttributeError(name)
