"""Base service class for DevCanvas services."""

from devcanvas.providers.database.duckdb_provider import DuckDBVectorStore


class BaseService:
    """Common base for services that operate on the vector store."""

    def __init__(self, vector_store: DuckDBVectorStore):
        """Initialize base service.

        Args:
            vector_store: Vector store holding the project's corpus
        """
        self._db = vector_store

    @property
    def vector_store(self) -> DuckDBVectorStore:
        return self._db
