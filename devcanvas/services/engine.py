"""DevCanvas engine facade.

Wires configuration, the vector store, the shared capabilities and both
orchestrators for one project. Use as an async context manager:

    async with DevCanvasEngine(config, capabilities) as engine:
        await engine.index_codebase()
        result = await engine.query("where is the login handled?")
"""

from pathlib import Path
from typing import Any

from loguru import logger
from rich.progress import Progress

from devcanvas.capabilities import Capabilities
from devcanvas.core.config.config import Config
from devcanvas.core.exceptions import IndexStateError
from devcanvas.core.models.indexing import IndexingReport
from devcanvas.core.models.query import QueryContext, QueryResult
from devcanvas.providers.database.duckdb_provider import DuckDBVectorStore

from .indexing_coordinator import IndexingCoordinator, ProgressCallback
from .search_service import SearchService


class DevCanvasEngine:
    """One project's retrieval engine."""

    def __init__(
        self,
        config: Config,
        capabilities: Capabilities | None = None,
        progress: Progress | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        self.config = config
        self.capabilities = capabilities or Capabilities()
        self._progress = progress
        self._progress_callback = progress_callback
        self._store: DuckDBVectorStore | None = None
        self._indexer: IndexingCoordinator | None = None
        self._search: SearchService | None = None

    @property
    def store(self) -> DuckDBVectorStore:
        if self._store is None:
            raise IndexStateError("Engine is not connected")
        return self._store

    @property
    def indexer(self) -> IndexingCoordinator:
        if self._indexer is None:
            raise IndexStateError("Engine is not connected")
        return self._indexer

    @property
    def search(self) -> SearchService:
        if self._search is None:
            raise IndexStateError("Engine is not connected")
        return self._search

    def connect(self) -> None:
        if self._store is not None:
            return
        store = DuckDBVectorStore.from_config(self.config)
        store.connect()
        self._store = store
        self._indexer = IndexingCoordinator(
            store,
            self.capabilities,
            config=self.config,
            progress=self._progress,
            progress_callback=self._progress_callback,
            lock_path=self.config.database.get_lock_path(),
        )
        self._search = SearchService(store, self.capabilities, config=self.config)
        logger.debug(f"Engine connected for {self.config.target_dir}")

    def close(self) -> None:
        if self._store is not None:
            self._store.disconnect()
        self._store = None
        self._indexer = None
        self._search = None

    async def __aenter__(self) -> "DevCanvasEngine":
        self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def index_codebase(self, root_path: Path | str | None = None) -> IndexingReport:
        return await self.indexer.index_codebase(root_path)

    async def query(
        self,
        text: str,
        max_results: int | None = None,
        context: QueryContext | None = None,
    ) -> QueryResult:
        return await self.search.query(text, max_results=max_results, context=context)

    async def stats(self) -> dict[str, Any]:
        return await self.indexer.get_stats()
