"""Service layer: indexing and query orchestration."""

from .engine import DevCanvasEngine
from .indexing_coordinator import IndexingCoordinator
from .query_planner import QueryPlanner
from .search_service import SearchService

__all__ = ["DevCanvasEngine", "IndexingCoordinator", "QueryPlanner", "SearchService"]
