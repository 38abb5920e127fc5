from .chunk import (
    BlockMetadata,
    Chunk,
    ChunkMetadata,
    ClassMetadata,
    FileMetadata,
    FunctionMetadata,
    InterfaceMetadata,
    SymbolMetadata,
    metadata_from_dict,
)
from .indexing import IndexingPhase, IndexingReport
from .query import (
    ContextType,
    QueryComplexity,
    QueryContext,
    QueryIntent,
    QueryParameters,
    QueryResult,
    QueryRewrite,
    QueryScope,
    QueryType,
    RankedResult,
    ScoredChunk,
    TokenUsage,
    UserRole,
)

__all__ = [
    "BlockMetadata",
    "Chunk",
    "ChunkMetadata",
    "ClassMetadata",
    "ContextType",
    "FileMetadata",
    "FunctionMetadata",
    "IndexingPhase",
    "IndexingReport",
    "InterfaceMetadata",
    "QueryComplexity",
    "QueryContext",
    "QueryIntent",
    "QueryParameters",
    "QueryResult",
    "QueryRewrite",
    "QueryScope",
    "QueryType",
    "RankedResult",
    "ScoredChunk",
    "SymbolMetadata",
    "TokenUsage",
    "UserRole",
    "metadata_from_dict",
]
