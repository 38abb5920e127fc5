"""Chunk domain model.

# FILE_CONTEXT: Addressable unit of indexed source content
# ROLE: Shared contract between chunker, lexical index, vector store and planner
# INVARIANT: Metadata variant always matches the chunk kind
# INVARIANT: Chunks are immutable; vectors are attached by copy (with_vectors)
"""

from dataclasses import asdict, dataclass, field, replace
from typing import Any, ClassVar, Mapping

from devcanvas.core.types.common import ChunkKind
from devcanvas.utils.chunk_hashing import generate_chunk_id


@dataclass(frozen=True, kw_only=True)
class ChunkMetadata:
    """Metadata shared by every chunk kind."""

    kind: ClassVar[ChunkKind]

    language: str
    importance: float = 0.5
    framework_tag: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.importance <= 1.0:
            raise ValueError(
                f"importance must be within [0, 1], got {self.importance}"
            )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, tuple):
                data[key] = list(value)
        return data


@dataclass(frozen=True, kw_only=True)
class FileMetadata(ChunkMetadata):
    kind: ClassVar[ChunkKind] = ChunkKind.FILE


@dataclass(frozen=True, kw_only=True)
class BlockMetadata(ChunkMetadata):
    kind: ClassVar[ChunkKind] = ChunkKind.BLOCK

    block_index: int = 0


@dataclass(frozen=True, kw_only=True)
class SymbolMetadata(ChunkMetadata):
    """Metadata for syntactic chunks extracted from a declaration."""

    symbol_name: str
    complexity: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.symbol_name:
            raise ValueError("symbol_name is required for syntactic chunks")
        if self.complexity < 1:
            raise ValueError(f"complexity must be >= 1, got {self.complexity}")


@dataclass(frozen=True, kw_only=True)
class ClassMetadata(SymbolMetadata):
    kind: ClassVar[ChunkKind] = ChunkKind.CLASS

    base_types: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class InterfaceMetadata(SymbolMetadata):
    kind: ClassVar[ChunkKind] = ChunkKind.INTERFACE

    base_types: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class FunctionMetadata(SymbolMetadata):
    kind: ClassVar[ChunkKind] = ChunkKind.FUNCTION

    parameters: tuple[str, ...] = ()


_METADATA_BY_KIND: dict[ChunkKind, type[ChunkMetadata]] = {
    ChunkKind.FILE: FileMetadata,
    ChunkKind.BLOCK: BlockMetadata,
    ChunkKind.CLASS: ClassMetadata,
    ChunkKind.INTERFACE: InterfaceMetadata,
    ChunkKind.FUNCTION: FunctionMetadata,
}


def metadata_from_dict(kind: ChunkKind, data: Mapping[str, Any]) -> ChunkMetadata:
    """Rebuild the metadata variant for ``kind`` from its dict form."""
    metadata_cls = _METADATA_BY_KIND[kind]
    values = dict(data)
    for key in ("base_types", "parameters"):
        if key in values and values[key] is not None:
            values[key] = tuple(values[key])
    return metadata_cls(**values)


@dataclass(frozen=True)
class Chunk:
    """Addressable unit of indexed content with position and metadata."""

    id: str
    content: str
    source_path: str
    start_line: int
    end_line: int
    kind: ChunkKind
    metadata: ChunkMetadata
    dense_vector: tuple[float, ...] = ()
    sparse_vector: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.metadata.kind is not self.kind:
            raise ValueError(
                f"{type(self.metadata).__name__} cannot describe a "
                f"{self.kind.value} chunk"
            )
        if self.start_line < 1 or self.end_line < self.start_line:
            raise ValueError(
                f"Invalid line range {self.start_line}-{self.end_line} "
                f"for {self.source_path}"
            )

    @classmethod
    def create(
        cls,
        kind: ChunkKind,
        content: str,
        source_path: str,
        start_line: int,
        end_line: int,
        metadata: ChunkMetadata,
        anchor: str | int | None = None,
    ) -> "Chunk":
        """Create a chunk with a deterministic ID.

        The anchor defaults to the symbol name for syntactic chunks and to the
        start line for file and block chunks.
        """
        if anchor is None:
            anchor = getattr(metadata, "symbol_name", None) or start_line
        return cls(
            id=generate_chunk_id(kind, source_path, anchor),
            content=content,
            source_path=source_path,
            start_line=start_line,
            end_line=end_line,
            kind=kind,
            metadata=metadata,
        )

    @property
    def language(self) -> str:
        return self.metadata.language

    @property
    def importance(self) -> float:
        return self.metadata.importance

    @property
    def symbol_name(self) -> str | None:
        return getattr(self.metadata, "symbol_name", None)

    @property
    def complexity(self) -> int | None:
        return getattr(self.metadata, "complexity", None)

    @property
    def framework_tag(self) -> str | None:
        return self.metadata.framework_tag

    def with_vectors(
        self, dense_vector: list[float], sparse_vector: Mapping[str, float]
    ) -> "Chunk":
        """Return a copy carrying the given dense and sparse vectors."""
        return replace(
            self,
            dense_vector=tuple(float(v) for v in dense_vector),
            sparse_vector=dict(sparse_vector),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "source_path": self.source_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "kind": self.kind.value,
            "metadata": self.metadata.to_dict(),
            "dense_vector": list(self.dense_vector),
            "sparse_vector": dict(self.sparse_vector),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Chunk":
        kind = ChunkKind.from_string(data["kind"])
        return cls(
            id=data["id"],
            content=data["content"],
            source_path=data["source_path"],
            start_line=int(data["start_line"]),
            end_line=int(data["end_line"]),
            kind=kind,
            metadata=metadata_from_dict(kind, data.get("metadata") or {}),
            dense_vector=tuple(float(v) for v in data.get("dense_vector") or ()),
            sparse_vector={
                str(k): float(v) for k, v in (data.get("sparse_vector") or {}).items()
            },
        )

    def consumer_view(self) -> dict[str, Any]:
        """Fields exposed to the feature layer (no vectors)."""
        return {
            "id": self.id,
            "content": self.content,
            "source_path": self.source_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "kind": self.kind.value,
            "metadata": self.metadata.to_dict(),
        }
