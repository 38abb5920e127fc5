"""Per-file chunking.

# FILE_CONTEXT: Turns one file's text into file, block and syntactic chunks
# ROLE: Pure function of (path, content, config); no I/O
# CONSTRAINT: No emitted chunk's content exceeds max_chunk_size
# IDS: Stable across rebuilds; duplicate symbols in a file are anchored by
#      "<name>:<start_line>" so every id in a file is unique
"""

from dataclasses import dataclass, field, replace

from loguru import logger

from devcanvas.core.config.indexing_config import IndexingConfig, OversizePolicy
from devcanvas.core.exceptions import ExtractionError
from devcanvas.core.models.chunk import (
    BlockMetadata,
    Chunk,
    ClassMetadata,
    FileMetadata,
    FunctionMetadata,
    InterfaceMetadata,
    SymbolMetadata,
)
from devcanvas.core.types.common import ChunkKind, Language
from devcanvas.parsers.metadata import (
    calculate_complexity,
    calculate_importance,
    detect_framework,
)
from devcanvas.parsers.strategies import SymbolSpan, strategy_for_language


@dataclass
class ChunkedFile:
    """Chunks of one file plus what the size policy removed."""

    source_path: str
    chunks: list[Chunk] = field(default_factory=list)
    dropped_oversize: int = 0


@dataclass(frozen=True)
class _Piece:
    content: str
    start_line: int
    end_line: int


def split_lines(content: str, max_chars: int, first_line: int = 1) -> list[_Piece]:
    """Greedy line accumulation into pieces of at most ``max_chars`` characters.

    Lines are joined with newlines. A single line longer than max_chars is
    hard-wrapped into several pieces sharing its line number.
    """
    pieces: list[_Piece] = []
    current: list[str] = []
    current_len = 0
    start = first_line

    def flush(end_line: int) -> None:
        nonlocal current, current_len
        if current and "".join(current).strip():
            pieces.append(_Piece("\n".join(current), start, end_line))
        current = []
        current_len = 0

    lines = content.split("\n")
    # A trailing newline terminates the last line, it does not start a new one
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()

    for offset, line in enumerate(lines):
        line_no = first_line + offset
        if len(line) > max_chars:
            flush(line_no - 1)
            for i in range(0, len(line), max_chars):
                segment = line[i:i + max_chars]
                if segment.strip():
                    pieces.append(_Piece(segment, line_no, line_no))
            start = line_no + 1
            continue

        added = len(line) + (1 if current else 0)
        if current and current_len + added > max_chars:
            flush(line_no - 1)
            start = line_no
            added = len(line)
        if not current:
            start = line_no
        current.append(line)
        current_len += added

    flush(first_line + len(lines) - 1)
    return pieces


class Chunker:
    """Splits file content into chunks bounded by ``max_chunk_size``."""

    def __init__(self, max_chunk_size: int = 1000, oversize_policy: OversizePolicy = "drop"):
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        self.max_chunk_size = max_chunk_size
        self.oversize_policy = oversize_policy

    @classmethod
    def from_config(cls, config: IndexingConfig) -> "Chunker":
        return cls(config.max_chunk_size, config.oversize_policy)

    def chunk_file(self, source_path: str, content: str) -> list[Chunk]:
        """Chunk one file. ``source_path`` is the root-relative POSIX path."""
        return self.chunk_file_detailed(source_path, content).chunks

    def chunk_file_detailed(self, source_path: str, content: str) -> ChunkedFile:
        """Chunk one file and report oversize drops.

        Raises:
            ExtractionError: If syntactic extraction fails for the file
        """
        result = ChunkedFile(source_path=source_path)
        if not content.strip():
            return result

        language = Language.from_file_extension(source_path)
        framework = detect_framework(content, language)

        if len(content) <= self.max_chunk_size:
            result.chunks.append(
                self._file_chunk(source_path, content, language, framework)
            )
        else:
            result.chunks.extend(
                self._block_chunks(source_path, content, language, framework)
            )

        strategy = strategy_for_language(language)
        if strategy is None:
            return result

        try:
            spans = strategy.extract(content)
        except Exception as e:
            raise ExtractionError(source_path, str(e)) from e

        seen_ids = {chunk.id for chunk in result.chunks}
        for span in spans:
            for chunk in self._symbol_chunks(source_path, span, language, framework, result):
                if chunk.id not in seen_ids:
                    seen_ids.add(chunk.id)
                    result.chunks.append(chunk)

        logger.debug(
            f"Chunked {source_path}: {len(result.chunks)} chunks "
            f"({len(spans)} declarations, {result.dropped_oversize} oversize dropped)"
        )
        return result

    def _file_chunk(
        self, source_path: str, content: str, language: Language, framework: str | None
    ) -> Chunk:
        text = content[: self.max_chunk_size]
        metadata = FileMetadata(
            language=language.value,
            importance=calculate_importance(ChunkKind.FILE, text, language, source_path),
            framework_tag=framework,
        )
        return Chunk.create(
            ChunkKind.FILE,
            text,
            source_path,
            1,
            text.rstrip("\n").count("\n") + 1,
            metadata,
            anchor=1,
        )

    def _block_chunks(
        self, source_path: str, content: str, language: Language, framework: str | None
    ) -> list[Chunk]:
        chunks = []
        for index, piece in enumerate(split_lines(content, self.max_chunk_size)):
            metadata = BlockMetadata(
                language=language.value,
                importance=calculate_importance(
                    ChunkKind.BLOCK, piece.content, language, source_path
                ),
                framework_tag=framework,
                block_index=index,
            )
            chunks.append(
                Chunk.create(
                    ChunkKind.BLOCK,
                    piece.content,
                    source_path,
                    piece.start_line,
                    piece.end_line,
                    metadata,
                    anchor=f"{piece.start_line}:{index}",
                )
            )
        return chunks

    def _symbol_chunks(
        self,
        source_path: str,
        span: SymbolSpan,
        language: Language,
        framework: str | None,
        result: ChunkedFile,
    ) -> list[Chunk]:
        if len(span.content) <= self.max_chunk_size:
            parts = [span]
        elif self.oversize_policy == "truncate":
            text = span.content[: self.max_chunk_size]
            parts = [
                replace(
                    span,
                    content=text,
                    end_line=span.start_line + text.rstrip("\n").count("\n"),
                )
            ]
        elif self.oversize_policy == "split":
            parts = [
                replace(
                    span,
                    name=f"{span.name}#part{n}",
                    content=piece.content,
                    start_line=piece.start_line,
                    end_line=piece.end_line,
                )
                for n, piece in enumerate(
                    split_lines(span.content, self.max_chunk_size, span.start_line),
                    start=1,
                )
            ]
        else:
            result.dropped_oversize += 1
            logger.debug(
                f"Dropped oversize {span.kind.value} {span.name} in {source_path} "
                f"({len(span.content)} > {self.max_chunk_size} chars)"
            )
            return []

        return [
            self._symbol_chunk(source_path, part, language, framework, result.chunks)
            for part in parts
        ]

    def _symbol_chunk(
        self,
        source_path: str,
        span: SymbolSpan,
        language: Language,
        framework: str | None,
        existing: list[Chunk],
    ) -> Chunk:
        common = {
            "language": language.value,
            "importance": calculate_importance(
                span.kind, span.content, language, source_path
            ),
            "framework_tag": framework,
            "symbol_name": span.name,
            "complexity": calculate_complexity(span.content),
        }
        metadata: SymbolMetadata
        if span.kind is ChunkKind.CLASS:
            metadata = ClassMetadata(base_types=span.base_types, **common)
        elif span.kind is ChunkKind.INTERFACE:
            metadata = InterfaceMetadata(base_types=span.base_types, **common)
        else:
            metadata = FunctionMetadata(parameters=span.parameters, **common)

        anchor = span.name
        if any(c.kind is span.kind and c.symbol_name == span.name for c in existing):
            anchor = f"{span.name}:{span.start_line}"
        return Chunk.create(
            span.kind,
            span.content,
            source_path,
            span.start_line,
            span.end_line,
            metadata,
            anchor=anchor,
        )
