"""Batch file processor for chunking files in worker processes.

# FILE_CONTEXT: Worker function for ProcessPoolExecutor to chunk files in parallel
# ROLE: Performs the CPU-bound read→chunk pipeline independently per batch
# CRITICAL: Must be picklable (top-level function, serializable arguments)
"""

import os
from dataclasses import dataclass
from pathlib import Path

from devcanvas.core.exceptions import ExtractionError
from devcanvas.core.types.common import Language
from devcanvas.parsers.chunker import Chunker

# Bytes inspected when deciding whether a file is binary
_BINARY_SNIFF_BYTES = 8192


@dataclass
class ParsedFileResult:
    """Result from processing a single file in a batch."""

    file_path: Path
    source_path: str
    chunks: list[dict]
    language: Language
    file_size: int
    status: str
    error: str | None = None
    dropped_oversize: int = 0


def _relative_posix(file_path: Path, root: Path) -> str:
    try:
        return file_path.resolve().relative_to(root).as_posix()
    except ValueError:
        return file_path.as_posix()


def chunk_file_batch(file_paths: list[Path], config_dict: dict) -> list[ParsedFileResult]:
    """Chunk a batch of files.

    This function may run in a separate process via ProcessPoolExecutor.
    Per-file failures are captured in the result instead of raised so one
    unreadable file never aborts the batch.

    Args:
        file_paths: Files to process in this batch
        config_dict: ``root``, ``max_chunk_size`` and ``oversize_policy``

    Returns:
        One ParsedFileResult per input file, in input order
    """
    root = Path(config_dict["root"]).resolve()
    chunker = Chunker(
        max_chunk_size=config_dict.get("max_chunk_size", 1000),
        oversize_policy=config_dict.get("oversize_policy", "drop"),
    )
    results = []

    for file_path in file_paths:
        source_path = _relative_posix(file_path, root)
        language = Language.from_file_extension(file_path)
        try:
            file_size = os.stat(file_path).st_size
            raw = file_path.read_bytes()
        except OSError as e:
            error = ExtractionError(source_path, e.strerror or str(e))
            results.append(
                ParsedFileResult(
                    file_path=file_path,
                    source_path=source_path,
                    chunks=[],
                    language=language,
                    file_size=0,
                    status="error",
                    error=str(error),
                )
            )
            continue

        if b"\x00" in raw[:_BINARY_SNIFF_BYTES]:
            results.append(
                ParsedFileResult(
                    file_path=file_path,
                    source_path=source_path,
                    chunks=[],
                    language=language,
                    file_size=file_size,
                    status="skipped",
                    error="binary file",
                )
            )
            continue

        content = raw.decode("utf-8", errors="ignore")
        if not content.strip():
            results.append(
                ParsedFileResult(
                    file_path=file_path,
                    source_path=source_path,
                    chunks=[],
                    language=language,
                    file_size=file_size,
                    status="skipped",
                    error="empty file",
                )
            )
            continue

        try:
            chunked = chunker.chunk_file_detailed(source_path, content)
        except ExtractionError as e:
            results.append(
                ParsedFileResult(
                    file_path=file_path,
                    source_path=source_path,
                    chunks=[],
                    language=language,
                    file_size=file_size,
                    status="error",
                    error=str(e),
                )
            )
            continue

        # Chunks travel as dicts so results stay cheap to pickle across processes
        results.append(
            ParsedFileResult(
                file_path=file_path,
                source_path=source_path,
                chunks=[chunk.to_dict() for chunk in chunked.chunks],
                language=language,
                file_size=file_size,
                status="success",
                dropped_oversize=chunked.dropped_oversize,
            )
        )

    return results
