"""Indexing coordinator service for DevCanvas - orchestrates full rebuilds.

# FILE_CONTEXT: Central orchestrator for the discover→chunk→BM25→embed→swap pipeline
# ROLE: Drives one wholesale rebuild of a project's corpus
# CONCURRENCY: Chunking parallelized across CPU cores for large trees,
#              embedding batched with bounded parallelism, store swap serial
# SINGLE_FLIGHT: asyncio.Lock in-process plus an exclusive file lock across
#                processes; a second concurrent rebuild is rejected
# ATOMICITY: The store is only touched by one replace_all() after every batch
#            has completed; failures and cancellation leave it intact
#
# PERFORMANCE TUNING:
# - File batch processing scales workers based on file count (100/1000 thresholds)
# - Trees under PROCESS_POOL_MIN_FILES are chunked in a worker thread instead
#   of paying process start-up cost
# - Worker limits (4/8/16) prevent resource exhaustion on high-core machines
"""

import asyncio
import math
import multiprocessing
import os
import time
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Any, Callable

from loguru import logger
from rich.progress import Progress, TaskID

from devcanvas.capabilities import Capabilities
from devcanvas.core.config.config import Config
from devcanvas.core.exceptions import IndexBusyError, IndexStateError
from devcanvas.core.models.chunk import Chunk
from devcanvas.core.models.indexing import IndexingPhase, IndexingReport
from devcanvas.interfaces.embedding_provider import EmbeddingProvider
from devcanvas.providers.database.duckdb_provider import DuckDBVectorStore
from devcanvas.providers.database.locks import IndexLock
from devcanvas.search.bm25 import BM25Index
from devcanvas.utils.file_discovery import DiscoveryResult, discover_files

from .base_service import BaseService
from .batch_processor import ParsedFileResult, chunk_file_batch

# File chunking batch sizes
SMALL_FILE_COUNT_THRESHOLD = 100  # Below this: use minimal workers
MEDIUM_FILE_COUNT_THRESHOLD = 1000  # Above this: scale up for monorepos
MAX_WORKERS_SMALL_BATCH = 4
MAX_WORKERS_MEDIUM_BATCH = 8
MAX_WORKERS_LARGE_BATCH = 16

# Below this many files chunking runs in a single worker thread
PROCESS_POOL_MIN_FILES = 50

# Fallback CPU count when os.cpu_count() returns None
DEFAULT_CPU_COUNT = 4

ProgressCallback = Callable[[IndexingPhase, str], None]


def _calculate_worker_count(file_count: int, cpu_count: int) -> int:
    """Calculate optimal worker count based on file count and available CPUs.

    Args:
        file_count: Number of files to process
        cpu_count: Number of available CPU cores

    Returns:
        Optimal number of workers (capped based on workload size)
    """
    if file_count < SMALL_FILE_COUNT_THRESHOLD:
        return max(1, min(cpu_count, MAX_WORKERS_SMALL_BATCH, file_count))
    elif file_count < MEDIUM_FILE_COUNT_THRESHOLD:
        return min(cpu_count, MAX_WORKERS_MEDIUM_BATCH, file_count)
    else:
        return min(cpu_count, MAX_WORKERS_LARGE_BATCH, file_count)


class IndexingCoordinator(BaseService):
    """Coordinates full-corpus rebuilds.

    # CLASS_CONTEXT: Runs the phase machine
    #   IDLE → DISCOVERING → CHUNKING → LEXICAL_INDEX_BUILD
    #        → EMBEDDING_BATCH (loop) → VECTOR_STORE_SWAP → IDLE | FAILED
    # RELATIONSHIP: Uses -> Chunker (via batch processor), BM25Index,
    #               EmbeddingProvider, DuckDBVectorStore
    """

    def __init__(
        self,
        vector_store: DuckDBVectorStore,
        capabilities: Capabilities,
        config: Config | None = None,
        progress: Progress | None = None,
        progress_callback: ProgressCallback | None = None,
        lock_path: Path | None = None,
    ):
        """Initialize indexing coordinator.

        Args:
            vector_store: Store receiving the rebuilt corpus
            capabilities: Shared capability container (embedding required)
            config: Configuration; defaults are used when omitted
            progress: Optional Rich Progress instance for progress bars
            progress_callback: Optional hook called on every phase transition
            lock_path: Cross-process lock file; defaults to one next to the database
        """
        super().__init__(vector_store)
        self._capabilities = capabilities
        self.config = config or Config(target_dir=Path(vector_store.project_root))
        self.progress = progress
        self._progress_callback = progress_callback

        if lock_path is None and vector_store.db_path is not None:
            lock_path = vector_store.db_path.parent / "index.lock"
        self._lock_path = lock_path

        self._phase = IndexingPhase.IDLE
        self._run_lock: asyncio.Lock | None = None
        self._cancel_requested = False
        self._lexical_index: BM25Index | None = None

    @property
    def phase(self) -> IndexingPhase:
        return self._phase

    @property
    def lexical_index(self) -> BM25Index | None:
        """Lexical index of the last completed rebuild in this process."""
        return self._lexical_index

    @property
    def is_running(self) -> bool:
        return self._run_lock is not None and self._run_lock.locked()

    def cancel(self) -> None:
        """Request cancellation; honored at the next embedding batch boundary."""
        if self.is_running:
            logger.info("Cancellation requested; stopping at next batch boundary")
            self._cancel_requested = True

    def _set_phase(self, phase: IndexingPhase, message: str) -> None:
        self._phase = phase
        logger.debug(f"[{phase.value}] {message}")
        if self._progress_callback is not None:
            self._progress_callback(phase, message)

    async def index_codebase(self, root_path: Path | str | None = None) -> IndexingReport:
        """Rebuild the whole index from the current state of the tree.

        Raises:
            ConfigurationError: No embedding capability (before any mutation)
            IndexBusyError: Another rebuild of this project is running
            IndexStateError: The store belongs to another project root
        """
        embedder = self._capabilities.require_embedding()

        root = Path(root_path or self.config.target_dir).resolve()
        if str(root) != self._db.project_root:
            raise IndexStateError(
                f"Vector store is bound to {self._db.project_root}, cannot index {root}"
            )

        if self._run_lock is None:
            self._run_lock = asyncio.Lock()
        if self._run_lock.locked():
            raise IndexBusyError(f"A reindex of {root} is already running in this process")

        async with self._run_lock:
            file_lock = IndexLock(self._lock_path) if self._lock_path is not None else None
            if file_lock is not None:
                file_lock.acquire()
            self._cancel_requested = False
            try:
                report = await self._run(root, embedder)
            except Exception as e:
                self._set_phase(IndexingPhase.FAILED, f"Indexing failed: {e}")
                logger.error(f"Failed to index {root}: {e}")
                raise
            finally:
                if file_lock is not None:
                    file_lock.release()

        self._set_phase(IndexingPhase.IDLE, report.summary())
        return report

    async def _run(self, root: Path, embedder: EmbeddingProvider) -> IndexingReport:
        started = time.perf_counter()
        report = IndexingReport(root_path=str(root))
        indexing = self.config.indexing
        search = self.config.search

        # Phase 1: Discovery
        self._set_phase(IndexingPhase.DISCOVERING, f"Discovering files in {root}")
        loop = asyncio.get_running_loop()
        discovery: DiscoveryResult = await loop.run_in_executor(
            None,
            lambda: discover_files(
                root,
                exclude_patterns=indexing.exclude,
                ignore_sources=tuple(indexing.ignore_sources),
                ignore_file=indexing.ignore_file,
            ),
        )
        report.total_files = len(discovery.files)
        report.discovery_errors = len(discovery.errors)
        report.warnings.extend(str(error) for error in discovery.errors)

        # Phase 2: Chunking
        self._set_phase(
            IndexingPhase.CHUNKING, f"Chunking {len(discovery.files)} files"
        )
        results = await self._process_files_in_batches(discovery.files, root)
        chunks = self._collect_chunks(results, report)
        report.total_chunks = len(chunks)

        # Phase 3: Lexical index
        self._set_phase(
            IndexingPhase.LEXICAL_INDEX_BUILD,
            f"Building lexical index over {len(chunks)} chunks",
        )
        lexical_index = BM25Index(k1=search.bm25_k1, b=search.bm25_b).build(
            [chunk.content for chunk in chunks]
        )
        sparse_vectors = [lexical_index.sparse_vector(chunk.content) for chunk in chunks]

        # Phase 4: Embedding
        dense_vectors = await self._embed_chunks(embedder, chunks, report)
        if dense_vectors is None:
            report.cancelled = True
            report.duration_seconds = time.perf_counter() - started
            logger.info(f"Indexing of {root} cancelled; store left unchanged")
            return report

        # Phase 5: Swap
        self._set_phase(
            IndexingPhase.VECTOR_STORE_SWAP, f"Storing {len(chunks)} chunks"
        )
        indexed = [
            chunk.with_vectors(dense, sparse)
            for chunk, dense, sparse in zip(chunks, dense_vectors, sparse_vectors)
        ]
        self._db.replace_all(indexed, lexical_index.stats())
        self._lexical_index = lexical_index

        report.duration_seconds = time.perf_counter() - started
        if report.is_partial:
            logger.warning(f"Indexing of {root} completed with errors: {report.summary()}")
        else:
            logger.info(f"Indexing of {root} completed: {report.summary()}")
        return report

    async def _process_files_in_batches(
        self, files: list[Path], root: Path
    ) -> list[ParsedFileResult]:
        """Chunk files in parallel batches across CPU cores.

        Each worker receives a batch of files and performs the complete
        read→chunk pipeline independently before returning results.
        """
        if not files:
            return []

        config_dict = {"root": str(root), **self.config.indexing.to_worker_dict()}
        task: TaskID | None = None
        if self.progress:
            task = self.progress.add_task("  └─ Chunking files", total=len(files))

        loop = asyncio.get_running_loop()
        if len(files) < PROCESS_POOL_MIN_FILES:
            all_results = await loop.run_in_executor(None, chunk_file_batch, files, config_dict)
        else:
            cpu_count = os.cpu_count() or DEFAULT_CPU_COUNT
            num_workers = _calculate_worker_count(len(files), cpu_count)
            logger.debug(f"Chunking {len(files)} files with {num_workers} workers")

            batch_size = math.ceil(len(files) / num_workers)
            file_batches = [
                files[i : i + batch_size] for i in range(0, len(files), batch_size)
            ]
            # spawn avoids forking a process that owns a running event loop
            mp_context = multiprocessing.get_context("spawn")
            with ProcessPoolExecutor(max_workers=num_workers, mp_context=mp_context) as executor:
                futures = [
                    loop.run_in_executor(executor, chunk_file_batch, batch, config_dict)
                    for batch in file_batches
                ]
                batch_results = await asyncio.gather(*futures)
            all_results = [result for batch in batch_results for result in batch]

        if self.progress and task is not None:
            self.progress.update(task, completed=len(files))
        return all_results

    def _collect_chunks(
        self, results: list[ParsedFileResult], report: IndexingReport
    ) -> list[Chunk]:
        chunks: list[Chunk] = []
        seen: set[str] = set()
        for result in results:
            report.dropped_oversize += result.dropped_oversize
            if result.status == "skipped":
                report.skipped_files += 1
                logger.debug(f"Skipped {result.source_path}: {result.error}")
                continue
            if result.status == "error":
                report.extraction_errors += 1
                logger.warning(result.error)
                report.warnings.append(result.error or f"Failed to chunk {result.source_path}")
                continue
            for data in result.chunks:
                chunk = Chunk.from_dict(data)
                if chunk.id in seen:
                    continue
                seen.add(chunk.id)
                chunks.append(chunk)
        return chunks

    async def _embed_one(self, embedder: EmbeddingProvider, chunk: Chunk) -> list[float] | None:
        timeout = self.config.indexing.embedding_timeout
        try:
            vector = await asyncio.wait_for(embedder.embed(chunk.content), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Embedding timed out after {timeout}s for {chunk.source_path}:{chunk.start_line}"
            )
            return None
        except Exception as e:
            logger.warning(
                f"Embedding failed for {chunk.source_path}:{chunk.start_line}: {e}"
            )
            return None
        if not vector:
            logger.warning(f"Empty embedding for {chunk.source_path}:{chunk.start_line}")
            return None
        return [float(v) for v in vector]

    async def _embed_chunks(
        self,
        embedder: EmbeddingProvider,
        chunks: list[Chunk],
        report: IndexingReport,
    ) -> list[list[float]] | None:
        """Embed all chunks batch by batch.

        Failed chunks receive a zero vector of the corpus dimensionality and
        are counted as provider errors.

        Returns:
            One vector per chunk, or None if cancellation was requested
        """
        indexing = self.config.indexing
        batch_size = indexing.embedding_batch_size
        total_batches = math.ceil(len(chunks) / batch_size) if chunks else 0
        vectors: list[list[float] | None] = [None] * len(chunks)
        dims: int | None = None

        task: TaskID | None = None
        if self.progress and chunks:
            task = self.progress.add_task("  └─ Embedding chunks", total=len(chunks))

        for batch_number, start in enumerate(range(0, len(chunks), batch_size), start=1):
            if self._cancel_requested:
                return None
            self._set_phase(
                IndexingPhase.EMBEDDING_BATCH,
                f"Embedding batch {batch_number}/{total_batches}",
            )
            batch = chunks[start : start + batch_size]
            batch_vectors = await asyncio.gather(
                *(self._embed_one(embedder, chunk) for chunk in batch)
            )
            for offset, vector in enumerate(batch_vectors):
                if vector is not None:
                    if dims is None:
                        dims = len(vector)
                    elif len(vector) != dims:
                        logger.warning(
                            f"Embedding for {batch[offset].source_path} has "
                            f"{len(vector)} dimensions, expected {dims}"
                        )
                        vector = None
                vectors[start + offset] = vector

            if self.progress and task is not None:
                self.progress.advance(task, len(batch))
            if start + batch_size < len(chunks) and indexing.batch_delay_seconds > 0:
                await asyncio.sleep(indexing.batch_delay_seconds)

        if self._cancel_requested:
            return None

        if dims is None:
            dims = embedder.dims or indexing.fallback_dimensions
        failed = [i for i, vector in enumerate(vectors) if vector is None]
        report.provider_errors = len(failed)
        report.embedded_chunks = len(chunks) - len(failed)
        if failed:
            report.warnings.append(
                f"{len(failed)} chunks stored with zero vectors after embedding failures"
            )
        return [vector if vector is not None else [0.0] * dims for vector in vectors]

    async def get_stats(self) -> dict[str, Any]:
        """Get corpus statistics.

        Returns:
            Store totals by kind plus lexical vocabulary and document counts
        """
        stats = self._db.get_stats()
        lexical = self._lexical_index
        if lexical is None:
            restored = self._db.load_lexical_stats()
            lexical = BM25Index.from_stats(restored) if restored is not None else None
        stats["vocabulary_size"] = lexical.vocabulary_size if lexical else 0
        stats["lexical_documents"] = lexical.document_count if lexical else 0
        stats["phase"] = self._phase.value
        return stats
