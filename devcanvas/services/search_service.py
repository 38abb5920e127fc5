"""Search service for DevCanvas - answers one query against the corpus.

# FILE_CONTEXT: Query orchestrator
# ROLE: rewrite → (classify ∥ embed) → sparse vector → hybrid search → re-rank
# READ_ONLY: Never mutates the store; concurrent queries are safe
# FAILURES: The rewrite step falls back to the raw query; an embedding failure
#           or an empty store is raised, never returned as an empty result
"""

import asyncio
import math
from pathlib import Path

from loguru import logger

from devcanvas.capabilities import Capabilities
from devcanvas.core.config.config import Config
from devcanvas.core.exceptions import IndexStateError, QueryError
from devcanvas.core.models.chunk import Chunk
from devcanvas.core.models.query import (
    QueryContext,
    QueryResult,
    QueryRewrite,
    RankedResult,
    TokenUsage,
)
from devcanvas.core.types.common import ChunkKind
from devcanvas.interfaces.embedding_provider import EmbeddingProvider
from devcanvas.providers.database.duckdb_provider import DuckDBVectorStore
from devcanvas.search.bm25 import BM25Index
from devcanvas.search.synonyms import expand_query

from .base_service import BaseService
from .prompts import query_rewrite
from .query_planner import QueryPlanner

REWRITE_MAX_TOKENS = 256


class SearchService(BaseService):
    """Runs queries against the current index generation."""

    def __init__(
        self,
        vector_store: DuckDBVectorStore,
        capabilities: Capabilities,
        config: Config | None = None,
        planner: QueryPlanner | None = None,
    ):
        """Initialize search service.

        Args:
            vector_store: Store holding the indexed corpus
            capabilities: Shared capability container
            config: Configuration; defaults are used when omitted
            planner: Query planner (a fresh one by default)
        """
        super().__init__(vector_store)
        self._capabilities = capabilities
        self.config = config or Config(target_dir=Path(vector_store.project_root))
        self._planner = planner or QueryPlanner(diversify=self.config.search.diversify_results)
        self._lexical_cache: tuple[int, BM25Index] | None = None

    @property
    def planner(self) -> QueryPlanner:
        return self._planner

    def _lexical_index(self) -> BM25Index:
        """Lexical index matching the store's current generation."""
        generation = self._db.generation
        if self._lexical_cache is not None and self._lexical_cache[0] == generation:
            return self._lexical_cache[1]
        stats = self._db.load_lexical_stats()
        if stats is None:
            raise IndexStateError(
                "Lexical statistics are missing from the index. Run `devcanvas index` to rebuild it."
            )
        index = BM25Index.from_stats(stats)
        self._lexical_cache = (generation, index)
        return index

    async def rewrite_query(self, query: str) -> tuple[QueryRewrite, TokenUsage | None]:
        """Ask the generation capability for dense and sparse query forms.

        Every failure falls back to the raw query with a reason.
        """
        search = self.config.search
        if not search.rewrite_query:
            return QueryRewrite.fallback(query, "query rewrite disabled"), None
        llm = self._capabilities.generation
        if llm is None:
            return QueryRewrite.fallback(query, "no generation provider configured"), None

        try:
            response = await asyncio.wait_for(
                llm.complete(
                    query_rewrite.get_user_prompt(query),
                    system=query_rewrite.SYSTEM_MESSAGE,
                    max_completion_tokens=REWRITE_MAX_TOKENS,
                    timeout=max(1, math.ceil(search.generation_timeout)),
                ),
                timeout=search.generation_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Query rewrite timed out after {search.generation_timeout}s, using original query"
            )
            return QueryRewrite.fallback(query, "generation timed out"), None
        except Exception as e:
            logger.warning(f"Query rewrite failed, using original query: {e}")
            return QueryRewrite.fallback(query, f"generation failed: {e}"), None

        usage = TokenUsage(
            prompt_tokens=response.prompt_tokens,
            completion_tokens=response.completion_tokens,
        )
        dense, sparse = query_rewrite.parse_reply(response.content)
        if dense is None and sparse is None:
            logger.warning("Query rewrite reply had no DENSE/SPARSE lines, using original query")
            return QueryRewrite.fallback(query, "unparseable rewrite reply"), usage

        rewrite = QueryRewrite(dense=dense or query, sparse=sparse or query, rewritten=True)
        logger.debug(f"Rewrote query: dense={rewrite.dense!r} sparse={rewrite.sparse!r}")
        return rewrite, usage

    async def _embed_query(self, embedder: EmbeddingProvider, text: str) -> list[float]:
        timeout = self.config.search.embedding_timeout
        try:
            vector = await asyncio.wait_for(embedder.embed(text), timeout=timeout)
        except asyncio.TimeoutError:
            raise QueryError(f"Query embedding timed out after {timeout}s") from None
        except Exception as e:
            raise QueryError(f"Query embedding failed: {e}") from e
        if not vector:
            raise QueryError("Query embedding returned an empty vector")
        return [float(v) for v in vector]

    async def query(
        self,
        text: str,
        max_results: int | None = None,
        context: QueryContext | None = None,
    ) -> QueryResult:
        """Answer one query with ranked chunks.

        Raises:
            QueryError: Empty query, non-positive max_results or failed query
                embedding
            IndexStateError: Nothing has been indexed yet
            ConfigurationError: No embedding capability configured
        """
        if not text or not text.strip():
            raise QueryError("Query text is empty")
        if max_results is not None and max_results <= 0:
            raise QueryError(f"max_results must be positive, got {max_results}")
        if self._db.count() == 0:
            raise IndexStateError(
                "The index is empty. Run `devcanvas index` before searching."
            )
        embedder = self._capabilities.require_embedding()
        limit = max_results if max_results is not None else self.config.search.max_results

        rewrite, usage = await self.rewrite_query(text)

        # Classification only needs the raw text; it overlaps the embedding call
        loop = asyncio.get_running_loop()
        intent, dense_vector = await asyncio.gather(
            loop.run_in_executor(None, self._planner.classify_intent, text, context),
            self._embed_query(embedder, rewrite.dense),
        )

        sparse_text = rewrite.sparse
        if self.config.search.expand_synonyms:
            sparse_text = expand_query(sparse_text)
        sparse_vector = self._lexical_index().sparse_vector(sparse_text)
        candidates = self._db.hybrid_search(
            sparse_text,
            dense_vector,
            sparse_vector,
            limit * self.config.search.candidate_multiplier,
        )
        ranked = self._planner.rank(intent, candidates, context)[:limit]

        if context is not None:
            context.remember(intent)

        logger.info(
            f"Query '{text}' → {intent.type.value} "
            f"({len(candidates)} candidates, {len(ranked)} results)"
        )
        return QueryResult(ranked_chunks=ranked, intent=intent, rewrite=rewrite, usage=usage)

    def build_context(self, results: list[RankedResult] | list[Chunk]) -> str:
        """Markdown context block for the consumer composing the final answer."""
        lines = ["# Relevant Code Context", ""]
        for index, item in enumerate(results, start=1):
            chunk = item.chunk if isinstance(item, RankedResult) else item
            lines.append(f"## Context {index}")
            lines.append(
                f"**File:** `{chunk.source_path}` (Lines {chunk.start_line}-{chunk.end_line})"
            )
            if chunk.symbol_name:
                lines.append(f"**{chunk.kind.value.capitalize()}:** {chunk.symbol_name}")
            lines.append(f"**Type:** {chunk.kind.value}")
            lines.append(f"**Language:** {chunk.language}")
            if chunk.complexity:
                lines.append(f"**Complexity:** {chunk.complexity}")
            lines.append("")
            lines.append(f"```{chunk.language}")
            lines.append(chunk.content)
            lines.append("```")
            lines.append("")
            lines.append("---")
            lines.append("")
        return "\n".join(lines)

    def search_by_file(self, path: str) -> list[Chunk]:
        """All chunks of one file, by root-relative path."""
        return self._db.search_by_path(path)

    def chunks_by_kind(self, kind: ChunkKind | str, limit: int | None = None) -> list[Chunk]:
        if isinstance(kind, str):
            kind = ChunkKind.from_string(kind)
        return self._db.search_by_kind(kind, limit)

    def framework_chunks(self, framework: str) -> list[Chunk]:
        """Chunks tagged with ``framework`` (case-insensitive)."""
        wanted = framework.lower()
        return [c for c in self._db.all_chunks() if (c.framework_tag or "").lower() == wanted]
