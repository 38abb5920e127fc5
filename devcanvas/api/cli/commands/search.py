"""Search command: query an indexed project."""

from __future__ import annotations

import argparse
import json

from rich.console import Console

from devcanvas.capabilities import load_capabilities
from devcanvas.core.config.config import Config
from devcanvas.core.models.query import QueryContext, UserRole
from devcanvas.services.engine import DevCanvasEngine

from ..utils.database import verify_database_exists


async def search_command(args: argparse.Namespace, config: Config) -> None:
    verify_database_exists(config)
    capabilities = load_capabilities(config.embedding_provider, config.llm_provider)
    context = QueryContext(user_role=UserRole(getattr(args, "role", "developer")))

    async with DevCanvasEngine(config, capabilities) as engine:
        result = await engine.query(args.query, max_results=args.limit, context=context)
        follow_ups = engine.search.planner.follow_up_questions(result.intent)
        context_block = engine.search.build_context(result.ranked_chunks)

    if getattr(args, "json", False):
        payload = {
            "query": args.query,
            "intent": {
                "type": result.intent.type.value,
                "confidence": result.intent.confidence,
                "complexity": result.intent.parameters.complexity.value,
                "scope": result.intent.parameters.scope.value,
            },
            "rewrite": {
                "rewritten": result.rewrite.rewritten,
                "dense": result.rewrite.dense,
                "sparse": result.rewrite.sparse,
                "reason": result.rewrite.reason,
            },
            "results": [r.to_dict() for r in result.ranked_chunks],
            "usage": (
                {
                    "prompt_tokens": result.usage.prompt_tokens,
                    "completion_tokens": result.usage.completion_tokens,
                }
                if result.usage
                else None
            ),
            "follow_up_questions": follow_ups,
        }
        print(json.dumps(payload, indent=2))
        return

    if getattr(args, "context", False):
        print(context_block)
        return

    console = Console()
    console.print(
        f"Intent: [bold]{result.intent.type.value}[/bold] "
        f"(confidence {result.intent.confidence:.2f})"
    )
    if not result.ranked_chunks:
        console.print("No relevant chunks found.")
        return
    for rank, item in enumerate(result.ranked_chunks, start=1):
        chunk = item.chunk
        label = chunk.symbol_name or chunk.kind.value
        console.print(
            f"{rank:>2}. [cyan]{chunk.source_path}:{chunk.start_line}-{chunk.end_line}[/cyan] "
            f"{label} [dim]({item.score:.2f}, {item.context_type.value})[/dim]"
        )
        console.print(f"    [dim]{item.explanation}[/dim]")
    for question in follow_ups:
        console.print(f"[green]?[/green] {question}")
