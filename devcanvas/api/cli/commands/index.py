"""Index command: rebuild a project's index."""

from __future__ import annotations

import argparse
import json

from loguru import logger
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from devcanvas.capabilities import load_capabilities
from devcanvas.core.config.config import Config
from devcanvas.core.models.indexing import IndexingPhase
from devcanvas.services.engine import DevCanvasEngine


async def index_command(args: argparse.Namespace, config: Config) -> None:
    capabilities = load_capabilities(config.embedding_provider, config.llm_provider)
    # Fail before opening or creating the database
    capabilities.require_embedding()

    console = Console(stderr=True)
    show_progress = not getattr(args, "no_progress", False) and not getattr(args, "json", False)

    def on_phase(phase: IndexingPhase, message: str) -> None:
        if phase is not IndexingPhase.EMBEDDING_BATCH:
            logger.info(message)

    progress = (
        Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        if show_progress
        else None
    )

    async with DevCanvasEngine(
        config, capabilities, progress=progress, progress_callback=on_phase
    ) as engine:
        if progress is not None:
            with progress:
                report = await engine.index_codebase()
        else:
            report = await engine.index_codebase()

    if getattr(args, "json", False):
        print(json.dumps(report.to_dict(), indent=2))
        return

    console.print(f"[bold]{report.summary()}[/bold]")
    console.print(
        f"Files: {report.total_files} discovered, {report.skipped_files} skipped; "
        f"oversize symbols dropped: {report.dropped_oversize}; "
        f"took {report.duration_seconds:.2f}s"
    )
    for warning in report.warnings[:20]:
        console.print(f"[yellow]warning:[/yellow] {warning}")
    if len(report.warnings) > 20:
        console.print(f"... and {len(report.warnings) - 20} more warnings")
