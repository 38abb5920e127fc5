"""Stats command: show index statistics."""

from __future__ import annotations

import argparse
import json
from datetime import datetime

from rich.console import Console
from rich.table import Table

from devcanvas.core.config.config import Config
from devcanvas.services.engine import DevCanvasEngine

from ..utils.database import verify_database_exists


async def stats_command(args: argparse.Namespace, config: Config) -> None:
    verify_database_exists(config)
    async with DevCanvasEngine(config) as engine:
        stats = await engine.stats()

    if getattr(args, "json", False):
        print(json.dumps(stats, indent=2))
        return

    table = Table(title=f"DevCanvas index: {stats['project_root']}")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Files", str(stats["files"]))
    table.add_row("Chunks", str(stats["chunks"]))
    for kind, count in stats["by_kind"].items():
        table.add_row(f"  {kind}", str(count))
    table.add_row("Dimensions", str(stats["dimensions"] or "-"))
    table.add_row("Vocabulary", str(stats["vocabulary_size"]))
    table.add_row("Generation", str(stats["generation"]))
    if stats["indexed_at"]:
        indexed_at = datetime.fromtimestamp(stats["indexed_at"]).isoformat(timespec="seconds")
        table.add_row("Indexed at", indexed_at)
    Console().print(table)
