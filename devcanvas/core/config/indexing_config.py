"""Indexing configuration for DevCanvas.

Controls discovery (excludes, ignore sources), chunk sizing and the
embedding admission policy used during a rebuild.
"""

import argparse
import os
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Directories never worth indexing. Applied regardless of ignore sources.
DEFAULT_EXCLUDES: list[str] = [
    "node_modules/",
    ".git/",
    ".vscode/",
    ".idea/",
    "dist/",
    "build/",
    "out/",
    "target/",
    "bin/",
    "obj/",
    ".next/",
    ".nuxt/",
    "coverage/",
    ".nyc_output/",
    "logs/",
    "__pycache__/",
    ".venv/",
    "venv/",
    ".mypy_cache/",
    ".pytest_cache/",
    ".devcanvas/",
    "*.log",
    ".DS_Store",
    "Thumbs.db",
]

OversizePolicy = Literal["drop", "truncate", "split"]


class IndexingConfig(BaseModel):
    """Indexing configuration."""

    max_chunk_size: int = Field(
        default=1000,
        gt=0,
        description="Maximum chunk content size in characters (file, block and syntactic chunks)",
    )

    exclude: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDES),
        description="Gitwildmatch patterns excluded from discovery",
    )

    ignore_sources: list[Literal["gitignore", "devcanvasignore"]] = Field(
        default_factory=lambda: ["gitignore", "devcanvasignore"],
        description="Project ignore files honored during discovery",
    )

    ignore_file: str = Field(
        default=".devcanvasignore", description="Project-specific ignore file name"
    )

    oversize_policy: OversizePolicy = Field(
        default="drop",
        description="What to do with class/function/interface chunks larger than max_chunk_size",
    )

    embedding_batch_size: int = Field(
        default=10, gt=0, description="Chunks embedded concurrently per batch"
    )

    batch_delay_seconds: float = Field(
        default=0.2, ge=0.0, description="Pause between embedding batches"
    )

    embedding_timeout: float = Field(
        default=15.0, gt=0.0, description="Timeout in seconds for one embedding call"
    )

    fallback_dimensions: int = Field(
        default=768,
        gt=0,
        description="Zero-vector size used when no embedding succeeded in a run",
    )

    @field_validator("exclude")
    def validate_exclude(cls, v: list[str]) -> list[str]:
        return [p.strip() for p in v if p and p.strip()]

    def to_worker_dict(self) -> dict[str, Any]:
        """Plain-dict view handed to the batch processor."""
        return {
            "max_chunk_size": self.max_chunk_size,
            "oversize_policy": self.oversize_policy,
        }

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--max-chunk-size",
            type=int,
            help="Maximum chunk size in characters (default: 1000)",
        )
        parser.add_argument(
            "--oversize-policy",
            choices=["drop", "truncate", "split"],
            help="Policy for syntactic chunks longer than --max-chunk-size",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            help="Embedding batch size (default: 10)",
        )
        parser.add_argument(
            "--exclude",
            action="append",
            help="Additional exclude pattern (repeatable)",
        )

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load indexing config from environment variables."""
        config: dict[str, Any] = {}
        if size := os.getenv("DEVCANVAS_INDEXING__MAX_CHUNK_SIZE"):
            config["max_chunk_size"] = int(size)
        if policy := os.getenv("DEVCANVAS_INDEXING__OVERSIZE_POLICY"):
            config["oversize_policy"] = policy
        if batch := os.getenv("DEVCANVAS_INDEXING__EMBEDDING_BATCH_SIZE"):
            config["embedding_batch_size"] = int(batch)
        if delay := os.getenv("DEVCANVAS_INDEXING__BATCH_DELAY_SECONDS"):
            config["batch_delay_seconds"] = float(delay)
        if timeout := os.getenv("DEVCANVAS_INDEXING__EMBEDDING_TIMEOUT"):
            config["embedding_timeout"] = float(timeout)
        if exclude := os.getenv("DEVCANVAS_INDEXING__EXCLUDE"):
            config["exclude"] = list(DEFAULT_EXCLUDES) + [
                p for p in exclude.split(",") if p.strip()
            ]
        return config

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        if getattr(args, "max_chunk_size", None):
            overrides["max_chunk_size"] = args.max_chunk_size
        if getattr(args, "oversize_policy", None):
            overrides["oversize_policy"] = args.oversize_policy
        if getattr(args, "batch_size", None):
            overrides["embedding_batch_size"] = args.batch_size
        if getattr(args, "exclude", None):
            overrides["exclude"] = list(DEFAULT_EXCLUDES) + list(args.exclude)
        return overrides
