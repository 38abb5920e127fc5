"""Index command argument parser for DevCanvas CLI."""

import argparse
from pathlib import Path
from typing import Any, cast

from devcanvas.core.config.config import Config
from devcanvas.core.config.indexing_config import IndexingConfig


def add_index_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "index",
        help="Rebuild the index of a project",
        description=(
            "Discover, chunk and embed every eligible file under PATH and "
            "replace the project's index atomically."
        ),
    )

    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Directory to index (default: current directory)",
    )

    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bars",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the indexing report as JSON",
    )

    Config.add_cli_arguments(parser)
    IndexingConfig.add_cli_arguments(parser)

    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = ["add_index_subparser"]
