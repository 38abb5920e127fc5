"""Stats command argument parser for DevCanvas CLI."""

import argparse
from pathlib import Path
from typing import Any, cast

from devcanvas.core.config.config import Config


def add_stats_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "stats",
        help="Show index statistics",
        description="Report chunk totals by kind and lexical index size.",
    )

    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Indexed project directory (default: current directory)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON",
    )

    Config.add_cli_arguments(parser)

    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = ["add_stats_subparser"]
