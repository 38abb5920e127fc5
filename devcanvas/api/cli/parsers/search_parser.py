"""Search command argument parser for DevCanvas CLI."""

import argparse
from pathlib import Path
from typing import Any, cast

from devcanvas.core.config.config import Config
from devcanvas.core.config.search_config import SearchConfig
from devcanvas.core.models.query import UserRole


def add_search_subparser(subparsers: Any) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        "search",
        help="Query an indexed project",
        description="Run a natural-language query against the project's index.",
    )

    parser.add_argument("query", help="Question or search text")

    parser.add_argument(
        "path",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Indexed project directory (default: current directory)",
    )

    parser.add_argument(
        "--limit",
        type=int,
        help="Maximum number of results (default: 10)",
    )

    parser.add_argument(
        "--role",
        choices=[role.value for role in UserRole],
        default=UserRole.DEVELOPER.value,
        help="User role used to bias intent classification",
    )

    parser.add_argument(
        "--context",
        action="store_true",
        help="Print the markdown context block instead of a result list",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON",
    )

    Config.add_cli_arguments(parser)
    SearchConfig.add_cli_arguments(parser)

    return cast(argparse.ArgumentParser, parser)


__all__: list[str] = ["add_search_subparser"]
