"""DevCanvas CLI entry point."""

import argparse
import asyncio
import os
import sys

from loguru import logger

from devcanvas.core.config.config import Config
from devcanvas.core.exceptions import DevCanvasError

from .commands import index_command, search_command, stats_command
from .parsers import add_index_subparser, add_search_subparser, add_stats_subparser

COMMANDS = {
    "index": index_command,
    "search": search_command,
    "stats": stats_command,
}


def setup_logging(verbose: bool = False) -> None:
    """Configure the loguru sink once for the whole process."""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        level=level,
        format="<level>{level: <8}</level> | {message}",
        colorize=None,
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devcanvas",
        description="Hybrid lexical + semantic code retrieval for a project tree",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    add_index_subparser(subparsers)
    add_search_subparser(subparsers)
    add_stats_subparser(subparsers)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2

    verbose = bool(getattr(args, "verbose", False)) or os.getenv(
        "DEVCANVAS_DEBUG", ""
    ).lower() in ("true", "1", "yes")
    setup_logging(verbose)

    try:
        config = Config.load(args=args)
        asyncio.run(COMMANDS[args.command](args, config))
    except DevCanvasError as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
