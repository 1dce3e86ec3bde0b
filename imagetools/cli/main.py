"""Main CLI entry point for imagetools."""

from __future__ import annotations

import argparse
import logging
import sys

from .. import __version__
from .run_cli import build_list_parser, build_run_parser


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="imagetools",
        description="Image and GIF manipulation commands",
    )
    parser.add_argument("--version", action="version",
                        version=f"imagetools {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress; repeat for debug output")
    subparsers = parser.add_subparsers(dest="command")
    build_list_parser(subparsers)
    build_run_parser(subparsers)
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        return 0
    return args.func(args)


def cli_entry() -> None:
    sys.exit(main())
