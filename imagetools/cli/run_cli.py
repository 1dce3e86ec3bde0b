"""
CLI commands for listing and running image operations.

Usage:
    imagetools list [--locale zh-CN]
    imagetools run rotate 90 -i cat.png -o out/
    imagetools run gif-change-fps 2x -i https://example.com/a.gif -f
    imagetools run h-join -i a.png -i b.png --opt spacing=0 --opt bg_color=#fff
    imagetools run nine-grid -i cat.png --zip
"""

from __future__ import annotations

import argparse
import functools
import sys
from pathlib import Path
from typing import Any

from ..config import load_config, resolve_archiver
from ..delivery import plan_delivery, write_outputs, zip_outputs
from ..exceptions import OperationError
from ..i18n import MessageCatalog
from ..operations import COMMANDS, CommandContext, InputKind, get_command, run_command
from ..sources import default_fetch, fetch_sources


def parse_option_arg(raw: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise ValueError(f"Cannot parse option: '{raw}' (expected KEY=VALUE)")
    return key.strip().replace("-", "_"), value


def _format_command_table(catalog: MessageCatalog) -> str:
    name_w = max(len(c.name) for c in COMMANDS)
    lines = []
    for c in COMMANDS:
        aliases = ", ".join(c.aliases)
        lines.append(f"  {c.name:<{name_w}}   {catalog.describe(c.name)}"
                     + (f"  [{aliases}]" if aliases else ""))
    return "\n".join(lines) + "\n"


def cmd_list(args: argparse.Namespace) -> int:
    catalog = MessageCatalog(args.locale or load_config(args.config).locale)
    print(_format_command_table(catalog))
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Main handler for ``imagetools run``."""
    config = load_config(args.config)
    catalog = MessageCatalog(args.locale or config.locale)
    try:
        cmd = get_command(args.name)
    except KeyError as exc:
        print(f"Error: {exc.args[0]}", file=sys.stderr)
        return 1

    options: dict[str, Any] = {}
    try:
        for raw in args.opt or []:
            key, value = parse_option_arg(raw)
            options[key] = value
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if args.force and any(o.name == "force" for o in cmd.options):
        options["force"] = True

    ctx = CommandContext(config=config)
    fetch = functools.partial(default_fetch, timeout=config.http_timeout_s)
    out_dir = Path(args.output)
    try:
        images = []
        if cmd.input_kind is not InputKind.NONE:
            images = fetch_sources(fetch, args.input or [], config.workers)
        blobs = run_command(cmd.name, images, args.args, options, ctx)

        plan = plan_delivery(blobs, config.delivery)
        if args.zip or plan.needs_archive:
            archive = zip_outputs(blobs, out_dir, resolve_archiver(args.archiver),
                                  config.delivery.zip_file_type)
            print(catalog.get("cli.archive-written", [archive]))
        else:
            paths = write_outputs(blobs, out_dir, stem=cmd.name)
            print(catalog.get("cli.outputs-written", [len(paths), out_dir]))
    except OperationError as exc:
        print(catalog.render(exc), file=sys.stderr)
        return 2
    return 0


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config", default=None,
        help="YAML configuration file (default: $IMAGETOOLS_CONFIG)",
    )
    p.add_argument(
        "--locale", default=None,
        help="Message locale, e.g. en-US or zh-CN",
    )


def build_list_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser("list", help="List available commands")
    _add_common(p)
    p.set_defaults(func=cmd_list)


def build_run_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``run`` subcommand and its arguments."""
    p = subparsers.add_parser(
        "run",
        help="Run one command over source images",
        description="Apply an image command to files or URLs and write the results.",
    )
    p.add_argument("name", help="Command name or alias (see `imagetools list`)")
    p.add_argument("args", nargs="*", help="Positional command arguments")
    p.add_argument(
        "-i", "--input", action="append", metavar="SRC",
        help="Source image path or URL; repeat for several",
    )
    p.add_argument(
        "-o", "--output", default=".",
        help="Output directory (default: current directory)",
    )
    p.add_argument(
        "--opt", action="append", metavar="KEY=VALUE",
        help="Command option, e.g. --opt radius=3; repeatable",
    )
    p.add_argument(
        "-f", "--force", action="store_true",
        help="Ignore frame rate and animated input warnings",
    )
    p.add_argument(
        "--zip", action="store_true",
        help="Pack every output into one archive",
    )
    p.add_argument(
        "--archiver", default="7z",
        help="Archiver executable (default: 7z)",
    )
    _add_common(p)
    p.set_defaults(func=cmd_run)
