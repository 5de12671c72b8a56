"""Entry point for the vtail command."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from vtail.app import LogViewer
from vtail.settings import ViewerSettings
from vtail.tail import TailError
from vtail.terminal import ProcessTerminal


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vtail",
        description="Tail a log file with framed stack traces and collapsible vendor frames",
    )
    parser.add_argument("file", help="Log file to follow (created if missing)")
    parser.add_argument(
        "--hide-vendor",
        action="store_true",
        default=None,
        help="Start with vendor frames collapsed",
    )
    parser.add_argument(
        "--no-wrap",
        dest="wrap_lines",
        action="store_false",
        default=None,
        help="Start with long lines truncated instead of wrapped",
    )
    parser.add_argument(
        "-n",
        "--lines",
        dest="tail_lines",
        type=int,
        default=None,
        help="Number of existing lines to load (default: 100)",
    )
    parser.add_argument(
        "--max-lines",
        type=int,
        default=None,
        help="Raw lines kept in memory before trimming (default: 1000)",
    )
    parser.add_argument("--log-file", default=None, help="Write diagnostic logs to this file")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
    )
    return parser


def configure_logging(log_file: str | None, level: str) -> None:
    # The screen belongs to the viewer: only log when a file is given
    if log_file is None:
        return
    logging.basicConfig(
        filename=log_file,
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, args.log_level)

    settings = ViewerSettings.from_env().with_overrides(
        hide_vendor=args.hide_vendor,
        wrap_lines=args.wrap_lines,
        tail_lines=args.tail_lines,
        max_lines=args.max_lines,
    )

    viewer = LogViewer(args.file, ProcessTerminal(), settings)
    try:
        return asyncio.run(viewer.run())
    except TailError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
