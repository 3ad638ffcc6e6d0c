"""CLI entrypoint for the XML -> MongoDB loader.

Usage:
    python -m xmlloader --files ./feeds
    python -m xmlloader --lines ./exports/records.xml
    python -m xmlloader --files ./feeds --url mongodb://db1:27017/archive.items
    python -m xmlloader --files ./feeds --jsonl ./out/items.jsonl
    python -m xmlloader --files ./feeds --workers 8 --max-pending 2000

Each XML document is converted into a document and inserted into the
collection named by the URI path (``<database>.<collection>``).
"""

from __future__ import annotations

import argparse
import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path

from .models import LoadError, LoaderConfig, LoadMode
from .utils import DEFAULT_URL, DEFAULT_WRITE_TIMEOUT_S

log = logging.getLogger(__name__)


def _setup_logging(
    *,
    verbose: bool,
    detailed_logging: bool,
    log_file: Path | None,
) -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    root_level = logging.DEBUG if verbose else logging.INFO
    root_logger.setLevel(root_level)

    console_fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    detailed_fmt = (
        "%(asctime)s | %(levelname)-8s | %(name)s | "
        "%(threadName)s | %(filename)s:%(lineno)d | %(message)s"
    )
    formatter = logging.Formatter(
        detailed_fmt if detailed_logging else console_fmt,
        "%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(root_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    resolved_log_file = log_file
    if resolved_log_file is None and detailed_logging:
        resolved_log_file = Path("xmlloader.log")

    if resolved_log_file is not None:
        resolved_log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            resolved_log_file,
            maxBytes=20 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(detailed_fmt, "%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)

    logging.getLogger("pymongo").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xmlloader",
        description="Load XML documents from files/directories into MongoDB",
        epilog="Note: You cannot mix --lines and --files.",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--files",
        dest="mode",
        action="store_const",
        const=LoadMode.FILES,
        help="One XML document per file",
    )
    mode.add_argument(
        "--lines",
        dest="mode",
        action="store_const",
        const=LoadMode.LINES,
        help="One XML document per line in each file",
    )
    parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Files or directories of files to parse",
    )

    parser.add_argument(
        "--url",
        default=DEFAULT_URL,
        help=(
            f"The URL for the MongoDB server (default: {DEFAULT_URL}, "
            "the 'test' collection in the 'db' database)"
        ),
    )
    parser.add_argument(
        "--jsonl",
        type=Path,
        default=None,
        help="Append documents to this JSON Lines file instead of MongoDB",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Load threads (default: the sink's connection count)",
    )
    parser.add_argument(
        "--max-pending",
        type=int,
        default=None,
        help="Max unacknowledged writes (default: min(4096, connections * 1000))",
    )
    parser.add_argument(
        "--write-timeout",
        type=float,
        default=DEFAULT_WRITE_TIMEOUT_S,
        help=(
            "Seconds to wait for a write acknowledgement "
            f"(default: {DEFAULT_WRITE_TIMEOUT_S:g}; 0 waits forever)"
        ),
    )
    parser.add_argument(
        "--continue-on-write-error",
        action="store_true",
        help="Record failed writes but keep loading",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--detailed-logging",
        action="store_true",
        help="Enable detailed logging (thread, file/line, rotating log file)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional log file path (default: xmlloader.log in detailed mode)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


def config_from_args(args: argparse.Namespace) -> LoaderConfig:
    return LoaderConfig(
        roots=tuple(args.paths),
        mode=args.mode,
        workers=args.workers,
        max_pending=args.max_pending,
        write_timeout=args.write_timeout or None,
        stop_on_write_error=not args.continue_on_write_error,
        show_progress=not args.no_progress,
    )


def main(argv: list[str] | None = None) -> int:
    """Run the loader; return the process exit code."""
    from .loader import Loader
    from .sinks import open_sink

    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(
        verbose=args.verbose,
        detailed_logging=args.detailed_logging,
        log_file=args.log_file,
    )

    try:
        config = config_from_args(args)
        config.validate()
        sink = open_sink(
            args.url,
            jsonl_path=args.jsonl,
            max_connections=args.workers,
        )
    except LoadError as exc:
        log.error("%s", exc)
        parser.print_usage(sys.stderr)
        return 1

    try:
        ok = Loader(config, sink).run()
    finally:
        sink.close()

    if not ok:
        parser.print_usage(sys.stderr)
        return 1
    return 0
