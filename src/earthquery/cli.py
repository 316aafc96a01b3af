"""
Publish directive messages to a Google Earth query file from the command line.

Reads one JSON message per line (from a file or stdin) and handles each one
exactly as the routed activity would.  With --dry-run the query text is
printed instead of published.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import IO, Iterator, List, Optional, Tuple

from . import plugin_logger
from .config import Config
from .directive_decoder import DirectiveDecoder
from .directive_handler import DirectiveHandler
from .message_formatter import EarthQueryFormatter
from .paths import QUERY_LOCATION_KEYS, location_key, resolve_query_path

logger = plugin_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="earthquery", description=__doc__)
    parser.add_argument(
        "messages",
        nargs="?",
        type=Path,
        default=None,
        help="JSON-lines file of directive messages (default: stdin)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON configuration file overlaying the defaults",
    )
    parser.add_argument(
        "--query-file",
        type=Path,
        default=None,
        help="Query file path (overrides the configured location)",
    )
    parser.add_argument(
        "--variant",
        choices=sorted(QUERY_LOCATION_KEYS),
        default=None,
        help="Query interface variant (default: from config)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        help="Waits for the previous query file before aborting",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between waits",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print query text instead of publishing it",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    config = Config(str(args.config) if args.config else None)
    if args.variant:
        config.set("query_variant", args.variant)
    if args.query_file:
        config.set(location_key(config.get("query_variant")), str(args.query_file))
    if args.retries is not None:
        config.set("query_write_retries", args.retries)
    if args.interval is not None:
        config.set("query_write_retry_interval", args.interval)
    if args.debug:
        config.set("debug", True)
    return config


def iter_messages(stream: IO[str]) -> Iterator[Tuple[int, Optional[dict], str]]:
    """Yield (line number, message, error) for each non-blank line."""
    for line_no, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            yield line_no, json.loads(line), ""
        except json.JSONDecodeError as e:
            yield line_no, None, f"invalid JSON: {e}"


def _configure_logging(debug: bool) -> None:
    root = logging.getLogger(logger.name.split(".")[0])
    if root.hasHandlers():
        return
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    channel = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d:%(funcName)s:%(message)s"
    )
    formatter.default_time_format = "%Y-%m-%d %H:%M:%S"
    formatter.default_msec_format = "%s.%03d"
    channel.setFormatter(formatter)
    root.addHandler(channel)


def _run_dry(stream: IO[str]) -> int:
    decoder = DirectiveDecoder()
    formatter = EarthQueryFormatter()
    failures = 0
    for line_no, message, error in iter_messages(stream):
        if message is None:
            logger.warning(f"Line {line_no}: {error}")
            failures += 1
            continue
        result = decoder.decode(message)
        if not result.ok:
            logger.warning(f"Line {line_no}: {result.error}")
            failures += 1
            continue
        print(formatter.format_directive(result.directive))
    return 1 if failures else 0


def _run_publish(config: Config, stream: IO[str]) -> int:
    try:
        query_path = resolve_query_path(config)
    except ValueError as e:
        logger.error(f"Invalid query configuration: {e}")
        return 1
    if query_path is None:
        logger.error(
            f"No query file location configured; pass --query-file or set "
            f"'{location_key(config.get('query_variant'))}'"
        )
        return 1

    try:
        handler = DirectiveHandler(config)
    except (TypeError, ValueError) as e:
        logger.error(f"Invalid query configuration: {e}")
        return 1

    if not handler.publisher.prepare():
        return 1

    failures = 0
    try:
        for line_no, message, error in iter_messages(stream):
            if message is None:
                logger.warning(f"Line {line_no}: {error}")
                failures += 1
                continue
            if not handler.handle_message(message):
                failures += 1
    finally:
        handler.close()
    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.debug)
    config = build_config(args)

    if args.messages is not None:
        try:
            stream = args.messages.open("r", encoding="utf-8")
        except OSError as e:
            logger.error(f"Cannot read messages from {args.messages}: {e}")
            return 1
    else:
        stream = sys.stdin

    try:
        if args.dry_run:
            return _run_dry(stream)
        return _run_publish(config, stream)
    finally:
        if stream is not sys.stdin:
            stream.close()


if __name__ == "__main__":
    raise SystemExit(main())
