from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from wikibase_import.app import import_remote_entities
from wikibase_import.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130

_CANCEL = threading.Event()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import entities from a remote Wikibase into the local repository"
    )
    parser.add_argument(
        "ids",
        nargs="*",
        metavar="ID",
        help="Remote entity ids to import, e.g. Q42 P31",
    )
    parser.add_argument(
        "--file",
        type=Path,
        help="Read additional ids from a file, one per line ('#' starts a comment)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of concurrent import workers (defaults to config)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request timeout in seconds for the remote API",
    )
    parser.add_argument(
        "--attempts",
        type=int,
        help="Attempts per entity for retryable failures (defaults to config)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every pipeline stage",
    )
    return parser.parse_args(list(argv))


def _read_ids_file(path: Path) -> list[str]:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise ValueError(f"Cannot read id file {path}: {exc}") from exc
    ids: list[str] = []
    for line in lines:
        value = line.split("#", 1)[0].strip()
        if value:
            ids.append(value)
    return ids


def _collect_ids(args: argparse.Namespace) -> list[str]:
    ids = [value.strip() for value in args.ids if value.strip()]
    if args.file is not None:
        ids.extend(_read_ids_file(args.file))
    if not ids:
        raise ValueError("No entity ids given (pass ids or --file)")
    for name in ("workers", "attempts"):
        value = getattr(args, name)
        if value is not None and value < 1:
            raise ValueError(f"--{name} must be at least 1")
    if args.timeout is not None and args.timeout <= 0:
        raise ValueError("--timeout must be positive")
    return ids


def main(argv: Sequence[str] | None = None, *, cancel: threading.Event | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        ids = _collect_ids(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(EXIT_USAGE)

    if parsed_args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        result = import_remote_entities(
            ids,
            workers=parsed_args.workers,
            timeout=parsed_args.timeout,
            attempts=parsed_args.attempts,
            cancel=cancel if cancel is not None else _CANCEL,
        )
    except Exception:
        log.exception("Fatal error during import")
        sys.exit(EXIT_FAILED)

    log.info(
        "Import finished: imported=%s, failed=%s, cancelled=%s",
        len(result.imported),
        len(result.failed),
        len(result.cancelled),
    )
    if result.cancelled:
        sys.exit(EXIT_CANCELLED)
    if result.failed:
        sys.exit(EXIT_FAILED)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Cancel the running batch on the first Ctrl+C, exit on the second."""
    if _CANCEL.is_set():
        log.info("Closed by user (Ctrl+C)")
        sys.exit(EXIT_CANCELLED)
    log.info("Cancelling import, waiting for running pipelines (Ctrl+C again to abort)")
    _CANCEL.set()


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
