"""Command line interface: ``edithtml [-i INPUT] [-o OUTPUT] PIPELINE``."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from contextlib import ExitStack
from typing import TYPE_CHECKING, BinaryIO, NoReturn

from .editor import HtmlStreamingEditor, write_result
from .errors import EX_CANTCREAT, EX_NOINPUT, EX_USAGE, EditorError, report

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "EDITHTML_LOG"


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EX_USAGE, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="edithtml",
        description="Edit an HTML document with a pipeline of CSS-selector based commands.",
        epilog="Example: edithtml -i page.html \"ONLY{main} | WITHOUT{script, style}\"",
    )
    parser.add_argument(
        "pipeline",
        help="the pipeline definition; @FILE reads it from FILE",
    )
    parser.add_argument("-i", "--input", default="-", help="input file, '-' for stdin (default)")
    parser.add_argument("-o", "--output", default="-", help="output file, '-' for stdout (default)")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help=f"log more (-v info, -vv debug); {LOG_LEVEL_ENV} sets the level by name",
    )
    return parser


def setup_logging(verbosity: int = 0) -> None:
    """Send log records to stderr.

    An explicit -v wins over the environment variable.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV, "WARNING").upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def read_definition(argument: str) -> str:
    if argument.startswith("@"):
        with open(argument[1:], encoding="utf-8") as f:
            return f.read()
    return argument


def main(argv: Sequence[str] | None = None) -> int:
    # If stdout is a pipe and the reader (e.g. `head`) closes early, exit quietly
    # instead of emitting a traceback. Guard for non-POSIX platforms.
    try:  # pragma: no cover - platform dependent
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)
    except (AttributeError, OSError, ValueError):
        pass

    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        definition = read_definition(args.pipeline)
    except OSError as exc:
        print(f"[ERROR] Failed reading pipeline definition: {exc}", file=sys.stderr)
        return EX_NOINPUT

    with ExitStack() as stack:
        if args.input == "-":
            input_stream: BinaryIO = sys.stdin.buffer
        else:
            try:
                input_stream = stack.enter_context(open(args.input, "rb"))
            except OSError as exc:
                print(f"[ERROR] Failed opening input: {exc}", file=sys.stderr)
                return EX_NOINPUT

        try:
            nodes = HtmlStreamingEditor(input_stream).run(definition)
        except EditorError as exc:
            report(exc, sys.stderr)
            return exc.exit_code
        logger.info("Pipeline produced %d node(s)", len(nodes))

        # Opened only after a successful run so a failure leaves an existing file untouched.
        if args.output == "-":
            output_stream: BinaryIO = sys.stdout.buffer
        else:
            try:
                output_stream = stack.enter_context(open(args.output, "wb"))
            except OSError as exc:
                print(f"[ERROR] Failed creating output: {exc}", file=sys.stderr)
                return EX_CANTCREAT

        try:
            write_result(nodes, output_stream)
        except EditorError as exc:
            report(exc, sys.stderr)
            return exc.exit_code

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
