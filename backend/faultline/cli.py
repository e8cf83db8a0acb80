"""Command-line interface for faultline.

main() is the top-level command dispatcher and the CLI error boundary: any
failure a command raises is classified, enriched, rendered to stderr and
turned into the exit code main() returns. run() is the console-script entry
point and the only place the process exits.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, NoReturn, Optional, TextIO

from pydantic import ValidationError as PydanticValidationError

from faultline.config import Settings, configure_logging, get_settings
from faultline.errors import InvalidArgument, MissingArgument
from faultline.services.diagnostics import classify, new_occurrence
from faultline.services.rendering.cli_renderer import render_cli, write_lines

logger = logging.getLogger(__name__)


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting on bad input."""

    def error(self, message: str) -> NoReturn:
        raise InvalidArgument(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="faultline",
        description="Error classification and reporting for services and command-line tools",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="faultline 0.1.0",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    kinds_parser = subparsers.add_parser(
        "kinds",
        help="List error kinds with their codes, HTTP statuses and exit codes",
    )
    kinds_parser.add_argument(
        "--json",
        action="store_true",
        help="Emit machine-readable JSON output",
    )

    check_parser = subparsers.add_parser(
        "check-config",
        help="Load and validate an application config file",
    )
    check_parser.add_argument(
        "path",
        help="Path to the JSON config file",
    )
    check_parser.add_argument(
        "--command",
        dest="command_name",
        help="Command name to validate alongside the config",
    )
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Emit machine-readable JSON output",
    )

    return parser


def _use_color(settings: Settings, stream: TextIO) -> bool:
    if settings.no_color:
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def report_failure(exc: BaseException, settings: Settings, stream: Optional[TextIO] = None) -> int:
    """Classify and render ``exc`` to ``stream``; return the exit code."""
    stream = stream or sys.stderr
    classified = classify(exc)
    occurrence = new_occurrence(classified)
    logger.debug(
        "%s [%s] %s (trace_id=%s)",
        classified.kind.value,
        classified.code,
        classified.message,
        occurrence.trace_id,
    )
    representation = render_cli(
        classified,
        occurrence,
        show_stack_trace=settings.debug,
        color=_use_color(settings, stream),
    )
    write_lines(representation, stream)
    return representation.exit_code


def main(argv: Optional[List[str]] = None, *, stream: Optional[TextIO] = None) -> int:
    """Main CLI entry point."""
    try:
        settings = get_settings()
    except PydanticValidationError as exc:
        # Environment is unusable; report with defaults.
        return report_failure(exc, Settings.model_construct(), stream)

    parser = build_parser()

    try:
        configure_logging(settings.log_level)
        args = parser.parse_args(argv)
        if args.command == "kinds":
            from faultline.commands.kinds import run_kinds

            return run_kinds(args)
        if args.command == "check-config":
            from faultline.commands.check_config import run_check_config

            return run_check_config(args)
        raise MissingArgument("no command given")
    except Exception as exc:
        return report_failure(exc, settings, stream)


def run() -> NoReturn:
    sys.exit(main())


if __name__ == "__main__":
    run()
