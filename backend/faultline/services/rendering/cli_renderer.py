from __future__ import annotations

"""backend/faultline/services/rendering/cli_renderer.py

Render an occurrence as console lines plus a process exit code.

render_cli is a pure function: it returns a CliRepresentation and never
writes to a stream or exits. The outermost CLI caller writes the lines and
terminates the process exactly once.

Line order:
1. "ERROR" banner
2. the message (one or more lines; field-by-field for validation errors)
3. stack trace block, only when requested and available
4. a hint for kinds where the user can act on one
"""

import re
import sys
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional, TextIO, Tuple

from faultline.services.diagnostics.enrichment import Occurrence
from faultline.services.diagnostics.taxonomy import ClassifiedError, ErrorKind, exit_code_for

RED = "\x1b[31m"
YELLOW = "\x1b[33m"
BLUE = "\x1b[34m"
BOLD = "\x1b[1m"
RESET = "\x1b[0m"

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")

HINTS: Mapping[ErrorKind, str] = MappingProxyType(
    {
        ErrorKind.INPUT: "Tip: Use --help to see usage instructions",
        ErrorKind.PERMISSION: "Tip: Check that you have permission to read and write the files involved",
        ErrorKind.MEMORY: "Tip: Try closing other applications or reducing the data size",
    }
)


@dataclass(frozen=True)
class CliRepresentation:
    exit_code: int
    lines: Tuple[str, ...]


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def _paint(text: str, *styles: str, color: bool) -> str:
    if not color or not text:
        return text
    return "".join(styles) + text + RESET


def _validation_lines(classified: ClassifiedError) -> List[str]:
    lines = ["Validation failed:"]
    for field, messages in classified.field_errors.items():
        lines.append(f"{field}:")
        lines.extend(f"  - {message}" for message in messages)
    return lines


def _message_lines(classified: ClassifiedError) -> List[str]:
    if classified.kind is ErrorKind.VALIDATION:
        return _validation_lines(classified)
    text = classified.console_message or classified.message
    return text.splitlines() or [classified.message]


def render_cli(
    classified: ClassifiedError,
    occurrence: Occurrence,
    show_stack_trace: bool,
    color: bool = True,
) -> CliRepresentation:
    lines = [_paint("ERROR", RED, BOLD, color=color)]
    lines.extend(_paint(line, RED, color=color) for line in _message_lines(classified))

    if show_stack_trace and classified.stack_trace:
        lines.append("")
        lines.append(_paint("Stack trace:", YELLOW, color=color))
        lines.append(f"Trace ID: {occurrence.trace_id}")
        lines.extend(classified.stack_trace.splitlines())

    hint = HINTS.get(classified.kind)
    if hint:
        lines.append("")
        lines.append(_paint(hint, BLUE, color=color))

    return CliRepresentation(exit_code=exit_code_for(classified.kind), lines=tuple(lines))


def write_lines(representation: CliRepresentation, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stderr
    for line in representation.lines:
        stream.write(line + "\n")
    stream.flush()

