"""Standard output of successful commands.

Failures never come through here: they are rendered to stderr by the CLI
error boundary. A command either prints its human-readable lines or, with
``--json``, exactly one compact JSON document.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, List

from faultline import __version__

OUTPUT_FORMAT = "1"


def output_lines(
    *,
    command: str,
    data: Any,
    json_output: bool,
    human_lines: Iterable[str] = (),
) -> List[str]:
    if not json_output:
        return list(human_lines)
    document = {
        "command": command,
        "data": data,
        "format": OUTPUT_FORMAT,
        "faultline": __version__,
    }
    return [json.dumps(document, sort_keys=True, separators=(",", ":"))]


def emit_output(*, output_sink=print, **kwargs: Any) -> None:
    for line in output_lines(**kwargs):
        output_sink(line)
