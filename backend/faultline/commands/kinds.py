"""Kinds command - print the error taxonomy table."""

from __future__ import annotations

from argparse import Namespace

from faultline.api.kinds import kind_info
from faultline.commands.output import emit_output
from faultline.services.diagnostics.taxonomy import ErrorKind, ExitCode


def run_kinds(args: Namespace, *, output_sink=print) -> int:
    rows = [kind_info(kind) for kind in ErrorKind]
    width = max(len(row.kind) for row in rows)
    human_lines = [f"{'KIND'.ljust(width)}  CODE     HTTP  EXIT"]
    human_lines.extend(
        f"{row.kind.ljust(width)}  {row.code.ljust(7)}  {row.http_status:<4}  {row.exit_code}"
        for row in rows
    )
    emit_output(
        command="kinds",
        data=[row.model_dump() for row in rows],
        json_output=args.json,
        output_sink=output_sink,
        human_lines=human_lines,
    )
    return ExitCode.SUCCESS
