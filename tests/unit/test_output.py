"""Tests for command output."""

from __future__ import annotations

import json

from faultline import __version__
from faultline.commands.output import OUTPUT_FORMAT, emit_output, output_lines


def test_human_output_is_the_given_lines() -> None:
    lines = output_lines(command="kinds", data=[], json_output=False, human_lines=("a", "b"))
    assert lines == ["a", "b"]


def test_json_output_is_one_compact_document() -> None:
    lines = output_lines(command="kinds", data={"b": 1, "a": 2}, json_output=True, human_lines=("ignored",))

    assert len(lines) == 1
    assert " " not in lines[0]
    assert json.loads(lines[0]) == {
        "command": "kinds",
        "data": {"a": 2, "b": 1},
        "format": OUTPUT_FORMAT,
        "faultline": __version__,
    }


def test_emit_output_sends_each_line_to_the_sink() -> None:
    received: list[str] = []
    emit_output(command="kinds", data=None, json_output=False, human_lines=["x", "y"], output_sink=received.append)
    assert received == ["x", "y"]
