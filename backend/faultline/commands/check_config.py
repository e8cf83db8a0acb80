"""Check-config command - load and validate an application config file."""

from __future__ import annotations

import json
from argparse import Namespace
from pathlib import Path

from faultline.commands.output import emit_output
from faultline.errors import ConfigurationFailure, ValidationFailed
from faultline.schemas import AppConfig
from faultline.services.diagnostics.taxonomy import ExitCode

MIN_COMMAND_LENGTH = 3


def validate_command_name(command: str | None) -> None:
    if command is not None and len(command.strip()) < MIN_COMMAND_LENGTH:
        raise ValidationFailed(
            {"command": [f"must be at least {MIN_COMMAND_LENGTH} characters long"]}
        )


def load_app_config(path: Path) -> AppConfig:
    """Parse ``path`` into an AppConfig.

    A missing file raises FileNotFoundError, malformed JSON a
    ConfigurationFailure naming the file, and schema violations pydantic's
    ValidationError. Content files referenced by file mappings must exist
    relative to the config file's directory.
    """
    raw_text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise ConfigurationFailure(
            f"Invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}",
            config_file=str(path),
        ) from exc

    config = AppConfig.model_validate(data)

    missing: dict[str, list[str]] = {}
    for index, mapping in enumerate(config.file_mappings):
        content = Path(mapping.content_file)
        if not content.is_absolute():
            content = path.parent / content
        if not content.is_file():
            missing[f"file_mappings.{index}.content_file"] = [
                f"content file does not exist: {mapping.content_file}"
            ]
    if missing:
        raise ValidationFailed(missing)
    return config


def run_check_config(args: Namespace, *, output_sink=print) -> int:
    validate_command_name(args.command_name)
    config = load_app_config(Path(args.path))

    payload = {
        "path": str(args.path),
        "target_repository": config.repository.target_repository,
        "file_mappings": len(config.file_mappings),
        "cidr_ranges": len(config.network.cidr_ranges) if config.network else 0,
        "pull_request": config.pull_request is not None,
    }
    emit_output(
        command="check-config",
        data=payload,
        json_output=args.json,
        output_sink=output_sink,
        human_lines=[
            f"Configuration OK: {args.path}",
            f"  target repository: {payload['target_repository']}",
            f"  file mappings: {payload['file_mappings']}",
            f"  CIDR ranges: {payload['cidr_ranges']}",
        ],
    )
    return ExitCode.SUCCESS
