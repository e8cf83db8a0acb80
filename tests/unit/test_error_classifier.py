"""Tests for the ordered error classifier."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from types import SimpleNamespace

import pytest
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import exc as sa_exc
from starlette.exceptions import HTTPException

from faultline import errors
from faultline.services.diagnostics.error_classifier import (
    PRECEDENCE,
    RULES,
    Rule,
    classify,
    matching_rule,
    rule_names,
)
from faultline.services.diagnostics.taxonomy import ErrorKind
from tests.helpers import raised


class _Command(BaseModel):
    command: str = Field(min_length=3)


class _UpstreamError(ConnectionError):
    """A network error that also carries the upstream HTTP status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class _StatusResponseError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"upstream answered {status_code}")
        self.response = SimpleNamespace(status_code=status_code)


class _Opaque(Exception):
    pass


def _pydantic_error() -> PydanticValidationError:
    try:
        _Command(command="xy")
    except PydanticValidationError as exc:
        return exc
    raise AssertionError("expected a validation error")


def _chained() -> _Opaque:
    try:
        try:
            raise ValueError("inner cause")
        except ValueError as inner:
            raise _Opaque("outer failure") from inner
    except _Opaque as exc:
        return exc


# ---- Rule table ----


def test_rule_names_are_unique() -> None:
    names = rule_names()
    assert len(names) == len(set(names))


@pytest.mark.parametrize("specific,general", PRECEDENCE)
def test_specific_rules_precede_general_ones(specific: str, general: str) -> None:
    names = rule_names()
    assert names.index(specific) < names.index(general)


# Each pair with one failure both rules accept.
OVERLAPS = {
    ("validation-failed", "invalid-argument"): errors.ValidationFailed({"command": ["required"]}),
    ("model-validation", "invalid-argument"): _pydantic_error(),
    ("status-carrying", "network"): _UpstreamError("gone", status_code=404),
    ("file-not-found", "io-error"): FileNotFoundError("config.json"),
    ("duplicate-entry", "database"): sa_exc.IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")),
    ("pool-exhausted", "database"): sa_exc.TimeoutError("QueuePool limit reached"),
    ("database-locked", "database"): sqlite3.OperationalError("database is locked"),
    ("permission-denied", "io-error"): PermissionError(13, "Permission denied"),
    ("timeout", "io-error"): TimeoutError("read timed out"),
    ("network", "io-error"): ConnectionRefusedError("refused"),
    ("resource-busy", "io-error"): BlockingIOError("would block"),
    ("environment", "configuration"): errors.EnvironmentFailure("unset", variable="TOKEN"),
    ("missing-argument", "invalid-argument"): errors.MissingArgument("--path"),
    ("encoding", "invalid-argument"): UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"),
    ("invalid-format", "invalid-argument"): json.JSONDecodeError("Expecting value", "{", 1),
}


def test_every_ordered_pair_has_an_overlapping_failure() -> None:
    assert set(OVERLAPS) == set(PRECEDENCE)


@pytest.mark.parametrize("pair", list(OVERLAPS))
def test_overlapping_failure_goes_to_the_specific_rule(pair: tuple[str, str]) -> None:
    specific, general = pair
    by_name = {rule.name: rule for rule in RULES}
    exc = OVERLAPS[pair]

    assert by_name[specific].predicate(exc)
    assert by_name[general].predicate(exc)
    assert matching_rule(exc).name == specific


def test_moving_a_general_rule_first_misclassifies() -> None:
    by_name = {rule.name: rule for rule in RULES}
    reordered = [by_name["invalid-argument"]] + [r for r in RULES if r.name != "invalid-argument"]
    exc = errors.MissingArgument("--path")

    assert classify(exc).code == "ARG002"
    assert classify(exc, rules=reordered).code == "ARG001"


# ---- Specificity: errors that satisfy two predicates ----


def test_pydantic_validation_error_wins_over_value_error() -> None:
    exc = _pydantic_error()
    assert isinstance(exc, ValueError)

    classified = classify(exc)
    assert classified.kind is ErrorKind.VALIDATION
    assert classified.detail == {"command": ["String should have at least 3 characters"]}


def test_network_error_with_status_is_classified_by_status() -> None:
    assert classify(_UpstreamError("gone", status_code=404)).kind is ErrorKind.NOT_FOUND
    assert classify(_UpstreamError("refused")).kind is ErrorKind.NETWORK


def test_missing_argument_wins_over_invalid_argument() -> None:
    missing = classify(errors.MissingArgument("--path"))
    invalid = classify(errors.InvalidArgument("--path must be absolute"))

    assert missing.kind is invalid.kind is ErrorKind.INPUT
    assert missing.code == "ARG002"
    assert missing.console_message == "Missing required argument: --path"
    assert invalid.code == "ARG001"
    assert invalid.console_message == "Invalid argument: --path must be absolute"


def test_file_not_found_wins_over_os_error() -> None:
    classified = classify(FileNotFoundError(2, "No such file or directory", "config.json"))
    assert classified.kind is ErrorKind.NOT_FOUND
    assert classified.code == "RNF001"
    assert classified.console_message == "File not found: [Errno 2] No such file or directory: 'config.json'"


def test_builtin_timeout_wins_over_os_error() -> None:
    classified = classify(TimeoutError("read timed out"))
    assert classified.kind is ErrorKind.TIMEOUT
    assert classified.retryable is True


def test_connection_error_wins_over_os_error() -> None:
    assert classify(ConnectionRefusedError("refused")).kind is ErrorKind.NETWORK


def test_blocking_io_wins_over_os_error() -> None:
    assert classify(BlockingIOError("would block")).kind is ErrorKind.RESOURCE_BUSY


def test_environment_failure_wins_over_configuration_failure() -> None:
    exc = errors.EnvironmentFailure("GITHUB_TOKEN is not set", variable="GITHUB_TOKEN")
    assert isinstance(exc, errors.ConfigurationFailure)

    classified = classify(exc)
    assert classified.kind is ErrorKind.CONFIGURATION
    assert classified.code == "ENV001"
    assert classified.console_message == "Environment error: GITHUB_TOKEN is not set\nVariable: GITHUB_TOKEN"


def test_integrity_error_wins_over_database_error() -> None:
    exc = sa_exc.IntegrityError("INSERT INTO scans", {}, Exception("UNIQUE constraint failed: scans.name"))
    classified = classify(exc)
    assert classified.kind is ErrorKind.CONFLICT
    assert classified.code == "DUP001"
    assert classified.detail == "UNIQUE constraint failed: scans.name"


def test_pool_timeout_wins_over_database_error() -> None:
    classified = classify(sa_exc.TimeoutError("QueuePool limit of size 5 overflow 10 reached"))
    assert classified.kind is ErrorKind.RESOURCE_BUSY
    assert classified.code == "RB002"


def test_locked_database_wins_over_database_error() -> None:
    classified = classify(sqlite3.OperationalError("database is locked"))
    assert classified.kind is ErrorKind.RESOURCE_BUSY
    assert classified.code == "RB003"
    assert classified.retryable is True


def test_encoding_and_format_errors_win_over_value_error() -> None:
    decode = classify(UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"))
    assert (decode.kind, decode.code) == (ErrorKind.INPUT, "ENC001")

    try:
        json.loads("{")
    except json.JSONDecodeError as exc:
        fmt = classify(exc)
    assert (fmt.kind, fmt.code) == (ErrorKind.INPUT, "FMT001")


def test_not_implemented_wins_over_runtime_fallback() -> None:
    assert classify(NotImplementedError("export")).kind is ErrorKind.UNSUPPORTED
    assert classify(RuntimeError("export")).code == "UNK001"


# ---- Individual rules ----


def test_validation_failed_keeps_field_map() -> None:
    classified = classify(errors.ValidationFailed({"command": ["must be at least 3 characters long"]}))
    assert classified.kind is ErrorKind.VALIDATION
    assert classified.code == "VAL001"
    assert classified.detail == {"command": ["must be at least 3 characters long"]}


def test_validation_detail_is_independent_of_the_exception() -> None:
    exc = errors.ValidationFailed({"command": ["required"]})
    classified = classify(exc)

    exc.errors["command"].append("too short")
    exc.errors["port"] = ["not a number"]

    assert classified.detail == {"command": ["required"]}


def test_type_errors_are_not_blamed_on_the_user() -> None:
    classified = classify(TypeError("unsupported operand type(s) for +: 'int' and 'str'"))
    assert classified.kind is ErrorKind.UNKNOWN
    assert classified.code == "UNK001"


def test_request_validation_error_drops_request_location() -> None:
    exc = RequestValidationError(
        [
            {"loc": ("body", "command"), "msg": "Field required", "type": "missing"},
            {"loc": ("body", "command"), "msg": "Too short", "type": "too_short"},
            {"loc": ("query", "page", 0), "msg": "Not a number", "type": "int_parsing"},
            {"loc": ("body",), "msg": "Body required", "type": "missing"},
        ]
    )
    classified = classify(exc)
    assert classified.detail == {
        "command": ["Field required", "Too short"],
        "page.0": ["Not a number"],
        "__root__": ["Body required"],
    }


def test_api_error_uses_its_status_message_and_details() -> None:
    classified = classify(errors.ApiError(409, "Version mismatch", "etag differs"))
    assert classified.kind is ErrorKind.CONFLICT
    assert classified.message == "Version mismatch"
    assert classified.detail == "etag differs"


def test_http_exception_detail_becomes_detail() -> None:
    classified = classify(HTTPException(status_code=404, detail="Scan not found"))
    assert classified.kind is ErrorKind.NOT_FOUND
    assert classified.detail == "Scan not found"
    assert classified.message == "Resource not found"


def test_status_on_response_attribute() -> None:
    classified = classify(_StatusResponseError(502))
    assert classified.kind is ErrorKind.NETWORK
    assert classified.retryable is True


def test_non_error_status_is_ignored() -> None:
    assert classify(_UpstreamError("moved", status_code=302)).kind is ErrorKind.NETWORK


@pytest.mark.parametrize(
    "exc,kind,code",
    [
        (errors.ResourceNotFound("Scan missing", "scan", "scan 42 does not exist"), ErrorKind.NOT_FOUND, "RNF001"),
        (KeyError("scan-42"), ErrorKind.NOT_FOUND, "RNF001"),
        (errors.DuplicateEntry("name taken"), ErrorKind.CONFLICT, "DUP001"),
        (errors.AuthenticationFailure("token expired"), ErrorKind.AUTH, "AUTH001"),
        (errors.AuthorizationFailure("admin only"), ErrorKind.PERMISSION, "PERM001"),
        (PermissionError(13, "Permission denied", "/etc/shadow"), ErrorKind.PERMISSION, "PERM001"),
        (errors.NetworkFailure("DNS failure"), ErrorKind.NETWORK, "NET001"),
        (errors.ResourceBusy("clone dir in use", "repo-1"), ErrorKind.RESOURCE_BUSY, "RB001"),
        (errors.InitializationFailure("cache not ready", "cache"), ErrorKind.INITIALIZATION, "INIT001"),
        (ModuleNotFoundError("No module named 'yaml'"), ErrorKind.INITIALIZATION, "INIT001"),
        (MemoryError(), ErrorKind.MEMORY, "MEM001"),
        (errors.MemoryPressure("buffer too large", 2**34), ErrorKind.MEMORY, "MEM001"),
        (errors.StateConflict("not started", "running", "idle"), ErrorKind.CONFLICT, "STE001"),
        (errors.Unsupported("YAML export"), ErrorKind.UNSUPPORTED, "NSP001"),
        (RecursionError("maximum recursion depth exceeded"), ErrorKind.UNKNOWN, "SO001"),
        (errors.StringMatchFailure("branch mismatch", "main", "master"), ErrorKind.INPUT, "STR001"),
        (errors.EncodingFailure("bad bytes", "latin-1"), ErrorKind.INPUT, "ENC001"),
        (TypeError("expected str"), ErrorKind.UNKNOWN, "UNK001"),
        (asyncio.CancelledError(), ErrorKind.INPUT, "CAN001"),
        (errors.ResourceLeak("3 sockets left open", "socket"), ErrorKind.UNKNOWN, "RL001"),
        (OSError("disk error"), ErrorKind.UNKNOWN, "IO001"),
    ],
)
def test_rule_outcomes(exc: BaseException, kind: ErrorKind, code: str) -> None:
    classified = classify(exc)
    assert classified.kind is kind
    assert classified.code == code


def test_key_error_detail_is_the_key() -> None:
    assert classify(KeyError("scan-42")).detail == "scan-42"


def test_configuration_failure_names_the_file() -> None:
    classified = classify(errors.ConfigurationFailure("Missing configuration", config_file="config.json"))
    assert classified.code == "CFG001"
    assert classified.console_message == "Configuration error: Missing configuration\nFile: config.json"


def test_database_failure_reports_sqlstate() -> None:
    classified = classify(errors.DatabaseFailure("write failed", details="disk full", sqlstate="53100"))
    assert classified.kind is ErrorKind.DATABASE
    assert classified.detail == "disk full (SQLSTATE 53100)"
    assert classified.console_message == "Database error: write failed\nDetails: disk full (SQLSTATE 53100)"


def test_sqlalchemy_operational_error_is_retryable_database_error() -> None:
    exc = sa_exc.OperationalError("SELECT 1", {}, Exception("server closed the connection"))
    classified = classify(exc)
    assert classified.kind is ErrorKind.DATABASE
    assert classified.retryable is True
    assert "SELECT 1" not in classified.detail


def test_runtime_failure_keeps_its_code() -> None:
    classified = classify(errors.RuntimeFailure("engine stalled", "RT042"))
    assert classified.kind is ErrorKind.UNKNOWN
    assert classified.code == "RT042"
    assert classified.console_message == "Runtime error: engine stalled (Code: RT042)"


def test_declared_error_code_overrides_rule_code() -> None:
    classified = classify(errors.ResourceNotFound("no such branch", "branch", error_code="RNF404"))
    assert classified.code == "RNF404"


def test_matching_rule_reports_the_winner() -> None:
    rule = matching_rule(FileNotFoundError("config.json"))
    assert rule is not None and rule.name == "file-not-found"
    assert matching_rule(_Opaque("x")) is None


# ---- Fallback and totality ----


def test_unrecognised_failure_falls_back_to_unknown() -> None:
    classified = classify(_Opaque("something odd"))
    assert classified.kind is ErrorKind.UNKNOWN
    assert classified.code == "UNK001"
    assert classified.detail == "something odd"
    assert classified.console_message == "An unexpected error occurred: something odd"


def test_fallback_mentions_the_cause() -> None:
    classified = classify(_chained())
    assert classified.code == "UNK001"
    assert classified.console_message.splitlines()[-1] == "Additional details: inner cause"


@pytest.mark.parametrize("raw", ["boom", None, 42, object()])
def test_non_exceptions_are_classified(raw: object) -> None:
    classified = classify(raw)
    assert classified.kind is ErrorKind.UNKNOWN
    assert classified.code == "UNK001"
    assert classified.stack_trace is None


def test_unprintable_exception_does_not_break_classification() -> None:
    class _Broken(Exception):
        def __str__(self) -> str:
            raise RuntimeError("no str for you")

    classified = classify(_Broken())
    assert classified.code == "UNK001"
    assert classified.detail == "<unprintable _Broken>"


def test_failing_predicate_degrades_to_unknown() -> None:
    def _explode(raw: object) -> bool:
        raise RuntimeError("predicate bug")

    rules = [Rule("broken", _explode, lambda raw: classify(raw))]
    classified = classify(ValueError("x"), rules=rules)
    assert classified.kind is ErrorKind.UNKNOWN
    assert classified.code == "UNK001"


def test_failing_builder_degrades_to_unknown() -> None:
    def _explode(raw: object):
        raise RuntimeError("builder bug")

    rules = [Rule("broken", lambda raw: True, _explode)]
    classified = classify(ValueError("x"), rules=rules)
    assert classified.kind is ErrorKind.UNKNOWN
    assert classified.code == "UNK001"


# ---- Determinism ----


@pytest.mark.parametrize(
    "exc",
    [
        FileNotFoundError("config.json"),
        errors.ValidationFailed({"command": ["too short"]}),
        _Opaque("odd"),
        sa_exc.IntegrityError("INSERT", {}, Exception("dup")),
    ],
)
def test_classification_is_deterministic(exc: BaseException) -> None:
    exc = raised(exc)
    assert classify(exc) == classify(exc)


def test_stack_trace_captured_for_raised_errors() -> None:
    classified = classify(raised(ValueError("bad")))
    assert classified.stack_trace is not None
    assert classified.stack_trace.startswith("Traceback (most recent call last):")
    assert classified.stack_trace.splitlines()[-1] == "ValueError: bad"
