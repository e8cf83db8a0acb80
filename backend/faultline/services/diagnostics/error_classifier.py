from __future__ import annotations

"""backend/faultline/services/diagnostics/error_classifier.py

Centralized classification of raw failures into ClassifiedError values.

The classification is:
- deterministic (no randomness, no state carried between calls)
- total (anything unrecognised becomes UnknownError / UNK001)
- ordered (an explicit table of named rules, evaluated top to bottom)

Several rules are strict specializations of others: a missing argument is an
invalid argument, a field validation failure is a ValueError, a
FileNotFoundError is an OSError, an IntegrityError is an SQLAlchemyError.
The more specific rule must therefore be listed first. PRECEDENCE records
every such pair and is checked by the test suite.

Adding support for a new failure means adding one Rule at the right position
in RULES; nothing else changes.
"""

import asyncio
import json
import logging
import socket
import sqlite3
import traceback
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import exc as sa_exc

from faultline import errors
from faultline.services.diagnostics.taxonomy import (
    ClassifiedError,
    Detail,
    ErrorKind,
    kind_for_status,
    profile_for,
)

logger = logging.getLogger(__name__)

FALLBACK_CODE = "UNK001"

# Leading ``loc`` entries FastAPI adds to say where in the request a field was.
_REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})

_RETRYABLE_STATUSES = frozenset({408, 423, 429, 502, 503, 504})

_LOCK_MARKERS = [
    "database is locked",
    "database table is locked",
    "could not obtain lock",
    "lock wait timeout exceeded",
    "deadlock detected",
]


@dataclass(frozen=True)
class Rule:
    """A named (predicate, builder) pair."""

    name: str
    predicate: Callable[[object], bool]
    build: Callable[[object], ClassifiedError]


# ---- Small helpers ----


def _safe_str(value: object) -> str:
    try:
        return str(value).strip()
    except Exception:  # noqa: BLE001
        return f"<unprintable {type(value).__name__}>"


def _message(raw: object) -> str:
    """Human text of a failure, preferring an explicit ``message`` attribute."""
    if isinstance(raw, errors.FaultlineError) and raw.message:
        return raw.message
    if isinstance(raw, KeyError) and raw.args:
        return _safe_str(raw.args[0])
    return _safe_str(raw)


def _labelled(label: str, text: str) -> str:
    return f"{label}: {text}" if text else label


def _contains_any(haystack: str, needles: list[str]) -> bool:
    return any(n in haystack for n in needles)


def _declared_code(raw: object) -> Optional[str]:
    if isinstance(raw, errors.FaultlineError):
        return raw.error_code or None
    return None


def _stack_trace(raw: object) -> Optional[str]:
    if not isinstance(raw, BaseException) or raw.__traceback__ is None:
        return None
    try:
        return "".join(traceback.format_exception(type(raw), raw, raw.__traceback__)).rstrip()
    except Exception:  # noqa: BLE001
        return None


def _is(*types: type) -> Callable[[object], bool]:
    return lambda raw: isinstance(raw, types)


def _make(
    kind: ErrorKind,
    raw: object,
    *,
    code: Optional[str] = None,
    message: Optional[str] = None,
    detail: Optional[Detail] = None,
    console: Optional[str] = None,
    retryable: Optional[bool] = None,
) -> ClassifiedError:
    """Fill in everything a builder did not set from the kind's profile."""
    profile = profile_for(kind)
    message = message or profile.message
    text = _message(raw)
    return ClassifiedError(
        kind=kind,
        code=_declared_code(raw) or code or profile.code,
        message=message,
        detail=detail if detail is not None else text,
        retryable=profile.retryable if retryable is None else retryable,
        exception_type=type(raw).__name__,
        console_message=console if console is not None else _labelled(message, text),
        stack_trace=_stack_trace(raw),
    )


# ---- Validation ----


def _build_validation_failed(raw: errors.ValidationFailed) -> ClassifiedError:
    fields = {field: list(messages) for field, messages in raw.errors.items()}
    return _make(ErrorKind.VALIDATION, raw, detail=fields, console="")


def _model_field_errors(raw: object) -> Dict[str, List[str]]:
    fields: Dict[str, List[str]] = {}
    for error in raw.errors():
        loc = [_safe_str(part) for part in error.get("loc", ())]
        if isinstance(raw, RequestValidationError) and loc and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        field = ".".join(loc) or "__root__"
        fields.setdefault(field, []).append(_safe_str(error.get("msg", "")))
    return fields


def _build_model_validation(raw: object) -> ClassifiedError:
    return _make(ErrorKind.VALIDATION, raw, detail=_model_field_errors(raw), console="")


# ---- Failures carrying an HTTP status ----


def _carried_status(raw: object) -> Optional[int]:
    """Status from ``status_code`` or ``response.status_code``, if it is an error status."""
    try:
        status = getattr(raw, "status_code", None)
        if status is None:
            status = getattr(getattr(raw, "response", None), "status_code", None)
    except Exception:  # noqa: BLE001
        return None
    if isinstance(status, bool) or not isinstance(status, int):
        return None
    return int(status) if 400 <= status < 600 else None


def _has_error_status(raw: object) -> bool:
    return isinstance(raw, BaseException) and _carried_status(raw) is not None


def _build_status_carrying(raw: object) -> ClassifiedError:
    status = _carried_status(raw)
    kind = kind_for_status(status)
    detail = getattr(raw, "details", None)
    if detail is None:
        detail = getattr(raw, "detail", None)
    detail = _safe_str(detail) if detail is not None else _message(raw)
    message = raw.message if isinstance(raw, errors.ApiError) and raw.message else None
    label = message or profile_for(kind).message
    return _make(
        kind,
        raw,
        message=message,
        detail=detail,
        console=_labelled(f"{label} (HTTP {status})", detail),
        retryable=True if status in _RETRYABLE_STATUSES else None,
    )


# ---- Not found ----


def _build_file_not_found(raw: FileNotFoundError) -> ClassifiedError:
    return _make(ErrorKind.NOT_FOUND, raw, console=_labelled("File not found", _message(raw)))


def _build_resource_not_found(raw: object) -> ClassifiedError:
    detail = getattr(raw, "details", None) or _message(raw)
    resource_type = getattr(raw, "resource_type", None)
    console = _labelled("Resource not found", _message(raw))
    if resource_type:
        console = f"{console}\nResource type: {resource_type}"
    return _make(ErrorKind.NOT_FOUND, raw, detail=detail, console=console)


# ---- Database ----


def _db_text(raw: object) -> str:
    """Driver message without the SQL statement SQLAlchemy appends."""
    orig = getattr(raw, "orig", None)
    if orig is not None:
        return _safe_str(orig)
    return _message(raw)


def _sqlstate(raw: object) -> Optional[str]:
    for source in (raw, getattr(raw, "orig", None)):
        for attr in ("sqlstate", "pgcode", "sqlite_errorname"):
            value = getattr(source, attr, None)
            if value:
                return str(value)
    return None


def _build_duplicate_entry(raw: object) -> ClassifiedError:
    if isinstance(raw, sa_exc.IntegrityError):
        message = "Integrity constraint violated"
    else:
        message = "Duplicate entry"
    return _make(
        ErrorKind.CONFLICT,
        raw,
        code="DUP001",
        message=message,
        detail=_db_text(raw),
        console=_labelled(message, _db_text(raw)),
    )


def _build_pool_exhausted(raw: sa_exc.TimeoutError) -> ClassifiedError:
    return _make(
        ErrorKind.RESOURCE_BUSY,
        raw,
        code="RB002",
        message="Connection pool exhausted",
        retryable=True,
    )


def _is_database_lock(raw: object) -> bool:
    if not isinstance(raw, (sqlite3.OperationalError, sa_exc.OperationalError)):
        return False
    return _contains_any(_db_text(raw).lower(), _LOCK_MARKERS)


def _build_database_lock(raw: object) -> ClassifiedError:
    return _make(
        ErrorKind.RESOURCE_BUSY,
        raw,
        code="RB003",
        message="Database is locked",
        detail=_db_text(raw),
        retryable=True,
    )


def _build_database(raw: object) -> ClassifiedError:
    text = _db_text(raw)
    details = getattr(raw, "details", None) or text
    sqlstate = _sqlstate(raw)
    if sqlstate:
        details = f"{details} (SQLSTATE {sqlstate})"
    transient = isinstance(raw, (sa_exc.OperationalError, sa_exc.DisconnectionError))
    return _make(
        ErrorKind.DATABASE,
        raw,
        detail=details,
        console=f"Database error: {text}\nDetails: {details}",
        retryable=transient or None,
    )


# ---- Access ----


def _build_authentication(raw: errors.AuthenticationFailure) -> ClassifiedError:
    return _make(ErrorKind.AUTH, raw)


def _build_permission_denied(raw: object) -> ClassifiedError:
    return _make(ErrorKind.PERMISSION, raw, console=_labelled("Access denied", _message(raw)))


# ---- Timing, network, contention ----


def _build_timeout(raw: object) -> ClassifiedError:
    return _make(ErrorKind.TIMEOUT, raw)


def _build_network(raw: object) -> ClassifiedError:
    return _make(ErrorKind.NETWORK, raw)


def _build_resource_busy(raw: object) -> ClassifiedError:
    console = _labelled("Resource busy", _message(raw))
    resource_id = getattr(raw, "resource_id", None)
    if resource_id:
        console = f"{console}\nResource: {resource_id}"
    return _make(ErrorKind.RESOURCE_BUSY, raw, console=console)


# ---- Configuration and startup ----


def _build_environment(raw: errors.EnvironmentFailure) -> ClassifiedError:
    console = _labelled("Environment error", _message(raw))
    if raw.variable:
        console = f"{console}\nVariable: {raw.variable}"
    return _make(ErrorKind.CONFIGURATION, raw, message="Environment error", console=console)


def _build_configuration(raw: errors.ConfigurationFailure) -> ClassifiedError:
    console = _labelled("Configuration error", _message(raw))
    if raw.config_file:
        console = f"{console}\nFile: {raw.config_file}"
    if raw.section:
        console = f"{console}\nSection: {raw.section}"
    return _make(ErrorKind.CONFIGURATION, raw, console=console)


def _build_initialization(raw: object) -> ClassifiedError:
    console = _labelled("Initialization failed", _message(raw))
    component = getattr(raw, "component", None)
    if component:
        console = f"{console}\nComponent: {component}"
    return _make(ErrorKind.INITIALIZATION, raw, console=console)


def _build_memory(raw: object) -> ClassifiedError:
    return _make(ErrorKind.MEMORY, raw)


# ---- Program state ----


def _build_state_conflict(raw: errors.StateConflict) -> ClassifiedError:
    console = _labelled("Invalid program state", _message(raw))
    if raw.expected is not None or raw.actual is not None:
        console = f"{console}\nExpected: {raw.expected}\nActual: {raw.actual}"
    return _make(ErrorKind.CONFLICT, raw, console=console)


def _build_unsupported(raw: object) -> ClassifiedError:
    return _make(ErrorKind.UNSUPPORTED, raw)


def _build_recursion(raw: RecursionError) -> ClassifiedError:
    return _make(ErrorKind.UNKNOWN, raw, code="SO001", message="Stack overflow error")


# ---- Input ----


def _build_missing_argument(raw: errors.MissingArgument) -> ClassifiedError:
    return _make(
        ErrorKind.INPUT,
        raw,
        code="ARG002",
        console=_labelled("Missing required argument", _message(raw)),
    )


def _build_encoding(raw: object) -> ClassifiedError:
    return _make(ErrorKind.INPUT, raw, code="ENC001", message="Text encoding error")


def _build_invalid_format(raw: json.JSONDecodeError) -> ClassifiedError:
    return _make(ErrorKind.INPUT, raw, code="FMT001", message="Invalid format")


def _build_string_match(raw: errors.StringMatchFailure) -> ClassifiedError:
    console = _labelled("String matching error", _message(raw))
    console = f"{console}\nExpected: {raw.expected}\nActual: {raw.actual}"
    return _make(ErrorKind.INPUT, raw, message="String matching error", console=console)


def _build_invalid_argument(raw: object) -> ClassifiedError:
    return _make(
        ErrorKind.INPUT,
        raw,
        code="ARG001",
        console=_labelled("Invalid argument", _message(raw)),
    )


def _build_cancelled(raw: asyncio.CancelledError) -> ClassifiedError:
    return _make(ErrorKind.INPUT, raw, code="CAN001", message="Operation cancelled")


# ---- Runtime ----


def _build_resource_leak(raw: errors.ResourceLeak) -> ClassifiedError:
    return _make(ErrorKind.UNKNOWN, raw, message="Resource leak detected")


def _build_runtime_failure(raw: errors.RuntimeFailure) -> ClassifiedError:
    return _make(
        ErrorKind.UNKNOWN,
        raw,
        message="Runtime error occurred",
        detail=raw.details,
        console=f"Runtime error: {_message(raw)} (Code: {raw.error_code})",
    )


def _build_io_error(raw: OSError) -> ClassifiedError:
    return _make(ErrorKind.UNKNOWN, raw, code="IO001", message="I/O error")


# ---- Fallback ----


def _fallback(raw: object) -> ClassifiedError:
    profile = profile_for(ErrorKind.UNKNOWN)
    text = _safe_str(raw) or type(raw).__name__
    console = _labelled(profile.message, text)
    if isinstance(raw, BaseException):
        inner = raw.__cause__ or raw.__context__
        if inner is not None:
            console = f"{console}\nAdditional details: {_safe_str(inner)}"
    return ClassifiedError(
        kind=ErrorKind.UNKNOWN,
        code=FALLBACK_CODE,
        message=profile.message,
        detail=text,
        exception_type=type(raw).__name__,
        console_message=console,
        stack_trace=_stack_trace(raw),
    )


def _degraded(raw: object) -> ClassifiedError:
    """Last resort when a rule itself blew up; touches nothing that can fail."""
    profile = profile_for(ErrorKind.UNKNOWN)
    return ClassifiedError(
        kind=ErrorKind.UNKNOWN,
        code=FALLBACK_CODE,
        message=profile.message,
        detail=_safe_str(raw),
        exception_type=type(raw).__name__,
        console_message=profile.message,
    )


# ---- Rule table ----

RULES: Tuple[Rule, ...] = (
    Rule("validation-failed", _is(errors.ValidationFailed), _build_validation_failed),
    Rule("model-validation", _is(PydanticValidationError, RequestValidationError), _build_model_validation),
    Rule("status-carrying", _has_error_status, _build_status_carrying),
    Rule("file-not-found", _is(FileNotFoundError), _build_file_not_found),
    Rule("resource-not-found", _is(errors.ResourceNotFound, KeyError), _build_resource_not_found),
    Rule("duplicate-entry", _is(errors.DuplicateEntry, sa_exc.IntegrityError), _build_duplicate_entry),
    Rule("pool-exhausted", _is(sa_exc.TimeoutError), _build_pool_exhausted),
    Rule("database-locked", _is_database_lock, _build_database_lock),
    Rule(
        "database",
        _is(errors.DatabaseFailure, sa_exc.SQLAlchemyError, sqlite3.Error),
        _build_database,
    ),
    Rule("authentication", _is(errors.AuthenticationFailure), _build_authentication),
    Rule("permission-denied", _is(PermissionError, errors.AuthorizationFailure), _build_permission_denied),
    Rule("timeout", _is(TimeoutError), _build_timeout),
    Rule(
        "network",
        _is(ConnectionError, socket.gaierror, socket.herror, errors.NetworkFailure),
        _build_network,
    ),
    Rule("resource-busy", _is(errors.ResourceBusy, BlockingIOError), _build_resource_busy),
    Rule("environment", _is(errors.EnvironmentFailure), _build_environment),
    Rule("configuration", _is(errors.ConfigurationFailure), _build_configuration),
    Rule("initialization", _is(errors.InitializationFailure, ImportError), _build_initialization),
    Rule("memory", _is(MemoryError, errors.MemoryPressure), _build_memory),
    Rule("state-conflict", _is(errors.StateConflict), _build_state_conflict),
    Rule("unsupported", _is(NotImplementedError, errors.Unsupported), _build_unsupported),
    Rule("recursion", _is(RecursionError), _build_recursion),
    Rule("missing-argument", _is(errors.MissingArgument), _build_missing_argument),
    Rule("encoding", _is(UnicodeError, errors.EncodingFailure), _build_encoding),
    Rule("invalid-format", _is(json.JSONDecodeError), _build_invalid_format),
    Rule("string-match", _is(errors.StringMatchFailure), _build_string_match),
    Rule("invalid-argument", _is(errors.InvalidArgument, ValueError), _build_invalid_argument),
    Rule("cancelled", _is(asyncio.CancelledError), _build_cancelled),
    Rule("resource-leak", _is(errors.ResourceLeak), _build_resource_leak),
    Rule("runtime-failure", _is(errors.RuntimeFailure), _build_runtime_failure),
    Rule("io-error", _is(OSError), _build_io_error),
)

# (specific, general): the first rule must come before the second.
PRECEDENCE: Tuple[Tuple[str, str], ...] = (
    ("validation-failed", "invalid-argument"),
    ("model-validation", "invalid-argument"),
    ("status-carrying", "network"),
    ("file-not-found", "io-error"),
    ("duplicate-entry", "database"),
    ("pool-exhausted", "database"),
    ("database-locked", "database"),
    ("permission-denied", "io-error"),
    ("timeout", "io-error"),
    ("network", "io-error"),
    ("resource-busy", "io-error"),
    ("environment", "configuration"),
    ("missing-argument", "invalid-argument"),
    ("encoding", "invalid-argument"),
    ("invalid-format", "invalid-argument"),
)


def rule_names(rules: Sequence[Rule] = RULES) -> List[str]:
    return [rule.name for rule in rules]


def matching_rule(raw: object, rules: Sequence[Rule] = RULES) -> Optional[Rule]:
    """Return the first rule whose predicate accepts ``raw``, or None."""
    for rule in rules:
        if rule.predicate(raw):
            return rule
    return None


def classify(raw: object, rules: Sequence[Rule] = RULES) -> ClassifiedError:
    """Classify a raw failure into exactly one ClassifiedError.

    This function never raises and never returns None. A failure no rule
    recognises, or a rule that errors while matching or building, yields
    UnknownError with code UNK001.
    """
    try:
        rule = matching_rule(raw, rules)
        if rule is None:
            return _fallback(raw)
        return rule.build(raw)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Classification degraded to %s: %s", FALLBACK_CODE, exc)
        return _degraded(raw)
