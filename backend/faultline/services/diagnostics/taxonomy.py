from __future__ import annotations

"""backend/faultline/services/diagnostics/taxonomy.py

The closed set of error kinds and the static data attached to each one.

For every kind this module defines:
- a default human message and short machine code
- the HTTP status used by the HTTP renderer
- the process exit code used by the CLI renderer
- whether the failure is usually worth retrying (informational only)

All tables are read-only after import and are shared by the classifier and
both renderers without copying.
"""

import enum
from dataclasses import dataclass
from http import HTTPStatus
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union


class ErrorKind(str, enum.Enum):
    INPUT = "InputError"
    AUTH = "AuthError"
    PERMISSION = "PermissionError"
    NOT_FOUND = "NotFoundError"
    CONFLICT = "ConflictOrStateError"
    VALIDATION = "ValidationError"
    TIMEOUT = "TimeoutError"
    RESOURCE_BUSY = "ResourceBusyError"
    UNSUPPORTED = "UnsupportedError"
    CONFIGURATION = "ConfigurationError"
    INITIALIZATION = "InitializationError"
    MEMORY = "MemoryError"
    NETWORK = "NetworkError"
    DATABASE = "DatabaseError"
    UNKNOWN = "UnknownError"


class ExitCode(enum.IntEnum):
    """Process exit codes, following the usual Unix conventions."""

    SUCCESS = 0
    GENERAL = 1
    INVALID_ARGUMENT = 2
    FILE_NOT_FOUND = 3
    PERMISSION = 4
    CONFIGURATION = 5
    VALIDATION = 6
    RUNTIME = 7
    NETWORK = 8
    DATABASE = 9
    UNKNOWN = 127


@dataclass(frozen=True)
class KindProfile:
    message: str
    code: str
    http_status: int
    exit_code: ExitCode
    retryable: bool = False


KIND_PROFILES: Mapping[ErrorKind, KindProfile] = MappingProxyType(
    {
        ErrorKind.INPUT: KindProfile(
            "Invalid input", "INP001", HTTPStatus.BAD_REQUEST, ExitCode.INVALID_ARGUMENT
        ),
        ErrorKind.AUTH: KindProfile(
            "Authentication required", "AUTH001", HTTPStatus.UNAUTHORIZED, ExitCode.PERMISSION
        ),
        ErrorKind.PERMISSION: KindProfile(
            "Insufficient permissions", "PERM001", HTTPStatus.FORBIDDEN, ExitCode.PERMISSION
        ),
        ErrorKind.NOT_FOUND: KindProfile(
            "Resource not found", "RNF001", HTTPStatus.NOT_FOUND, ExitCode.FILE_NOT_FOUND
        ),
        ErrorKind.CONFLICT: KindProfile(
            "Invalid program state", "STE001", HTTPStatus.CONFLICT, ExitCode.RUNTIME
        ),
        ErrorKind.VALIDATION: KindProfile(
            "Validation failed", "VAL001", HTTPStatus.BAD_REQUEST, ExitCode.VALIDATION
        ),
        ErrorKind.TIMEOUT: KindProfile(
            "The operation timed out", "TMO001", HTTPStatus.REQUEST_TIMEOUT, ExitCode.RUNTIME, True
        ),
        ErrorKind.RESOURCE_BUSY: KindProfile(
            "Resource busy", "RB001", HTTPStatus.CONFLICT, ExitCode.RUNTIME, True
        ),
        ErrorKind.UNSUPPORTED: KindProfile(
            "Not implemented", "NSP001", HTTPStatus.NOT_IMPLEMENTED, ExitCode.GENERAL
        ),
        ErrorKind.CONFIGURATION: KindProfile(
            "Configuration error", "CFG001", HTTPStatus.SERVICE_UNAVAILABLE, ExitCode.CONFIGURATION
        ),
        ErrorKind.INITIALIZATION: KindProfile(
            "Initialization failed", "INIT001", HTTPStatus.SERVICE_UNAVAILABLE, ExitCode.RUNTIME
        ),
        ErrorKind.MEMORY: KindProfile(
            "Memory error", "MEM001", HTTPStatus.SERVICE_UNAVAILABLE, ExitCode.RUNTIME
        ),
        ErrorKind.NETWORK: KindProfile(
            "Network error", "NET001", HTTPStatus.BAD_GATEWAY, ExitCode.NETWORK, True
        ),
        ErrorKind.DATABASE: KindProfile(
            "Database error", "DB001", HTTPStatus.INTERNAL_SERVER_ERROR, ExitCode.DATABASE
        ),
        ErrorKind.UNKNOWN: KindProfile(
            "An unexpected error occurred", "UNK001", HTTPStatus.INTERNAL_SERVER_ERROR, ExitCode.UNKNOWN
        ),
    }
)


def profile_for(kind: ErrorKind) -> KindProfile:
    return KIND_PROFILES[kind]


def http_status_for(kind: ErrorKind) -> int:
    return int(KIND_PROFILES[kind].http_status)


def exit_code_for(kind: ErrorKind) -> int:
    return int(KIND_PROFILES[kind].exit_code)


_STATUS_KINDS: Mapping[int, ErrorKind] = MappingProxyType(
    {
        400: ErrorKind.INPUT,
        401: ErrorKind.AUTH,
        403: ErrorKind.PERMISSION,
        404: ErrorKind.NOT_FOUND,
        405: ErrorKind.INPUT,
        406: ErrorKind.INPUT,
        408: ErrorKind.TIMEOUT,
        409: ErrorKind.CONFLICT,
        410: ErrorKind.NOT_FOUND,
        411: ErrorKind.INPUT,
        412: ErrorKind.CONFLICT,
        413: ErrorKind.INPUT,
        414: ErrorKind.INPUT,
        415: ErrorKind.INPUT,
        422: ErrorKind.INPUT,
        423: ErrorKind.RESOURCE_BUSY,
        429: ErrorKind.RESOURCE_BUSY,
        501: ErrorKind.UNSUPPORTED,
        502: ErrorKind.NETWORK,
        503: ErrorKind.INITIALIZATION,
        504: ErrorKind.NETWORK,
    }
)


def kind_for_status(status: int) -> ErrorKind:
    """Map an HTTP status carried by a failure back to an error kind."""
    kind = _STATUS_KINDS.get(status)
    if kind is not None:
        return kind
    if 400 <= status < 500:
        return ErrorKind.INPUT
    return ErrorKind.UNKNOWN


# ValidationError carries field -> messages; every other kind a plain string.
Detail = Union[str, Dict[str, List[str]]]


@dataclass(frozen=True)
class ClassifiedError:
    """Normalized form of an arbitrary raw failure."""

    kind: ErrorKind
    code: str
    message: str
    detail: Detail
    retryable: bool = False
    exception_type: str = ""
    console_message: str = ""
    stack_trace: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is ErrorKind.VALIDATION:
            if not isinstance(self.detail, Mapping):
                raise TypeError("ValidationError detail must be a field -> messages mapping")
        elif not isinstance(self.detail, str):
            raise TypeError(f"{self.kind.value} detail must be a string")

    @property
    def field_errors(self) -> Dict[str, List[str]]:
        """Copy of the validation field map; empty for other kinds."""
        if self.kind is not ErrorKind.VALIDATION:
            return {}
        return {field: list(messages) for field, messages in self.detail.items()}
