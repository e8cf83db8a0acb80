# backend/faultline/errors.py
from __future__ import annotations

"""
Error types that upstream code raises to be recognised by the classifier.

Each type carries the structured payload its classification rule reads
(an error code, a field map, a config file name, ...). Builtin and library
exceptions are recognised too; these exist for failures that have no natural
builtin counterpart.
"""

from typing import Mapping, Sequence


class FaultlineError(Exception):
    """Base error. ``error_code`` overrides the kind's default short code."""

    error_code: str | None = None

    def __init__(self, message: str = "", *, error_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class ApiError(FaultlineError):
    """Failure with an explicit HTTP status, e.g. from an upstream API call."""

    def __init__(
        self,
        status_code: int,
        message: str,
        details: str | None = None,
        *,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code)
        self.status_code = int(status_code)
        self.details = details if details is not None else message


class ValidationFailed(FaultlineError, ValueError):
    """Field-level validation failure: field name -> ordered messages."""

    def __init__(
        self,
        errors: Mapping[str, Sequence[str]],
        message: str = "Validation failed",
        *,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code)
        self.errors = {str(field): [str(m) for m in messages] for field, messages in errors.items()}


class InvalidArgument(FaultlineError, ValueError):
    """A command-line or call argument is invalid."""


class MissingArgument(InvalidArgument):
    """A required argument was not supplied."""


class StringMatchFailure(FaultlineError):
    error_code = "STR001"

    def __init__(self, message: str, expected: str, actual: str, *, error_code: str | None = None) -> None:
        super().__init__(message, error_code=error_code)
        self.expected = expected
        self.actual = actual


class EncodingFailure(FaultlineError):
    error_code = "ENC001"

    def __init__(self, message: str, encoding: str, *, error_code: str | None = None) -> None:
        super().__init__(message, error_code=error_code)
        self.encoding = encoding


class AuthenticationFailure(FaultlineError):
    """Caller is not authenticated."""


class AuthorizationFailure(FaultlineError):
    """Caller is authenticated but not allowed to perform the operation."""


class ResourceNotFound(FaultlineError):
    error_code = "RNF001"

    def __init__(
        self,
        message: str,
        resource_type: str | None = None,
        details: str | None = None,
        *,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code)
        self.resource_type = resource_type
        self.details = details if details is not None else message


class DuplicateEntry(FaultlineError):
    error_code = "DUP001"


class ResourceBusy(FaultlineError):
    error_code = "RB001"

    def __init__(self, message: str, resource_id: str | None = None, *, error_code: str | None = None) -> None:
        super().__init__(message, error_code=error_code)
        self.resource_id = resource_id


class StateConflict(FaultlineError):
    error_code = "STE001"

    def __init__(
        self,
        message: str,
        expected: str | None = None,
        actual: str | None = None,
        *,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code)
        self.expected = expected
        self.actual = actual


class Unsupported(FaultlineError):
    """The requested feature is not available."""


class ConfigurationFailure(FaultlineError):
    error_code = "CFG001"

    def __init__(
        self,
        message: str,
        config_file: str | None = None,
        section: str | None = None,
        *,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code)
        self.config_file = config_file
        self.section = section


class EnvironmentFailure(ConfigurationFailure):
    error_code = "ENV001"

    def __init__(self, message: str, variable: str | None = None, *, error_code: str | None = None) -> None:
        super().__init__(message, error_code=error_code)
        self.variable = variable


class InitializationFailure(FaultlineError):
    error_code = "INIT001"

    def __init__(self, message: str, component: str | None = None, *, error_code: str | None = None) -> None:
        super().__init__(message, error_code=error_code)
        self.component = component


class MemoryPressure(FaultlineError):
    error_code = "MEM001"

    def __init__(self, message: str, requested_bytes: int | None = None, *, error_code: str | None = None) -> None:
        super().__init__(message, error_code=error_code)
        self.requested_bytes = requested_bytes


class ResourceLeak(FaultlineError):
    error_code = "RL001"

    def __init__(self, message: str, resource_type: str | None = None, *, error_code: str | None = None) -> None:
        super().__init__(message, error_code=error_code)
        self.resource_type = resource_type


class NetworkFailure(FaultlineError):
    error_code = "NET001"


class DatabaseFailure(FaultlineError):
    error_code = "DB001"

    def __init__(
        self,
        message: str,
        details: str | None = None,
        sqlstate: str | None = None,
        *,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code)
        self.details = details if details is not None else message
        self.sqlstate = sqlstate


class RuntimeFailure(FaultlineError):
    """Known runtime failure identified by its own error code."""

    def __init__(self, message: str, error_code: str, details: str | None = None) -> None:
        super().__init__(message, error_code=error_code)
        self.details = details if details is not None else message
