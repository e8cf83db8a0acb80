from __future__ import annotations

"""backend/faultline/services/diagnostics/enrichment.py

Per-occurrence diagnostic metadata: a UTC timestamp and a random trace id.

Trace ids come from ``secrets`` (the OS CSPRNG), which is safe to call from
any number of threads at once. Nothing here is persisted.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from faultline.services.diagnostics.taxonomy import ClassifiedError

TRACE_ID_BYTES = 16


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_trace_id() -> str:
    """Return 128 random bits as 32 lowercase hex characters."""
    return secrets.token_hex(TRACE_ID_BYTES)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Diagnostics:
    timestamp: datetime
    trace_id: str


@dataclass(frozen=True)
class Occurrence:
    """A classified error plus the metadata of this particular occurrence."""

    classified: ClassifiedError
    timestamp: datetime
    trace_id: str

    @property
    def timestamp_text(self) -> str:
        return format_timestamp(self.timestamp)


def enrich(
    clock: Callable[[], datetime] = _utcnow,
    token: Callable[[], str] = new_trace_id,
) -> Diagnostics:
    return Diagnostics(timestamp=clock(), trace_id=token())


def new_occurrence(
    classified: ClassifiedError,
    diagnostics: Optional[Diagnostics] = None,
) -> Occurrence:
    diagnostics = diagnostics or enrich()
    return Occurrence(
        classified=classified,
        timestamp=diagnostics.timestamp,
        trace_id=diagnostics.trace_id,
    )
