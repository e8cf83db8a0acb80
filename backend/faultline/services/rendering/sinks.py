from __future__ import annotations

"""backend/faultline/services/rendering/sinks.py

Error sinks: where renderers report that an error was rendered.

A sink is any callable taking an ErrorRecord. Renderers receive the sink as
an argument instead of reaching for a global logger, so tests can pass a
list's ``append`` and inspect what was emitted.

Emission is fire-and-forget: ``emit`` swallows (and debug-logs) anything a
sink raises, so a broken sink can never change what the caller renders.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorRecord:
    kind: str
    code: str
    message: str
    trace_id: str
    status: Optional[int] = None
    exit_code: Optional[int] = None


ErrorSink = Callable[[ErrorRecord], None]


def logging_sink(target: Optional[logging.Logger] = None) -> ErrorSink:
    """Adapt a stdlib logger into a sink; one ERROR record per occurrence."""
    target = target or logging.getLogger("faultline.errors")

    def _sink(record: ErrorRecord) -> None:
        target.error(
            "%s [%s] %s (trace_id=%s)",
            record.kind,
            record.code,
            record.message,
            record.trace_id,
            extra={"error_record": asdict(record)},
        )

    return _sink


def fanout(*sinks: Optional[ErrorSink]) -> ErrorSink:
    """Combine sinks; each one is isolated from failures of the others."""
    active = [s for s in sinks if s is not None]

    def _sink(record: ErrorRecord) -> None:
        for sink in active:
            emit(sink, record)

    return _sink


def emit(sink: Optional[ErrorSink], record: ErrorRecord) -> None:
    if sink is None:
        return
    try:
        sink(record)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Error sink failed: %s", exc)
