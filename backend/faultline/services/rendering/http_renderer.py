from __future__ import annotations

"""backend/faultline/services/rendering/http_renderer.py

Render an occurrence as an HTTP error response.

The returned HttpRepresentation is plain data (status, body, serialized
content, media type, headers); turning it into a framework response is the
boundary's job. Rendering never raises: if the body cannot be serialized the
result is a fixed plain-text 500.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from faultline.schemas import ErrorBody
from faultline.services.diagnostics.enrichment import Occurrence
from faultline.services.diagnostics.taxonomy import ClassifiedError, ErrorKind, http_status_for
from faultline.services.rendering.sinks import ErrorRecord, ErrorSink, emit

logger = logging.getLogger(__name__)

HANDLER_VERSION = "3.0"
HANDLER_VERSION_HEADER = "X-Error-Handler-Version"
TRACE_ID_HEADER = "X-Trace-Id"

JSON_MEDIA_TYPE = "application/json"
TEXT_MEDIA_TYPE = "text/plain"

SAFE_DETAILS = "Internal server error"
FALLBACK_STATUS = 500
FALLBACK_CONTENT = b"Internal server error"


@dataclass(frozen=True)
class HttpRepresentation:
    status: int
    body: Optional[Dict[str, Any]]
    content: bytes
    media_type: str
    headers: Mapping[str, str] = field(default_factory=dict)


def _details(classified: ClassifiedError, include_details: bool) -> Any:
    # Field-level validation messages are user-actionable and always shown.
    if classified.kind is ErrorKind.VALIDATION:
        return classified.field_errors
    if include_details:
        return classified.detail
    return SAFE_DETAILS


def _headers(occurrence: Occurrence, handler_version: str) -> Dict[str, str]:
    return {
        HANDLER_VERSION_HEADER: handler_version,
        TRACE_ID_HEADER: occurrence.trace_id,
    }


def _fallback(headers: Dict[str, str]) -> HttpRepresentation:
    return HttpRepresentation(
        status=FALLBACK_STATUS,
        body=None,
        content=FALLBACK_CONTENT,
        media_type=TEXT_MEDIA_TYPE,
        headers=headers,
    )


def render_http(
    classified: ClassifiedError,
    occurrence: Occurrence,
    include_details: bool,
    sink: Optional[ErrorSink] = None,
    handler_version: str = HANDLER_VERSION,
) -> HttpRepresentation:
    """Build the HTTP response for one occurrence and report it to ``sink``."""
    status = http_status_for(classified.kind)

    emit(
        sink,
        ErrorRecord(
            kind=classified.kind.value,
            code=classified.code,
            message=classified.message,
            trace_id=occurrence.trace_id,
            status=status,
        ),
    )

    headers = _headers(occurrence, handler_version)
    try:
        body = ErrorBody(
            exception_type=classified.kind.value,
            code=status,
            message=classified.message,
            details=_details(classified, include_details),
            error_code=classified.code,
            timestamp=occurrence.timestamp_text,
            trace_id=occurrence.trace_id,
        )
        content = body.model_dump_json(by_alias=True).encode("utf-8")
        payload = body.model_dump(by_alias=True)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Error body serialization failed, using plain-text fallback: %s", exc)
        return _fallback(headers)

    return HttpRepresentation(
        status=status,
        body=payload,
        content=content,
        media_type=JSON_MEDIA_TYPE,
        headers=headers,
    )
