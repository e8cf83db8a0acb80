# backend/faultline/api/boundary.py
from __future__ import annotations

"""
HTTP error boundary for FastAPI applications.

install_error_boundary registers one handler for every failure that can
escape a route: plain exceptions, Starlette/FastAPI HTTPException (including
the framework's own 404/405) and request validation errors. Each failure is
classified once, enriched with a timestamp and trace id, and rendered as the
JSON error body.

Handlers for ``Exception`` run inside Starlette's ServerErrorMiddleware,
which sends our response and then re-raises so the server can log it. Test
clients should be created with ``raise_server_exceptions=False``.
"""

import logging
from typing import Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from faultline.config import Settings, get_settings
from faultline.services.diagnostics import classify, new_occurrence
from faultline.services.rendering.http_renderer import HANDLER_VERSION, render_http
from faultline.services.rendering.sinks import ErrorSink, logging_sink

logger = logging.getLogger(__name__)


def _carried_headers(exc: BaseException) -> Mapping[str, str]:
    headers = getattr(exc, "headers", None)
    if not isinstance(headers, Mapping):
        return {}
    return {str(k): str(v) for k, v in headers.items()}


def handle_failure(
    exc: BaseException,
    *,
    include_details: bool,
    sink: Optional[ErrorSink] = None,
    handler_version: str = HANDLER_VERSION,
) -> Response:
    """classify -> enrich -> render_http, wrapped into a Starlette Response."""
    classified = classify(exc)
    occurrence = new_occurrence(classified)
    representation = render_http(
        classified,
        occurrence,
        include_details,
        sink=sink,
        handler_version=handler_version,
    )
    # Headers the failure carries (WWW-Authenticate, Allow, ...) survive;
    # the renderer's own headers win on conflict.
    own = {name.lower() for name in representation.headers}
    headers = {k: v for k, v in _carried_headers(exc).items() if k.lower() not in own}
    headers.update(representation.headers)
    return Response(
        content=representation.content,
        status_code=representation.status,
        media_type=representation.media_type,
        headers=headers,
    )


def install_error_boundary(
    app: FastAPI,
    *,
    settings: Optional[Settings] = None,
    sink: Optional[ErrorSink] = None,
) -> None:
    settings = settings or get_settings()
    sink = sink or logging_sink(logger)

    async def _handler(request: Request, exc: Exception) -> Response:
        return handle_failure(
            exc,
            include_details=settings.include_error_details,
            sink=sink,
            handler_version=settings.error_handler_version,
        )

    app.add_exception_handler(RequestValidationError, _handler)
    app.add_exception_handler(StarletteHTTPException, _handler)
    app.add_exception_handler(Exception, _handler)
