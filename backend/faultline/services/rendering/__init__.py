from __future__ import annotations

"""
Renderers that turn an occurrence into a surface-specific representation.

- http_renderer: status code + JSON body for the FastAPI service
- cli_renderer: exit code + console lines for the command-line tool
- sinks: the injected reporting capability renderers emit records to
"""

from .cli_renderer import CliRepresentation, render_cli  # noqa: F401
from .http_renderer import HttpRepresentation, render_http  # noqa: F401
from .sinks import ErrorRecord, ErrorSink, fanout, logging_sink  # noqa: F401
