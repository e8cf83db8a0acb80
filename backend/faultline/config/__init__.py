# backend/faultline/config/__init__.py
from __future__ import annotations

"""
Settings and logging setup used by the HTTP and CLI boundaries.
"""

from .logs import configure_logging  # noqa: F401
from .settings import Settings, get_settings  # noqa: F401
