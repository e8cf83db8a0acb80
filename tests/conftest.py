"""Shared fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from faultline.config import get_settings
from faultline.services import statsig_client
from faultline.services.diagnostics.enrichment import Diagnostics

_ENV_VARS = (
    "DEBUG",
    "NO_COLOR",
    "INCLUDE_ERROR_DETAILS",
    "ERROR_HANDLER_VERSION",
    "LOG_LEVEL",
    "STATSIG_SERVER_SECRET",
)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from the caller's environment and cached settings."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(statsig_client, "_statsig_client", None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fixed_diagnostics() -> Diagnostics:
    return Diagnostics(
        timestamp=datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc),
        trace_id="0123456789abcdef0123456789abcdef",
    )

