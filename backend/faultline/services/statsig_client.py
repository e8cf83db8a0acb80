"""Lightweight Statsig integration: error occurrences as telemetry events."""
from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from statsig.statsig_event import StatsigEvent
from statsig.statsig_options import StatsigOptions
from statsig.statsig_server import StatsigServer
from statsig.statsig_user import StatsigUser

from faultline.config import get_settings
from faultline.services.rendering.sinks import ErrorRecord

logger = logging.getLogger(__name__)

ERROR_EVENT_NAME = "error_occurrence"


class _StatsigAdapter:
    def __init__(self, secret_key: str | None, environment: str, client: Any = None):
        self._client: Any = client
        if client is not None or not secret_key:
            return

        try:
            server = StatsigServer()
            server.initialize(secret_key, StatsigOptions(tier=environment))
            self._client = server
        except Exception as exc:  # noqa: BLE001
            logger.warning("Statsig initialization failed: %s", exc)
            self._client = None

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def log_event(
        self,
        *,
        user_id: str,
        event_name: str,
        value: float | int | str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if not self._client:
            return

        try:
            self._client.log_event(
                StatsigEvent(StatsigUser(user_id), event_name, value=value, metadata=metadata)
            )
        except Exception as exc:  # noqa: BLE001
            logger.debug("Statsig event failed: %s", exc)

    def shutdown(self) -> None:
        if not self._client:
            return

        try:
            self._client.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Statsig shutdown failed: %s", exc)

    def error_sink(self, record: ErrorRecord) -> None:
        """ErrorSink that reports one event per rendered error."""
        metadata = {k: str(v) for k, v in asdict(record).items() if v is not None}
        self.log_event(
            user_id="faultline",
            event_name=ERROR_EVENT_NAME,
            value=record.kind,
            metadata=metadata,
        )


_statsig_client: _StatsigAdapter | None = None


def get_statsig_client() -> _StatsigAdapter:
    global _statsig_client
    if _statsig_client is None:
        settings = get_settings()
        _statsig_client = _StatsigAdapter(
            settings.statsig_server_secret, settings.environment
        )
    return _statsig_client


def statsig_error_sink() -> Any:
    """The Statsig sink when telemetry is configured, else None."""
    client = get_statsig_client()
    return client.error_sink if client.enabled else None


def shutdown_statsig() -> None:
    client = get_statsig_client()
    client.shutdown()
