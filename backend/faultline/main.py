# backend/faultline/main.py
from __future__ import annotations

"""
FastAPI application setup.

This module depends on:
- faultline.config.get_settings for configuration
- faultline.api.boundary for the error boundary every failure goes through
- faultline.api.api_router for route registration
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from faultline.api import api_router
from faultline.api.boundary import install_error_boundary
from faultline.config import Settings, configure_logging, get_settings
from faultline.services.rendering.sinks import fanout, logging_sink
from faultline.services.statsig_client import shutdown_statsig, statsig_error_sink


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )

    # ---- CORS ----

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(o) for o in settings.allowed_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---- Error boundary ----

    install_error_boundary(
        app,
        settings=settings,
        sink=fanout(logging_sink(logging.getLogger("faultline.errors")), statsig_error_sink()),
    )

    # ---- Routes ----

    app.include_router(api_router, prefix="/api")

    # ---- Lifecycle ----

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        shutdown_statsig()

    # ---- Healthcheck ----

    @app.get("/health", tags=["health"])
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
