from __future__ import annotations

"""backend/faultline/config/settings.py

Application configuration using environment-driven settings.

This module centralizes:
- service identity and CORS configuration
- the flags the error boundaries hand to the renderers
  (include_error_details for HTTP, debug for CLI stack traces)
- console colour handling
- logging level and optional Statsig telemetry

Only the boundaries (faultline.api.boundary, faultline.cli) read settings;
the classifier and renderers receive plain booleans.
"""
from functools import lru_cache
from typing import List

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  app_name: str = "faultline"
  environment: str = "development"

  # CORS
  allowed_origins: List[AnyHttpUrl] = [
      "http://localhost:3000",
      "http://127.0.0.1:3000",
  ]

  # HTTP error responses: expose raw failure details (never enable in production)
  include_error_details: bool = False
  error_handler_version: str = "3.0"

  # CLI: DEBUG=1 shows stack traces, NO_COLOR=1 disables ANSI colours
  debug: bool = False
  no_color: bool = False

  log_level: str = "INFO"

  # Telemetry is disabled unless a server secret is configured
  statsig_server_secret: str | None = None

  model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Return a cached Settings instance."""
  return Settings()
