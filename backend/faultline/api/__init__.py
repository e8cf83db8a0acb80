# backend/faultline/api/__init__.py
from __future__ import annotations

"""
HTTP routes.

`api_router` collects the read-only taxonomy routes; the app mounts it under
`/api`. The error boundary itself lives in `faultline.api.boundary` and is
installed on the app, not on the router.
"""

from fastapi import APIRouter

from . import kinds

api_router = APIRouter()
api_router.include_router(kinds.router)
