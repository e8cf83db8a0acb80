# backend/faultline/__init__.py
from __future__ import annotations

"""
Marks `faultline` as a Python package.

The error boundary pieces live in faultline/services (diagnostics and
rendering), the HTTP surface in faultline/api and faultline/main, and the
command-line surface in faultline/cli and faultline/commands.
"""

__version__ = "0.1.0"
