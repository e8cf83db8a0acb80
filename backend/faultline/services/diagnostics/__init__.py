from __future__ import annotations

"""
Diagnostics and error classification utilities.

This package provides:
- taxonomy: the closed set of error kinds with their codes, HTTP statuses
  and exit codes
- error_classifier: classify any raw failure into a ClassifiedError through
  an ordered table of rules
- enrichment: timestamp and trace id for a single occurrence

The goal is to keep error handling logic centralized and deterministic.
"""

from .enrichment import Diagnostics, Occurrence, enrich, new_occurrence  # noqa: F401
from .error_classifier import RULES, Rule, classify  # noqa: F401
from .taxonomy import ClassifiedError, ErrorKind, ExitCode  # noqa: F401
