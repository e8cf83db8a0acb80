"""Test helpers."""

from __future__ import annotations


def raised(exc: BaseException) -> BaseException:
    """Raise and catch ``exc`` so it carries a traceback."""
    try:
        raise exc
    except BaseException as caught:  # noqa: BLE001
        return caught
