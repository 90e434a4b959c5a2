"""Errors raised while generating interview reports."""
from __future__ import annotations


class ReportInputError(ValueError):
    """Raised when a report job references a session that cannot be scored."""


__all__ = ["ReportInputError"]
