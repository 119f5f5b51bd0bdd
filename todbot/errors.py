"""
todbot.errors — Error Taxonomy
===============================

Every failure a service can report to its caller.  Cogs translate these
into plain-language ephemeral replies; nothing here is retried
automatically.
"""

from __future__ import annotations


class TodError(Exception):
    """Base class for all todbot service errors."""


class ValidationError(TodError):
    """Empty or oversized text, or an unknown category."""


class NotFoundError(TodError):
    """The referenced prompt or submission does not exist."""


class ConflictError(TodError):
    """The submission was already resolved by someone else."""


class IdExhaustionError(TodError):
    """No unique identifier could be generated within the retry budget.

    Should never happen at realistic table sizes; treat as an alert.
    """


class StoreError(TodError):
    """Unclassified persistence failure (wraps the SQLAlchemy error)."""
