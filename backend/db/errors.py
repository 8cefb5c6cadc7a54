"""Database error helpers."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION_SQLSTATE = "23505"


def _error_text(error: IntegrityError) -> str:
    original = getattr(error, "orig", None)
    return str(original or error).lower()


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError indicates a unique-constraint conflict."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = _error_text(error)
    return "duplicate key" in message or "unique constraint" in message


def violated_column(error: IntegrityError, candidates: Iterable[str]) -> str | None:
    """Best-effort guess of which unique column a conflict was raised for.

    PostgreSQL names the column in the ``Key (...)`` detail, SQLite as
    ``table.column``; both end up in the driver message.
    """
    if not is_unique_violation(error):
        return None
    message = _error_text(error)
    for column in candidates:
        if f"({column})" in message or f".{column}" in message or f"_{column}" in message:
            return column
    return None


__all__ = ["is_unique_violation", "violated_column"]
