"""Optimistic find-or-create helpers backed by unique constraints."""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """True when the IntegrityError came from a unique constraint/index."""
    orig = error.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    message = str(orig) if orig else str(error)
    return "UNIQUE constraint failed" in message or "unique constraint" in message.lower()


def create_or_reread(
    db: Session,
    create: Callable[[], T],
    reread: Callable[[], T | None],
    *,
    label: str = "row",
) -> tuple[T, bool]:
    """
    Attempt an insert; on a unique-constraint conflict return the winning row.

    `create` must add and return the new row; it is flushed inside a SAVEPOINT
    so a conflict only rolls back this insert and the caller's unit of work
    stays usable. `reread` is called after a conflict and must return the row
    that won the race.

    Returns:
        (row, created) where created is False when the row already existed.

    Raises:
        IntegrityError: For non-unique violations, or when the conflicting row
            cannot be read back.
    """
    try:
        with db.begin_nested():
            row = create()
            db.flush()
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        existing = reread()
        if existing is None:
            raise
        logger.info("Unique conflict creating %s; reusing existing row", label)
        return existing, False
    return row, True
