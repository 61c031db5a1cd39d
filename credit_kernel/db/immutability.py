"""
ORM-Level Immutability Enforcement for append-only records.

Ledger entries (repayments) must never change after they are written: the
loan's repaid amount is the sum of its payments, and an edited or deleted
payment would silently break that equality.

HOW IT WORKS

SQLAlchemy fires mapper events before UPDATE/DELETE reaches the database.
Any model that declares ``__immutable__ = True`` is covered:

    session.flush()
         |
         v
    [before_update event] --> _check_immutable_update() --> ImmutabilityViolationError
         |
    [before_delete event] --> _check_immutable_delete() --> ImmutabilityViolationError

If a check fails the flush is aborted and the database is never modified.
"""

from sqlalchemy import event

from credit_kernel.db.base import Base
from credit_kernel.exceptions import ImmutabilityViolationError
from credit_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _is_immutable(target) -> bool:
    return bool(getattr(type(target), "__immutable__", False))


def _check_immutable_update(mapper, connection, target):
    """Prevent any update to an append-only record."""
    if not _is_immutable(target):
        return

    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason="Ledger entries are immutable and cannot be modified",
    )


def _check_immutable_delete(mapper, connection, target):
    """Prevent deletion of an append-only record."""
    if not _is_immutable(target):
        return

    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason="Ledger entries cannot be deleted",
    )


def register_immutability_listeners() -> None:
    """
    Register immutability enforcement listeners (idempotent).

    Call after all models are imported but before any database writes.
    """
    if not event.contains(Base, "before_update", _check_immutable_update):
        event.listen(Base, "before_update", _check_immutable_update, propagate=True)
    if not event.contains(Base, "before_delete", _check_immutable_delete):
        event.listen(Base, "before_delete", _check_immutable_delete, propagate=True)


def unregister_immutability_listeners() -> None:
    """
    Remove immutability enforcement listeners.

    WARNING: Only use this in tests that intentionally violate the rules.
    """
    if event.contains(Base, "before_update", _check_immutable_update):
        event.remove(Base, "before_update", _check_immutable_update)
    if event.contains(Base, "before_delete", _check_immutable_delete):
        event.remove(Base, "before_delete", _check_immutable_delete)
