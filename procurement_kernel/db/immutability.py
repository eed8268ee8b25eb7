"""
ORM-level immutability enforcement.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                  | Rule
------------------------|--------------------------------------------------
PriceHistoryEntryModel  | Append-only: no UPDATE, no DELETE
Document headers        | sequence_number, created_by, user_id, created_at
  (all three types)     | are write-once; other fields stay editable

SQLAlchemy fires ``before_update`` / ``before_delete`` before the SQL is
sent.  The listeners below raise ImmutabilityViolationError, which aborts
the flush; the database is never modified.

===============================================================================
USAGE
===============================================================================

Called once at startup (the service facade does this):

    from procurement_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect

from procurement_kernel.exceptions import ImmutabilityViolationError
from procurement_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

WRITE_ONCE_HEADER_FIELDS = ("sequence_number", "created_by", "user_id", "created_at")


def _blocked(entity_type: str, entity_id: str, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_price_history_update(mapper, connection, target):
    raise _blocked(
        "PriceHistoryEntry",
        str(target.id),
        "UPDATE",
        "Price history entries are append-only and cannot be modified",
    )


def _check_price_history_delete(mapper, connection, target):
    raise _blocked(
        "PriceHistoryEntry",
        str(target.id),
        "DELETE",
        "Price history entries are append-only and cannot be deleted",
    )


def _check_header_write_once(mapper, connection, target):
    state = inspect(target)
    changed = [
        name
        for name in WRITE_ONCE_HEADER_FIELDS
        if state.attrs[name].history.has_changes()
    ]
    if changed:
        raise _blocked(
            type(target).__name__,
            str(target.id),
            "UPDATE",
            f"Write-once fields cannot change: {', '.join(changed)}",
        )


def _listeners():
    from procurement_kernel.models.documents import HEADER_MODELS
    from procurement_kernel.models.price_history import PriceHistoryEntryModel

    pairs = [
        (PriceHistoryEntryModel, "before_update", _check_price_history_update),
        (PriceHistoryEntryModel, "before_delete", _check_price_history_delete),
    ]
    for model in HEADER_MODELS.values():
        pairs.append((model, "before_update", _check_header_write_once))
    return pairs


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already registered are skipped.
    """
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring one that is not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate the rules.
    """
    for target, name, fn in _listeners():
        _safe_remove_listener(target, name, fn)
