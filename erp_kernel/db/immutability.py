"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Both ledgers are append-mostly.  A posted journal entry is corrected by
voiding it, never by editing its lines; an inventory movement is corrected
by appending a counter-transaction, never by editing or deleting the row.
Services already respect these rules; this module makes the ORM refuse to
break them even when code bypasses the services.

    session.flush()
         |
         v
    [before_flush]  --> _check_reference_deletion() --> ReferencedEntityError
         |
         v
    [before_update / before_delete / before_insert]
         |          --> _check_*() --> ImmutabilityViolationError
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                | When Immutable                  | Allowed changes
----------------------|---------------------------------|--------------------------------
JournalEntry          | status POSTED                   | POSTED -> VOIDED with void fields
JournalEntry          | status VOIDED                   | none
JournalLine           | parent entry not DRAFT          | none (no insert/update/delete)
InventoryTransaction  | ALWAYS (from creation)          | none
Account               | referenced by a journal line    | no hard delete
Item / Warehouse      | referenced by a transaction     | no hard delete

===============================================================================
DESIGN DECISIONS
===============================================================================

1. updated_at/updated_by_id may always change: they are audit metadata,
   not ledger data.

2. The "was posted" test reads SQLAlchemy attribute history, so the posting
   transition itself (DRAFT -> POSTED) and the void transition
   (POSTED -> VOIDED) pass while any later edit is blocked.

3. Line checks read the parent's status through the flush connection
   rather than the in-memory relationship, because a line removed from its
   entry's collection no longer has ``entry`` set.

4. Inline model imports avoid the models <-> db import cycle.

===============================================================================
USAGE
===============================================================================

    from erp_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event, func, inspect, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from erp_kernel.exceptions import ImmutabilityViolationError, ReferencedEntityError
from erp_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id", "version"})
_VOID_FIELDS = frozenset({"status", "voided_at", "voided_by_id", "void_reason"})


def _blocked(entity_type: str, entity_id: object, operation: str, reason: str, **extra):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            **extra,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_reference_deletion(session, flush_context, instances):
    """
    Refuse hard deletion of reference data that ledger history points at.

    Runs in SessionEvents.before_flush, before the flush plan is fixed.
    """
    from erp_kernel.models.account import Account
    from erp_kernel.models.inventory import InventoryTransaction, Item, Warehouse
    from erp_kernel.models.journal import JournalLine

    checks = (
        (Account, JournalLine.account_id, "journal lines"),
        (Item, InventoryTransaction.item_id, "inventory transactions"),
        (Warehouse, InventoryTransaction.warehouse_id, "inventory transactions"),
    )

    for obj in list(session.deleted):
        for model, ref_column, ref_label in checks:
            if not isinstance(obj, model):
                continue
            with session.no_autoflush:
                count = session.execute(
                    select(func.count()).where(ref_column == obj.id)
                ).scalar_one()
            if count:
                logger.error(
                    "reference_deletion_blocked",
                    extra={
                        "entity_type": model.__name__,
                        "entity_id": str(obj.id),
                        "reference_count": count,
                    },
                )
                raise ReferencedEntityError(
                    entity_type=model.__name__,
                    entity_id=str(obj.id),
                    reason=f"referenced by {count} {ref_label}",
                )


def _status_before_flush(target):
    """Status as loaded from the database, ignoring pending changes."""
    from erp_kernel.domain.journal_state import JournalEntryStatus

    history = get_history(target, "status")
    if history.deleted:
        return JournalEntryStatus(history.deleted[0])
    if history.unchanged:
        return JournalEntryStatus(history.unchanged[0])
    return JournalEntryStatus(target.status)


def _check_journal_entry_update(mapper, connection, target):
    """
    Block edits of posted or voided entries.

    DRAFT entries change freely.  A POSTED entry may only move to VOIDED
    (status plus void fields).  A VOIDED entry is final.
    """
    from erp_kernel.domain.journal_state import JournalEntryStatus

    previous = _status_before_flush(target)
    if previous is JournalEntryStatus.DRAFT:
        return

    allowed = set(_AUDIT_FIELDS)
    if previous is JournalEntryStatus.POSTED and target.status == JournalEntryStatus.VOIDED:
        allowed |= _VOID_FIELDS

    for attr in inspect(target).attrs:
        if attr.key in allowed:
            continue
        if attr.history.has_changes():
            raise _blocked(
                "JournalEntry",
                target.id,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on {previous.value} journal entry",
                field=attr.key,
            )


def _check_journal_entry_delete(mapper, connection, target):
    from erp_kernel.domain.journal_state import JournalEntryStatus

    if _status_before_flush(target) is not JournalEntryStatus.DRAFT:
        raise _blocked(
            "JournalEntry",
            target.id,
            "DELETE",
            "Only draft journal entries can be deleted",
        )


def _parent_status(connection, journal_entry_id):
    from erp_kernel.models.journal import JournalEntry

    return connection.execute(
        select(JournalEntry.status).where(JournalEntry.id == journal_entry_id)
    ).scalar_one_or_none()


def _check_journal_line_write(operation):
    def _check(mapper, connection, target):
        from erp_kernel.domain.journal_state import JournalEntryStatus

        status = _parent_status(connection, target.journal_entry_id)
        if status is not None and JournalEntryStatus(status) is not JournalEntryStatus.DRAFT:
            raise _blocked(
                "JournalLine",
                target.id,
                operation,
                f"Journal lines cannot change once the entry is {JournalEntryStatus(status).value}",
            )

    _check.__name__ = f"_check_journal_line_{operation.lower()}"
    return _check


_check_journal_line_insert = _check_journal_line_write("INSERT")
_check_journal_line_update = _check_journal_line_write("UPDATE")
_check_journal_line_delete = _check_journal_line_write("DELETE")


def _check_inventory_transaction_update(mapper, connection, target):
    """Inventory transactions are append-only; only audit metadata may change."""
    for attr in inspect(target).attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            raise _blocked(
                "InventoryTransaction",
                target.id,
                "UPDATE",
                "Inventory transactions are immutable; record a counter-transaction instead",
                field=attr.key,
            )


def _check_inventory_transaction_delete(mapper, connection, target):
    raise _blocked(
        "InventoryTransaction",
        target.id,
        "DELETE",
        "Inventory transactions cannot be deleted",
    )


def _listeners():
    from erp_kernel.models.inventory import InventoryTransaction
    from erp_kernel.models.journal import JournalEntry, JournalLine

    return (
        (Session, "before_flush", _check_reference_deletion),
        (JournalEntry, "before_update", _check_journal_entry_update),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalLine, "before_insert", _check_journal_line_insert),
        (JournalLine, "before_update", _check_journal_line_update),
        (JournalLine, "before_delete", _check_journal_line_delete),
        (InventoryTransaction, "before_update", _check_inventory_transaction_update),
        (InventoryTransaction, "before_delete", _check_inventory_transaction_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call after the models are importable and before any database
    operations begin.  Calling twice is harmless.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that deliberately violate the rules.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
