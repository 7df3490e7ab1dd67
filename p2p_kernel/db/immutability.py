"""
ORM-level append-only enforcement for the ledger.

Journal entries are immutable from the moment they are written: no field
changes and no deletes.  Corrections are new entries (reversals).  Accounts
keep their class once any journal line references them, because changing
the class would silently reclassify posted balances.

SQLAlchemy fires mapper events before UPDATE/DELETE reaches the database:

    session.flush()
         |
         v
    [before_update] --> _check_*() --> ImmutabilityViolationError
    [before_delete] --> _check_*() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Usage:

    from p2p_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup, idempotent

Bulk ``session.execute(update(...))`` statements bypass mapper events; the
ledger services never issue them against journal tables.
"""

from sqlalchemy import event, func, select
from sqlalchemy.orm.attributes import get_history

from p2p_kernel.exceptions import ImmutabilityViolationError
from p2p_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _blocked(entity_type: str, entity_id, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_journal_entry_update(mapper, connection, target):
    from sqlalchemy import inspect

    for attr in inspect(target).attrs:
        if attr.key in _AUDIT_FIELDS or attr.key == "lines":
            continue
        if attr.history.has_changes():
            raise _blocked(
                "JournalEntry", target.id, "UPDATE",
                f"Cannot modify field '{attr.key}' on a posted journal entry",
            )


def _check_journal_entry_delete(mapper, connection, target):
    raise _blocked(
        "JournalEntry", target.id, "DELETE",
        "Posted journal entries cannot be deleted",
    )


def _check_journal_line_update(mapper, connection, target):
    raise _blocked(
        "JournalLine", target.id, "UPDATE",
        "Journal lines cannot be modified",
    )


def _check_journal_line_delete(mapper, connection, target):
    raise _blocked(
        "JournalLine", target.id, "DELETE",
        "Journal lines cannot be deleted",
    )


def _check_account_class_change(mapper, connection, target):
    """Block reclassification of an account that posted lines reference."""
    from p2p_kernel.models.journal import JournalLine

    history = get_history(target, "account_class")
    if not history.deleted:
        return

    referenced = connection.execute(
        select(func.count())
        .select_from(JournalLine)
        .where(JournalLine.account_id == target.id)
    ).scalar_one()
    if referenced:
        raise _blocked(
            "Account", target.id, "UPDATE",
            f"Account class is fixed once referenced by {referenced} journal line(s)",
        )


_LISTENERS = (
    ("JournalEntry", "before_update", _check_journal_entry_update),
    ("JournalEntry", "before_delete", _check_journal_entry_delete),
    ("JournalLine", "before_update", _check_journal_line_update),
    ("JournalLine", "before_delete", _check_journal_line_delete),
    ("Account", "before_update", _check_account_class_change),
)


def _targets() -> dict:
    from p2p_kernel.models.account import Account
    from p2p_kernel.models.journal import JournalEntry, JournalLine

    return {"JournalEntry": JournalEntry, "JournalLine": JournalLine, "Account": Account}


def register_immutability_listeners() -> None:
    """Register all append-only listeners (idempotent)."""
    targets = _targets()
    for name, event_name, fn in _LISTENERS:
        if not event.contains(targets[name], event_name, fn):
            event.listen(targets[name], event_name, fn)


def unregister_immutability_listeners() -> None:
    """Remove the listeners. TESTS ONLY."""
    targets = _targets()
    for name, event_name, fn in _LISTENERS:
        if event.contains(targets[name], event_name, fn):
            event.remove(targets[name], event_name, fn)
