"""
ORM-level immutability enforcement for posted ledger records.

===============================================================================
WHY THIS EXISTS
===============================================================================

Posted journal entries are the ledger.  They are never edited; they are
reversed by a new entry that leaves a visible trail.  The Journal Entry
Manager refuses illegal transitions up front, but any code holding a
Session could still mutate a loaded row and flush it.  These listeners
catch that at flush time, before any SQL reaches the database.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_insert] --> _check_journal_line_insert() -> ImmutabilityViolationError
         |
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Entry checks read SQLAlchemy attribute history so that the lifecycle
transitions themselves (DRAFT -> POSTED, POSTED -> VOID) are allowed while
anything after them is not.  Line checks read the parent's status from the
database: the lines of an entry are priced and flushed while the entry is
still DRAFT, and never touched after.  No line may be added to an entry
that is already POSTED or VOID in the database.

Queries here use Core table objects, never raw SQL text, so that the
tenant ``schema_translate_map`` on the flushing connection applies.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity        | When Immutable                     | Allowed changes
--------------|------------------------------------|-----------------------------
JournalEntry  | status POSTED                      | POSTED -> VOID with void
              |                                    | marker fields only
JournalEntry  | status VOID                        | none
JournalLine   | parent entry not DRAFT             | none
Account       | account_type once posted lines     | everything else
              | reference the account              |
FiscalPeriod  | status CLOSED                      | none (never reopens)

``updated_at`` / ``updated_by_id`` are audit metadata and may always change.

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup; idempotent

Tests that need to plant corrupt data may call
``unregister_immutability_listeners()`` and must re-register afterwards.
"""

from sqlalchemy import event, inspect, select
from sqlalchemy.orm.attributes import NO_VALUE, get_history

from ledger_kernel.domain.dtos import EntryStatus, PeriodStatus
from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})

# Fields the void transition writes on the original entry
_VOID_FIELDS = frozenset({
    "status",
    "reversed_by_entry_id",
    "voided_at",
    "voided_by_id",
    "void_reason",
})


def _blocked(entity_type: str, entity_id, operation: str, reason: str, **fields):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            **fields,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _previous_value(target, key: str):
    """Value of ``key`` before the pending change (or current if unchanged)."""
    history = get_history(target, key)
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return getattr(target, key)


def _changed_fields(target) -> list[str]:
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _entry_status_in_db(connection, entry_id) -> EntryStatus | None:
    from ledger_kernel.models.journal import JournalEntry

    table = JournalEntry.__table__
    status = connection.execute(
        select(table.c.status).where(table.c.id == entry_id)
    ).scalar_one_or_none()
    return EntryStatus(status) if status is not None else None


# =============================================================================
# JournalEntry
# =============================================================================


def _check_journal_entry_immutability(mapper, connection, target):
    """
    Block updates to POSTED or VOID entries.

    DRAFT entries change freely, including DRAFT -> POSTED.  A POSTED entry
    may only become VOID, touching the void marker fields.  VOID is terminal.
    """
    old_status = EntryStatus(_previous_value(target, "status"))
    if old_status == EntryStatus.DRAFT:
        return

    changed = _changed_fields(target)
    if not changed:
        return

    if old_status == EntryStatus.POSTED and EntryStatus(target.status) == EntryStatus.VOID:
        illegal = [f for f in changed if f not in _VOID_FIELDS]
        if not illegal:
            return
        changed = illegal

    raise _blocked(
        "JournalEntry",
        target.id,
        "UPDATE",
        f"Cannot modify field(s) {changed} on {old_status.value} journal entry",
        fields=changed,
    )


def _check_journal_entry_delete(mapper, connection, target):
    old_status = EntryStatus(_previous_value(target, "status"))
    if old_status != EntryStatus.DRAFT:
        raise _blocked(
            "JournalEntry",
            target.id,
            "DELETE",
            f"{old_status.value} journal entries cannot be deleted",
        )


# =============================================================================
# JournalLine
# =============================================================================


def _check_journal_line_insert(mapper, connection, target):
    """
    Block new lines on an entry that is already POSTED or VOID.

    An entry inserted in the same flush, such as a reversal created POSTED
    together with its lines, is still pending and may take lines.
    """
    parent = inspect(target).attrs.entry.loaded_value
    if parent is not NO_VALUE and parent is not None and inspect(parent).pending:
        return

    status = _entry_status_in_db(connection, target.journal_entry_id)
    if status is not None and status != EntryStatus.DRAFT:
        raise _blocked(
            "JournalLine",
            target.id,
            "INSERT",
            f"Journal lines cannot be added once the entry is {status.value}",
        )


def _check_journal_line_immutability(mapper, connection, target):
    status = _entry_status_in_db(connection, target.journal_entry_id)
    if status is not None and status != EntryStatus.DRAFT:
        raise _blocked(
            "JournalLine",
            target.id,
            "UPDATE",
            f"Journal lines cannot be modified once the entry is {status.value}",
        )


def _check_journal_line_delete(mapper, connection, target):
    status = _entry_status_in_db(connection, target.journal_entry_id)
    if status is not None and status != EntryStatus.DRAFT:
        raise _blocked(
            "JournalLine",
            target.id,
            "DELETE",
            f"Journal lines cannot be deleted once the entry is {status.value}",
        )


# =============================================================================
# Account
# =============================================================================


def account_has_posted_lines(connection, account_id) -> bool:
    """True if any POSTED or VOID entry has a line on ``account_id``."""
    from ledger_kernel.models.journal import JournalEntry, JournalLine

    lines = JournalLine.__table__
    entries = JournalEntry.__table__
    found = connection.execute(
        select(lines.c.id)
        .join(entries, lines.c.journal_entry_id == entries.c.id)
        .where(
            lines.c.account_id == account_id,
            entries.c.status.in_([EntryStatus.POSTED.value, EntryStatus.VOID.value]),
        )
        .limit(1)
    ).first()
    return found is not None


def _check_account_structural_immutability(mapper, connection, target):
    changed = [
        key
        for key in ("account_type", "normal_balance")
        if get_history(target, key).has_changes()
    ]
    if not changed:
        return

    if account_has_posted_lines(connection, target.id):
        raise _blocked(
            "Account",
            target.id,
            "UPDATE",
            f"Cannot modify {changed} on an account referenced by posted entries",
            fields=changed,
        )


# =============================================================================
# FiscalPeriod
# =============================================================================


def _check_fiscal_period_immutability(mapper, connection, target):
    old_status = PeriodStatus(_previous_value(target, "status"))
    if old_status == PeriodStatus.OPEN:
        return

    changed = _changed_fields(target)
    if changed:
        raise _blocked(
            "FiscalPeriod",
            target.id,
            "UPDATE",
            f"Cannot modify field(s) {changed} on closed period {target.period_code}",
            fields=changed,
        )


def _check_fiscal_period_delete(mapper, connection, target):
    if PeriodStatus(_previous_value(target, "status")) == PeriodStatus.CLOSED:
        raise _blocked(
            "FiscalPeriod",
            target.id,
            "DELETE",
            f"Closed period {target.period_code} cannot be deleted",
        )


# =============================================================================
# Registration
# =============================================================================


def _listeners():
    from ledger_kernel.models.account import Account
    from ledger_kernel.models.fiscal_period import FiscalPeriod
    from ledger_kernel.models.journal import JournalEntry, JournalLine

    return (
        (JournalEntry, "before_update", _check_journal_entry_immutability),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalLine, "before_insert", _check_journal_line_insert),
        (JournalLine, "before_update", _check_journal_line_immutability),
        (JournalLine, "before_delete", _check_journal_line_delete),
        (Account, "before_update", _check_account_structural_immutability),
        (FiscalPeriod, "before_update", _check_fiscal_period_immutability),
        (FiscalPeriod, "before_delete", _check_fiscal_period_delete),
    )


def register_immutability_listeners() -> None:
    """Register all immutability listeners.  Safe to call repeatedly."""
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove all immutability listeners.  TESTS ONLY."""
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
    logger.debug("immutability_listeners_unregistered")
