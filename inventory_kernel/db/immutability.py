"""
ORM-Level Immutability Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

Stock quantities must be explainable. Every quantity reported anywhere in
the system has to be reproducible by replaying the stock ledger, so ledger
rows may never change, and posted documents may never silently change the
lines that produced those rows. Corrections are new rows (compensating
entries written by cancellation), never edits.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through Python/SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/triggers.py (PostgreSQL triggers)
    - Catches raw SQL, bulk UPDATE statements, direct psql access
    - Covers stock_ledger_entries

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                | When Immutable                     | Allowed changes
----------------------|------------------------------------|---------------------------
StockLedgerEntry      | ALWAYS (from creation)             | none
Document lines        | When parent document is not draft  | columns listed in the line
                      |                                    | class's mutable_after_posting

===============================================================================
DESIGN DECISIONS
===============================================================================

1. updated_at/updated_by_id are audit metadata and are ignored when
   deciding whether a line was modified.

2. Line listeners are attached to every mapped class that uses
   DocumentLineMixin, discovered from the declarative registry after the
   document modules are imported (inline import, as in create_tables).

===============================================================================
USAGE
===============================================================================

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY - never in production):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect, select

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _check_ledger_entry_immutability(mapper, connection, target):
    """Prevent any UPDATE to a StockLedgerEntry."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "StockLedgerEntry",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockLedgerEntry",
        entity_id=str(target.id),
        reason="Stock ledger entries are append-only; write a compensating entry instead",
    )


def _check_ledger_entry_delete(mapper, connection, target):
    """Prevent any DELETE of a StockLedgerEntry."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "StockLedgerEntry",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockLedgerEntry",
        entity_id=str(target.id),
        reason="Stock ledger entries cannot be deleted",
    )


def _parent_status(connection, target) -> str | None:
    """Flushed status of the line's document, read through the connection.

    The relationship attribute is not used because removing a line from
    its document's collection detaches it before the delete fires.
    """
    header_cls = inspect(type(target)).relationships["document"].mapper.class_
    header = header_cls.__table__
    return connection.execute(
        select(header.c.status).where(header.c.id == target.document_id)
    ).scalar_one_or_none()


def _changed_columns(target) -> set[str]:
    state = inspect(target)
    changed = set()
    for attr in state.mapper.column_attrs:
        if state.attrs[attr.key].history.has_changes():
            changed.add(attr.key)
    return changed - _AUDIT_METADATA_FIELDS


def _check_document_line_immutability(mapper, connection, target):
    """
    Prevent updates to document lines once their document left draft.

    Columns named in the line class's ``mutable_after_posting`` (e.g. the
    receipt-tracking columns of transfer lines) remain writable.
    """
    from inventory_kernel.models.document import DRAFT_STATUS

    status = _parent_status(connection, target)
    if status is None or status == DRAFT_STATUS:
        return

    forbidden = _changed_columns(target) - set(type(target).mutable_after_posting)
    if not forbidden:
        return

    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "UPDATE",
            "document_status": status,
            "fields": sorted(forbidden),
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=(
            f"Lines cannot be modified once the document is {status}: "
            f"{', '.join(sorted(forbidden))}"
        ),
    )


def _check_document_line_delete(mapper, connection, target):
    """Prevent deletion of document lines once their document left draft."""
    from inventory_kernel.models.document import DRAFT_STATUS

    status = _parent_status(connection, target)
    if status is None or status == DRAFT_STATUS:
        return

    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "DELETE",
            "document_status": status,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"Lines cannot be deleted once the document is {status}",
    )


def _document_line_classes() -> list[type]:
    """Every mapped class that uses DocumentLineMixin."""
    from inventory_kernel.db.base import Base
    from inventory_kernel.models.document import DocumentLineMixin
    from inventory_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    return [
        mapper.class_
        for mapper in Base.registry.mappers
        if issubclass(mapper.class_, DocumentLineMixin)
    ]


def _all_listeners() -> list[tuple]:
    from inventory_kernel.models.stock_ledger import StockLedgerEntryModel

    listeners = [
        (StockLedgerEntryModel, "before_update", _check_ledger_entry_immutability),
        (StockLedgerEntryModel, "before_delete", _check_ledger_entry_delete),
    ]
    for line_cls in _document_line_classes():
        listeners.append((line_cls, "before_update", _check_document_line_immutability))
        listeners.append((line_cls, "before_delete", _check_document_line_delete))
    return listeners


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call this once at startup, before any database operations begin.
    Calling it twice is harmless.
    """
    for target, event_name, listener_fn in _all_listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate immutability
    rules to verify detection by another layer.
    """
    for target, event_name, listener_fn in _all_listeners():
        _safe_remove_listener(target, event_name, listener_fn)
