"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures returned by kernel services and
    selectors: ledger entries, stock level snapshots and batches, plus the
    closed enumerations for movement types, reference types and batch
    status.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  ORM models convert themselves to these DTOs
    via ``to_dto()``; selectors and services never hand ORM instances to
    callers.

Invariants enforced:
    - Each non-reversal movement type has a fixed direction; a quantity
      delta with the wrong sign is rejected by the ledger service.
    - Batch status is derived from quantity (see ``BatchStatus.for_quantity``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class MovementType(str, Enum):
    """
    Kind of quantity movement recorded on a ledger entry.

    Contract:
        Every ledger entry carries exactly one movement type.  ``REVERSAL``
        is used only for compensating entries written by cancellation, and
        may have either sign.
    """

    RECEIPT = "receipt"
    ISSUE = "issue"
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"
    ADJUSTMENT_INCREASE = "adjustment_increase"
    ADJUSTMENT_DECREASE = "adjustment_decrease"
    RETURN_OUT = "return_out"
    REPLACE_IN = "replace_in"
    REVERSAL = "reversal"

    @property
    def direction(self) -> int:
        """+1 for inbound, -1 for outbound, 0 when either sign is valid."""
        return _MOVEMENT_DIRECTIONS[self]

    @property
    def is_inbound(self) -> bool:
        return self.direction > 0


_MOVEMENT_DIRECTIONS: dict[MovementType, int] = {
    MovementType.RECEIPT: 1,
    MovementType.ISSUE: -1,
    MovementType.TRANSFER_OUT: -1,
    MovementType.TRANSFER_IN: 1,
    MovementType.ADJUSTMENT_INCREASE: 1,
    MovementType.ADJUSTMENT_DECREASE: -1,
    MovementType.RETURN_OUT: -1,
    MovementType.REPLACE_IN: 1,
    MovementType.REVERSAL: 0,
}


class ReferenceType(str, Enum):
    """Type of the document that originated a ledger entry."""

    GOODS_RECEIVED = "goods_received"
    STOCK_TRANSFER = "stock_transfer"
    STOCK_ADJUSTMENT = "stock_adjustment"
    GOODS_RETURN = "goods_return"
    GOODS_REPLACE = "goods_replace"


class BatchStatus(str, Enum):
    """
    Lifecycle status of a product batch.

    Contract:
        ACTIVE while quantity > 0, INACTIVE when quantity == 0.  The status
        is recomputed on every quantity change, never set directly.
    """

    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def for_quantity(cls, quantity: Decimal) -> BatchStatus:
        return cls.ACTIVE if quantity > 0 else cls.INACTIVE


@dataclass(frozen=True)
class LedgerEntry:
    """
    One immutable stock movement.

    Guarantees:
        - ``balance_after`` equals the previous entry's ``balance_after``
          (for the same product and location) plus ``quantity_delta``.
        - ``sequence_no`` is strictly increasing per (product, location).
    """

    id: UUID
    product_id: UUID
    location_id: UUID
    movement_type: MovementType
    quantity_delta: Decimal
    unit_cost: Decimal | None
    balance_after: Decimal
    reference_type: ReferenceType
    reference_id: UUID
    sequence_no: int
    occurred_at: datetime
    created_by_id: UUID
    reference_no: str | None = None
    batch_id: UUID | None = None
    reverses_entry_id: UUID | None = None

    @property
    def is_reversal(self) -> bool:
        return self.movement_type == MovementType.REVERSAL


@dataclass(frozen=True)
class StockLevelView:
    """Snapshot of the materialized quantity for one product at one location."""

    product_id: UUID
    location_id: UUID
    quantity: Decimal
    average_cost: Decimal
    last_cost: Decimal | None
    last_movement_at: datetime | None

    @property
    def stock_value(self) -> Decimal:
        return self.quantity * self.average_cost


@dataclass(frozen=True)
class Batch:
    """A tracked lot of a product with its own quantity and expiry."""

    id: UUID
    product_id: UUID
    batch_no: str
    quantity: Decimal
    unit: str | None
    status: BatchStatus
    expiry_date: date | None = None
    manufacture_date: date | None = None
    unit_cost: Decimal | None = None
    supplier_id: UUID | None = None

    def is_expired(self, today: date) -> bool:
        return self.expiry_date is not None and self.expiry_date < today

    def days_until_expiry(self, today: date) -> int | None:
        if self.expiry_date is None:
            return None
        return (self.expiry_date - today).days
