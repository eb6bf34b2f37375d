"""
Stock Transfer Domain Models (``inventory_modules.stock_transfer.models``).

Responsibility
--------------
Frozen value objects for stock transfers between two locations, and the
pure rule that derives a line's receipt status from its sent, received and
damaged quantities.

Architecture
------------
Layer: **Modules** -- pure domain data structures and functions, no I/O.

Invariants
----------
- ``received + damaged <= sent`` on every line (enforced by the service).
- Line status is derived, never set directly (``derive_line_status``).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class StockTransferStatus(Enum):
    """Transfer lifecycle states.  ``posted`` means dispatched / in transit."""
    DRAFT = "draft"
    POSTED = "posted"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TransferLineStatus(Enum):
    """Receipt state of one transfer line."""
    PENDING = "pending"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED = "received"
    DAMAGED = "damaged"

    @property
    def is_terminal(self) -> bool:
        return self in (TransferLineStatus.RECEIVED, TransferLineStatus.DAMAGED)


def derive_line_status(sent: Decimal, received: Decimal, damaged: Decimal) -> TransferLineStatus:
    """
    Receipt status of a line.

    damaged >= sent             -> DAMAGED
    received + damaged >= sent  -> RECEIVED
    received + damaged > 0      -> PARTIALLY_RECEIVED
    otherwise                   -> PENDING
    """
    if damaged >= sent:
        return TransferLineStatus.DAMAGED
    accounted = received + damaged
    if accounted >= sent:
        return TransferLineStatus.RECEIVED
    if accounted > 0:
        return TransferLineStatus.PARTIALLY_RECEIVED
    return TransferLineStatus.PENDING


@dataclass(frozen=True)
class StockTransferHeaderSpec:
    """Header input for a transfer."""
    from_location_id: UUID
    to_location_id: UUID
    document_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class StockTransferLineSpec:
    """Line input for a transfer.  ``quantity`` is the quantity sent."""
    product_id: UUID
    quantity: Decimal
    unit_cost: Decimal = Decimal("0")
    unit: str | None = None
    batch_no: str | None = None
    expiry_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class StockTransferLine:
    id: UUID
    line_no: int
    product_id: UUID
    quantity: Decimal
    unit: str | None
    conversion_factor: Decimal
    base_quantity: Decimal
    unit_cost: Decimal
    line_total: Decimal
    quantity_received: Decimal
    quantity_damaged: Decimal
    line_status: TransferLineStatus
    batch_no: str | None = None
    expiry_date: date | None = None
    remarks: str | None = None
    dispatch_unit_cost: Decimal | None = None

    @property
    def quantity_outstanding(self) -> Decimal:
        return self.quantity - self.quantity_received - self.quantity_damaged


@dataclass(frozen=True)
class StockTransfer:
    """A transfer with its lines."""
    id: UUID
    document_no: str
    status: StockTransferStatus
    document_date: date
    from_location_id: UUID
    to_location_id: UUID
    created_by_id: UUID
    remarks: str | None = None
    posted_at: datetime | None = None
    posted_by_id: UUID | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by_id: UUID | None = None
    cancel_reason: str | None = None
    lines: tuple[StockTransferLine, ...] = field(default_factory=tuple)

    @property
    def is_fully_received(self) -> bool:
        return bool(self.lines) and all(line.line_status.is_terminal for line in self.lines)
