"""
Goods Received Domain Models (``inventory_modules.goods_received.models``).

Responsibility
--------------
Frozen value objects for goods received notes (GRNs): the input specs a
caller passes to ``GoodsReceivedService.create/update`` and the hydrated
document returned by every service method.

Architecture
------------
Layer: **Modules** -- pure domain data structures, no I/O.

Invariants
----------
- All quantities and money use ``Decimal`` -- never ``float``.
- ``GoodsReceivedLineSpec.quantity`` is in the line's unit; the service
  converts it to the product's base unit before it reaches the ledger.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class GoodsReceivedStatus(Enum):
    """GRN lifecycle states."""
    DRAFT = "draft"
    POSTED = "posted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GoodsReceivedHeaderSpec:
    """Header input for a GRN."""
    supplier_id: UUID
    location_id: UUID
    invoice_no: str | None = None
    invoice_date: date | None = None
    document_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class GoodsReceivedLineSpec:
    """
    Line input for a GRN.

    ``batch_no`` names the batch the goods go into: an existing batch of
    the product is topped up, otherwise one is created on posting.
    """
    product_id: UUID
    quantity: Decimal
    unit_cost: Decimal = Decimal("0")
    unit: str | None = None
    batch_no: str | None = None
    expiry_date: date | None = None
    manufacture_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class GoodsReceivedLine:
    id: UUID
    line_no: int
    product_id: UUID
    quantity: Decimal
    unit: str | None
    conversion_factor: Decimal
    base_quantity: Decimal
    unit_cost: Decimal
    line_total: Decimal
    batch_id: UUID | None = None
    batch_no: str | None = None
    expiry_date: date | None = None
    manufacture_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class GoodsReceivedNote:
    """A GRN with its lines."""
    id: UUID
    document_no: str
    status: GoodsReceivedStatus
    document_date: date
    supplier_id: UUID
    location_id: UUID
    total_amount: Decimal
    created_by_id: UUID
    invoice_no: str | None = None
    invoice_date: date | None = None
    remarks: str | None = None
    posted_at: datetime | None = None
    posted_by_id: UUID | None = None
    cancelled_at: datetime | None = None
    cancelled_by_id: UUID | None = None
    cancel_reason: str | None = None
    lines: tuple[GoodsReceivedLine, ...] = field(default_factory=tuple)

    @property
    def total_quantity(self) -> Decimal:
        return sum((line.base_quantity for line in self.lines), Decimal("0"))
