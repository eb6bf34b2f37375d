"""
Goods Return Domain Models (``inventory_modules.goods_return.models``).

Responsibility
--------------
Frozen value objects for goods returned to a supplier.  A return may
reference the GRN the goods came in on; replacements sent back by the
supplier are recorded as Goods Replace documents against the return.

Architecture
------------
Layer: **Modules** -- pure domain data structures, no I/O.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class GoodsReturnStatus(Enum):
    """Return lifecycle states."""
    DRAFT = "draft"
    POSTED = "posted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GoodsReturnHeaderSpec:
    """Header input for a return."""
    supplier_id: UUID
    location_id: UUID
    reference_grn_id: UUID | None = None
    document_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class GoodsReturnLineSpec:
    """
    Line input for a return.

    ``batch_id`` or ``batch_no`` names the batch the goods are taken from.
    """
    product_id: UUID
    quantity: Decimal
    unit_cost: Decimal = Decimal("0")
    unit: str | None = None
    batch_id: UUID | None = None
    batch_no: str | None = None
    reason: str | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class GoodsReturnLine:
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
    reason: str | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class GoodsReturn:
    """A return with its lines."""
    id: UUID
    document_no: str
    status: GoodsReturnStatus
    document_date: date
    supplier_id: UUID
    location_id: UUID
    total_amount: Decimal
    created_by_id: UUID
    reference_grn_id: UUID | None = None
    remarks: str | None = None
    posted_at: datetime | None = None
    posted_by_id: UUID | None = None
    cancelled_at: datetime | None = None
    cancelled_by_id: UUID | None = None
    cancel_reason: str | None = None
    lines: tuple[GoodsReturnLine, ...] = field(default_factory=tuple)

    @property
    def total_quantity(self) -> Decimal:
        return sum((line.base_quantity for line in self.lines), Decimal("0"))
