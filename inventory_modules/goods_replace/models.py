"""
Goods Replace Domain Models (``inventory_modules.goods_replace.models``).

Responsibility
--------------
Frozen value objects for replacement goods received from a supplier,
usually against an earlier goods return.  A replace line may point at the
return line it replaces; the service caps replacements per return line.

Architecture
------------
Layer: **Modules** -- pure domain data structures, no I/O.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class GoodsReplaceStatus(Enum):
    """Replace lifecycle states."""
    DRAFT = "draft"
    POSTED = "posted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GoodsReplaceHeaderSpec:
    """Header input for a replacement."""
    supplier_id: UUID
    location_id: UUID
    reference_return_id: UUID | None = None
    document_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class GoodsReplaceLineSpec:
    """
    Line input for a replacement.

    ``reference_return_line_id`` must be a line of the header's
    ``reference_return_id`` for the same product.
    """
    product_id: UUID
    quantity: Decimal
    unit_cost: Decimal = Decimal("0")
    unit: str | None = None
    reference_return_line_id: UUID | None = None
    batch_no: str | None = None
    expiry_date: date | None = None
    manufacture_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class GoodsReplaceLine:
    id: UUID
    line_no: int
    product_id: UUID
    quantity: Decimal
    unit: str | None
    conversion_factor: Decimal
    base_quantity: Decimal
    unit_cost: Decimal
    line_total: Decimal
    reference_return_line_id: UUID | None = None
    batch_id: UUID | None = None
    batch_no: str | None = None
    expiry_date: date | None = None
    manufacture_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class GoodsReplace:
    """A replacement document with its lines."""
    id: UUID
    document_no: str
    status: GoodsReplaceStatus
    document_date: date
    supplier_id: UUID
    location_id: UUID
    total_amount: Decimal
    created_by_id: UUID
    reference_return_id: UUID | None = None
    remarks: str | None = None
    posted_at: datetime | None = None
    posted_by_id: UUID | None = None
    cancelled_at: datetime | None = None
    cancelled_by_id: UUID | None = None
    cancel_reason: str | None = None
    lines: tuple[GoodsReplaceLine, ...] = field(default_factory=tuple)

    @property
    def total_quantity(self) -> Decimal:
        return sum((line.base_quantity for line in self.lines), Decimal("0"))
