"""
Stock Adjustment Domain Models (``inventory_modules.stock_adjustment.models``).

Responsibility
--------------
Frozen value objects for stock adjustments: corrections of the quantity
on hand at one location (count differences, damage, expiry write-offs).
Each line carries a signed delta; nothing reaches the ledger until the
adjustment is approved.

Architecture
------------
Layer: **Modules** -- pure domain data structures, no I/O.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class StockAdjustmentStatus(Enum):
    """Adjustment lifecycle states."""
    DRAFT = "draft"
    APPROVED = "approved"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class StockAdjustmentHeaderSpec:
    """
    Header input for an adjustment.

    ``reason_code`` is required; when the configuration lists adjustment
    reasons it must be one of them (case-insensitive).
    """
    location_id: UUID
    reason_code: str
    document_date: date | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class StockAdjustmentLineSpec:
    """
    Line input for an adjustment.

    ``quantity_delta`` is signed and in the line's unit: positive adds
    stock, negative removes it.  ``batch_id`` or ``batch_no`` names a batch
    of the product to adjust along with the location balance.
    """
    product_id: UUID
    quantity_delta: Decimal
    unit_cost: Decimal = Decimal("0")
    unit: str | None = None
    batch_id: UUID | None = None
    batch_no: str | None = None
    reason: str | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class StockAdjustmentLine:
    id: UUID
    line_no: int
    product_id: UUID
    quantity_delta: Decimal
    unit: str | None
    conversion_factor: Decimal
    base_quantity: Decimal
    unit_cost: Decimal
    line_total: Decimal
    quantity_before: Decimal | None = None
    quantity_after: Decimal | None = None
    batch_id: UUID | None = None
    batch_no: str | None = None
    reason: str | None = None
    remarks: str | None = None

    @property
    def is_increase(self) -> bool:
        return self.quantity_delta > 0

    @property
    def base_quantity_delta(self) -> Decimal:
        """Signed delta in the product's base unit."""
        return self.base_quantity if self.is_increase else -self.base_quantity


@dataclass(frozen=True)
class StockAdjustment:
    """An adjustment with its lines."""
    id: UUID
    document_no: str
    status: StockAdjustmentStatus
    document_date: date
    location_id: UUID
    reason_code: str
    created_by_id: UUID
    remarks: str | None = None
    approved_at: datetime | None = None
    approved_by_id: UUID | None = None
    cancelled_at: datetime | None = None
    cancelled_by_id: UUID | None = None
    cancel_reason: str | None = None
    lines: tuple[StockAdjustmentLine, ...] = field(default_factory=tuple)

    @property
    def net_delta(self) -> Decimal:
        """Net base-unit change across all lines."""
        return sum((line.base_quantity_delta for line in self.lines), Decimal("0"))
