"""
Module: inventory_kernel.selectors.alert_selector
Responsibility: Derives reorder and expiry alerts from stock levels,
    product batches and master-data thresholds.  Pure read side: the
    detector has no state of its own.
Architecture position: Kernel > Selectors.  Thresholds come from the
    ``MasterDataProvider`` (an external collaborator); the comparison policy
    comes from ``InventoryConfig.low_stock_comparison``.

Invariants enforced:
    - Low stock: ``quantity <= threshold`` under the default
      ``at_or_below`` policy, ``quantity < threshold`` under ``below``.
      Products without a threshold never raise a low-stock alert.
    - Out of stock: ``quantity <= 0``.
    - Overstock: ``quantity > maximum_stock`` when a maximum is defined.

Failure modes:
    - None beyond storage errors; unknown products simply have no
      thresholds.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.config import InventoryConfig
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import Batch, StockLevelView
from inventory_kernel.domain.master_data import MasterDataProvider
from inventory_kernel.logging_config import get_logger
from inventory_kernel.selectors.batch_selector import BatchSelector
from inventory_kernel.selectors.stock_selector import StockLevelSelector

logger = get_logger("selectors.alerts")


@dataclass(frozen=True)
class LowStockAlert:
    """A product at a location at or under its reorder threshold."""

    product_id: UUID
    location_id: UUID
    quantity: Decimal
    threshold: Decimal

    @property
    def shortfall(self) -> Decimal:
        return max(self.threshold - self.quantity, Decimal("0"))


@dataclass(frozen=True)
class OverstockAlert:
    """A product at a location above its maximum stock."""

    product_id: UUID
    location_id: UUID
    quantity: Decimal
    maximum: Decimal

    @property
    def excess(self) -> Decimal:
        return self.quantity - self.maximum


@dataclass(frozen=True)
class AlertSummary:
    low_stock: int
    out_of_stock: int
    overstock: int
    expiring: int
    expired: int

    @property
    def total(self) -> int:
        return (
            self.low_stock + self.out_of_stock + self.overstock
            + self.expiring + self.expired
        )


class AlertDetector:
    """
    Low-stock, out-of-stock, overstock and expiry detection.

    Contract:
        Every method is a read-only query returning frozen values.  Results
        are ordered by product then location (stock alerts) or by expiry
        date (batch alerts).
    """

    def __init__(
        self,
        session: Session,
        master_data: MasterDataProvider,
        config: InventoryConfig | None = None,
        clock: Clock | None = None,
    ):
        self.session = session
        self.master_data = master_data
        self.config = config or InventoryConfig.with_defaults()
        self.clock = clock or SystemClock()
        self._levels = StockLevelSelector(session)
        self._batches = BatchSelector(session, clock=self.clock, config=self.config)

    def _is_low(self, quantity: Decimal, threshold: Decimal) -> bool:
        if self.config.low_stock_comparison == "below":
            return quantity < threshold
        return quantity <= threshold

    def _levels_for(self, location_id: UUID | None) -> list[StockLevelView]:
        return self._levels.list_all(location_id)

    def detect_low_stock(self, location_id: UUID | None = None) -> list[LowStockAlert]:
        """Stock levels at or under the product's reorder threshold."""
        alerts = []
        for level in self._levels_for(location_id):
            threshold = self.master_data.reorder_threshold(level.product_id)
            if threshold is None:
                continue
            if self._is_low(level.quantity, threshold):
                alerts.append(
                    LowStockAlert(
                        product_id=level.product_id,
                        location_id=level.location_id,
                        quantity=level.quantity,
                        threshold=threshold,
                    )
                )
        logger.debug(
            "low_stock_detected",
            extra={
                "count": len(alerts),
                "location_id": str(location_id) if location_id else None,
                "comparison": self.config.low_stock_comparison,
            },
        )
        return alerts

    def detect_out_of_stock(self, location_id: UUID | None = None) -> list[StockLevelView]:
        """Stock levels that reached zero (or below, where allowed)."""
        return [level for level in self._levels_for(location_id) if level.quantity <= 0]

    def detect_overstock(self, location_id: UUID | None = None) -> list[OverstockAlert]:
        alerts = []
        for level in self._levels_for(location_id):
            maximum = self.master_data.maximum_stock(level.product_id)
            if maximum is not None and level.quantity > maximum:
                alerts.append(
                    OverstockAlert(
                        product_id=level.product_id,
                        location_id=level.location_id,
                        quantity=level.quantity,
                        maximum=maximum,
                    )
                )
        return alerts

    def detect_expiring(self, within_days: int | None = None) -> list[Batch]:
        """Active batches expiring within the window (config default if None)."""
        return self._batches.get_expiring(within_days)

    def detect_expired(self) -> list[Batch]:
        return self._batches.get_expired()

    def summary(
        self,
        location_id: UUID | None = None,
        within_days: int | None = None,
    ) -> AlertSummary:
        """Alert counts; batch counts are not location-specific."""
        return AlertSummary(
            low_stock=len(self.detect_low_stock(location_id)),
            out_of_stock=len(self.detect_out_of_stock(location_id)),
            overstock=len(self.detect_overstock(location_id)),
            expiring=len(self.detect_expiring(within_days)),
            expired=len(self.detect_expired()),
        )
