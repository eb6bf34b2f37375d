"""
Module: inventory_kernel.selectors.stock_selector
Responsibility: Read-only queries over the materialized stock levels.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Reads only.  Stock levels are written exclusively by
      StockLedgerService.append.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.domain.dtos import StockLevelView
from inventory_kernel.models.stock_level import StockLevelModel
from inventory_kernel.selectors.base import BaseSelector


class StockLevelSelector(BaseSelector[StockLevelModel]):
    """Current quantity lookups per product and location."""

    def get(self, product_id: UUID, location_id: UUID) -> StockLevelView | None:
        """Stock level for the pair, or None if it never moved."""
        model = self.session.execute(
            select(StockLevelModel).where(
                StockLevelModel.product_id == product_id,
                StockLevelModel.location_id == location_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model else None

    def quantity(self, product_id: UUID, location_id: UUID) -> Decimal:
        """Current quantity for the pair (0 if it never moved)."""
        view = self.get(product_id, location_id)
        return view.quantity if view else Decimal("0")

    def list_for_product(self, product_id: UUID) -> list[StockLevelView]:
        rows = self.session.execute(
            select(StockLevelModel)
            .where(StockLevelModel.product_id == product_id)
            .order_by(StockLevelModel.location_id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def list_for_location(self, location_id: UUID) -> list[StockLevelView]:
        rows = self.session.execute(
            select(StockLevelModel)
            .where(StockLevelModel.location_id == location_id)
            .order_by(StockLevelModel.product_id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def list_all(self, location_id: UUID | None = None) -> list[StockLevelView]:
        query = select(StockLevelModel)
        if location_id is not None:
            query = query.where(StockLevelModel.location_id == location_id)
        query = query.order_by(StockLevelModel.product_id, StockLevelModel.location_id)
        return [row.to_dto() for row in self.session.execute(query).scalars()]

    def total_on_hand(self, product_id: UUID) -> Decimal:
        """Quantity of the product summed over every location."""
        total = self.session.execute(
            select(func.sum(StockLevelModel.quantity)).where(
                StockLevelModel.product_id == product_id,
            )
        ).scalar_one()
        return total if total is not None else Decimal("0")
