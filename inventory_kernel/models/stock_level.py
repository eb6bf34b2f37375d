"""
Module: inventory_kernel.models.stock_level
Responsibility: ORM persistence for the materialized current quantity per
    (product, location).
Architecture position: Kernel > Models.  May import from db/base.py and
    domain value types only.

Invariants enforced:
    - One row per (product, location): UNIQUE constraint.
    - quantity equals balance_after of the latest ledger entry for the pair
      (maintained only by StockLedgerService.append in the same flush).
    - Optimistic version check: ``version`` is the mapper's version_id_col,
      so a stale concurrent UPDATE raises StaleDataError.

Failure modes:
    - IntegrityError when two transactions lazily create the same pair.
    - StaleDataError when another transaction updated the row first.

Audit relevance:
    Rows are never deleted, only driven to zero.  ``last_sequence_no`` links
    the row to the ledger entry that produced its current quantity.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.domain.dtos import StockLevelView


class StockLevelModel(TrackedBase):
    """
    Current quantity and moving average cost for one product at one location.

    Guarantees:
        - Created lazily on the first movement for the pair.
        - ``last_sequence_no`` is the sequence_no of the latest ledger entry.
    """

    __tablename__ = "stock_levels"

    __table_args__ = (
        UniqueConstraint("product_id", "location_id", name="uq_stock_level_product_location"),
        Index("idx_stock_level_location", "location_id"),
    )

    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    average_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    last_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    last_movement_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_sequence_no: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self) -> StockLevelView:
        """Convert ORM model to frozen StockLevelView DTO."""
        return StockLevelView(
            product_id=self.product_id,
            location_id=self.location_id,
            quantity=self.quantity,
            average_cost=self.average_cost,
            last_cost=self.last_cost,
            last_movement_at=self.last_movement_at,
        )

    def __repr__(self) -> str:
        return (
            f"<StockLevel product={self.product_id} location={self.location_id} "
            f"qty={self.quantity} v{self.version}>"
        )
