"""
Module: inventory_kernel.models.product_batch
Responsibility: ORM persistence for product batches (lots) with quantity and
    expiry.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain value types only.

Invariants enforced:
    - Batch number unique within a product: UNIQUE (product_id, batch_no).
    - quantity >= 0 (enforced by ProductBatchService.adjust_quantity).
    - status is ``inactive`` exactly when quantity == 0.
    - Optimistic version check via ``version``.

Failure modes:
    - IntegrityError on duplicate (product_id, batch_no), mapped to
      DuplicateBatchError by the service.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.domain.dtos import Batch, BatchStatus


class ProductBatchModel(TrackedBase):
    """
    A tracked lot of a product.

    Batches are not tied to a location: a batch's quantity is the total of
    the lot across the business, moved by receipts, returns, replacements
    and batch-bearing adjustments.
    """

    __tablename__ = "product_batches"

    __table_args__ = (
        UniqueConstraint("product_id", "batch_no", name="uq_product_batch_no"),
        Index("idx_product_batch_expiry", "expiry_date"),
        Index("idx_product_batch_status", "status"),
    )

    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    batch_no: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)

    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    manufacture_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    supplier_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BatchStatus.ACTIVE.value,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self) -> Batch:
        """Convert ORM model to frozen Batch DTO."""
        return Batch(
            id=self.id,
            product_id=self.product_id,
            batch_no=self.batch_no,
            quantity=self.quantity,
            unit=self.unit,
            status=BatchStatus(self.status),
            expiry_date=self.expiry_date,
            manufacture_date=self.manufacture_date,
            unit_cost=self.unit_cost,
            supplier_id=self.supplier_id,
        )

    def __repr__(self) -> str:
        return (
            f"<ProductBatch {self.batch_no} product={self.product_id} "
            f"qty={self.quantity} status={self.status}>"
        )
