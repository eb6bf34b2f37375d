"""
Module: inventory_modules.stock_adjustment.orm
Responsibility: SQLAlchemy ORM persistence for stock adjustments and their
    lines.
Architecture position: Modules > Stock Adjustment > ORM.

Invariants enforced:
    - document_no UNIQUE; (document_id, line_no) UNIQUE.
    - ``quantity`` holds |quantity_delta| so the shared line columns stay
      non-negative; the sign lives in ``quantity_delta``.
    - quantity_before / quantity_after are written once, at approval.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.models.document import DocumentHeaderMixin, DocumentLineMixin


class StockAdjustmentModel(DocumentHeaderMixin, TrackedBase):
    """ORM model for a stock adjustment header."""

    __tablename__ = "stock_adjustments"

    __table_args__ = (
        Index("idx_adjustment_location", "location_id"),
        Index("idx_adjustment_status", "status"),
        Index("idx_adjustment_date", "document_date"),
    )

    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    reason_code: Mapped[str] = mapped_column(String(50), nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    lines: Mapped[list["StockAdjustmentLineModel"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="StockAdjustmentLineModel.line_no",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from inventory_modules.stock_adjustment.models import (
            StockAdjustment,
            StockAdjustmentStatus,
        )
        return StockAdjustment(
            id=self.id,
            document_no=self.document_no,
            status=StockAdjustmentStatus(self.status),
            document_date=self.document_date,
            location_id=self.location_id,
            reason_code=self.reason_code,
            created_by_id=self.created_by_id,
            remarks=self.remarks,
            approved_at=self.approved_at,
            approved_by_id=self.approved_by_id,
            cancelled_at=self.cancelled_at,
            cancelled_by_id=self.cancelled_by_id,
            cancel_reason=self.cancel_reason,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<StockAdjustment {self.document_no} status={self.status}>"


class StockAdjustmentLineModel(DocumentLineMixin, TrackedBase):
    """ORM model for one adjustment line."""

    __tablename__ = "stock_adjustment_lines"

    __table_args__ = (
        UniqueConstraint("document_id", "line_no", name="uq_adjustment_line_no"),
        Index("idx_adjustment_line_product", "product_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("stock_adjustments.id"),
        nullable=False,
    )
    quantity_delta: Mapped[Decimal] = mapped_column(nullable=False)
    quantity_before: Mapped[Decimal | None] = mapped_column(nullable=True)
    quantity_after: Mapped[Decimal | None] = mapped_column(nullable=True)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    document: Mapped[StockAdjustmentModel] = relationship(back_populates="lines")

    def to_dto(self):
        from inventory_modules.stock_adjustment.models import StockAdjustmentLine
        return StockAdjustmentLine(
            id=self.id,
            line_no=self.line_no,
            product_id=self.product_id,
            quantity_delta=self.quantity_delta,
            unit=self.unit,
            conversion_factor=self.conversion_factor,
            base_quantity=self.base_quantity,
            unit_cost=self.unit_cost,
            line_total=self.line_total,
            quantity_before=self.quantity_before,
            quantity_after=self.quantity_after,
            batch_id=self.batch_id,
            batch_no=self.batch_no,
            reason=self.reason,
            remarks=self.remarks,
        )
