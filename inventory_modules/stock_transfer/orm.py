"""
Module: inventory_modules.stock_transfer.orm
Responsibility: SQLAlchemy ORM persistence for stock transfers and their
    lines, including the receipt-tracking columns updated while the
    transfer is in transit.
Architecture position: Modules > Stock Transfer > ORM.

Invariants enforced:
    - document_no UNIQUE; (document_id, line_no) UNIQUE.
    - After dispatch only quantity_received, quantity_damaged and
      line_status may change on a line (``mutable_after_posting``).
    - dispatch_unit_cost is written during dispatch, before the header
      leaves draft.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.models.document import DocumentHeaderMixin, DocumentLineMixin


class StockTransferModel(DocumentHeaderMixin, TrackedBase):
    """ORM model for a stock transfer header."""

    __tablename__ = "stock_transfers"

    __table_args__ = (
        Index("idx_transfer_from", "from_location_id"),
        Index("idx_transfer_to", "to_location_id"),
        Index("idx_transfer_status", "status"),
        Index("idx_transfer_date", "document_date"),
    )

    from_location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    to_location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    lines: Mapped[list["StockTransferLineModel"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="StockTransferLineModel.line_no",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        """Convert ORM model to frozen StockTransfer DTO."""
        from inventory_modules.stock_transfer.models import (
            StockTransfer,
            StockTransferStatus,
        )
        return StockTransfer(
            id=self.id,
            document_no=self.document_no,
            status=StockTransferStatus(self.status),
            document_date=self.document_date,
            from_location_id=self.from_location_id,
            to_location_id=self.to_location_id,
            created_by_id=self.created_by_id,
            remarks=self.remarks,
            posted_at=self.posted_at,
            posted_by_id=self.posted_by_id,
            completed_at=self.completed_at,
            cancelled_at=self.cancelled_at,
            cancelled_by_id=self.cancelled_by_id,
            cancel_reason=self.cancel_reason,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<StockTransfer {self.document_no} status={self.status}>"


class StockTransferLineModel(DocumentLineMixin, TrackedBase):
    """ORM model for one transfer line."""

    __tablename__ = "stock_transfer_lines"

    __table_args__ = (
        UniqueConstraint("document_id", "line_no", name="uq_transfer_line_no"),
        Index("idx_transfer_line_product", "product_id"),
    )

    mutable_after_posting = frozenset({"quantity_received", "quantity_damaged", "line_status"})

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("stock_transfers.id"),
        nullable=False,
    )
    quantity_received: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    quantity_damaged: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    line_status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Cost per base unit on the transfer_out entry; receipts carry it to the destination
    dispatch_unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    document: Mapped[StockTransferModel] = relationship(back_populates="lines")

    def to_dto(self):
        from inventory_modules.stock_transfer.models import (
            StockTransferLine,
            TransferLineStatus,
        )
        return StockTransferLine(
            id=self.id,
            line_no=self.line_no,
            product_id=self.product_id,
            quantity=self.quantity,
            unit=self.unit,
            conversion_factor=self.conversion_factor,
            base_quantity=self.base_quantity,
            unit_cost=self.unit_cost,
            line_total=self.line_total,
            quantity_received=self.quantity_received,
            quantity_damaged=self.quantity_damaged,
            line_status=TransferLineStatus(self.line_status),
            batch_no=self.batch_no,
            expiry_date=self.expiry_date,
            remarks=self.remarks,
            dispatch_unit_cost=self.dispatch_unit_cost,
        )
