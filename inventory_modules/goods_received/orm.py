"""
Module: inventory_modules.goods_received.orm
Responsibility: SQLAlchemy ORM persistence for goods received notes and
    their lines.
Architecture position: Modules > Goods Received > ORM.  Inherits from
    TrackedBase and the document mixins (inventory_kernel.models.document).
    Supplier, location and product ids reference master data owned outside
    this system: UUID columns with NO foreign key constraints.

Invariants enforced:
    - document_no UNIQUE; (document_id, line_no) UNIQUE.
    - Lines are immutable once the GRN leaves draft (ORM listener).
    - Optimistic version check on the header.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.models.document import DocumentHeaderMixin, DocumentLineMixin


class GoodsReceivedNoteModel(DocumentHeaderMixin, TrackedBase):
    """
    ORM model for a goods received note header.

    Maps to: inventory_modules.goods_received.models.GoodsReceivedNote.
    """

    __tablename__ = "goods_received_notes"

    __table_args__ = (
        Index("idx_grn_supplier", "supplier_id"),
        Index("idx_grn_location", "location_id"),
        Index("idx_grn_status", "status"),
        Index("idx_grn_date", "document_date"),
    )

    supplier_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    invoice_no: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    lines: Mapped[list["GoodsReceivedLineModel"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="GoodsReceivedLineModel.line_no",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        """Convert ORM model to frozen GoodsReceivedNote DTO."""
        from inventory_modules.goods_received.models import (
            GoodsReceivedNote,
            GoodsReceivedStatus,
        )
        return GoodsReceivedNote(
            id=self.id,
            document_no=self.document_no,
            status=GoodsReceivedStatus(self.status),
            document_date=self.document_date,
            supplier_id=self.supplier_id,
            location_id=self.location_id,
            total_amount=self.total_amount,
            created_by_id=self.created_by_id,
            invoice_no=self.invoice_no,
            invoice_date=self.invoice_date,
            remarks=self.remarks,
            posted_at=self.posted_at,
            posted_by_id=self.posted_by_id,
            cancelled_at=self.cancelled_at,
            cancelled_by_id=self.cancelled_by_id,
            cancel_reason=self.cancel_reason,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<GoodsReceivedNote {self.document_no} status={self.status}>"


class GoodsReceivedLineModel(DocumentLineMixin, TrackedBase):
    """ORM model for one GRN line."""

    __tablename__ = "goods_received_lines"

    __table_args__ = (
        UniqueConstraint("document_id", "line_no", name="uq_grn_line_no"),
        Index("idx_grn_line_product", "product_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("goods_received_notes.id"),
        nullable=False,
    )
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    manufacture_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    document: Mapped[GoodsReceivedNoteModel] = relationship(back_populates="lines")

    def to_dto(self):
        from inventory_modules.goods_received.models import GoodsReceivedLine
        return GoodsReceivedLine(
            id=self.id,
            line_no=self.line_no,
            product_id=self.product_id,
            quantity=self.quantity,
            unit=self.unit,
            conversion_factor=self.conversion_factor,
            base_quantity=self.base_quantity,
            unit_cost=self.unit_cost,
            line_total=self.line_total,
            batch_id=self.batch_id,
            batch_no=self.batch_no,
            expiry_date=self.expiry_date,
            manufacture_date=self.manufacture_date,
            remarks=self.remarks,
        )
