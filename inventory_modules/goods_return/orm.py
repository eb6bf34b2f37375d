"""
Module: inventory_modules.goods_return.orm
Responsibility: SQLAlchemy ORM persistence for goods returns and their
    lines.
Architecture position: Modules > Goods Return > ORM.  ``reference_grn_id``
    is a real foreign key because both tables live in this schema.

Invariants enforced:
    - document_no UNIQUE; (document_id, line_no) UNIQUE.
    - Lines are immutable once the return leaves draft.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.models.document import DocumentHeaderMixin, DocumentLineMixin


class GoodsReturnModel(DocumentHeaderMixin, TrackedBase):
    """ORM model for a goods return header."""

    __tablename__ = "goods_returns"

    __table_args__ = (
        Index("idx_return_supplier", "supplier_id"),
        Index("idx_return_location", "location_id"),
        Index("idx_return_status", "status"),
        Index("idx_return_grn", "reference_grn_id"),
    )

    supplier_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    reference_grn_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("goods_received_notes.id"),
        nullable=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    lines: Mapped[list["GoodsReturnLineModel"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="GoodsReturnLineModel.line_no",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from inventory_modules.goods_return.models import GoodsReturn, GoodsReturnStatus
        return GoodsReturn(
            id=self.id,
            document_no=self.document_no,
            status=GoodsReturnStatus(self.status),
            document_date=self.document_date,
            supplier_id=self.supplier_id,
            location_id=self.location_id,
            total_amount=self.total_amount,
            created_by_id=self.created_by_id,
            reference_grn_id=self.reference_grn_id,
            remarks=self.remarks,
            posted_at=self.posted_at,
            posted_by_id=self.posted_by_id,
            cancelled_at=self.cancelled_at,
            cancelled_by_id=self.cancelled_by_id,
            cancel_reason=self.cancel_reason,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<GoodsReturn {self.document_no} status={self.status}>"


class GoodsReturnLineModel(DocumentLineMixin, TrackedBase):
    """ORM model for one return line."""

    __tablename__ = "goods_return_lines"

    __table_args__ = (
        UniqueConstraint("document_id", "line_no", name="uq_return_line_no"),
        Index("idx_return_line_product", "product_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("goods_returns.id"),
        nullable=False,
    )
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    document: Mapped[GoodsReturnModel] = relationship(back_populates="lines")

    def to_dto(self):
        from inventory_modules.goods_return.models import GoodsReturnLine
        return GoodsReturnLine(
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
            reason=self.reason,
            remarks=self.remarks,
        )
