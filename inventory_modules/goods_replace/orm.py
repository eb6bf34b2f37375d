"""
Module: inventory_modules.goods_replace.orm
Responsibility: SQLAlchemy ORM persistence for goods replace documents and
    their lines.
Architecture position: Modules > Goods Replace > ORM.

Invariants enforced:
    - document_no UNIQUE; (document_id, line_no) UNIQUE.
    - reference_return_id / reference_return_line_id are foreign keys into
      the goods return tables.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.models.document import DocumentHeaderMixin, DocumentLineMixin


class GoodsReplaceModel(DocumentHeaderMixin, TrackedBase):
    """ORM model for a goods replace header."""

    __tablename__ = "goods_replaces"

    __table_args__ = (
        Index("idx_replace_supplier", "supplier_id"),
        Index("idx_replace_location", "location_id"),
        Index("idx_replace_status", "status"),
        Index("idx_replace_return", "reference_return_id"),
    )

    supplier_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    reference_return_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("goods_returns.id"),
        nullable=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    lines: Mapped[list["GoodsReplaceLineModel"]] = relationship(
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="GoodsReplaceLineModel.line_no",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def to_dto(self):
        from inventory_modules.goods_replace.models import GoodsReplace, GoodsReplaceStatus
        return GoodsReplace(
            id=self.id,
            document_no=self.document_no,
            status=GoodsReplaceStatus(self.status),
            document_date=self.document_date,
            supplier_id=self.supplier_id,
            location_id=self.location_id,
            total_amount=self.total_amount,
            created_by_id=self.created_by_id,
            reference_return_id=self.reference_return_id,
            remarks=self.remarks,
            posted_at=self.posted_at,
            posted_by_id=self.posted_by_id,
            cancelled_at=self.cancelled_at,
            cancelled_by_id=self.cancelled_by_id,
            cancel_reason=self.cancel_reason,
            lines=tuple(line.to_dto() for line in self.lines),
        )

    def __repr__(self) -> str:
        return f"<GoodsReplace {self.document_no} status={self.status}>"


class GoodsReplaceLineModel(DocumentLineMixin, TrackedBase):
    """ORM model for one replace line."""

    __tablename__ = "goods_replace_lines"

    __table_args__ = (
        UniqueConstraint("document_id", "line_no", name="uq_replace_line_no"),
        Index("idx_replace_line_product", "product_id"),
        Index("idx_replace_line_return_line", "reference_return_line_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("goods_replaces.id"),
        nullable=False,
    )
    reference_return_line_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("goods_return_lines.id"),
        nullable=True,
    )
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    manufacture_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    document: Mapped[GoodsReplaceModel] = relationship(back_populates="lines")

    def to_dto(self):
        from inventory_modules.goods_replace.models import GoodsReplaceLine
        return GoodsReplaceLine(
            id=self.id,
            line_no=self.line_no,
            product_id=self.product_id,
            quantity=self.quantity,
            unit=self.unit,
            conversion_factor=self.conversion_factor,
            base_quantity=self.base_quantity,
            unit_cost=self.unit_cost,
            line_total=self.line_total,
            reference_return_line_id=self.reference_return_line_id,
            batch_id=self.batch_id,
            batch_no=self.batch_no,
            expiry_date=self.expiry_date,
            manufacture_date=self.manufacture_date,
            remarks=self.remarks,
        )
