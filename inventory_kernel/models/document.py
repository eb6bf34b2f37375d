"""
Module: inventory_kernel.models.document
Responsibility: Shared column sets for stock document headers and lines.
    Every document module (goods received, transfer, adjustment, return,
    replace) maps its own header and line tables with these mixins so that
    the shared document service, the immutability listeners and the
    document selector can treat all of them uniformly.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - document_no is UNIQUE per header table (second guard behind the
      locked numbering counter).
    - Lines of a document that has left draft are immutable except for the
      columns a line class lists in ``mutable_after_posting``
      (see db/immutability.py).
    - Headers are soft-deleted only (``deleted_at`` tombstone).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID

from sqlalchemy import Date, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import SoftDeleteMixin, UUIDString

DRAFT_STATUS = "draft"


class DocumentHeaderMixin(SoftDeleteMixin):
    """
    Columns shared by every document header.

    Concrete header classes also declare ``version`` as their
    ``version_id_col`` and a ``lines`` relationship ordered by line_no.
    """

    document_no: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default=DRAFT_STATUS)
    document_date: Mapped[date] = mapped_column(Date, nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    posted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)


class DocumentLineMixin:
    """
    Columns shared by every document line.

    ``quantity`` is in the line's ``unit``; ``base_quantity`` is the same
    amount converted to the product's base unit and is what reaches the
    ledger.  ``line_total`` = quantity * unit_cost.
    """

    mutable_after_posting: ClassVar[frozenset[str]] = frozenset()

    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    conversion_factor: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("1"))
    base_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    line_total: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    batch_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    batch_no: Mapped[str | None] = mapped_column(String(100), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def base_unit_cost(self) -> Decimal:
        """Unit cost per base unit (what the ledger records)."""
        if not self.conversion_factor:
            return self.unit_cost
        return self.unit_cost / self.conversion_factor
