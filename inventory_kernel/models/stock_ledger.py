"""
Module: inventory_kernel.models.stock_ledger
Responsibility: ORM persistence for stock ledger entries -- the single source
    of truth for quantity movements.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain value types only.  MUST NOT import from services/, selectors/,
    or outer layers.

Invariants enforced:
    - Running balance: for a (product, location) pair, entries ordered by
      sequence_no satisfy balance_after[n] = balance_after[n-1] + quantity_delta[n]
      (written only by StockLedgerService.append under a stock level lock).
    - Sequence uniqueness: UNIQUE (product_id, location_id, sequence_no).
    - Single reversal: UNIQUE (reverses_entry_id), so an entry can be
      compensated at most once.
    - Append-only: ORM listeners in db/immutability.py (and a PostgreSQL
      trigger) reject every UPDATE and DELETE.

Failure modes:
    - IntegrityError on duplicate (product, location, sequence_no) when two
      writers bypass the stock level lock.
    - ImmutabilityViolationError on any UPDATE/DELETE.

Audit relevance:
    Every stock quantity reported anywhere in the system is derivable by
    replaying these rows.  Corrections are new rows (reversals), never edits.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.domain.dtos import LedgerEntry, MovementType, ReferenceType


class StockLedgerEntryModel(TrackedBase):
    """
    One immutable quantity movement for a product at a location.

    Contract:
        Rows are inserted by StockLedgerService.append only.  ``batch_id`` is
        set exactly when the same unit of work changed that batch's quantity
        by ``quantity_delta``, so cancellation can undo the batch effect.

    Guarantees:
        - quantity_delta is non-zero and signed.
        - balance_after is never negative unless the movement type was
          configured to allow negative stock.
    """

    __tablename__ = "stock_ledger_entries"

    __table_args__ = (
        UniqueConstraint(
            "product_id", "location_id", "sequence_no",
            name="uq_stock_ledger_product_location_seq",
        ),
        UniqueConstraint("reverses_entry_id", name="uq_stock_ledger_reverses"),
        Index("idx_stock_ledger_reference", "reference_type", "reference_id"),
        Index("idx_stock_ledger_product_location", "product_id", "location_id"),
        Index("idx_stock_ledger_occurred_at", "occurred_at"),
    )

    product_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    movement_type: Mapped[str] = mapped_column(String(30), nullable=False)
    quantity_delta: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    balance_after: Mapped[Decimal] = mapped_column(nullable=False)

    # Per (product, location) ordering
    sequence_no: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Originating document
    reference_type: Mapped[str] = mapped_column(String(30), nullable=False)
    reference_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    reference_no: Mapped[str | None] = mapped_column(String(40), nullable=True)

    batch_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("product_batches.id"),
        nullable=True,
    )

    reverses_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("stock_ledger_entries.id"),
        nullable=True,
    )

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self) -> LedgerEntry:
        """Convert ORM model to frozen LedgerEntry DTO."""
        return LedgerEntry(
            id=self.id,
            product_id=self.product_id,
            location_id=self.location_id,
            movement_type=MovementType(self.movement_type),
            quantity_delta=self.quantity_delta,
            unit_cost=self.unit_cost,
            balance_after=self.balance_after,
            reference_type=ReferenceType(self.reference_type),
            reference_id=self.reference_id,
            reference_no=self.reference_no,
            sequence_no=self.sequence_no,
            batch_id=self.batch_id,
            reverses_entry_id=self.reverses_entry_id,
            occurred_at=self.occurred_at,
            created_by_id=self.created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<StockLedgerEntry {self.movement_type} product={self.product_id} "
            f"location={self.location_id} delta={self.quantity_delta} "
            f"balance={self.balance_after} seq={self.sequence_no}>"
        )
