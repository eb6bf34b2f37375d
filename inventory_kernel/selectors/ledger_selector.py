"""
Module: inventory_kernel.selectors.ledger_selector
Responsibility: Read-only stock ledger queries: current balance, movement
    history, entries by originating document, replay of the balance from
    deltas, running balance verification and movement summaries.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Replay: the balance of a (product, location) pair is reproducible as
      the sum of its ledger deltas.  ``verify_running_balance`` checks the
      stored chain (balance_after, sequence_no) and the stock level row
      against that replay.

Failure modes:
    - Returns zero balances and empty histories for pairs without entries.

Audit relevance:
    ``verify_running_balance`` is the integrity check for the ledger: a
    failed verification means a row was written outside
    StockLedgerService.append or edited behind the ORM.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import LedgerEntry, MovementType, ReferenceType
from inventory_kernel.models.stock_ledger import StockLedgerEntryModel
from inventory_kernel.models.stock_level import StockLevelModel
from inventory_kernel.selectors.base import BaseSelector


@dataclass
class LedgerVerification:
    """Outcome of checking one (product, location) ledger chain."""

    product_id: UUID
    location_id: UUID
    entry_count: int
    replayed_balance: Decimal
    level_quantity: Decimal
    errors: list[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.errors


class LedgerSelector(BaseSelector[StockLedgerEntryModel]):
    """
    Selector for stock ledger queries.

    Contract:
        Histories are ordered by sequence_no ascending.  Balances are
        Decimals, never floats.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def get_balance(self, product_id: UUID, location_id: UUID) -> Decimal:
        """Latest ledger balance for the pair (0 if no entries)."""
        balance = self.session.execute(
            select(StockLedgerEntryModel.balance_after)
            .where(
                StockLedgerEntryModel.product_id == product_id,
                StockLedgerEntryModel.location_id == location_id,
            )
            .order_by(StockLedgerEntryModel.sequence_no.desc())
            .limit(1)
        ).scalar_one_or_none()
        return balance if balance is not None else Decimal("0")

    def get_history(
        self,
        product_id: UUID,
        location_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[LedgerEntry]:
        """
        Entries for the pair, ascending by sequence.

        Args:
            start: Include entries with occurred_at >= start.
            end: Include entries with occurred_at <= end.
        """
        query = select(StockLedgerEntryModel).where(
            StockLedgerEntryModel.product_id == product_id,
            StockLedgerEntryModel.location_id == location_id,
        )
        if start is not None:
            query = query.where(StockLedgerEntryModel.occurred_at >= start)
        if end is not None:
            query = query.where(StockLedgerEntryModel.occurred_at <= end)
        query = query.order_by(StockLedgerEntryModel.sequence_no)
        return [row.to_dto() for row in self.session.execute(query).scalars()]

    def get_by_reference(
        self,
        reference_type: ReferenceType,
        reference_id: UUID,
    ) -> list[LedgerEntry]:
        """Every entry written by one document, in write order."""
        query = (
            select(StockLedgerEntryModel)
            .where(
                StockLedgerEntryModel.reference_type == ReferenceType(reference_type).value,
                StockLedgerEntryModel.reference_id == reference_id,
            )
            .order_by(
                StockLedgerEntryModel.occurred_at,
                StockLedgerEntryModel.product_id,
                StockLedgerEntryModel.location_id,
                StockLedgerEntryModel.sequence_no,
            )
        )
        return [row.to_dto() for row in self.session.execute(query).scalars()]

    def replay_balance(self, product_id: UUID, location_id: UUID) -> Decimal:
        """Balance recomputed as the sum of every delta for the pair."""
        total = self.session.execute(
            select(func.sum(StockLedgerEntryModel.quantity_delta)).where(
                StockLedgerEntryModel.product_id == product_id,
                StockLedgerEntryModel.location_id == location_id,
            )
        ).scalar_one()
        return total if total is not None else Decimal("0")

    def verify_running_balance(
        self,
        product_id: UUID,
        location_id: UUID,
    ) -> LedgerVerification:
        """
        Walk the chain for the pair and compare it with the stock level row.

        Checks that sequence numbers run 1..n without gaps, that every
        balance_after equals the previous balance plus the delta, and that
        the stock level quantity equals the final balance.
        """
        entries = self.get_history(product_id, location_id)
        errors: list[str] = []
        running = Decimal("0")
        for expected_seq, entry in enumerate(entries, start=1):
            if entry.sequence_no != expected_seq:
                errors.append(
                    f"sequence gap: expected {expected_seq}, found {entry.sequence_no}"
                )
            running += entry.quantity_delta
            if entry.balance_after != running:
                errors.append(
                    f"entry {entry.sequence_no}: balance_after {entry.balance_after} "
                    f"!= replayed {running}"
                )

        level_quantity = self.session.execute(
            select(StockLevelModel.quantity).where(
                StockLevelModel.product_id == product_id,
                StockLevelModel.location_id == location_id,
            )
        ).scalar_one_or_none()
        if level_quantity is None:
            level_quantity = Decimal("0")
        if level_quantity != running:
            errors.append(f"stock level {level_quantity} != replayed {running}")

        return LedgerVerification(
            product_id=product_id,
            location_id=location_id,
            entry_count=len(entries),
            replayed_balance=running,
            level_quantity=level_quantity,
            errors=errors,
        )

    def movement_summary(
        self,
        product_id: UUID,
        location_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[MovementType, Decimal]:
        """Net quantity per movement type over an optional time window."""
        query = (
            select(
                StockLedgerEntryModel.movement_type,
                func.sum(StockLedgerEntryModel.quantity_delta).label("total"),
            )
            .where(
                StockLedgerEntryModel.product_id == product_id,
                StockLedgerEntryModel.location_id == location_id,
            )
            .group_by(StockLedgerEntryModel.movement_type)
        )
        if start is not None:
            query = query.where(StockLedgerEntryModel.occurred_at >= start)
        if end is not None:
            query = query.where(StockLedgerEntryModel.occurred_at <= end)

        return {
            MovementType(row.movement_type): row.total or Decimal("0")
            for row in self.session.execute(query).all()
        }
