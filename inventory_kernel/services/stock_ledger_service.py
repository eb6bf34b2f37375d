"""
StockLedgerService -- the only writer of stock ledger entries.

Responsibility:
    Appends immutable quantity movements for a (product, location) pair and
    updates the materialized stock level in the same flush.  Writes the
    compensating entries that cancel a document's earlier movements.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only; the document
    services in ``inventory_modules`` own commit/rollback.

Invariants enforced:
    - Running balance: balance_after = previous balance_after + delta, with
      the previous value read from the stock level row while it is locked
      (``SELECT ... FOR UPDATE``).  Two writers for the same pair are
      serialized, so no movement is lost.
    - sequence_no = stock level ``last_sequence_no`` + 1, under the same lock.
    - Direction: inbound movement types take positive deltas, outbound types
      negative ones.  Zero deltas are rejected.
    - No negative stock unless the configuration allows it for the
      movement type.
    - Batch pairing: when ``batch_id`` is given, the batch quantity changes
      by the same delta in the same flush, and the entry records the batch.
    - Single reversal: an entry is compensated at most once (UNIQUE
      reverses_entry_id; already-reversed entries are skipped).

Failure modes:
    - InsufficientStockError, InsufficientBatchQuantityError.
    - ValidationFailedError for zero or wrongly signed deltas.
    - ConcurrencyConflictError when the stock level row could not be
      created or found after a concurrent insert.

Audit relevance:
    Every append is logged at INFO with product, location, delta, balance
    and reference.  Entries are never updated or deleted (see
    db/immutability.py).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from inventory_kernel.config import InventoryConfig
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import LedgerEntry, MovementType, ReferenceType
from inventory_kernel.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    ValidationFailedError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.stock_ledger import StockLedgerEntryModel
from inventory_kernel.models.stock_level import StockLevelModel
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.batch_service import ProductBatchService

logger = get_logger("services.stock_ledger")

_COST_QUANTUM = Decimal("0.000000001")


class StockLedgerService(BaseService[StockLedgerEntryModel]):
    """
    Append-only writer for the stock ledger.

    Contract:
        ``append`` returns the persisted entry as a frozen ``LedgerEntry``.
        Nothing is committed; a rollback by the caller removes the entry,
        the stock level change and the batch change together.

    Non-goals:
        - Does NOT know about document workflows; callers decide which
          movement type and reference to record.
        - Does NOT read historical balances (see StockLedgerSelector).
    """

    def __init__(
        self,
        session: Session,
        config: InventoryConfig | None = None,
        clock: Clock | None = None,
        batch_service: ProductBatchService | None = None,
    ):
        super().__init__(session, config, clock)
        self.batches = batch_service or ProductBatchService(session, self.config, self.clock)

    def append(
        self,
        product_id: UUID,
        location_id: UUID,
        movement_type: MovementType,
        quantity_delta: Decimal,
        unit_cost: Decimal | None,
        reference_type: ReferenceType,
        reference_id: UUID,
        actor_id: UUID,
        *,
        reference_no: str | None = None,
        batch_id: UUID | None = None,
        reverses_entry_id: UUID | None = None,
    ) -> LedgerEntry:
        """
        Append one movement and update the stock level.

        Args:
            quantity_delta: Signed change in base units.
            unit_cost: Cost per base unit; inbound movements with a cost
                update the moving average cost.
            batch_id: Batch whose quantity changes by the same delta.
            reverses_entry_id: Entry this one compensates (REVERSAL only).

        Raises:
            ValidationFailedError: zero delta, sign not matching the
                movement direction, or negative unit cost.
            InsufficientStockError: the balance would go negative and the
                configuration does not allow it.
            InsufficientBatchQuantityError: the batch would go negative.
        """
        movement_type = MovementType(movement_type)
        reference_type = ReferenceType(reference_type)
        self._validate(movement_type, quantity_delta, unit_cost, reverses_entry_id)

        level = self._lock_level(product_id, location_id, actor_id)
        new_balance = level.quantity + quantity_delta
        if new_balance < 0 and not self.config.allows_negative(movement_type):
            logger.warning(
                "insufficient_stock",
                extra={
                    "product_id": str(product_id),
                    "location_id": str(location_id),
                    "available": str(level.quantity),
                    "delta": str(quantity_delta),
                    "movement_type": movement_type.value,
                },
            )
            raise InsufficientStockError(
                product_id=str(product_id),
                location_id=str(location_id),
                available=level.quantity,
                requested_delta=quantity_delta,
                movement_type=movement_type.value,
            )

        if batch_id is not None:
            self.batches._apply_delta(batch_id, quantity_delta, actor_id)

        now = self.clock.now()
        sequence_no = level.last_sequence_no + 1
        recorded_cost = unit_cost
        if recorded_cost is None and quantity_delta < 0:
            recorded_cost = level.average_cost

        entry = StockLedgerEntryModel(
            product_id=product_id,
            location_id=location_id,
            movement_type=movement_type.value,
            quantity_delta=quantity_delta,
            unit_cost=recorded_cost,
            balance_after=new_balance,
            sequence_no=sequence_no,
            reference_type=reference_type.value,
            reference_id=reference_id,
            reference_no=reference_no,
            batch_id=batch_id,
            reverses_entry_id=reverses_entry_id,
            occurred_at=now,
            created_by_id=actor_id,
        )
        self.session.add(entry)

        if quantity_delta > 0 and unit_cost is not None:
            level.average_cost = self._blend_cost(
                level.quantity, level.average_cost, quantity_delta, unit_cost,
            )
            level.last_cost = unit_cost
        level.quantity = new_balance
        level.last_sequence_no = sequence_no
        level.last_movement_at = now
        level.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "stock_ledger_entry_appended",
            extra={
                "entry_id": str(entry.id),
                "product_id": str(product_id),
                "location_id": str(location_id),
                "movement_type": movement_type.value,
                "delta": str(quantity_delta),
                "balance_after": str(new_balance),
                "sequence_no": sequence_no,
                "reference_type": reference_type.value,
                "reference_id": str(reference_id),
            },
        )
        return entry.to_dto()

    def reverse_reference(
        self,
        reference_type: ReferenceType,
        reference_id: UUID,
        actor_id: UUID,
        *,
        reference_no: str | None = None,
    ) -> list[LedgerEntry]:
        """
        Compensate every not-yet-reversed entry of a document.

        Entries are reversed newest first.  Each reversal carries the
        negated delta, the original unit cost and batch, and points at the
        entry it compensates.

        Returns:
            The reversal entries written (empty if nothing was left).
        """
        reference_type = ReferenceType(reference_type)
        originals = self._unreversed_entries(reference_type, reference_id)
        reversals = []
        for original in originals:
            reversals.append(
                self.append(
                    product_id=original.product_id,
                    location_id=original.location_id,
                    movement_type=MovementType.REVERSAL,
                    quantity_delta=-original.quantity_delta,
                    unit_cost=original.unit_cost,
                    reference_type=reference_type,
                    reference_id=reference_id,
                    actor_id=actor_id,
                    reference_no=reference_no or original.reference_no,
                    batch_id=original.batch_id,
                    reverses_entry_id=original.id,
                )
            )
        logger.info(
            "stock_ledger_reference_reversed",
            extra={
                "reference_type": reference_type.value,
                "reference_id": str(reference_id),
                "reversed_count": len(reversals),
            },
        )
        return reversals

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate(
        self,
        movement_type: MovementType,
        quantity_delta: Decimal,
        unit_cost: Decimal | None,
        reverses_entry_id: UUID | None,
    ) -> None:
        if quantity_delta == 0:
            raise ValidationFailedError("quantity_delta must be non-zero")
        direction = movement_type.direction
        if direction and (quantity_delta > 0) != (direction > 0):
            raise ValidationFailedError(
                f"{movement_type.value} requires a "
                f"{'positive' if direction > 0 else 'negative'} delta, "
                f"got {quantity_delta}"
            )
        if unit_cost is not None and unit_cost < 0:
            raise ValidationFailedError(f"unit_cost cannot be negative, got {unit_cost}")
        if (movement_type == MovementType.REVERSAL) != (reverses_entry_id is not None):
            raise ValidationFailedError(
                "reverses_entry_id is required for, and only for, reversal entries"
            )

    def _select_level(self, product_id: UUID, location_id: UUID) -> StockLevelModel | None:
        return self.session.execute(
            select(StockLevelModel)
            .where(
                StockLevelModel.product_id == product_id,
                StockLevelModel.location_id == location_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _lock_level(
        self,
        product_id: UUID,
        location_id: UUID,
        actor_id: UUID,
    ) -> StockLevelModel:
        level = self._select_level(product_id, location_id)
        if level is not None:
            return level

        # First movement for the pair
        savepoint = self.session.begin_nested()
        try:
            level = StockLevelModel(
                product_id=product_id,
                location_id=location_id,
                quantity=Decimal("0"),
                average_cost=Decimal("0"),
                last_sequence_no=0,
                created_by_id=actor_id,
            )
            self.session.add(level)
            self.session.flush()
            savepoint.commit()
            return level
        except IntegrityError:
            savepoint.rollback()
            logger.debug(
                "stock_level_create_race",
                extra={"product_id": str(product_id), "location_id": str(location_id)},
            )

        level = self._select_level(product_id, location_id)
        if level is None:
            raise ConcurrencyConflictError(
                "StockLevel",
                f"{product_id}@{location_id}",
                "concurrent creation could not be resolved",
            )
        return level

    def _unreversed_entries(
        self,
        reference_type: ReferenceType,
        reference_id: UUID,
    ) -> list[StockLedgerEntryModel]:
        reversal = aliased(StockLedgerEntryModel)
        already_reversed = (
            select(reversal.id)
            .where(reversal.reverses_entry_id == StockLedgerEntryModel.id)
            .exists()
        )
        return list(
            self.session.execute(
                select(StockLedgerEntryModel)
                .where(
                    StockLedgerEntryModel.reference_type == reference_type.value,
                    StockLedgerEntryModel.reference_id == reference_id,
                    StockLedgerEntryModel.movement_type != MovementType.REVERSAL.value,
                    ~already_reversed,
                )
                .order_by(
                    StockLedgerEntryModel.occurred_at.desc(),
                    StockLedgerEntryModel.sequence_no.desc(),
                )
            ).scalars()
        )

    @staticmethod
    def _blend_cost(
        on_hand: Decimal,
        average_cost: Decimal,
        delta: Decimal,
        unit_cost: Decimal,
    ) -> Decimal:
        """Moving average cost after an inbound movement."""
        if on_hand <= 0:
            return unit_cost
        total = on_hand + delta
        return ((on_hand * average_cost + delta * unit_cost) / total).quantize(_COST_QUANTUM)
