"""
ProductBatchService -- lot-level quantity and expiry state.

Responsibility:
    Creates product batches, adjusts their quantity and keeps their
    Active/Inactive status in step with the quantity.  Document posting
    reaches batches through ``StockLedgerService.append(batch_id=...)`` so
    that every batch change made by a document is paired with the ledger
    entry that caused it.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only.

Invariants enforced:
    - Batch number unique within a product (checked up front, and the
      UNIQUE constraint is mapped to DuplicateBatchError).
    - Quantity never negative (InsufficientBatchQuantityError).
    - Status ACTIVE iff quantity > 0, recomputed on every change.

Failure modes:
    - DuplicateBatchError, InsufficientBatchQuantityError,
      BatchNotFoundError, ValidationFailedError.
    - StaleDataError on the optimistic version check when a concurrent
      transaction changed the batch (surfaced by document services as
      ConcurrencyConflictError).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from inventory_kernel.domain.dtos import Batch, BatchStatus
from inventory_kernel.exceptions import (
    BatchNotFoundError,
    DuplicateBatchError,
    InsufficientBatchQuantityError,
    ValidationFailedError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.product_batch import ProductBatchModel
from inventory_kernel.services.base import BaseService

logger = get_logger("services.batch")


class ProductBatchService(BaseService[ProductBatchModel]):
    """
    Write-side operations on product batches.

    Contract:
        Public methods return frozen ``Batch`` DTOs (or a bool); the
        underscore methods return locked ORM rows for use by other kernel
        services inside the same transaction.

    Non-goals:
        - Does NOT write ledger entries.  Document workflows adjust batches
          through the ledger so the pairing is recorded.
        - Does NOT pick batches (FEFO etc.) for outbound movements.
    """

    def create(
        self,
        product_id: UUID,
        batch_no: str,
        quantity: Decimal,
        expiry_date: date | None,
        actor_id: UUID,
        *,
        unit: str | None = None,
        manufacture_date: date | None = None,
        unit_cost: Decimal | None = None,
        supplier_id: UUID | None = None,
    ) -> Batch:
        """
        Create a batch.

        Raises:
            DuplicateBatchError: ``batch_no`` already exists for the product.
            ValidationFailedError: empty batch number or negative quantity.
        """
        model = self._create(
            product_id=product_id,
            batch_no=batch_no,
            quantity=quantity,
            expiry_date=expiry_date,
            actor_id=actor_id,
            unit=unit,
            manufacture_date=manufacture_date,
            unit_cost=unit_cost,
            supplier_id=supplier_id,
        )
        return model.to_dto()

    def adjust_quantity(self, batch_id: UUID, delta: Decimal, actor_id: UUID) -> bool:
        """
        Add ``delta`` (signed) to the batch quantity.

        Returns:
            True if the batch is active after the adjustment.

        Raises:
            BatchNotFoundError: unknown batch id.
            InsufficientBatchQuantityError: the result would be negative.
        """
        model = self._apply_delta(batch_id, delta, actor_id)
        return model.status == BatchStatus.ACTIVE.value

    def receive_into_batch(
        self,
        product_id: UUID,
        batch_no: str,
        quantity: Decimal,
        actor_id: UUID,
        *,
        expiry_date: date | None = None,
        unit: str | None = None,
        manufacture_date: date | None = None,
        unit_cost: Decimal | None = None,
        supplier_id: UUID | None = None,
    ) -> Batch:
        """
        Add ``quantity`` to the batch with this number, creating it if needed.

        An existing batch keeps its expiry date unless it had none.
        """
        if quantity <= 0:
            raise ValidationFailedError(
                f"Received quantity must be positive, got {quantity}"
            )
        model = self._get_or_create(
            product_id=product_id,
            batch_no=batch_no,
            actor_id=actor_id,
            expiry_date=expiry_date,
            unit=unit,
            manufacture_date=manufacture_date,
            unit_cost=unit_cost,
            supplier_id=supplier_id,
        )
        return self._apply_delta(model.id, quantity, actor_id).to_dto()

    # ------------------------------------------------------------------
    # Kernel-internal helpers (same transaction as the caller)
    # ------------------------------------------------------------------

    def _create(
        self,
        *,
        product_id: UUID,
        batch_no: str,
        quantity: Decimal,
        expiry_date: date | None,
        actor_id: UUID,
        unit: str | None = None,
        manufacture_date: date | None = None,
        unit_cost: Decimal | None = None,
        supplier_id: UUID | None = None,
    ) -> ProductBatchModel:
        batch_no = (batch_no or "").strip()
        if not batch_no:
            raise ValidationFailedError("batch_no is required")
        if quantity < 0:
            raise ValidationFailedError(
                f"Batch quantity cannot be negative, got {quantity}"
            )
        if manufacture_date and expiry_date and expiry_date < manufacture_date:
            raise ValidationFailedError(
                f"Batch {batch_no} expires before it was manufactured"
            )

        if self._find(product_id, batch_no) is not None:
            raise DuplicateBatchError(str(product_id), batch_no)

        model = ProductBatchModel(
            product_id=product_id,
            batch_no=batch_no,
            quantity=quantity,
            unit=unit,
            expiry_date=expiry_date,
            manufacture_date=manufacture_date,
            unit_cost=unit_cost,
            supplier_id=supplier_id,
            status=BatchStatus.for_quantity(quantity).value,
            created_by_id=actor_id,
        )
        savepoint = self.session.begin_nested()
        try:
            self.session.add(model)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            raise DuplicateBatchError(str(product_id), batch_no) from None

        logger.info(
            "batch_created",
            extra={
                "batch_id": str(model.id),
                "product_id": str(product_id),
                "batch_no": batch_no,
                "quantity": str(quantity),
                "expiry_date": expiry_date.isoformat() if expiry_date else None,
            },
        )
        return model

    def _find(self, product_id: UUID, batch_no: str) -> ProductBatchModel | None:
        return self.session.execute(
            select(ProductBatchModel).where(
                ProductBatchModel.product_id == product_id,
                ProductBatchModel.batch_no == batch_no,
            )
        ).scalar_one_or_none()

    def _lock(self, batch_id: UUID) -> ProductBatchModel:
        model = self.session.execute(
            select(ProductBatchModel)
            .where(ProductBatchModel.id == batch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise BatchNotFoundError(str(batch_id))
        return model

    def _resolve(
        self,
        product_id: UUID,
        batch_id: UUID | None = None,
        batch_no: str | None = None,
    ) -> ProductBatchModel:
        """Find a batch of ``product_id`` by id or by number.

        Raises:
            BatchNotFoundError: no match, or the id belongs to another product.
        """
        if batch_id is not None:
            model = self._lock(batch_id)
            if model.product_id != product_id:
                raise BatchNotFoundError(str(batch_id), str(product_id))
            return model
        if batch_no:
            model = self._find(product_id, batch_no.strip())
            if model is None:
                raise BatchNotFoundError(batch_no, str(product_id))
            return self._lock(model.id)
        raise ValidationFailedError("batch_id or batch_no is required")

    def _get_or_create(
        self,
        *,
        product_id: UUID,
        batch_no: str,
        actor_id: UUID,
        expiry_date: date | None = None,
        unit: str | None = None,
        manufacture_date: date | None = None,
        unit_cost: Decimal | None = None,
        supplier_id: UUID | None = None,
    ) -> ProductBatchModel:
        """Existing batch with this number, or a new empty one.

        Inbound documents add to an existing batch of the same number; the
        quantity itself is applied by the paired ledger append.
        """
        existing = self._find(product_id, batch_no.strip())
        if existing is not None:
            model = self._lock(existing.id)
            if model.expiry_date is None and expiry_date is not None:
                model.expiry_date = expiry_date
                model.updated_by_id = actor_id
            return model
        return self._create(
            product_id=product_id,
            batch_no=batch_no,
            quantity=Decimal("0"),
            expiry_date=expiry_date,
            actor_id=actor_id,
            unit=unit,
            manufacture_date=manufacture_date,
            unit_cost=unit_cost,
            supplier_id=supplier_id,
        )

    def _apply_delta(
        self,
        batch_id: UUID,
        delta: Decimal,
        actor_id: UUID,
    ) -> ProductBatchModel:
        model = self._lock(batch_id)
        new_quantity = model.quantity + delta
        if new_quantity < 0:
            raise InsufficientBatchQuantityError(
                batch_id=str(model.id),
                batch_no=model.batch_no,
                available=model.quantity,
                requested_delta=delta,
            )

        old_status = model.status
        model.quantity = new_quantity
        model.status = BatchStatus.for_quantity(new_quantity).value
        model.updated_by_id = actor_id
        self.session.flush()

        logger.debug(
            "batch_quantity_adjusted",
            extra={
                "batch_id": str(model.id),
                "batch_no": model.batch_no,
                "delta": str(delta),
                "quantity": str(new_quantity),
            },
        )
        if old_status != model.status:
            logger.info(
                "batch_status_changed",
                extra={
                    "batch_id": str(model.id),
                    "batch_no": model.batch_no,
                    "from_status": old_status,
                    "to_status": model.status,
                },
            )
        return model

    @staticmethod
    def default_batch_no(received_on: date, document_no: str, line_no: int) -> str:
        """Generated batch number for lines received without one."""
        return f"BATCH-{received_on:%Y%m%d}-{document_no}-{line_no}"
