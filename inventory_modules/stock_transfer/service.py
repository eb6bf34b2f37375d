"""
Stock Transfer Service (``inventory_modules.stock_transfer.service``).

Responsibility
--------------
Moves stock between two locations in two steps.  Posting (dispatch) writes
a ``transfer_out`` entry at the source for every line; the goods are then
in transit.  ``receive_items`` records cumulative received and damaged
quantities per line and writes ``transfer_in`` at the destination for the
newly received amount.  When every line is received or damaged the
transfer completes.

Architecture
------------
Layer: **Modules** -- specialization of ``DocumentService``.

Invariants
----------
- received + damaged never exceeds the quantity sent on a line, and
  neither total ever decreases.
- Damaged units leave the source and never reach the destination ledger.
- Each line reaches the destination at the cost recorded on its own
  dispatch entry.
- A completed transfer cannot be cancelled.  Cancelling a posted transfer
  reverses the dispatch and every receipt so far.

Failure Modes
-------------
- InvalidStateTransitionError: receiving on a transfer that is not posted.
- DocumentLineNotFoundError: a quantity keyed by a line id of another
  transfer.
- ValidationFailedError: decreases, negatives, or over-receipt.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID

from inventory_kernel.domain.dtos import LedgerEntry, MovementType, ReferenceType
from inventory_kernel.exceptions import (
    DocumentLineNotFoundError,
    InvalidStateTransitionError,
    ValidationFailedError,
)
from inventory_kernel.logging_config import get_logger
from inventory_modules._document_service import DocumentService
from inventory_modules.stock_transfer.models import (
    StockTransfer,
    StockTransferHeaderSpec,
    StockTransferLineSpec,
    StockTransferStatus,
    TransferLineStatus,
    derive_line_status,
)
from inventory_modules.stock_transfer.orm import StockTransferLineModel, StockTransferModel
from inventory_modules.stock_transfer.workflows import STOCK_TRANSFER_WORKFLOW

logger = get_logger("modules.stock_transfer.service")


class StockTransferService(DocumentService):
    """
    Lifecycle of stock transfers.

    Contract:
        ``post`` dispatches, ``receive_items`` / ``complete`` receive,
        ``cancel`` reverses whatever was written so far.
    """

    document_type = ReferenceType.STOCK_TRANSFER
    header_model = StockTransferModel
    line_model = StockTransferLineModel
    workflow = STOCK_TRANSFER_WORKFLOW
    location_fields = ("from_location_id", "to_location_id")

    def post(self, document_id: UUID, actor_id: UUID) -> StockTransfer:
        """Dispatch a draft transfer: the source loses every line's quantity."""
        return self._post(document_id, actor_id)

    def receive_items(
        self,
        transfer_id: UUID,
        received_quantities: Mapping[UUID, Decimal],
        damaged_quantities: Mapping[UUID, Decimal] | None,
        actor_id: UUID,
    ) -> StockTransfer:
        """
        Record cumulative received/damaged totals per line.

        Args:
            received_quantities: line id -> total received so far (line unit).
            damaged_quantities: line id -> total damaged so far (line unit).
                Lines not mentioned keep their current totals.

        Returns:
            The transfer; ``completed`` once every line is terminal.
        """
        with self._unit_of_work("receive", actor_id, transfer_id):
            doc = self._lock(transfer_id)
            self._require_in_transit(doc, "receive")
            self._receive(doc, received_quantities, damaged_quantities or {}, actor_id)
            return self.to_dto(doc)

    def complete(self, transfer_id: UUID, actor_id: UUID) -> StockTransfer:
        """Receive every outstanding quantity in full and complete the transfer."""
        with self._unit_of_work("complete", actor_id, transfer_id):
            doc = self._lock(transfer_id)
            self._require_in_transit(doc, "complete")
            received = {
                line.id: line.quantity - line.quantity_damaged for line in doc.lines
            }
            self._receive(doc, received, {}, actor_id)
            return self.to_dto(doc)

    # ------------------------------------------------------------------
    # Receipt internals
    # ------------------------------------------------------------------

    def _require_in_transit(self, doc: StockTransferModel, action: str) -> None:
        if doc.status != StockTransferStatus.POSTED.value:
            raise InvalidStateTransitionError(
                document_type=self.document_label,
                document_id=str(doc.id),
                current_status=doc.status,
                action=action,
            )

    def _receive(
        self,
        doc: StockTransferModel,
        received_quantities: Mapping[UUID, Decimal],
        damaged_quantities: Mapping[UUID, Decimal],
        actor_id: UUID,
    ) -> None:
        lines = {line.id: line for line in doc.lines}
        for line_id in (*received_quantities.keys(), *damaged_quantities.keys()):
            if line_id not in lines:
                raise DocumentLineNotFoundError(str(doc.id), str(line_id))

        errors = []
        plan = []
        for line in doc.lines:
            received = received_quantities.get(line.id, line.quantity_received)
            damaged = damaged_quantities.get(line.id, line.quantity_damaged)
            if received < 0 or damaged < 0:
                errors.append(f"line {line.line_no}: quantities cannot be negative")
            elif received < line.quantity_received or damaged < line.quantity_damaged:
                errors.append(
                    f"line {line.line_no}: received/damaged totals cannot decrease "
                    f"(had {line.quantity_received}/{line.quantity_damaged}, "
                    f"got {received}/{damaged})"
                )
            elif received + damaged > line.quantity:
                errors.append(
                    f"line {line.line_no}: received {received} + damaged {damaged} "
                    f"exceeds sent {line.quantity}"
                )
            plan.append((line, received, damaged))
        if errors:
            raise ValidationFailedError(f"Invalid transfer receipt: {errors[0]}", errors)

        for line, received, damaged in plan:
            delta = received - line.quantity_received
            if delta > 0:
                self._ledger.append(
                    product_id=line.product_id,
                    location_id=doc.to_location_id,
                    movement_type=MovementType.TRANSFER_IN,
                    quantity_delta=delta * line.conversion_factor,
                    unit_cost=line.dispatch_unit_cost,
                    reference_type=self.document_type,
                    reference_id=doc.id,
                    actor_id=actor_id,
                    reference_no=doc.document_no,
                )
            line.quantity_received = received
            line.quantity_damaged = damaged
            line.line_status = derive_line_status(line.quantity, received, damaged).value
            line.updated_by_id = actor_id
        self._session.flush()

        logger.info(
            "transfer_items_received",
            extra={
                "line_statuses": {str(line.line_no): line.line_status for line in doc.lines},
            },
        )

        if all(TransferLineStatus(line.line_status).is_terminal for line in doc.lines):
            transition = self._transition(doc, "complete")
            doc.status = transition.to_state
            doc.completed_at = self._clock.now()
            doc.updated_by_id = actor_id
            self._session.flush()
            logger.info("transfer_completed")

    # ------------------------------------------------------------------
    # DocumentService hooks
    # ------------------------------------------------------------------

    def _header_values(self, header: StockTransferHeaderSpec, existing=None) -> dict[str, Any]:
        from_location = self._require_location(header.from_location_id)
        to_location = self._require_location(header.to_location_id)
        if from_location == to_location:
            raise ValidationFailedError("Source and destination locations must differ")
        return {
            "from_location_id": from_location,
            "to_location_id": to_location,
        }

    def _line_values(
        self,
        header: StockTransferHeaderSpec,
        spec: StockTransferLineSpec,
        line_no: int,
    ) -> dict[str, Any]:
        return {
            "quantity_received": Decimal("0"),
            "quantity_damaged": Decimal("0"),
            "line_status": TransferLineStatus.PENDING.value,
            "expiry_date": spec.expiry_date,
        }

    def _apply_posting(self, doc: StockTransferModel, actor_id: UUID) -> list[LedgerEntry]:
        entries = []
        for line in doc.lines:
            entry = self._ledger.append(
                product_id=line.product_id,
                location_id=doc.from_location_id,
                movement_type=MovementType.TRANSFER_OUT,
                quantity_delta=-line.base_quantity,
                unit_cost=line.base_unit_cost if line.unit_cost > 0 else None,
                reference_type=self.document_type,
                reference_id=doc.id,
                actor_id=actor_id,
                reference_no=doc.document_no,
            )
            line.dispatch_unit_cost = entry.unit_cost
            entries.append(entry)
        # Lines are frozen once the header leaves draft
        self._session.flush()
        return entries
