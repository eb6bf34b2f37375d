"""
Stock Adjustment Service (``inventory_modules.stock_adjustment.service``).

Responsibility
--------------
Corrects the quantity on hand at one location.  An adjustment is drafted
with signed line deltas and a reason code, and only reaches the ledger
when it is approved: each line becomes an ``adjustment_increase`` or
``adjustment_decrease`` entry, and the quantity before and after is
captured on the line.

Architecture
------------
Layer: **Modules** -- specialization of ``DocumentService`` whose posting
verb is ``approve``.

Invariants
----------
- reason_code is non-empty and, when ``adjustment_reasons`` is
  configured, one of them.
- With ``require_distinct_approver`` the creator cannot approve.
- A decrease never drives the location (or the named batch) below zero
  unless negative stock is allowed for ``adjustment_decrease``.

Failure Modes
-------------
- SelfApprovalError: the creator approves under the distinct-approver rule.
- InsufficientStockError / InsufficientBatchQuantityError on decreases.
- BatchNotFoundError: the named batch does not exist for the product.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from inventory_kernel.domain.dtos import LedgerEntry, MovementType, ReferenceType
from inventory_kernel.domain.workflow import Transition
from inventory_kernel.exceptions import SelfApprovalError, ValidationFailedError
from inventory_kernel.logging_config import get_logger
from inventory_modules._document_service import DocumentService
from inventory_modules.stock_adjustment.models import (
    StockAdjustment,
    StockAdjustmentHeaderSpec,
    StockAdjustmentLineSpec,
)
from inventory_modules.stock_adjustment.orm import (
    StockAdjustmentLineModel,
    StockAdjustmentModel,
)
from inventory_modules.stock_adjustment.workflows import STOCK_ADJUSTMENT_WORKFLOW

logger = get_logger("modules.stock_adjustment.service")


class StockAdjustmentService(DocumentService):
    """Lifecycle of stock adjustments: create, update, approve, cancel."""

    document_type = ReferenceType.STOCK_ADJUSTMENT
    header_model = StockAdjustmentModel
    line_model = StockAdjustmentLineModel
    workflow = STOCK_ADJUSTMENT_WORKFLOW
    post_action = "approve"

    def approve(self, document_id: UUID, actor_id: UUID) -> StockAdjustment:
        """Approve a draft adjustment and apply every line to the ledger."""
        return self._post(document_id, actor_id)

    # ------------------------------------------------------------------
    # DocumentService hooks
    # ------------------------------------------------------------------

    def _header_values(self, header: StockAdjustmentHeaderSpec, existing=None) -> dict[str, Any]:
        reason_code = (header.reason_code or "").strip().lower()
        if not reason_code:
            raise ValidationFailedError("reason_code is required")
        allowed = self._config.adjustment_reasons
        if allowed and reason_code not in allowed:
            raise ValidationFailedError(
                f"Unknown adjustment reason {reason_code!r}; expected one of {list(allowed)}"
            )
        return {
            "location_id": self._require_location(header.location_id),
            "reason_code": reason_code,
        }

    def _line_quantity(self, spec: StockAdjustmentLineSpec) -> Decimal:
        return abs(spec.quantity_delta)

    def _line_values(
        self,
        header: StockAdjustmentHeaderSpec,
        spec: StockAdjustmentLineSpec,
        line_no: int,
    ) -> dict[str, Any]:
        return {
            "quantity_delta": spec.quantity_delta,
            "reason": spec.reason,
        }

    def _before_posting(
        self,
        doc: StockAdjustmentModel,
        transition: Transition,
        actor_id: UUID,
    ) -> None:
        if not transition.requires_approval:
            return
        if self._config.require_distinct_approver and doc.created_by_id == actor_id:
            raise SelfApprovalError(str(doc.id), str(actor_id))
        doc.approved_at = self._clock.now()
        doc.approved_by_id = actor_id

    def _apply_posting(self, doc: StockAdjustmentModel, actor_id: UUID) -> list[LedgerEntry]:
        entries = []
        for line in doc.lines:
            batch_id = None
            if self._config.batch_tracking_enabled and (line.batch_id or line.batch_no):
                batch = self._batches._resolve(
                    line.product_id, batch_id=line.batch_id, batch_no=line.batch_no,
                )
                line.batch_id = batch.id
                line.batch_no = batch.batch_no
                batch_id = batch.id

            increase = line.quantity_delta > 0
            entry = self._ledger.append(
                product_id=line.product_id,
                location_id=doc.location_id,
                movement_type=(
                    MovementType.ADJUSTMENT_INCREASE if increase
                    else MovementType.ADJUSTMENT_DECREASE
                ),
                quantity_delta=line.base_quantity if increase else -line.base_quantity,
                unit_cost=self._inbound_cost(line) if increase else None,
                reference_type=self.document_type,
                reference_id=doc.id,
                actor_id=actor_id,
                reference_no=doc.document_no,
                batch_id=batch_id,
            )
            line.quantity_before = entry.balance_after - entry.quantity_delta
            line.quantity_after = entry.balance_after
            entries.append(entry)

        # Captured quantities must be written while the header is still draft
        self._session.flush()
        logger.info(
            "adjustment_applied",
            extra={
                "reason_code": doc.reason_code,
                "net_delta": str(sum((e.quantity_delta for e in entries), Decimal("0"))),
            },
        )
        return entries
