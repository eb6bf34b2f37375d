"""
Goods Received Service (``inventory_modules.goods_received.service``).

Responsibility
--------------
Receives goods from a supplier into a location.  Posting a GRN writes one
``receipt`` ledger entry per line and puts the goods into a batch when a
batch number is given (or generated).

Architecture
------------
Layer: **Modules** -- thin specialization of ``DocumentService``.

Invariants
----------
- Each public method owns its transaction boundary (see DocumentService).
- A line with a batch number adds to the product's existing batch of that
  number, or creates it; the batch change is paired with the receipt entry.
- Cancelling a posted GRN reverses the receipts and the batch additions;
  it fails with InsufficientStockError / InsufficientBatchQuantityError if
  the goods were already consumed.

Usage::

    service = GoodsReceivedService(session, master_data, config, clock)
    grn = service.create(
        GoodsReceivedHeaderSpec(supplier_id=supplier, location_id=store),
        [GoodsReceivedLineSpec(product_id=milk, quantity=Decimal("50"),
                               unit_cost=Decimal("10"), batch_no="B100")],
        actor_id,
    )
    grn = service.post(grn.id, actor_id)
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from inventory_kernel.domain.dtos import LedgerEntry, MovementType, ReferenceType
from inventory_kernel.exceptions import ValidationFailedError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.batch_service import ProductBatchService
from inventory_modules._document_service import DocumentService
from inventory_modules.goods_received.models import (
    GoodsReceivedHeaderSpec,
    GoodsReceivedLineSpec,
    GoodsReceivedNote,
)
from inventory_modules.goods_received.orm import (
    GoodsReceivedLineModel,
    GoodsReceivedNoteModel,
)
from inventory_modules.goods_received.workflows import GOODS_RECEIVED_WORKFLOW

logger = get_logger("modules.goods_received.service")


class GoodsReceivedService(DocumentService):
    """
    Lifecycle of goods received notes.

    Contract:
        ``create/update/post/cancel/delete/get/get_by_number/list``; every
        method returns a ``GoodsReceivedNote`` (or a Page of them).
    """

    document_type = ReferenceType.GOODS_RECEIVED
    header_model = GoodsReceivedNoteModel
    line_model = GoodsReceivedLineModel
    workflow = GOODS_RECEIVED_WORKFLOW

    def post(self, document_id: UUID, actor_id: UUID) -> GoodsReceivedNote:
        """Post a draft GRN: stock and batches go up by every line."""
        return self._post(document_id, actor_id)

    # ------------------------------------------------------------------
    # DocumentService hooks
    # ------------------------------------------------------------------

    def _header_values(self, header: GoodsReceivedHeaderSpec, existing=None) -> dict[str, Any]:
        return {
            "supplier_id": self._require_supplier(header.supplier_id),
            "location_id": self._require_location(header.location_id),
            "invoice_no": header.invoice_no,
            "invoice_date": header.invoice_date,
        }

    def _line_values(
        self,
        header: GoodsReceivedHeaderSpec,
        spec: GoodsReceivedLineSpec,
        line_no: int,
    ) -> dict[str, Any]:
        if spec.expiry_date and spec.manufacture_date and spec.expiry_date < spec.manufacture_date:
            raise ValidationFailedError(
                f"line {line_no}: expiry date is before manufacture date"
            )
        return {
            "expiry_date": spec.expiry_date,
            "manufacture_date": spec.manufacture_date,
        }

    def _batch_no_for(self, doc: GoodsReceivedNoteModel, line: GoodsReceivedLineModel) -> str | None:
        if not self._config.batch_tracking_enabled:
            return None
        if line.batch_no:
            return line.batch_no
        if self._config.auto_generate_batch_numbers:
            return ProductBatchService.default_batch_no(
                doc.document_date, doc.document_no, line.line_no,
            )
        return None

    def _apply_posting(self, doc: GoodsReceivedNoteModel, actor_id: UUID) -> list[LedgerEntry]:
        entries = []
        for line in doc.lines:
            batch_id = None
            batch_no = self._batch_no_for(doc, line)
            if batch_no:
                batch = self._batches._get_or_create(
                    product_id=line.product_id,
                    batch_no=batch_no,
                    actor_id=actor_id,
                    expiry_date=line.expiry_date,
                    unit=line.unit if line.conversion_factor == 1 else None,
                    manufacture_date=line.manufacture_date,
                    unit_cost=self._inbound_cost(line),
                    supplier_id=doc.supplier_id,
                )
                line.batch_id = batch.id
                line.batch_no = batch.batch_no
                batch_id = batch.id

            entries.append(
                self._ledger.append(
                    product_id=line.product_id,
                    location_id=doc.location_id,
                    movement_type=MovementType.RECEIPT,
                    quantity_delta=line.base_quantity,
                    unit_cost=self._inbound_cost(line),
                    reference_type=self.document_type,
                    reference_id=doc.id,
                    actor_id=actor_id,
                    reference_no=doc.document_no,
                    batch_id=batch_id,
                )
            )
        return entries
