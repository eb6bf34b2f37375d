"""
Goods Return Service (``inventory_modules.goods_return.service``).

Responsibility
--------------
Sends goods from a location back to a supplier.  Posting writes one
``return_out`` entry per line and takes the quantity out of the named
batch when there is one.

Architecture
------------
Layer: **Modules** -- thin specialization of ``DocumentService``.

Invariants
----------
- reference_grn_id, when given, names an existing (not deleted) GRN.
- A return never drives the location or batch negative unless negative
  stock is allowed for ``return_out``.
- The replaced quantity of a return line is derived from posted Goods
  Replace lines; it is never stored on the return.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import LedgerEntry, MovementType, ReferenceType
from inventory_kernel.exceptions import DocumentNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_modules._document_service import DocumentService
from inventory_modules.goods_received.orm import GoodsReceivedNoteModel
from inventory_modules.goods_replace.selectors import replaced_quantities_by_return_line
from inventory_modules.goods_return.models import (
    GoodsReturn,
    GoodsReturnHeaderSpec,
    GoodsReturnLineSpec,
)
from inventory_modules.goods_return.orm import GoodsReturnLineModel, GoodsReturnModel
from inventory_modules.goods_return.workflows import GOODS_RETURN_WORKFLOW

logger = get_logger("modules.goods_return.service")


class GoodsReturnService(DocumentService):
    """Lifecycle of goods returns."""

    document_type = ReferenceType.GOODS_RETURN
    header_model = GoodsReturnModel
    line_model = GoodsReturnLineModel
    workflow = GOODS_RETURN_WORKFLOW

    def post(self, document_id: UUID, actor_id: UUID) -> GoodsReturn:
        """Post a draft return: stock leaves the location for the supplier."""
        return self._post(document_id, actor_id)

    def replaced_quantities(self, return_id: UUID) -> dict[UUID, Decimal]:
        """
        Base-unit quantity already replaced per return line.

        Only posted replace documents count.  Lines with nothing replaced
        map to zero.
        """
        doc = self._load(return_id)
        replaced = replaced_quantities_by_return_line(self._session, doc.id)
        return {line.id: replaced.get(line.id, Decimal("0")) for line in doc.lines}

    # ------------------------------------------------------------------
    # DocumentService hooks
    # ------------------------------------------------------------------

    def _header_values(self, header: GoodsReturnHeaderSpec, existing=None) -> dict[str, Any]:
        if header.reference_grn_id is not None:
            self._require_grn(header.reference_grn_id)
        return {
            "supplier_id": self._require_supplier(header.supplier_id),
            "location_id": self._require_location(header.location_id),
            "reference_grn_id": header.reference_grn_id,
        }

    def _line_values(
        self,
        header: GoodsReturnHeaderSpec,
        spec: GoodsReturnLineSpec,
        line_no: int,
    ) -> dict[str, Any]:
        return {"reason": spec.reason}

    def _require_grn(self, grn_id: UUID) -> None:
        found = self._session.execute(
            select(GoodsReceivedNoteModel.id).where(
                GoodsReceivedNoteModel.id == grn_id,
                GoodsReceivedNoteModel.live(),
            )
        ).scalar_one_or_none()
        if found is None:
            raise DocumentNotFoundError(ReferenceType.GOODS_RECEIVED.value, str(grn_id))

    def _apply_posting(self, doc: GoodsReturnModel, actor_id: UUID) -> list[LedgerEntry]:
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

            entries.append(
                self._ledger.append(
                    product_id=line.product_id,
                    location_id=doc.location_id,
                    movement_type=MovementType.RETURN_OUT,
                    quantity_delta=-line.base_quantity,
                    unit_cost=line.base_unit_cost if line.unit_cost > 0 else None,
                    reference_type=self.document_type,
                    reference_id=doc.id,
                    actor_id=actor_id,
                    reference_no=doc.document_no,
                    batch_id=batch_id,
                )
            )
        self._session.flush()
        return entries
