"""
Goods Replace Service (``inventory_modules.goods_replace.service``).

Responsibility
--------------
Receives replacement goods from a supplier.  Posting writes one
``replace_in`` entry per line and puts the goods into a batch the same
way a GRN does.

Architecture
------------
Layer: **Modules** -- specialization of ``DocumentService``.

Invariants
----------
- reference_return_id, when given, names an existing (not deleted) return;
  each line's reference_return_line_id belongs to that return and the
  same product.
- With ``enforce_replacement_limit``, posting checks under a lock on the
  referenced return that no return line is replaced beyond its returned
  base quantity, counting every posted replacement so far.

Failure Modes
-------------
- DocumentNotFoundError: the referenced return does not exist.
- DocumentLineNotFoundError: a line references a line of another return.
- ValidationFailedError: limit exceeded, or the return is not posted.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import LedgerEntry, MovementType, ReferenceType
from inventory_kernel.domain.workflow import Transition
from inventory_kernel.exceptions import (
    DocumentLineNotFoundError,
    DocumentNotFoundError,
    ValidationFailedError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.batch_service import ProductBatchService
from inventory_modules._document_service import DocumentService
from inventory_modules.goods_replace.models import (
    GoodsReplace,
    GoodsReplaceHeaderSpec,
    GoodsReplaceLineSpec,
)
from inventory_modules.goods_replace.orm import GoodsReplaceLineModel, GoodsReplaceModel
from inventory_modules.goods_replace.selectors import replaced_quantities_by_return_line
from inventory_modules.goods_replace.workflows import GOODS_REPLACE_WORKFLOW
from inventory_modules.goods_return.orm import GoodsReturnLineModel, GoodsReturnModel

logger = get_logger("modules.goods_replace.service")

RETURN_POSTED = "posted"


class GoodsReplaceService(DocumentService):
    """Lifecycle of goods replace documents."""

    document_type = ReferenceType.GOODS_REPLACE
    header_model = GoodsReplaceModel
    line_model = GoodsReplaceLineModel
    workflow = GOODS_REPLACE_WORKFLOW

    def post(self, document_id: UUID, actor_id: UUID) -> GoodsReplace:
        """Post a draft replacement: stock and batches go up by every line."""
        return self._post(document_id, actor_id)

    # ------------------------------------------------------------------
    # DocumentService hooks
    # ------------------------------------------------------------------

    def _header_values(self, header: GoodsReplaceHeaderSpec, existing=None) -> dict[str, Any]:
        if header.reference_return_id is not None:
            self._load_return(header.reference_return_id)
        return {
            "supplier_id": self._require_supplier(header.supplier_id),
            "location_id": self._require_location(header.location_id),
            "reference_return_id": header.reference_return_id,
        }

    def _line_values(
        self,
        header: GoodsReplaceHeaderSpec,
        spec: GoodsReplaceLineSpec,
        line_no: int,
    ) -> dict[str, Any]:
        if spec.reference_return_line_id is not None:
            self._check_return_line(header, spec, line_no)
        if spec.expiry_date and spec.manufacture_date and spec.expiry_date < spec.manufacture_date:
            raise ValidationFailedError(
                f"line {line_no}: expiry date is before manufacture date"
            )
        return {
            "reference_return_line_id": spec.reference_return_line_id,
            "expiry_date": spec.expiry_date,
            "manufacture_date": spec.manufacture_date,
        }

    def _before_posting(
        self,
        doc: GoodsReplaceModel,
        transition: Transition,
        actor_id: UUID,
    ) -> None:
        if not self._config.enforce_replacement_limit or doc.reference_return_id is None:
            return

        return_doc = self._lock_return(doc.reference_return_id)
        if return_doc.status != RETURN_POSTED:
            raise ValidationFailedError(
                f"Return {return_doc.document_no} is {return_doc.status}; "
                "only posted returns can be replaced"
            )

        returned = {line.id: line.base_quantity for line in return_doc.lines}
        already = replaced_quantities_by_return_line(self._session, return_doc.id)
        requested: dict[UUID, Decimal] = defaultdict(Decimal)
        for line in doc.lines:
            if line.reference_return_line_id is not None:
                requested[line.reference_return_line_id] += line.base_quantity

        errors = []
        for return_line_id, quantity in requested.items():
            limit = returned.get(return_line_id, Decimal("0"))
            done = already.get(return_line_id, Decimal("0"))
            if done + quantity > limit:
                errors.append(
                    f"return line {return_line_id}: replacing {quantity} exceeds "
                    f"outstanding {limit - done} (returned {limit}, replaced {done})"
                )
        if errors:
            logger.warning(
                "replacement_limit_exceeded",
                extra={"return_no": return_doc.document_no, "errors": errors},
            )
            raise ValidationFailedError(f"Replacement limit exceeded: {errors[0]}", errors)

    def _apply_posting(self, doc: GoodsReplaceModel, actor_id: UUID) -> list[LedgerEntry]:
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
                    movement_type=MovementType.REPLACE_IN,
                    quantity_delta=line.base_quantity,
                    unit_cost=self._inbound_cost(line),
                    reference_type=self.document_type,
                    reference_id=doc.id,
                    actor_id=actor_id,
                    reference_no=doc.document_no,
                    batch_id=batch_id,
                )
            )
        self._session.flush()
        return entries

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _batch_no_for(self, doc: GoodsReplaceModel, line: GoodsReplaceLineModel) -> str | None:
        if not self._config.batch_tracking_enabled:
            return None
        if line.batch_no:
            return line.batch_no
        if self._config.auto_generate_batch_numbers:
            return ProductBatchService.default_batch_no(
                doc.document_date, doc.document_no, line.line_no,
            )
        return None

    def _load_return(self, return_id: UUID) -> GoodsReturnModel:
        doc = self._session.execute(
            select(GoodsReturnModel).where(
                GoodsReturnModel.id == return_id,
                GoodsReturnModel.live(),
            )
        ).scalar_one_or_none()
        if doc is None:
            raise DocumentNotFoundError(ReferenceType.GOODS_RETURN.value, str(return_id))
        return doc

    def _lock_return(self, return_id: UUID) -> GoodsReturnModel:
        doc = self._session.execute(
            select(GoodsReturnModel)
            .where(
                GoodsReturnModel.id == return_id,
                GoodsReturnModel.live(),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if doc is None:
            raise DocumentNotFoundError(ReferenceType.GOODS_RETURN.value, str(return_id))
        return doc

    def _check_return_line(
        self,
        header: GoodsReplaceHeaderSpec,
        spec: GoodsReplaceLineSpec,
        line_no: int,
    ) -> None:
        if header.reference_return_id is None:
            raise ValidationFailedError(
                f"line {line_no}: reference_return_line_id needs a reference_return_id"
            )
        return_line = self._session.get(GoodsReturnLineModel, spec.reference_return_line_id)
        if return_line is None or return_line.document_id != header.reference_return_id:
            raise DocumentLineNotFoundError(
                str(header.reference_return_id), str(spec.reference_return_line_id),
            )
        if return_line.product_id != spec.product_id:
            raise ValidationFailedError(
                f"line {line_no}: product does not match the referenced return line"
            )
