"""
Read-side queries over posted replacements.

Shared by the return service (``replaced_quantities``) and the replace
service (replacement limit check).  Imports only this module's ORM so the
return and replace modules can both use it without importing each other's
services.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_modules.goods_replace.orm import GoodsReplaceLineModel, GoodsReplaceModel

POSTED = "posted"


def replaced_quantities_by_return_line(session: Session, return_id: UUID) -> dict[UUID, Decimal]:
    """Base-unit quantity replaced so far per line of ``return_id``.

    Only posted, non-deleted replace documents count; drafts and cancelled
    replacements do not.
    """
    rows = session.execute(
        select(
            GoodsReplaceLineModel.reference_return_line_id,
            func.sum(GoodsReplaceLineModel.base_quantity),
        )
        .join(GoodsReplaceModel, GoodsReplaceLineModel.document_id == GoodsReplaceModel.id)
        .where(
            GoodsReplaceModel.reference_return_id == return_id,
            GoodsReplaceModel.status == POSTED,
            GoodsReplaceModel.live(),
            GoodsReplaceLineModel.reference_return_line_id.is_not(None),
        )
        .group_by(GoodsReplaceLineModel.reference_return_line_id)
    ).all()
    return {line_id: Decimal(total) for line_id, total in rows}
