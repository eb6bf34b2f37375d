"""
Goods Return Module (``inventory_modules.goods_return``).

Responsibility
--------------
Goods sent back to a supplier from a location, optionally against the GRN
they arrived on.  Posting writes ``return_out`` ledger entries.
"""

from inventory_modules.goods_return.models import (
    GoodsReturn,
    GoodsReturnHeaderSpec,
    GoodsReturnLine,
    GoodsReturnLineSpec,
    GoodsReturnStatus,
)
from inventory_modules.goods_return.service import GoodsReturnService
from inventory_modules.goods_return.workflows import GOODS_RETURN_WORKFLOW

__all__ = [
    "GOODS_RETURN_WORKFLOW",
    "GoodsReturn",
    "GoodsReturnHeaderSpec",
    "GoodsReturnLine",
    "GoodsReturnLineSpec",
    "GoodsReturnService",
    "GoodsReturnStatus",
]
