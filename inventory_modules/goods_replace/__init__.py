"""
Goods Replace Module (``inventory_modules.goods_replace``).

Responsibility
--------------
Replacement goods received from a supplier against an earlier return.
Posting writes ``replace_in`` ledger entries; replacements per return
line are capped by the returned quantity.
"""

from inventory_modules.goods_replace.models import (
    GoodsReplace,
    GoodsReplaceHeaderSpec,
    GoodsReplaceLine,
    GoodsReplaceLineSpec,
    GoodsReplaceStatus,
)
from inventory_modules.goods_replace.service import GoodsReplaceService
from inventory_modules.goods_replace.workflows import GOODS_REPLACE_WORKFLOW

__all__ = [
    "GOODS_REPLACE_WORKFLOW",
    "GoodsReplace",
    "GoodsReplaceHeaderSpec",
    "GoodsReplaceLine",
    "GoodsReplaceLineSpec",
    "GoodsReplaceService",
    "GoodsReplaceStatus",
]
