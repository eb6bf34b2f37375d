"""
Goods Received Module (``inventory_modules.goods_received``).

Responsibility
--------------
Goods received notes: stock arriving from a supplier at a location, with
optional batch and expiry capture.  Posting writes ``receipt`` ledger
entries; cancelling a posted GRN writes compensating entries.
"""

from inventory_modules.goods_received.models import (
    GoodsReceivedHeaderSpec,
    GoodsReceivedLine,
    GoodsReceivedLineSpec,
    GoodsReceivedNote,
    GoodsReceivedStatus,
)
from inventory_modules.goods_received.service import GoodsReceivedService
from inventory_modules.goods_received.workflows import GOODS_RECEIVED_WORKFLOW

__all__ = [
    "GOODS_RECEIVED_WORKFLOW",
    "GoodsReceivedHeaderSpec",
    "GoodsReceivedLine",
    "GoodsReceivedLineSpec",
    "GoodsReceivedNote",
    "GoodsReceivedService",
    "GoodsReceivedStatus",
]
