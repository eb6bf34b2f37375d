"""
Stock Adjustment Module (``inventory_modules.stock_adjustment``).

Responsibility
--------------
Approved corrections of stock on hand, each with a reason code and the
quantities before and after captured per line.
"""

from inventory_modules.stock_adjustment.models import (
    StockAdjustment,
    StockAdjustmentHeaderSpec,
    StockAdjustmentLine,
    StockAdjustmentLineSpec,
    StockAdjustmentStatus,
)
from inventory_modules.stock_adjustment.service import StockAdjustmentService
from inventory_modules.stock_adjustment.workflows import STOCK_ADJUSTMENT_WORKFLOW

__all__ = [
    "STOCK_ADJUSTMENT_WORKFLOW",
    "StockAdjustment",
    "StockAdjustmentHeaderSpec",
    "StockAdjustmentLine",
    "StockAdjustmentLineSpec",
    "StockAdjustmentService",
    "StockAdjustmentStatus",
]
