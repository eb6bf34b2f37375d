"""Selectors for the inventory kernel (read side)."""

from inventory_kernel.selectors.alert_selector import (
    AlertDetector,
    AlertSummary,
    LowStockAlert,
    OverstockAlert,
)
from inventory_kernel.selectors.batch_selector import BatchSelector, BatchSummary
from inventory_kernel.selectors.ledger_selector import LedgerSelector, LedgerVerification
from inventory_kernel.selectors.stock_selector import StockLevelSelector

__all__ = [
    "AlertDetector",
    "AlertSummary",
    "BatchSelector",
    "BatchSummary",
    "LedgerSelector",
    "LedgerVerification",
    "LowStockAlert",
    "OverstockAlert",
    "StockLevelSelector",
]
