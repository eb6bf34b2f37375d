"""
Stock Transfer Module (``inventory_modules.stock_transfer``).

Responsibility
--------------
Transfers between locations with dispatch, partial receipt and damage
tracking per line.
"""

from inventory_modules.stock_transfer.models import (
    StockTransfer,
    StockTransferHeaderSpec,
    StockTransferLine,
    StockTransferLineSpec,
    StockTransferStatus,
    TransferLineStatus,
    derive_line_status,
)
from inventory_modules.stock_transfer.service import StockTransferService
from inventory_modules.stock_transfer.workflows import STOCK_TRANSFER_WORKFLOW

__all__ = [
    "STOCK_TRANSFER_WORKFLOW",
    "StockTransfer",
    "StockTransferHeaderSpec",
    "StockTransferLine",
    "StockTransferLineSpec",
    "StockTransferService",
    "StockTransferStatus",
    "TransferLineStatus",
    "derive_line_status",
]
