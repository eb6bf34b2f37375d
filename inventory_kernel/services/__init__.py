"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.batch_service import ProductBatchService
from inventory_kernel.services.numbering_service import (
    DocumentCounter,
    DocumentNumberingService,
)
from inventory_kernel.services.retry_service import call_with_retry
from inventory_kernel.services.stock_ledger_service import StockLedgerService

__all__ = [
    "DocumentCounter",
    "DocumentNumberingService",
    "ProductBatchService",
    "StockLedgerService",
    "call_with_retry",
]
