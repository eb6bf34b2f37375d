"""ORM models for the inventory kernel."""

from inventory_kernel.models.document import DocumentHeaderMixin, DocumentLineMixin
from inventory_kernel.models.product_batch import ProductBatchModel
from inventory_kernel.models.stock_ledger import StockLedgerEntryModel
from inventory_kernel.models.stock_level import StockLevelModel

__all__ = [
    "DocumentHeaderMixin",
    "DocumentLineMixin",
    "ProductBatchModel",
    "StockLedgerEntryModel",
    "StockLevelModel",
]
