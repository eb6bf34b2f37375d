"""
Inventory Modules.

Document workflows over the Inventory Kernel.  Each module contains:
- Domain models (header/line specs and the hydrated document DTOs)
- ORM models (header and line tables)
- Workflows (state machines)
- A service subclassing the shared DocumentService

Modules:
- Goods Received: stock in from a supplier, with batch and expiry capture
- Stock Transfer: dispatch, partial receipt and damage between locations
- Stock Adjustment: approved corrections with reason codes
- Goods Return: stock back to a supplier
- Goods Replace: replacement stock against a return, capped per return line

Quantity, batch and cost processing lives in the kernel services.
"""

from inventory_modules import (
    goods_received,
    goods_replace,
    goods_return,
    stock_adjustment,
    stock_transfer,
)
from inventory_modules._document_selector import DocumentFilter, Page

__all__ = [
    "DocumentFilter",
    "Page",
    "goods_received",
    "goods_replace",
    "goods_return",
    "stock_adjustment",
    "stock_transfer",
]
