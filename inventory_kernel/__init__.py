"""
Inventory Kernel - stock movement and consistency engine

An append-only stock ledger with:
- Running balance per product and location
- Materialized stock levels kept in the same unit of work
- Lot/batch quantity and expiry tracking
- Collision-free document numbering
- Low-stock and expiry alert detection
"""

__version__ = "0.1.0"
