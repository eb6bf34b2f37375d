"""
Master data ports (``inventory_kernel.domain.master_data``).

Responsibility
--------------
Products, units of measure, locations and suppliers are owned by other
parts of the POS application.  The movement engine only needs opaque
lookups against them: existence checks, reorder/overstock thresholds and
unit conversion factors.  ``MasterDataProvider`` is that port;
``InMemoryMasterData`` is a dict-backed implementation used by tests and
by embedders that load master data up front.

Architecture position
---------------------
**Kernel domain layer** -- no I/O of its own.  Concrete providers that hit
a database or an HTTP API live outside the kernel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID


@runtime_checkable
class MasterDataProvider(Protocol):
    """Pluggable interface for product, location and supplier lookups."""

    def product_exists(self, product_id: UUID) -> bool:
        """Return True if the product is known."""
        ...

    def location_exists(self, location_id: UUID) -> bool:
        """Return True if the location (store / warehouse) is known."""
        ...

    def supplier_exists(self, supplier_id: UUID) -> bool:
        """Return True if the supplier is known."""
        ...

    def reorder_threshold(self, product_id: UUID) -> Decimal | None:
        """Reorder level for the product, or None if it is not tracked."""
        ...

    def maximum_stock(self, product_id: UUID) -> Decimal | None:
        """Overstock ceiling for the product, or None if unbounded."""
        ...

    def conversion_factor(self, product_id: UUID, unit: str | None) -> Decimal:
        """Base units per one ``unit`` of the product (1 for the base unit).

        Raises:
            ValueError: If the unit is not defined for the product.
        """
        ...


@dataclass
class ProductInfo:
    """Master data needed by the engine for one product."""

    product_id: UUID
    base_unit: str = "pcs"
    reorder_threshold: Decimal | None = None
    maximum_stock: Decimal | None = None
    unit_factors: dict[str, Decimal] = field(default_factory=dict)


@dataclass
class InMemoryMasterData:
    """
    Dict-backed ``MasterDataProvider``.

    Contract:
        Products are registered with ``add_product``; locations and
        suppliers with ``add_location`` / ``add_supplier``.  Unit factors
        default to 1 for the product's base unit and for ``None``.
    """

    products: dict[UUID, ProductInfo] = field(default_factory=dict)
    locations: set[UUID] = field(default_factory=set)
    suppliers: set[UUID] = field(default_factory=set)

    def add_product(
        self,
        product_id: UUID,
        *,
        base_unit: str = "pcs",
        reorder_threshold: Decimal | None = None,
        maximum_stock: Decimal | None = None,
        unit_factors: dict[str, Decimal] | None = None,
    ) -> ProductInfo:
        info = ProductInfo(
            product_id=product_id,
            base_unit=base_unit,
            reorder_threshold=reorder_threshold,
            maximum_stock=maximum_stock,
            unit_factors=dict(unit_factors or {}),
        )
        self.products[product_id] = info
        return info

    def add_location(self, location_id: UUID) -> UUID:
        self.locations.add(location_id)
        return location_id

    def add_supplier(self, supplier_id: UUID) -> UUID:
        self.suppliers.add(supplier_id)
        return supplier_id

    # MasterDataProvider -------------------------------------------------

    def product_exists(self, product_id: UUID) -> bool:
        return product_id in self.products

    def location_exists(self, location_id: UUID) -> bool:
        return location_id in self.locations

    def supplier_exists(self, supplier_id: UUID) -> bool:
        return supplier_id in self.suppliers

    def reorder_threshold(self, product_id: UUID) -> Decimal | None:
        info = self.products.get(product_id)
        return info.reorder_threshold if info else None

    def maximum_stock(self, product_id: UUID) -> Decimal | None:
        info = self.products.get(product_id)
        return info.maximum_stock if info else None

    def conversion_factor(self, product_id: UUID, unit: str | None) -> Decimal:
        info = self.products.get(product_id)
        if info is None or unit is None or unit == info.base_unit:
            return Decimal("1")
        try:
            return info.unit_factors[unit]
        except KeyError:
            raise ValueError(
                f"Unit {unit!r} is not defined for product {product_id}"
            ) from None
