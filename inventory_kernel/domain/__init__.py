"""Pure domain layer: clock, workflow types, DTOs and master data ports."""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    Batch,
    BatchStatus,
    LedgerEntry,
    MovementType,
    ReferenceType,
    StockLevelView,
)
from inventory_kernel.domain.master_data import (
    InMemoryMasterData,
    MasterDataProvider,
    ProductInfo,
)
from inventory_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Batch",
    "BatchStatus",
    "Clock",
    "DeterministicClock",
    "Guard",
    "InMemoryMasterData",
    "LedgerEntry",
    "MasterDataProvider",
    "MovementType",
    "ProductInfo",
    "ReferenceType",
    "StockLevelView",
    "SystemClock",
    "Transition",
    "Workflow",
]
