"""
Module: inventory_kernel.selectors.base
Responsibility: Common base for the read side of the kernel: stock levels,
    ledger history, batches, alerts and document listings.
Architecture position: Kernel > Selectors.  May import from db/, domain/ and
    models/.  MUST NOT import from services/; inventory_modules builds its
    document selector on top of this class, never the other way round.

Invariants enforced:
    - A selector never adds, deletes, flushes or commits.  It reads inside
      whatever transaction the caller's session already has open, so a
      level read right after a post sees the posted quantities.
    - Results leave as frozen DTOs (``StockLevel``, ``LedgerEntry``,
      ``Batch``, ``StockAlert``...), never as ORM instances a caller could
      mutate.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Read-only queries over one table family, parameterized by its model."""

    def __init__(self, session: Session):
        self.session = session
