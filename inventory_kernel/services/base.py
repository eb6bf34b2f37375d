"""
Module: inventory_kernel.services.base
Responsibility: Constructor shared by the kernel's write services (stock
    ledger, product batches, document numbering).
Architecture position: Kernel > Services.

Invariants enforced:
    - Kernel services ``flush()`` and never commit or roll back.  Posting a
      GRN appends one ledger entry per line and touches several batches and
      levels; only the document service that called them (or a
      ``session_scope()`` block) decides whether all of it lands.
    - Every service reads "now" and "today" from the injected ``Clock``,
      never from ``datetime.now()``.

Failure modes:
    - A service that committed on its own would let half a document's
      movements become visible if a later line failed.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from inventory_kernel.config import InventoryConfig
from inventory_kernel.db.base import Base
from inventory_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Write service over one table family.

    ``config`` defaults to ``InventoryConfig.with_defaults()`` and ``clock``
    to the system clock, so a service can be built from a bare session in a
    script or a shell.
    """

    def __init__(
        self,
        session: Session,
        config: InventoryConfig | None = None,
        clock: Clock | None = None,
    ):
        self.session = session
        self.config = config or InventoryConfig.with_defaults()
        self.clock = clock or SystemClock()
