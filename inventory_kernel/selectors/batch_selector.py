"""
Module: inventory_kernel.selectors.batch_selector
Responsibility: Read-only queries over product batches, including the
    expiry windows used by the alert detector.
Architecture position: Kernel > Selectors.  Reads "today" from the
    injected Clock so expiry queries are deterministic under test.

Invariants enforced:
    - Only ACTIVE batches (quantity > 0) count as expiring or expired;
      an empty batch cannot spoil.
    - Expiring window is inclusive on both ends: [today, today + days].
"""

from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_kernel.config import InventoryConfig
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import Batch, BatchStatus
from inventory_kernel.models.product_batch import ProductBatchModel
from inventory_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class BatchSummary:
    """Batch counts by state."""

    active: int
    inactive: int
    expired: int
    near_expiry: int

    @property
    def total(self) -> int:
        return self.active + self.inactive


class BatchSelector(BaseSelector[ProductBatchModel]):
    """Batch lookups and expiry windows."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: InventoryConfig | None = None,
    ):
        super().__init__(session)
        self.clock = clock or SystemClock()
        self.config = config or InventoryConfig.with_defaults()

    def get(self, batch_id: UUID) -> Batch | None:
        model = self.session.get(ProductBatchModel, batch_id)
        return model.to_dto() if model else None

    def get_by_number(self, product_id: UUID, batch_no: str) -> Batch | None:
        model = self.session.execute(
            select(ProductBatchModel).where(
                ProductBatchModel.product_id == product_id,
                ProductBatchModel.batch_no == batch_no,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model else None

    def list_for_product(
        self,
        product_id: UUID,
        include_inactive: bool = False,
    ) -> list[Batch]:
        """Batches of a product, earliest expiry first (no expiry last)."""
        query = select(ProductBatchModel).where(
            ProductBatchModel.product_id == product_id,
        )
        if not include_inactive:
            query = query.where(ProductBatchModel.status == BatchStatus.ACTIVE.value)
        query = query.order_by(
            ProductBatchModel.expiry_date.is_(None),
            ProductBatchModel.expiry_date,
            ProductBatchModel.batch_no,
        )
        return [row.to_dto() for row in self.session.execute(query).scalars()]

    def get_expiring(self, within_days: int | None = None) -> list[Batch]:
        """
        Active batches expiring between today and today + ``within_days``.

        Args:
            within_days: Window length; defaults to the configured
                ``expiry_warning_days``.
        """
        if within_days is None:
            within_days = self.config.expiry_warning_days
        if within_days < 0:
            raise ValueError(f"within_days cannot be negative, got {within_days}")
        today = self.clock.today()
        horizon = today + timedelta(days=within_days)
        query = (
            select(ProductBatchModel)
            .where(
                ProductBatchModel.status == BatchStatus.ACTIVE.value,
                ProductBatchModel.expiry_date.is_not(None),
                ProductBatchModel.expiry_date >= today,
                ProductBatchModel.expiry_date <= horizon,
            )
            .order_by(ProductBatchModel.expiry_date, ProductBatchModel.batch_no)
        )
        return [row.to_dto() for row in self.session.execute(query).scalars()]

    def get_expired(self) -> list[Batch]:
        """Active batches whose expiry date is before today."""
        query = (
            select(ProductBatchModel)
            .where(
                ProductBatchModel.status == BatchStatus.ACTIVE.value,
                ProductBatchModel.expiry_date.is_not(None),
                ProductBatchModel.expiry_date < self.clock.today(),
            )
            .order_by(ProductBatchModel.expiry_date, ProductBatchModel.batch_no)
        )
        return [row.to_dto() for row in self.session.execute(query).scalars()]

    def summary(self, within_days: int | None = None) -> BatchSummary:
        counts = dict(
            self.session.execute(
                select(ProductBatchModel.status, func.count(ProductBatchModel.id))
                .group_by(ProductBatchModel.status)
            ).all()
        )
        return BatchSummary(
            active=counts.get(BatchStatus.ACTIVE.value, 0),
            inactive=counts.get(BatchStatus.INACTIVE.value, 0),
            expired=len(self.get_expired()),
            near_expiry=len(self.get_expiring(within_days)),
        )
