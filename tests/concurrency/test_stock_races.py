"""
Concurrent writers against one database.

Each thread opens its own session from ``session_factory`` and commits for
real.  On SQLite every transaction begins IMMEDIATE, so writers queue on
the database lock; on PostgreSQL (DATABASE_URL) they queue on row locks.
Either way the outcome must be the same as some serial order.

Tests cover:
- Document numbers stay unique under concurrent allocation
- Concurrent decreases never oversell a stock level
- A document raced by several posters is posted exactly once
- First movements for a new (product, location) pair from many threads
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from inventory_kernel.config import InventoryConfig
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.dtos import ReferenceType
from inventory_kernel.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
    InvalidStateTransitionError,
)
from inventory_kernel.selectors import LedgerSelector, StockLevelSelector
from inventory_kernel.services import DocumentNumberingService
from inventory_kernel.services.retry_service import call_with_retry
from inventory_modules.goods_received import (
    GoodsReceivedHeaderSpec,
    GoodsReceivedLineSpec,
    GoodsReceivedService,
)
from inventory_modules.stock_adjustment import (
    StockAdjustmentHeaderSpec,
    StockAdjustmentLineSpec,
    StockAdjustmentService,
)

pytestmark = pytest.mark.slow_locks

NUM_THREADS = 6


def _run_threads(worker, count=NUM_THREADS):
    """Start ``count`` workers together and collect their results in order."""
    barrier = Barrier(count, timeout=30)

    def _start(index):
        barrier.wait()
        return worker(index)

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(_start, range(count)))


def _receive(session_factory, master_data, catalog, actor_id, quantity, location=None):
    with session_factory() as session:
        service = GoodsReceivedService(session, master_data, InventoryConfig(), DeterministicClock())
        grn = service.create(
            GoodsReceivedHeaderSpec(supplier_id=catalog.supplier, location_id=location or catalog.store),
            [GoodsReceivedLineSpec(product_id=catalog.soap, quantity=quantity, unit_cost=Decimal("1"))],
            actor_id,
        )
        return service.post(grn.id, actor_id)


class TestNumbering:

    def test_numbers_unique_across_threads(self, session_factory):
        per_thread = 5

        def worker(_):
            numbers = []
            for _ in range(per_thread):
                with session_factory() as session:
                    service = DocumentNumberingService(session, InventoryConfig(), DeterministicClock())
                    numbers.append(service.generate_number(ReferenceType.STOCK_TRANSFER))
                    session.commit()
            return numbers

        results = _run_threads(worker)
        issued = [number for numbers in results for number in numbers]

        assert len(issued) == NUM_THREADS * per_thread
        assert len(set(issued)) == len(issued)
        assert sorted(issued) == [f"TRF-2024-{n:04d}" for n in range(1, len(issued) + 1)]


class TestOversell:

    def test_decreases_never_oversell(self, session_factory, master_data, catalog, test_actor_id):
        _receive(session_factory, master_data, catalog, test_actor_id, Decimal("10"))

        with session_factory() as session:
            service = StockAdjustmentService(session, master_data, InventoryConfig(), DeterministicClock())
            adjustment_ids = [
                service.create(
                    StockAdjustmentHeaderSpec(location_id=catalog.store, reason_code="count"),
                    [StockAdjustmentLineSpec(product_id=catalog.soap, quantity_delta=Decimal("-3"))],
                    test_actor_id,
                ).id
                for _ in range(NUM_THREADS)
            ]

        def worker(index):
            with session_factory() as session:
                service = StockAdjustmentService(session, master_data, InventoryConfig(), DeterministicClock())
                try:
                    call_with_retry(lambda: service.approve(adjustment_ids[index], test_actor_id))
                    return "approved"
                except InsufficientStockError:
                    return "rejected"

        outcomes = _run_threads(worker)

        assert outcomes.count("approved") == 3
        assert outcomes.count("rejected") == NUM_THREADS - 3

        with session_factory() as session:
            assert StockLevelSelector(session).quantity(catalog.soap, catalog.store) == Decimal("1")
            verification = LedgerSelector(session).verify_running_balance(catalog.soap, catalog.store)
            assert verification.is_consistent, verification.errors
            assert verification.entry_count == 4


class TestExactlyOncePosting:

    def test_racing_posts_write_one_set_of_entries(self, session_factory, master_data, catalog, test_actor_id):
        with session_factory() as session:
            service = GoodsReceivedService(session, master_data, InventoryConfig(), DeterministicClock())
            grn = service.create(
                GoodsReceivedHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.store),
                [GoodsReceivedLineSpec(product_id=catalog.soap, quantity=Decimal("7"))],
                test_actor_id,
            )

        def worker(_):
            with session_factory() as session:
                service = GoodsReceivedService(session, master_data, InventoryConfig(), DeterministicClock())
                try:
                    service.post(grn.id, test_actor_id)
                    return "posted"
                except (InvalidStateTransitionError, ConcurrencyConflictError):
                    return "lost"

        outcomes = _run_threads(worker)

        assert outcomes.count("posted") == 1
        with session_factory() as session:
            entries = LedgerSelector(session).get_by_reference(ReferenceType.GOODS_RECEIVED, grn.id)
            assert len(entries) == 1
            assert StockLevelSelector(session).quantity(catalog.soap, catalog.store) == Decimal("7")


class TestFirstMovement:

    def test_new_pair_created_once(self, session_factory, master_data, catalog, test_actor_id):
        def worker(_):
            return call_with_retry(
                lambda: _receive(
                    session_factory, master_data, catalog, test_actor_id, Decimal("2"),
                    location=catalog.warehouse,
                )
            )

        results = _run_threads(worker)

        assert len({grn.document_no for grn in results}) == NUM_THREADS
        with session_factory() as session:
            levels = StockLevelSelector(session).list_for_product(catalog.soap)
            assert len(levels) == 1
            assert levels[0].quantity == Decimal("2") * NUM_THREADS
            verification = LedgerSelector(session).verify_running_balance(catalog.soap, catalog.warehouse)
            assert verification.is_consistent, verification.errors
