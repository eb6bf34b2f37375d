"""
Storage failures during posting.

A database error part way through a post rolls the whole post back and
surfaces as a typed kernel error; the document stays a draft and no
ledger entry, stock level or batch change survives.

Tests cover:
- Generic SQLAlchemy errors become PersistenceFailureError
- Stale rows and PostgreSQL serialization/deadlock codes become
  ConcurrencyConflictError, which call_with_retry retries
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from inventory_kernel.config import RetryPolicy
from inventory_kernel.domain.dtos import ReferenceType
from inventory_kernel.exceptions import ConcurrencyConflictError, PersistenceFailureError
from inventory_kernel.services.retry_service import call_with_retry
from inventory_modules.goods_received import (
    GoodsReceivedHeaderSpec,
    GoodsReceivedLineSpec,
    GoodsReceivedStatus,
)


class _DriverError(Exception):
    """Stands in for a psycopg2 error carrying a SQLSTATE."""

    def __init__(self, message: str, pgcode: str | None = None):
        super().__init__(message)
        self.pgcode = pgcode


@pytest.fixture
def draft(grn_service, catalog, test_actor_id):
    """Two lines, so a failure on the second follows a successful first append."""
    return grn_service.create(
        GoodsReceivedHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.store),
        [
            GoodsReceivedLineSpec(product_id=catalog.soap, quantity=Decimal("5"),
                                  unit_cost=Decimal("1"), batch_no="S-1"),
            GoodsReceivedLineSpec(product_id=catalog.bread, quantity=Decimal("8"),
                                  unit_cost=Decimal("2")),
        ],
        test_actor_id,
    )


def _fail_on_call(monkeypatch, service, call_no, exc):
    """Make the service's ledger raise ``exc`` on its ``call_no``-th append."""
    real_append = service._ledger.append
    calls = []

    def append(*args, **kwargs):
        calls.append(1)
        if len(calls) == call_no:
            raise exc
        return real_append(*args, **kwargs)

    monkeypatch.setattr(service._ledger, "append", append)
    return calls


def _assert_untouched(grn_service, draft, ledger_selector, stock_selector, batch_selector, catalog):
    assert grn_service.get(draft.id).status == GoodsReceivedStatus.DRAFT
    assert ledger_selector.get_by_reference(ReferenceType.GOODS_RECEIVED, draft.id) == []
    assert stock_selector.get(catalog.soap, catalog.store) is None
    assert stock_selector.get(catalog.bread, catalog.store) is None
    assert batch_selector.get_by_number(catalog.soap, "S-1") is None


class TestPersistenceFailure:

    def test_database_error_rolls_back_post(
        self, monkeypatch, grn_service, draft, ledger_selector, stock_selector,
        batch_selector, catalog, test_actor_id,
    ):
        _fail_on_call(
            monkeypatch, grn_service, 2,
            OperationalError("INSERT INTO stock_ledger_entries", {}, _DriverError("disk I/O error")),
        )

        with pytest.raises(PersistenceFailureError) as excinfo:
            grn_service.post(draft.id, test_actor_id)

        assert excinfo.value.code == "PERSISTENCE_FAILURE"
        assert excinfo.value.operation == "post"
        _assert_untouched(grn_service, draft, ledger_selector, stock_selector, batch_selector, catalog)

    def test_failure_is_logged(self, monkeypatch, captured_logs, grn_service, draft, test_actor_id):
        _fail_on_call(
            monkeypatch, grn_service, 1,
            OperationalError("INSERT INTO stock_ledger_entries", {}, _DriverError("disk I/O error")),
        )

        with pytest.raises(PersistenceFailureError):
            grn_service.post(draft.id, test_actor_id)

        failures = [r for r in captured_logs() if r["message"] == "document_persistence_failure"]
        assert failures and failures[0]["operation"] == "post"

    def test_post_succeeds_once_storage_recovers(
        self, monkeypatch, grn_service, draft, stock_selector, catalog, test_actor_id,
    ):
        _fail_on_call(
            monkeypatch, grn_service, 1,
            OperationalError("INSERT INTO stock_ledger_entries", {}, _DriverError("disk I/O error")),
        )
        with pytest.raises(PersistenceFailureError):
            grn_service.post(draft.id, test_actor_id)

        posted = grn_service.post(draft.id, test_actor_id)

        assert posted.status == GoodsReceivedStatus.POSTED
        assert stock_selector.quantity(catalog.soap, catalog.store) == Decimal("5")
        assert stock_selector.quantity(catalog.bread, catalog.store) == Decimal("8")


class TestConcurrencyConflict:

    def test_stale_row_becomes_conflict(
        self, monkeypatch, grn_service, draft, ledger_selector, stock_selector,
        batch_selector, catalog, test_actor_id,
    ):
        _fail_on_call(
            monkeypatch, grn_service, 2,
            StaleDataError("UPDATE statement on table 'stock_levels' expected to update 1 row(s); 0 were matched."),
        )

        with pytest.raises(ConcurrencyConflictError):
            grn_service.post(draft.id, test_actor_id)

        _assert_untouched(grn_service, draft, ledger_selector, stock_selector, batch_selector, catalog)

    @pytest.mark.parametrize("pgcode", ["40001", "40P01"])
    def test_serialization_and_deadlock_codes_become_conflict(
        self, monkeypatch, grn_service, draft, ledger_selector, stock_selector,
        batch_selector, catalog, test_actor_id, pgcode,
    ):
        _fail_on_call(
            monkeypatch, grn_service, 2,
            OperationalError("UPDATE stock_levels", {}, _DriverError("could not serialize access", pgcode)),
        )

        with pytest.raises(ConcurrencyConflictError):
            grn_service.post(draft.id, test_actor_id)

        _assert_untouched(grn_service, draft, ledger_selector, stock_selector, batch_selector, catalog)

    def test_other_pgcodes_are_persistence_failures(self, monkeypatch, grn_service, draft, test_actor_id):
        _fail_on_call(
            monkeypatch, grn_service, 1,
            OperationalError("INSERT INTO stock_ledger_entries", {}, _DriverError("disk full", "53100")),
        )

        with pytest.raises(PersistenceFailureError):
            grn_service.post(draft.id, test_actor_id)

    def test_conflict_is_retried(self, monkeypatch, grn_service, draft, stock_selector, catalog, test_actor_id):
        calls = _fail_on_call(
            monkeypatch, grn_service, 1,
            StaleDataError("UPDATE statement on table 'stock_levels' expected to update 1 row(s); 0 were matched."),
        )

        posted = call_with_retry(
            lambda: grn_service.post(draft.id, test_actor_id),
            RetryPolicy(max_attempts=2, backoff_seconds=0),
            sleep=lambda _: None,
        )

        assert posted.status == GoodsReceivedStatus.POSTED
        assert len(calls) == 3
        assert stock_selector.quantity(catalog.soap, catalog.store) == Decimal("5")
