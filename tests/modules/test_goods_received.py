"""
Goods received notes: creation rules, posting, batches, units and cancellation.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.config import InventoryConfig
from inventory_kernel.domain.dtos import BatchStatus, MovementType, ReferenceType
from inventory_kernel.exceptions import (
    InsufficientStockError,
    LocationNotFoundError,
    ProductNotFoundError,
    SupplierNotFoundError,
    ValidationFailedError,
)
from inventory_modules.goods_received import (
    GoodsReceivedHeaderSpec,
    GoodsReceivedLineSpec,
    GoodsReceivedService,
    GoodsReceivedStatus,
)
from inventory_modules.stock_adjustment import (
    StockAdjustmentHeaderSpec,
    StockAdjustmentLineSpec,
)


@pytest.fixture
def header(catalog):
    return GoodsReceivedHeaderSpec(
        supplier_id=catalog.supplier,
        location_id=catalog.store,
        invoice_no="INV-881",
        invoice_date=date(2023, 12, 30),
    )


class TestCreate:

    def test_draft_has_number_and_lines(self, grn_service, header, catalog, test_actor_id):
        grn = grn_service.create(
            header,
            [
                GoodsReceivedLineSpec(product_id=catalog.milk, quantity=Decimal("2"),
                                      unit="box", unit_cost=Decimal("24")),
                GoodsReceivedLineSpec(product_id=catalog.bread, quantity=Decimal("10"),
                                      unit_cost=Decimal("1.5")),
            ],
            test_actor_id,
        )

        assert grn.document_no == "GRN-2024-0001"
        assert grn.status == GoodsReceivedStatus.DRAFT
        assert grn.document_date == date(2024, 1, 1)
        assert grn.invoice_no == "INV-881"
        assert grn.created_by_id == test_actor_id
        assert [line.line_no for line in grn.lines] == [1, 2]
        assert grn.total_amount == Decimal("63")

        milk_line = grn.lines[0]
        assert milk_line.conversion_factor == Decimal("12")
        assert milk_line.base_quantity == Decimal("24")
        assert grn.total_quantity == Decimal("34")

    def test_numbers_are_sequential(self, grn_service, header, catalog, test_actor_id):
        lines = [GoodsReceivedLineSpec(product_id=catalog.soap, quantity=Decimal("1"))]
        first = grn_service.create(header, lines, test_actor_id)
        second = grn_service.create(header, lines, test_actor_id)
        assert (first.document_no, second.document_no) == ("GRN-2024-0001", "GRN-2024-0002")

    def test_lines_required(self, grn_service, header, test_actor_id):
        with pytest.raises(ValidationFailedError, match="At least one line"):
            grn_service.create(header, [], test_actor_id)

    def test_every_invalid_line_reported(self, grn_service, header, catalog, test_actor_id):
        with pytest.raises(ValidationFailedError) as exc_info:
            grn_service.create(
                header,
                [
                    GoodsReceivedLineSpec(product_id=catalog.soap, quantity=Decimal("0")),
                    GoodsReceivedLineSpec(product_id=catalog.soap, quantity=Decimal("1"),
                                          unit_cost=Decimal("-1")),
                    GoodsReceivedLineSpec(product_id=catalog.soap, quantity=Decimal("1"), unit="crate"),
                ],
                test_actor_id,
            )
        assert len(exc_info.value.errors) == 3

    def test_unknown_product(self, grn_service, header, test_actor_id):
        with pytest.raises(ProductNotFoundError):
            grn_service.create(
                header, [GoodsReceivedLineSpec(product_id=uuid4(), quantity=Decimal("1"))], test_actor_id,
            )

    def test_unknown_supplier(self, grn_service, catalog, test_actor_id):
        with pytest.raises(SupplierNotFoundError):
            grn_service.create(
                GoodsReceivedHeaderSpec(supplier_id=uuid4(), location_id=catalog.store),
                [GoodsReceivedLineSpec(product_id=catalog.soap, quantity=Decimal("1"))],
                test_actor_id,
            )

    def test_unknown_location(self, grn_service, catalog, test_actor_id):
        with pytest.raises(LocationNotFoundError):
            grn_service.create(
                GoodsReceivedHeaderSpec(supplier_id=catalog.supplier, location_id=uuid4()),
                [GoodsReceivedLineSpec(product_id=catalog.soap, quantity=Decimal("1"))],
                test_actor_id,
            )

    def test_expiry_before_manufacture(self, grn_service, header, catalog, test_actor_id):
        with pytest.raises(ValidationFailedError, match="expiry date"):
            grn_service.create(
                header,
                [GoodsReceivedLineSpec(
                    product_id=catalog.milk, quantity=Decimal("1"), batch_no="B1",
                    expiry_date=date(2024, 1, 1), manufacture_date=date(2024, 2, 1),
                )],
                test_actor_id,
            )

    def test_failed_create_consumes_no_number(self, grn_service, numbering_service, header, test_actor_id):
        with pytest.raises(ValidationFailedError):
            grn_service.create(header, [], test_actor_id)
        assert numbering_service.peek_next(ReferenceType.GOODS_RECEIVED) == "GRN-2024-0001"


class TestPost:

    def test_units_are_converted_to_base(self, grn_service, header, stock_selector, ledger_selector,
                                         catalog, test_actor_id):
        grn = grn_service.create(
            header,
            [GoodsReceivedLineSpec(product_id=catalog.milk, quantity=Decimal("3"), unit="box",
                                   unit_cost=Decimal("24"))],
            test_actor_id,
        )
        grn_service.post(grn.id, test_actor_id)

        (entry,) = ledger_selector.get_by_reference(ReferenceType.GOODS_RECEIVED, grn.id)
        assert entry.quantity_delta == Decimal("36")
        assert entry.unit_cost == Decimal("2")
        assert stock_selector.get(catalog.milk, catalog.store).average_cost == Decimal("2")

    def test_posting_stamps_actor_and_time(self, receive_stock, catalog, test_actor_id):
        grn = receive_stock(catalog.soap, catalog.store, Decimal("1"))
        assert grn.posted_by_id == test_actor_id
        assert grn.posted_at is not None

    def test_batch_created_with_expiry(self, receive_stock, batch_selector, catalog):
        grn = receive_stock(catalog.milk, catalog.store, Decimal("24"), unit_cost=Decimal("1.2"),
                            batch_no="M-240", expiry_date=date(2024, 2, 1))

        batch = batch_selector.get_by_number(catalog.milk, "M-240")
        assert batch.quantity == Decimal("24")
        assert batch.status == BatchStatus.ACTIVE
        assert batch.expiry_date == date(2024, 2, 1)
        assert batch.supplier_id == grn.supplier_id
        assert grn.lines[0].batch_id == batch.id

    def test_existing_batch_is_topped_up(self, receive_stock, batch_selector, catalog):
        receive_stock(catalog.milk, catalog.store, Decimal("10"), batch_no="M-1")
        receive_stock(catalog.milk, catalog.warehouse, Decimal("5"), batch_no="M-1")

        (batch,) = batch_selector.list_for_product(catalog.milk)
        assert batch.quantity == Decimal("15")

    def test_generated_batch_numbers(self, session, master_data, clock, header, batch_selector,
                                     catalog, test_actor_id):
        service = GoodsReceivedService(
            session, master_data, InventoryConfig(auto_generate_batch_numbers=True), clock,
        )
        grn = service.create(
            header, [GoodsReceivedLineSpec(product_id=catalog.bread, quantity=Decimal("6"))], test_actor_id,
        )
        posted = service.post(grn.id, test_actor_id)

        expected = f"BATCH-20240101-{grn.document_no}-1"
        assert posted.lines[0].batch_no == expected
        assert batch_selector.get_by_number(catalog.bread, expected).quantity == Decimal("6")

    def test_batch_tracking_disabled(self, session, master_data, clock, header, batch_selector,
                                     catalog, test_actor_id):
        service = GoodsReceivedService(
            session, master_data, InventoryConfig(batch_tracking_enabled=False), clock,
        )
        grn = service.create(
            header,
            [GoodsReceivedLineSpec(product_id=catalog.bread, quantity=Decimal("6"), batch_no="IGNORED")],
            test_actor_id,
        )
        service.post(grn.id, test_actor_id)
        assert batch_selector.get_by_number(catalog.bread, "IGNORED") is None

    def test_logs_lifecycle(self, captured_logs, receive_stock, catalog):
        receive_stock(catalog.soap, catalog.store, Decimal("1"))
        messages = [r["message"] for r in captured_logs()]
        assert "document_created" in messages
        assert "document_posted" in messages
        assert "stock_ledger_entry_appended" in messages


class TestCancel:

    def test_cancel_draft_writes_nothing(self, grn_service, header, ledger_selector, catalog, test_actor_id):
        grn = grn_service.create(
            header, [GoodsReceivedLineSpec(product_id=catalog.soap, quantity=Decimal("1"))], test_actor_id,
        )
        cancelled = grn_service.cancel(grn.id, test_actor_id)

        assert cancelled.status == GoodsReceivedStatus.CANCELLED
        assert ledger_selector.get_by_reference(ReferenceType.GOODS_RECEIVED, grn.id) == []

    def test_cancel_reverses_batch(self, receive_stock, grn_service, batch_selector, catalog, test_actor_id):
        grn = receive_stock(catalog.milk, catalog.store, Decimal("8"), batch_no="M-C")
        grn_service.cancel(grn.id, test_actor_id)

        batch = batch_selector.get_by_number(catalog.milk, "M-C")
        assert batch.quantity == Decimal("0")
        assert batch.status == BatchStatus.INACTIVE

    def test_cannot_cancel_consumed_receipt(
        self, receive_stock, grn_service, adjustment_service, stock_selector, ledger_selector,
        catalog, test_actor_id, approver_id,
    ):
        grn = receive_stock(catalog.soap, catalog.store, Decimal("5"))
        adjustment = adjustment_service.create(
            StockAdjustmentHeaderSpec(location_id=catalog.store, reason_code="theft"),
            [StockAdjustmentLineSpec(product_id=catalog.soap, quantity_delta=Decimal("-4"))],
            test_actor_id,
        )
        adjustment_service.approve(adjustment.id, approver_id)

        with pytest.raises(InsufficientStockError):
            grn_service.cancel(grn.id, test_actor_id)

        assert grn_service.get(grn.id).status == GoodsReceivedStatus.POSTED
        assert stock_selector.quantity(catalog.soap, catalog.store) == Decimal("1")
        assert len(ledger_selector.get_by_reference(ReferenceType.GOODS_RECEIVED, grn.id)) == 1

    def test_reversal_entries_are_reversal_type(self, receive_stock, grn_service, ledger_selector,
                                                catalog, test_actor_id):
        grn = receive_stock(catalog.soap, catalog.store, Decimal("5"))
        grn_service.cancel(grn.id, test_actor_id)

        types = [e.movement_type for e in ledger_selector.get_by_reference(ReferenceType.GOODS_RECEIVED, grn.id)]
        assert sorted(types) == sorted([MovementType.RECEIPT, MovementType.REVERSAL])
