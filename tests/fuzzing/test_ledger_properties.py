"""
Property-based tests for the stock ledger and transfer receipts.

Boundaries fuzzed here:
- Signed movement sequences: balance never negative, chain replays exactly
- Receipt costs: moving average stays between the cheapest and dearest receipt
- Transfer receipts: arbitrary cumulative received/damaged totals

Every example works on freshly generated product/location ids so examples
sharing one test transaction cannot see each other's rows.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from inventory_kernel.domain.dtos import MovementType, ReferenceType
from inventory_kernel.exceptions import InsufficientStockError, ValidationFailedError
from inventory_modules.stock_transfer import (
    StockTransferHeaderSpec,
    StockTransferLineSpec,
    StockTransferStatus,
    derive_line_status,
)

FIXTURE_SETTINGS = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)

quantities = st.decimals(
    min_value=Decimal("-500"),
    max_value=Decimal("500"),
    places=3,
    allow_nan=False,
    allow_infinity=False,
).filter(lambda d: d != 0)

costs = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("999"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


def _append(ledger_service, product_id, location_id, delta, actor_id, unit_cost=None):
    return ledger_service.append(
        product_id=product_id,
        location_id=location_id,
        movement_type=MovementType.RECEIPT if delta > 0 else MovementType.ISSUE,
        quantity_delta=delta,
        unit_cost=unit_cost,
        reference_type=ReferenceType.STOCK_ADJUSTMENT,
        reference_id=uuid4(),
        actor_id=actor_id,
    )


class TestLedgerProperties:

    @given(deltas=st.lists(quantities, min_size=1, max_size=25))
    @FIXTURE_SETTINGS
    def test_balance_never_negative_and_replays(self, ledger_service, ledger_selector, test_actor_id, deltas):
        product_id, location_id = uuid4(), uuid4()
        expected = Decimal("0")
        accepted = 0

        for delta in deltas:
            try:
                entry = _append(ledger_service, product_id, location_id, delta, test_actor_id)
            except InsufficientStockError:
                assert expected + delta < 0
                continue
            expected += delta
            accepted += 1
            assert entry.balance_after == expected
            assert entry.sequence_no == accepted

        assert expected >= 0
        verification = ledger_selector.verify_running_balance(product_id, location_id)
        assert verification.is_consistent, verification.errors
        assert verification.entry_count == accepted
        assert verification.replayed_balance == expected
        assert ledger_selector.replay_balance(product_id, location_id) == expected

    @given(receipts=st.lists(st.tuples(st.integers(min_value=1, max_value=100), costs), min_size=1, max_size=10))
    @FIXTURE_SETTINGS
    def test_average_cost_within_receipt_costs(self, ledger_service, stock_selector, test_actor_id, receipts):
        product_id, location_id = uuid4(), uuid4()
        for quantity, cost in receipts:
            _append(ledger_service, product_id, location_id, Decimal(quantity), test_actor_id, unit_cost=cost)

        level = stock_selector.get(product_id, location_id)
        cheapest = min(cost for _, cost in receipts)
        dearest = max(cost for _, cost in receipts)
        assert cheapest <= level.average_cost <= dearest
        assert level.quantity == sum(Decimal(q) for q, _ in receipts)

    @given(delta=quantities)
    @FIXTURE_SETTINGS
    def test_wrong_sign_always_rejected(self, ledger_service, test_actor_id, delta):
        movement = MovementType.ISSUE if delta > 0 else MovementType.RECEIPT
        with pytest.raises(ValidationFailedError):
            ledger_service.append(
                product_id=uuid4(),
                location_id=uuid4(),
                movement_type=movement,
                quantity_delta=delta,
                unit_cost=None,
                reference_type=ReferenceType.STOCK_ADJUSTMENT,
                reference_id=uuid4(),
                actor_id=test_actor_id,
            )


class TestTransferReceiptProperties:

    @given(data=st.data())
    @settings(
        max_examples=25,
        deadline=None,
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    )
    def test_cumulative_receipts_account_for_every_unit(
        self, master_data, receive_stock, transfer_service, stock_selector, catalog, test_actor_id, data,
    ):
        product_id = uuid4()
        master_data.add_product(product_id)
        sent = data.draw(st.integers(min_value=1, max_value=20), label="sent")
        receive_stock(product_id, catalog.warehouse, Decimal(sent))

        transfer = transfer_service.create(
            StockTransferHeaderSpec(from_location_id=catalog.warehouse, to_location_id=catalog.store),
            [StockTransferLineSpec(product_id=product_id, quantity=Decimal(sent))],
            test_actor_id,
        )
        transfer = transfer_service.post(transfer.id, test_actor_id)
        line_id = transfer.lines[0].id

        steps = data.draw(
            st.lists(st.tuples(st.integers(0, 6), st.integers(0, 3)), max_size=6),
            label="steps",
        )
        received = damaged = 0
        for add_received, add_damaged in steps:
            if transfer.status == StockTransferStatus.COMPLETED:
                break
            new_received, new_damaged = received + add_received, damaged + add_damaged
            if new_received + new_damaged > sent:
                with pytest.raises(ValidationFailedError):
                    transfer_service.receive_items(
                        transfer.id,
                        {line_id: Decimal(new_received)},
                        {line_id: Decimal(new_damaged)},
                        test_actor_id,
                    )
                continue
            transfer = transfer_service.receive_items(
                transfer.id,
                {line_id: Decimal(new_received)},
                {line_id: Decimal(new_damaged)},
                test_actor_id,
            )
            received, damaged = new_received, new_damaged

        line = transfer_service.get(transfer.id).lines[0]
        assert line.quantity_received == Decimal(received)
        assert line.quantity_damaged == Decimal(damaged)
        assert line.line_status == derive_line_status(Decimal(sent), Decimal(received), Decimal(damaged))
        assert stock_selector.quantity(product_id, catalog.warehouse) == Decimal("0")
        assert stock_selector.quantity(product_id, catalog.store) == Decimal(received)

        completed = received + damaged >= sent
        assert (transfer_service.get(transfer.id).status == StockTransferStatus.COMPLETED) == completed
