"""
Goods returns to a supplier and the replacements received against them.

Tests cover:
- Return posting removes stock (and batch quantity)
- Replacement posting adds stock into a batch
- Replacement limit per return line, counted in base units
- Reference validation between replace lines and return lines
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.config import InventoryConfig
from inventory_kernel.domain.dtos import MovementType, ReferenceType
from inventory_kernel.exceptions import (
    DocumentLineNotFoundError,
    DocumentNotFoundError,
    InsufficientStockError,
    ValidationFailedError,
)
from inventory_modules.goods_replace import (
    GoodsReplaceHeaderSpec,
    GoodsReplaceLineSpec,
    GoodsReplaceService,
    GoodsReplaceStatus,
)
from inventory_modules.goods_return import (
    GoodsReturnHeaderSpec,
    GoodsReturnLineSpec,
    GoodsReturnStatus,
)


@pytest.fixture
def posted_return(receive_stock, return_service, catalog, test_actor_id):
    """Two boxes of milk (24 units) returned from the store, from batch M-R."""
    grn = receive_stock(catalog.milk, catalog.store, Decimal("5"), unit="box",
                        unit_cost=Decimal("12"), batch_no="M-R", expiry_date=date(2024, 3, 1))
    goods_return = return_service.create(
        GoodsReturnHeaderSpec(
            supplier_id=catalog.supplier, location_id=catalog.store, reference_grn_id=grn.id,
        ),
        [GoodsReturnLineSpec(product_id=catalog.milk, quantity=Decimal("2"), unit="box",
                             batch_no="M-R", reason="leaking")],
        test_actor_id,
    )
    return return_service.post(goods_return.id, test_actor_id)


def _replace(replace_service, catalog, goods_return, quantity, actor_id, unit="box", batch_no="M-NEW"):
    return replace_service.create(
        GoodsReplaceHeaderSpec(
            supplier_id=catalog.supplier, location_id=catalog.store, reference_return_id=goods_return.id,
        ),
        [GoodsReplaceLineSpec(
            product_id=catalog.milk,
            quantity=Decimal(quantity),
            unit=unit,
            reference_return_line_id=goods_return.lines[0].id,
            batch_no=batch_no,
            expiry_date=date(2024, 6, 1),
        )],
        actor_id,
    )


class TestReturn:

    def test_post_removes_stock_and_batch_quantity(self, posted_return, stock_selector, batch_selector,
                                                   ledger_selector, catalog):
        assert posted_return.status == GoodsReturnStatus.POSTED
        assert posted_return.document_no == "RTN-2024-0001"
        assert posted_return.total_quantity == Decimal("24")
        assert stock_selector.quantity(catalog.milk, catalog.store) == Decimal("36")
        assert batch_selector.get_by_number(catalog.milk, "M-R").quantity == Decimal("36")

        (entry,) = ledger_selector.get_by_reference(ReferenceType.GOODS_RETURN, posted_return.id)
        assert entry.movement_type == MovementType.RETURN_OUT
        assert entry.quantity_delta == Decimal("-24")
        assert entry.unit_cost == Decimal("1")

    def test_unknown_grn_reference(self, return_service, catalog, test_actor_id):
        with pytest.raises(DocumentNotFoundError):
            return_service.create(
                GoodsReturnHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.store,
                                      reference_grn_id=uuid4()),
                [GoodsReturnLineSpec(product_id=catalog.soap, quantity=Decimal("1"))],
                test_actor_id,
            )

    def test_cannot_return_more_than_on_hand(self, receive_stock, return_service, catalog, test_actor_id):
        receive_stock(catalog.soap, catalog.store, Decimal("2"))
        goods_return = return_service.create(
            GoodsReturnHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.store),
            [GoodsReturnLineSpec(product_id=catalog.soap, quantity=Decimal("3"))],
            test_actor_id,
        )
        with pytest.raises(InsufficientStockError):
            return_service.post(goods_return.id, test_actor_id)
        assert return_service.get(goods_return.id).status == GoodsReturnStatus.DRAFT

    def test_cancel_puts_stock_back(self, posted_return, return_service, stock_selector, batch_selector,
                                    catalog, test_actor_id):
        return_service.cancel(posted_return.id, test_actor_id)
        assert stock_selector.quantity(catalog.milk, catalog.store) == Decimal("60")
        assert batch_selector.get_by_number(catalog.milk, "M-R").quantity == Decimal("60")

    def test_nothing_replaced_yet(self, posted_return, return_service):
        assert return_service.replaced_quantities(posted_return.id) == {
            posted_return.lines[0].id: Decimal("0"),
        }


class TestReplace:

    def test_post_adds_stock_into_batch(self, posted_return, replace_service, stock_selector,
                                        batch_selector, ledger_selector, catalog, test_actor_id):
        replacement = _replace(replace_service, catalog, posted_return, "2", test_actor_id)
        posted = replace_service.post(replacement.id, test_actor_id)

        assert posted.status == GoodsReplaceStatus.POSTED
        assert posted.document_no == "RPL-2024-0001"
        assert stock_selector.quantity(catalog.milk, catalog.store) == Decimal("60")
        batch = batch_selector.get_by_number(catalog.milk, "M-NEW")
        assert batch.quantity == Decimal("24")
        assert batch.expiry_date == date(2024, 6, 1)

        (entry,) = ledger_selector.get_by_reference(ReferenceType.GOODS_REPLACE, posted.id)
        assert entry.movement_type == MovementType.REPLACE_IN
        assert entry.batch_id == batch.id

    def test_replaced_quantities_tracked(self, posted_return, replace_service, return_service,
                                         catalog, test_actor_id):
        replacement = _replace(replace_service, catalog, posted_return, "6", test_actor_id, unit=None)
        replace_service.post(replacement.id, test_actor_id)

        assert return_service.replaced_quantities(posted_return.id) == {
            posted_return.lines[0].id: Decimal("6"),
        }

    def test_limit_counts_previous_replacements(self, posted_return, replace_service, catalog, test_actor_id):
        first = _replace(replace_service, catalog, posted_return, "1", test_actor_id)
        replace_service.post(first.id, test_actor_id)

        second = _replace(replace_service, catalog, posted_return, "13", test_actor_id, unit=None)
        with pytest.raises(ValidationFailedError, match="Replacement limit exceeded"):
            replace_service.post(second.id, test_actor_id)

        assert replace_service.get(second.id).status == GoodsReplaceStatus.DRAFT

        exact = _replace(replace_service, catalog, posted_return, "12", test_actor_id, unit=None)
        assert replace_service.post(exact.id, test_actor_id).status == GoodsReplaceStatus.POSTED

    def test_cancelled_replacement_frees_the_limit(self, posted_return, replace_service, catalog, test_actor_id):
        first = _replace(replace_service, catalog, posted_return, "2", test_actor_id)
        replace_service.post(first.id, test_actor_id)
        replace_service.cancel(first.id, test_actor_id)

        again = _replace(replace_service, catalog, posted_return, "2", test_actor_id)
        assert replace_service.post(again.id, test_actor_id).status == GoodsReplaceStatus.POSTED

    def test_limit_can_be_switched_off(self, session, master_data, clock, posted_return, catalog, test_actor_id):
        service = GoodsReplaceService(
            session, master_data, InventoryConfig(enforce_replacement_limit=False), clock,
        )
        replacement = _replace(service, catalog, posted_return, "5", test_actor_id)
        assert service.post(replacement.id, test_actor_id).status == GoodsReplaceStatus.POSTED

    def test_draft_return_cannot_be_replaced(self, receive_stock, return_service, replace_service,
                                             catalog, test_actor_id):
        receive_stock(catalog.milk, catalog.store, Decimal("24"))
        goods_return = return_service.create(
            GoodsReturnHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.store),
            [GoodsReturnLineSpec(product_id=catalog.milk, quantity=Decimal("1"), unit="box")],
            test_actor_id,
        )
        replacement = _replace(replace_service, catalog, goods_return, "1", test_actor_id)

        with pytest.raises(ValidationFailedError, match="only posted returns"):
            replace_service.post(replacement.id, test_actor_id)

    def test_line_must_belong_to_referenced_return(self, posted_return, replace_service, catalog, test_actor_id):
        with pytest.raises(DocumentLineNotFoundError):
            replace_service.create(
                GoodsReplaceHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.store,
                                       reference_return_id=posted_return.id),
                [GoodsReplaceLineSpec(product_id=catalog.milk, quantity=Decimal("1"),
                                      reference_return_line_id=uuid4())],
                test_actor_id,
            )

    def test_line_product_must_match(self, posted_return, replace_service, catalog, test_actor_id):
        with pytest.raises(ValidationFailedError, match="product does not match"):
            replace_service.create(
                GoodsReplaceHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.store,
                                       reference_return_id=posted_return.id),
                [GoodsReplaceLineSpec(product_id=catalog.bread, quantity=Decimal("1"),
                                      reference_return_line_id=posted_return.lines[0].id)],
                test_actor_id,
            )

    def test_line_reference_needs_header_reference(self, posted_return, replace_service, catalog, test_actor_id):
        with pytest.raises(ValidationFailedError, match="needs a reference_return_id"):
            replace_service.create(
                GoodsReplaceHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.store),
                [GoodsReplaceLineSpec(product_id=catalog.milk, quantity=Decimal("1"),
                                      reference_return_line_id=posted_return.lines[0].id)],
                test_actor_id,
            )

    def test_unknown_return(self, replace_service, catalog, test_actor_id):
        with pytest.raises(DocumentNotFoundError):
            replace_service.create(
                GoodsReplaceHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.store,
                                       reference_return_id=uuid4()),
                [GoodsReplaceLineSpec(product_id=catalog.milk, quantity=Decimal("1"))],
                test_actor_id,
            )

    def test_unreferenced_replacement(self, replace_service, stock_selector, catalog, test_actor_id):
        replacement = replace_service.create(
            GoodsReplaceHeaderSpec(supplier_id=catalog.supplier, location_id=catalog.warehouse),
            [GoodsReplaceLineSpec(product_id=catalog.bread, quantity=Decimal("4"))],
            test_actor_id,
        )
        replace_service.post(replacement.id, test_actor_id)
        assert stock_selector.quantity(catalog.bread, catalog.warehouse) == Decimal("4")
