# Overview: Pytest coverage for recording, previewing and deleting sales.

import pytest

from ministore.services import products_service, sales_service
from ministore.validation import InsufficientStockError, NotFoundError, ValidationError


pytestmark = pytest.mark.sales


class TestRecordSale:

    def test_sale_then_delete_restores_stock(self, ctx, make_state, make_product):
        product = make_product(quantity=10, original_price=30, selling_price=50)
        state = make_state([product])

        state, sale = sales_service.record_sale(state, ctx, product.id, 3)
        assert sale.total_amount == 150
        assert sale.unit_price == 50
        assert sale.original_price == 30
        assert sale.product_name == product.name
        assert sale.date == ctx.now
        assert state.product(product.id).quantity == 7
        assert state.product(product.id).total_sold == 3

        state, preview = sales_service.delete_sale(state, ctx, sale.id)
        assert preview.restore_quantity == 3
        assert state.product(product.id).quantity == 10
        assert state.product(product.id).total_sold == 0
        assert state.sales == ()

    def test_insufficient_stock(self, ctx, make_state, make_product):
        product = make_product(quantity=2)
        with pytest.raises(InsufficientStockError) as exc:
            sales_service.record_sale(make_state([product]), ctx, product.id, 3)
        assert exc.value.message == "Insufficient stock. Available quantity: 2"
        assert exc.value.details == {"available": 2, "requested": 3}
        assert exc.value.status_code == 409

    @pytest.mark.parametrize("quantity", [0, -1, "2.5", None])
    def test_quantity_must_be_positive_integer(self, ctx, make_state, make_product, quantity):
        product = make_product(quantity=5)
        with pytest.raises(ValidationError):
            sales_service.record_sale(make_state([product]), ctx, product.id, quantity)

    def test_unknown_product(self, ctx, make_state):
        with pytest.raises(NotFoundError) as exc:
            sales_service.record_sale(make_state(), ctx, 123, 1)
        assert exc.value.message == "Selected product not found"

    def test_numeric_text_product_id(self, ctx, make_state, make_product):
        product = make_product(quantity=4)
        state, sale = sales_service.record_sale(make_state([product]), ctx, str(product.id), 1)
        assert sale.product_id == product.id
        assert state.sale(str(sale.id)) == sale
        with pytest.raises(NotFoundError):
            sales_service.record_sale(state, ctx, True, 1)

    def test_sale_keeps_price_snapshot_after_repricing(self, ctx, make_state, make_product):
        product = make_product(quantity=10, original_price=10, selling_price=20)
        state, sale = sales_service.record_sale(make_state([product]), ctx, product.id, 2)
        state, _ = products_service.update_product(state, ctx, product.id, selling_price=99)
        assert state.sale(sale.id).unit_price == 20
        assert state.sale(sale.id).profit == 20


class TestDeleteSale:

    def test_preview_message(self, ctx, make_state, make_product, make_sale):
        product = make_product(name="Cola", quantity=4, total_sold=3)
        sale = make_sale(product, 3)
        preview = sales_service.preview_sale_deletion(make_state([product], [sale]), sale.id)
        assert preview.message == "This will restore 3 units to Cola"
        assert preview.stock_after == 7
        assert preview.total_sold_after == 0

    def test_deleted_product_only_removes_sale(self, ctx, make_state, make_product, make_sale):
        product = make_product(name="Gone")
        sale = make_sale(product, 2)
        state = make_state([], [sale])
        preview = sales_service.preview_sale_deletion(state, sale.id)
        assert preview.product_exists is False
        assert "no longer exists" in preview.message

        new_state, _ = sales_service.delete_sale(state, ctx, sale.id)
        assert new_state.sales == ()
        assert new_state.products == ()

    def test_total_sold_never_negative(self, ctx, make_state, make_product, make_sale):
        product = make_product(quantity=1, total_sold=1)
        sale = make_sale(product, 5)
        state, _ = sales_service.delete_sale(make_state([product], [sale]), ctx, sale.id)
        assert state.product(product.id).total_sold == 0
        assert state.product(product.id).quantity == 6

    def test_unknown_sale(self, ctx, make_state):
        with pytest.raises(NotFoundError):
            sales_service.delete_sale(make_state(), ctx, 1)


def test_list_sales_newest_first(make_state, make_product, make_sale):
    a = make_product(name="A")
    b = make_product(name="B")
    first, second, third = make_sale(a), make_sale(b), make_sale(a)
    state = make_state([a, b], [first, second, third])
    assert sales_service.list_sales(state) == [third, second, first]
    assert sales_service.list_sales(state, product_id=a.id) == [third, first]
    assert sales_service.list_sales(state, limit=1) == [third]
