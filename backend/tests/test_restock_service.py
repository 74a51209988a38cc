# Overview: Pytest coverage for the restock and pricing engine.

"""
Restock & Pricing Engine Tests

Covers single, quick and bulk restocks (including the price history they
write), reorder and profit suggestions, and bulk price changes.
"""

from datetime import timedelta

import pytest

from ministore.models import PriceChangeReason, RestockReason
from ministore.services import restock_service
from ministore.validation import NotFoundError, ValidationError


pytestmark = pytest.mark.restock


class TestRestock:

    def test_restock_with_new_selling_price(self, ctx, make_state, make_product):
        product = make_product(quantity=2, original_price=10, selling_price=20)
        state, outcome = restock_service.restock(
            make_state([product]), ctx, product.id, 8, new_selling_price=25,
        )

        assert outcome.product.quantity == 10
        assert outcome.product.selling_price == 25
        [price_entry] = state.price_history
        assert price_entry.reason is PriceChangeReason.RESTOCK_SELLING_PRICE
        assert price_entry.old_margin == pytest.approx(50.0)
        assert price_entry.new_margin == pytest.approx(60.0)
        assert price_entry.stock_at_time == 2

        [restock_entry] = state.restock_history
        assert restock_entry.quantity_added == 8
        assert restock_entry.stock_before == 2
        assert restock_entry.stock_after == 10
        assert restock_entry.to_dict()["priceChanges"] == "Selling: ₱20.00 → ₱25.00"

    def test_both_prices_logged_in_order(self, ctx, make_state, make_product):
        product = make_product(quantity=5, original_price=10, selling_price=20)
        state, outcome = restock_service.restock(
            make_state([product]), ctx, product.id, 5,
            new_original_price=12, new_selling_price=24,
        )
        original_entry, selling_entry = state.price_history
        assert original_entry.reason is PriceChangeReason.RESTOCK_ORIGINAL_PRICE
        assert (original_entry.old_original_price, original_entry.new_original_price) == (10, 12)
        assert original_entry.new_selling_price == 20
        # selling entry already sees the updated original price
        assert selling_entry.old_original_price == 12
        assert selling_entry.new_original_price == 12
        assert (selling_entry.old_selling_price, selling_entry.new_selling_price) == (20, 24)
        assert original_entry.id < selling_entry.id < state.restock_history[0].id
        assert len(outcome.price_changes) == 2

    @pytest.mark.parametrize("new_price", [None, "", 0, 20])
    def test_unchanged_or_empty_price_not_logged(self, ctx, make_state, make_product, new_price):
        product = make_product(quantity=1, selling_price=20)
        state, outcome = restock_service.restock(
            make_state([product]), ctx, product.id, 3, new_selling_price=new_price,
        )
        assert state.price_history == ()
        assert outcome.product.selling_price == 20
        assert state.restock_history[0].to_dict()["priceChanges"] == "No price changes"

    def test_notes_recorded(self, ctx, make_state, make_product):
        product = make_product()
        state, _ = restock_service.restock(make_state([product]), ctx, product.id, 1, notes=" Supplier A ")
        assert state.restock_history[0].to_dict()["notes"] == "Supplier A"

    @pytest.mark.parametrize("quantity", [0, -4, "1.5"])
    def test_invalid_quantity(self, ctx, make_state, make_product, quantity):
        product = make_product()
        with pytest.raises(ValidationError):
            restock_service.restock(make_state([product]), ctx, product.id, quantity)

    def test_unknown_product(self, ctx, make_state):
        with pytest.raises(NotFoundError):
            restock_service.restock(make_state(), ctx, 1, 5)


class TestQuickRestock:

    def test_alert_source(self, ctx, make_state, make_product):
        product = make_product(quantity=1)
        state, outcome = restock_service.quick_restock(make_state([product]), ctx, product.id, 12)
        assert outcome.product.quantity == 13
        entry = state.restock_history[0]
        assert entry.reason is RestockReason.QUICK_LOW_STOCK_ALERT
        assert entry.to_dict()["notes"] == "Quick restock from low stock alert"
        assert state.price_history == ()

    @pytest.mark.parametrize("quantity,threshold,expected", [
        (0, 5, 20),
        (3, 5, 15),
        (1, 0, 10),
    ])
    def test_inventory_default_amount(self, ctx, make_state, make_product, quantity, threshold, expected):
        product = make_product(quantity=quantity)
        state, outcome = restock_service.quick_restock(
            make_state([product], threshold=threshold), ctx, product.id, source="inventory",
        )
        assert outcome.restock_entry.quantity_added == expected
        assert outcome.restock_entry.reason is RestockReason.QUICK

    def test_unknown_source(self, ctx, make_state, make_product):
        product = make_product()
        with pytest.raises(ValidationError):
            restock_service.quick_restock(make_state([product]), ctx, product.id, 5, source="phone")


class TestReorderSuggestions:

    def test_no_recent_sales_uses_velocity_one(self, now, make_state, make_product):
        product = make_product(quantity=3, original_price=10, selling_price=20)
        [suggestion] = restock_service.generate_reorder_suggestions(make_state([product], threshold=5), now)
        assert suggestion.sales_velocity == 1
        assert suggestion.suggested_quantity == 9

    def test_velocity_counts_last_30_days_only(self, now, make_state, make_product, make_sale):
        product = make_product(quantity=0)
        sales = [
            make_sale(product, 6, date=now - timedelta(days=2)),
            make_sale(product, 4, date=now - timedelta(days=29)),
            make_sale(product, 100, date=now - timedelta(days=31)),
        ]
        [suggestion] = restock_service.generate_reorder_suggestions(make_state([product], sales), now)
        assert suggestion.sales_velocity == pytest.approx(2.5)
        assert suggestion.suggested_quantity == 10 + 5

    def test_sorted_by_velocity_and_skips_stocked(self, now, make_state, make_product, make_sale):
        slow = make_product(name="slow", quantity=1)
        fast = make_product(name="fast", quantity=2)
        stocked = make_product(name="stocked", quantity=50)
        sales = [make_sale(fast, 20, date=now - timedelta(days=1)), make_sale(stocked, 40)]
        suggestions = restock_service.generate_reorder_suggestions(make_state([slow, fast, stocked], sales), now)
        assert [s.product.name for s in suggestions] == ["fast", "slow"]

    def test_bulk_suggested(self, ctx, make_state, make_product):
        low = make_product(name="low", quantity=3)
        empty = make_product(name="empty", quantity=0)
        full = make_product(name="full", quantity=30)
        state, outcome = restock_service.bulk_restock_suggested(make_state([low, empty, full]), ctx)
        assert outcome.message == "Successfully restocked 2 products"
        assert state.product(low.id).quantity == 3 + 9
        assert state.product(empty.id).quantity == 9
        assert state.product(full.id).quantity == 30
        assert {e.reason for e in state.restock_history} == {RestockReason.BULK_SUGGESTION}
        assert len({e.id for e in state.restock_history}) == 2

    def test_bulk_nothing_to_restock(self, ctx, make_state, make_product):
        state = make_state([make_product(quantity=50)])
        new_state, outcome = restock_service.bulk_restock_uniform(state, ctx, 10)
        assert new_state is state
        assert outcome.message == "Nothing to restock"

    def test_bulk_uniform(self, ctx, make_state, make_product):
        products = [make_product(quantity=q) for q in (0, 4, 5, 6)]
        state, outcome = restock_service.bulk_restock_uniform(make_state(products), ctx, 10)
        assert [state.product(p.id).quantity for p in products] == [10, 14, 15, 6]
        assert len(outcome.restocked) == 3
        assert {e.reason for e in state.restock_history} == {RestockReason.BULK_UNIFORM}


class TestProfitOptimizations:

    def test_high_demand_low_margin_suggests_increase(self, make_state, make_product, make_sale):
        product = make_product(original_price=90, selling_price=100)
        sales = [make_sale(product) for _ in range(21)]
        [item] = restock_service.generate_profit_optimizations(make_state([product], sales))
        assert item.kind == "increase"
        assert item.suggested_price == pytest.approx(110)
        assert item.message == "High demand, low margin (10.0%). Consider increasing price by ₱10.00"

    def test_low_demand_high_margin_suggests_decrease(self, make_state, make_product, make_sale):
        product = make_product(original_price=10, selling_price=40)
        [item] = restock_service.generate_profit_optimizations(make_state([product], [make_sale(product)]))
        assert item.kind == "decrease"
        assert item.suggested_price == pytest.approx(36)

    def test_products_without_sales_skipped(self, make_state, make_product):
        product = make_product(original_price=10, selling_price=40)
        assert restock_service.generate_profit_optimizations(make_state([product])) == []


class TestBulkPricing:

    @pytest.fixture
    def state(self, make_state, make_product):
        return make_state([
            make_product(name="a", quantity=1, original_price=10, selling_price=20),
            make_product(name="b", quantity=40, original_price=30, selling_price=50),
        ])

    def test_percentage_preview(self, state):
        proposals = restock_service.preview_bulk_price_changes(state, "percentage", 10)
        assert [p.new_price for p in proposals] == [pytest.approx(22), pytest.approx(55)]

    def test_fixed_preview_drops_non_positive(self, state):
        proposals = restock_service.preview_bulk_price_changes(state, "fixed", -25)
        assert [p.product_name for p in proposals] == ["b"]

    def test_margin_preview(self, state):
        proposals = restock_service.preview_bulk_price_changes(state, "margin", 50, "low-stock")
        [proposal] = proposals
        assert proposal.product_name == "a"
        assert proposal.new_price == pytest.approx(20)

    def test_high_stock_scope(self, state):
        proposals = restock_service.preview_bulk_price_changes(state, "fixed", 1, "high-stock")
        assert [p.product_name for p in proposals] == ["b"]

    def test_margin_of_100_rejected(self, state):
        with pytest.raises(ValidationError):
            restock_service.preview_bulk_price_changes(state, "margin", 100)

    def test_apply_logs_bulk_update(self, ctx, state):
        proposals = restock_service.preview_bulk_price_changes(state, "percentage", 10)
        new_state, updated = restock_service.apply_bulk_price_changes(state, ctx, proposals)
        assert [p.selling_price for p in updated] == [pytest.approx(22), pytest.approx(55)]
        assert [p.original_price for p in updated] == [10, 30]
        assert all(e.reason is PriceChangeReason.BULK_UPDATE for e in new_state.price_history)
        assert [e.stock_at_time for e in new_state.price_history] == [1, 40]

    def test_apply_rejects_whole_batch(self, ctx, state):
        a, b = state.products
        changes = [{"productId": a.id, "newPrice": 25}, {"productId": b.id, "newPrice": 0}]
        with pytest.raises(ValidationError):
            restock_service.apply_bulk_price_changes(state, ctx, changes)

    def test_apply_unknown_product(self, ctx, state):
        with pytest.raises(NotFoundError):
            restock_service.apply_bulk_price_changes(state, ctx, [{"productId": 1, "newPrice": 5}])


def test_history_newest_first(ctx, make_state, make_product):
    product = make_product(quantity=1, selling_price=20)
    state = make_state([product])
    state, _ = restock_service.restock(state, ctx, product.id, 1, new_selling_price=21)
    state, _ = restock_service.restock(state, ctx, product.id, 1, new_selling_price=22)
    prices = restock_service.price_history_for(state, product.id)
    assert [e.new_selling_price for e in prices] == [22, 21]
    assert restock_service.restock_history_for(state, 999) == []
