# Overview: Restock and pricing engine; restocks, price history, reorder and pricing suggestions.

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from ..models import (
    PriceChange,
    PriceChangeReason,
    PriceHistoryEntry,
    Product,
    RestockHistoryEntry,
    RestockReason,
    StoreState,
)
from ..validation import (
    NotFoundError,
    ValidationError,
    coerce_price,
    optional_price,
    require_positive_int,
)
from .products_service import get_product

"""
Restock and pricing rules

- A restock is one logical transaction: product update, up to two price
  history entries and exactly one restock history entry are built together
  and returned as a single new state.
- A price is applied only when it is given, > 0, and differs from the current
  one. Price history records stock-at-time as the quantity before the restock.
- The original price is applied before the selling price entry is built, so
  that entry carries the updated original price on both sides.
- Suggestions (reorder, profit) are advisory and never change state.
"""

VELOCITY_WINDOW_DAYS = 30
VELOCITY_WEEKS = 4
COVERAGE_WEEKS = 4

HIGH_DEMAND_PER_WEEK = 5
LOW_MARGIN_PCT = 20
LOW_DEMAND_PER_WEEK = 1
HIGH_MARGIN_PCT = 50
PRICE_STEP = 0.10

NOTHING_TO_RESTOCK = "Nothing to restock"

ADJUSTMENT_TYPES = ("percentage", "fixed", "margin")
PRICE_SCOPES = ("all", "low-stock", "high-stock")
HIGH_STOCK_MULTIPLIER = 3

QUICK_SOURCES = {
    "alert": RestockReason.QUICK_LOW_STOCK_ALERT,
    "inventory": RestockReason.QUICK,
}


@dataclass(frozen=True)
class RestockOutcome:
    product: Product
    restock_entry: RestockHistoryEntry
    price_changes: tuple[PriceChange, ...] = ()

    def to_dict(self) -> dict:
        return {
            "product": self.product.to_dict(),
            "restock": self.restock_entry.to_dict(),
            "priceChanges": [c.describe() for c in self.price_changes],
        }


@dataclass(frozen=True)
class BulkRestockOutcome:
    restocked: tuple[RestockOutcome, ...] = ()

    @property
    def message(self) -> str:
        if not self.restocked:
            return NOTHING_TO_RESTOCK
        return f"Successfully restocked {len(self.restocked)} products"

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "count": len(self.restocked),
            "restocked": [o.to_dict() for o in self.restocked],
        }


@dataclass(frozen=True)
class ReorderSuggestion:
    product: Product
    sales_velocity: float
    suggested_quantity: int

    def to_dict(self) -> dict:
        return {
            "productId": self.product.id,
            "productName": self.product.name,
            "currentStock": self.product.quantity,
            "salesVelocity": self.sales_velocity,
            "suggestedQuantity": self.suggested_quantity,
        }


@dataclass(frozen=True)
class ProfitOptimization:
    product: Product
    kind: str  # "increase" | "decrease"
    avg_sales_per_week: float
    current_margin: float
    suggested_price: float

    @property
    def message(self) -> str:
        if self.kind == "increase":
            step = self.suggested_price - self.product.selling_price
            return (
                f"High demand, low margin ({self.current_margin:.1f}%). "
                f"Consider increasing price by ₱{step:.2f}"
            )
        return (
            f"Low demand, high margin ({self.current_margin:.1f}%). "
            f"Consider reducing price to ₱{self.suggested_price:.2f} to boost sales"
        )

    def to_dict(self) -> dict:
        return {
            "productId": self.product.id,
            "productName": self.product.name,
            "kind": self.kind,
            "avgSalesPerWeek": self.avg_sales_per_week,
            "currentMargin": self.current_margin,
            "currentPrice": self.product.selling_price,
            "suggestedPrice": self.suggested_price,
            "suggestion": self.message,
        }


@dataclass(frozen=True)
class PriceChangeProposal:
    product_id: int
    product_name: str
    old_price: float
    new_price: float

    @property
    def change(self) -> float:
        return self.new_price - self.old_price

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "oldPrice": self.old_price,
            "newPrice": self.new_price,
            "change": self.change,
        }


def _price_entry(ctx, product: Product, *, old_original, old_selling, new_original, new_selling,
                 reason: PriceChangeReason, stock_at_time: int) -> PriceHistoryEntry:
    return PriceHistoryEntry(
        id=ctx.next_id(),
        date=ctx.now,
        product_id=product.id,
        product_name=product.name,
        old_original_price=old_original,
        old_selling_price=old_selling,
        new_original_price=new_original,
        new_selling_price=new_selling,
        reason=reason,
        stock_at_time=stock_at_time,
    )


def _build_restock(
    ctx,
    product: Product,
    quantity: int,
    *,
    reason: RestockReason,
    new_original_price: float | None = None,
    new_selling_price: float | None = None,
    notes: str = "",
) -> tuple[Product, list[PriceHistoryEntry], RestockOutcome]:
    stock_before = product.quantity
    orig_original = product.original_price
    orig_selling = product.selling_price

    history: list[PriceHistoryEntry] = []
    changes: list[PriceChange] = []
    current_original = orig_original
    current_selling = orig_selling

    if new_original_price is not None and new_original_price > 0 and new_original_price != orig_original:
        history.append(_price_entry(
            ctx, product,
            old_original=orig_original, old_selling=orig_selling,
            new_original=new_original_price, new_selling=current_selling,
            reason=PriceChangeReason.RESTOCK_ORIGINAL_PRICE,
            stock_at_time=stock_before,
        ))
        changes.append(PriceChange("original", orig_original, new_original_price))
        current_original = new_original_price

    if new_selling_price is not None and new_selling_price > 0 and new_selling_price != orig_selling:
        history.append(_price_entry(
            ctx, product,
            old_original=current_original, old_selling=orig_selling,
            new_original=current_original, new_selling=new_selling_price,
            reason=PriceChangeReason.RESTOCK_SELLING_PRICE,
            stock_at_time=stock_before,
        ))
        changes.append(PriceChange("selling", orig_selling, new_selling_price))
        current_selling = new_selling_price

    updated = replace(
        product,
        quantity=stock_before + quantity,
        original_price=current_original,
        selling_price=current_selling,
    )
    entry = RestockHistoryEntry(
        id=ctx.next_id(),
        date=ctx.now,
        product_id=product.id,
        product_name=product.name,
        quantity_added=quantity,
        stock_before=stock_before,
        stock_after=updated.quantity,
        original_price=updated.original_price,
        selling_price=updated.selling_price,
        reason=reason,
        notes=(notes or "").strip() if reason is RestockReason.MANUAL else "",
        price_changes=tuple(changes),
    )
    return updated, history, RestockOutcome(product=updated, restock_entry=entry, price_changes=tuple(changes))


def _apply_restocks(state: StoreState, built) -> StoreState:
    products = [b[0] for b in built]
    price_entries = tuple(e for b in built for e in b[1])
    restock_entries = tuple(b[2].restock_entry for b in built)
    return replace(
        state.with_products(products),
        price_history=state.price_history + price_entries,
        restock_history=state.restock_history + restock_entries,
    )


def restock(
    state: StoreState,
    ctx,
    product_id,
    quantity,
    *,
    new_original_price=None,
    new_selling_price=None,
    notes: str | None = None,
) -> tuple[StoreState, RestockOutcome]:
    """Add stock to a product, optionally repricing it in the same step."""
    product = get_product(state, product_id)
    quantity = require_positive_int(quantity, "quantityAdded")
    new_original_price = optional_price(new_original_price, "newOriginalPrice")
    new_selling_price = optional_price(new_selling_price, "newSellingPrice")

    built = _build_restock(
        ctx, product, quantity,
        reason=RestockReason.MANUAL,
        new_original_price=new_original_price,
        new_selling_price=new_selling_price,
        notes=notes or "",
    )
    return _apply_restocks(state, [built]), built[2]


def suggested_quick_restock_amount(product: Product, threshold: int) -> int:
    if product.quantity == 0:
        return 20
    return max(10, threshold + 10)


def quick_restock(
    state: StoreState,
    ctx,
    product_id,
    quantity=None,
    *,
    source: str = "alert",
) -> tuple[StoreState, RestockOutcome]:
    """
    Restock without price changes.

    source "alert" is the low stock alert shortcut, "inventory" the inventory
    table shortcut; when quantity is omitted the inventory default applies.
    """
    if source not in QUICK_SOURCES:
        raise ValidationError(f"Unknown restock source: {source}", field="source", value=source)
    product = get_product(state, product_id)
    if quantity is None:
        quantity = suggested_quick_restock_amount(product, state.low_stock_threshold)
    quantity = require_positive_int(quantity, "quantityAdded")

    built = _build_restock(ctx, product, quantity, reason=QUICK_SOURCES[source])
    return _apply_restocks(state, [built]), built[2]


def _low_stock_candidates(state: StoreState) -> list[Product]:
    threshold = state.low_stock_threshold
    return [p for p in state.products if p.quantity <= threshold]


def bulk_restock_suggested(state: StoreState, ctx) -> tuple[StoreState, BulkRestockOutcome]:
    """Restock every low or empty product by its reorder suggestion."""
    suggestions = generate_reorder_suggestions(state, ctx.now)
    if not suggestions:
        return state, BulkRestockOutcome()

    built = [
        _build_restock(ctx, s.product, s.suggested_quantity, reason=RestockReason.BULK_SUGGESTION)
        for s in suggestions
    ]
    return _apply_restocks(state, built), BulkRestockOutcome(restocked=tuple(b[2] for b in built))


def bulk_restock_uniform(state: StoreState, ctx, amount) -> tuple[StoreState, BulkRestockOutcome]:
    """Restock every low or empty product by the same amount."""
    amount = require_positive_int(amount, "amount")
    candidates = _low_stock_candidates(state)
    if not candidates:
        return state, BulkRestockOutcome()

    built = [_build_restock(ctx, p, amount, reason=RestockReason.BULK_UNIFORM) for p in candidates]
    return _apply_restocks(state, built), BulkRestockOutcome(restocked=tuple(b[2] for b in built))


def sales_velocity(state: StoreState, product: Product, now: datetime) -> float:
    """Units per week over the last 30 days; 1 when nothing sold."""
    since = now - timedelta(days=VELOCITY_WINDOW_DAYS)
    sold = sum(
        s.quantity for s in state.sales
        if s.product_id == product.id and s.date is not None and s.date >= since
    )
    return (sold / VELOCITY_WEEKS) or 1


def generate_reorder_suggestions(state: StoreState, now: datetime) -> list[ReorderSuggestion]:
    threshold = state.low_stock_threshold
    suggestions = []
    for product in _low_stock_candidates(state):
        velocity = sales_velocity(state, product, now)
        suggestions.append(ReorderSuggestion(
            product=product,
            sales_velocity=velocity,
            suggested_quantity=math.ceil(velocity * COVERAGE_WEEKS) + threshold,
        ))
    # sorted() is stable: equal velocities keep product order
    return sorted(suggestions, key=lambda s: s.sales_velocity, reverse=True)


def generate_profit_optimizations(state: StoreState) -> list[ProfitOptimization]:
    optimizations = []
    for product in state.products:
        transactions = len(state.sales_for(product.id))
        if transactions == 0:
            continue
        per_week = transactions / VELOCITY_WEEKS
        margin = product.margin

        if per_week > HIGH_DEMAND_PER_WEEK and margin < LOW_MARGIN_PCT:
            optimizations.append(ProfitOptimization(
                product=product,
                kind="increase",
                avg_sales_per_week=per_week,
                current_margin=margin,
                suggested_price=product.selling_price * (1 + PRICE_STEP),
            ))
        elif per_week < LOW_DEMAND_PER_WEEK and margin > HIGH_MARGIN_PCT:
            optimizations.append(ProfitOptimization(
                product=product,
                kind="decrease",
                avg_sales_per_week=per_week,
                current_margin=margin,
                suggested_price=product.selling_price * (1 - PRICE_STEP),
            ))
    return optimizations


def preview_bulk_price_changes(
    state: StoreState,
    adjustment_type: str,
    value,
    apply_to: str = "all",
) -> list[PriceChangeProposal]:
    """Proposed selling prices for a bulk adjustment; nothing is applied."""
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationError(
            f"Unknown adjustment type: {adjustment_type}", field="adjustmentType", value=adjustment_type
        )
    if apply_to not in PRICE_SCOPES:
        raise ValidationError(f"Unknown product scope: {apply_to}", field="applyTo", value=apply_to)
    if isinstance(value, bool):
        raise ValidationError("value must be a number", field="value", value=value)
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError("value must be a number", field="value", value=value)
    if not math.isfinite(value):
        raise ValidationError("value must be a finite number", field="value", value=value)
    if adjustment_type == "margin" and value >= 100:
        raise ValidationError("Target margin must be below 100%", field="value", value=value)

    threshold = state.low_stock_threshold
    if apply_to == "low-stock":
        targets = [p for p in state.products if p.quantity <= threshold]
    elif apply_to == "high-stock":
        targets = [p for p in state.products if p.quantity > threshold * HIGH_STOCK_MULTIPLIER]
    else:
        targets = list(state.products)

    proposals = []
    for product in targets:
        if adjustment_type == "percentage":
            new_price = product.selling_price * (1 + value / 100)
        elif adjustment_type == "fixed":
            new_price = product.selling_price + value
        else:
            new_price = product.original_price / (1 - value / 100)

        if new_price > 0:
            proposals.append(PriceChangeProposal(
                product_id=product.id,
                product_name=product.name,
                old_price=product.selling_price,
                new_price=new_price,
            ))
    return proposals


def _proposal_fields(entry) -> tuple:
    if isinstance(entry, PriceChangeProposal):
        return entry.product_id, entry.new_price
    if isinstance(entry, dict):
        return entry.get("productId", entry.get("product_id")), entry.get("newPrice", entry.get("new_price"))
    raise ValidationError("Each change must be an object with productId and newPrice")


def apply_bulk_price_changes(state: StoreState, ctx, changes) -> tuple[StoreState, list[Product]]:
    """
    Set new selling prices and log one "Bulk Price Update" entry per product.

    Every entry is validated before anything is built; one bad entry rejects
    the whole batch.
    """
    if not changes:
        raise ValidationError("No price changes to apply", field="changes")

    resolved: list[tuple[Product, float]] = []
    seen = set()
    for index, entry in enumerate(changes):
        product_id, new_price = _proposal_fields(entry)
        product = state.product(product_id)
        if product is None:
            raise NotFoundError(
                "Product not found", entity="product", value=product_id, details={"index": index}
            )
        if product.id in seen:
            raise ValidationError(
                "Duplicate product in price changes", entity="product", value=product_id, details={"index": index}
            )
        price = coerce_price(new_price, "newPrice")
        if price <= 0:
            raise ValidationError(
                "newPrice must be > 0", field="newPrice", value=new_price, details={"index": index}
            )
        seen.add(product.id)
        resolved.append((product, price))

    entries = []
    updated = []
    for product, price in resolved:
        entries.append(_price_entry(
            ctx, product,
            old_original=product.original_price, old_selling=product.selling_price,
            new_original=product.original_price, new_selling=price,
            reason=PriceChangeReason.BULK_UPDATE,
            stock_at_time=product.quantity,
        ))
        updated.append(replace(product, selling_price=price))

    new_state = replace(state.with_products(updated), price_history=state.price_history + tuple(entries))
    return new_state, updated


def price_history_for(state: StoreState, product_id=None) -> list[PriceHistoryEntry]:
    """Newest first; optionally for one product (which may have been deleted)."""
    return [e for e in reversed(state.price_history) if product_id is None or e.product_id == product_id]


def restock_history_for(state: StoreState, product_id=None) -> list[RestockHistoryEntry]:
    return [e for e in reversed(state.restock_history) if product_id is None or e.product_id == product_id]
