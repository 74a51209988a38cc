# Overview: Inventory operations; product upsert, inline edit, deletion, lookup and listing.

from __future__ import annotations

from dataclasses import dataclass, replace

from ..models import Product, PriceChangeReason, PriceHistoryEntry, StoreState, DEFAULT_CATEGORY, CRITICAL_STOCK_LEVEL
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_price,
    require_non_negative_int,
    require_text,
)

OUT_OF_STOCK = "Out of Stock"
CRITICAL = "Critical"
LOW_STOCK = "Low Stock"
IN_STOCK = "In Stock"

STOCK_FILTERS = ("all", "in-stock", "low-stock", "out-of-stock")
SORT_KEYS = ("name", "stock-asc", "stock-desc", "value-desc", "margin-desc")

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclass(frozen=True)
class UpsertOutcome:
    product: Product
    created: bool


def stock_status(product: Product, threshold: int) -> str:
    if product.quantity == 0:
        return OUT_OF_STOCK
    if product.quantity <= CRITICAL_STOCK_LEVEL:
        return CRITICAL
    if product.quantity <= threshold:
        return LOW_STOCK
    return IN_STOCK


def is_low_stock(product: Product, threshold: int) -> bool:
    return 0 < product.quantity <= threshold


def product_view(product: Product, threshold: int) -> dict:
    """Product dict plus the derived fields a listing shows."""
    data = product.to_dict()
    data.update({
        "margin": round(product.margin, 2),
        "stockValue": product.stock_value,
        "costValue": product.cost_value,
        "profitPerUnit": product.profit_per_unit,
        "stockStatus": stock_status(product, threshold),
    })
    return data


def get_product(state: StoreState, product_id) -> Product:
    product = state.product(product_id)
    if product is None:
        raise NotFoundError("Product not found", entity="product", value=product_id)
    return product


def find_product_by_barcode(state: StoreState, barcode: str) -> Product | None:
    barcode = (barcode or "").strip()
    if not barcode:
        return None
    for p in state.products:
        if p.barcode == barcode:
            return p
    return None


def _check_barcode_free(state: StoreState, barcode: str, *, exclude_id=None) -> None:
    if not barcode:
        return
    holder = find_product_by_barcode(state, barcode)
    if holder is not None and holder.id != exclude_id:
        raise ConflictError(
            "A product with this barcode already exists",
            entity="product",
            field="barcode",
            value=barcode,
            details={"product_id": holder.id, "product_name": holder.name},
        )


def create_or_update_product(
    state: StoreState,
    ctx,
    *,
    name,
    quantity,
    original_price,
    selling_price,
    category=None,
    barcode=None,
) -> tuple[StoreState, UpsertOutcome]:
    """
    Add stock to the product with this name (case-insensitive), or create it.

    On the update path prices and category are overwritten and the barcode is
    set only when one is given. No price history is written here.
    """
    name = require_text(name, "name")
    quantity = require_non_negative_int(quantity, "quantity")
    original_price = coerce_price(original_price, "originalPrice")
    selling_price = coerce_price(selling_price, "sellingPrice")
    category = (category or "").strip() or DEFAULT_CATEGORY
    barcode = (barcode or "").strip()

    existing = state.product_by_name(name)
    _check_barcode_free(state, barcode, exclude_id=existing.id if existing else None)

    if existing is not None:
        updated = replace(
            existing,
            quantity=existing.quantity + quantity,
            original_price=original_price,
            selling_price=selling_price,
            category=category,
            barcode=barcode or existing.barcode,
        )
        return state.with_products([updated]), UpsertOutcome(product=updated, created=False)

    product = Product(
        id=ctx.next_id(),
        name=name,
        quantity=quantity,
        original_price=original_price,
        selling_price=selling_price,
        category=category,
        barcode=barcode,
        total_sold=0,
        created_date=ctx.now,
    )
    return replace(state, products=state.products + (product,)), UpsertOutcome(product=product, created=True)


def update_product(
    state: StoreState,
    ctx,
    product_id,
    *,
    quantity=None,
    original_price=None,
    selling_price=None,
) -> tuple[StoreState, Product]:
    """Inline edit of stock and prices; logs one price history entry if either price moved."""
    product = get_product(state, product_id)
    new_quantity = product.quantity if quantity is None else require_non_negative_int(quantity, "quantity")
    new_original = product.original_price if original_price is None else coerce_price(original_price, "originalPrice")
    new_selling = product.selling_price if selling_price is None else coerce_price(selling_price, "sellingPrice")

    history = state.price_history
    if new_original != product.original_price or new_selling != product.selling_price:
        entry = PriceHistoryEntry(
            id=ctx.next_id(),
            date=ctx.now,
            product_id=product.id,
            product_name=product.name,
            old_original_price=product.original_price,
            old_selling_price=product.selling_price,
            new_original_price=new_original,
            new_selling_price=new_selling,
            reason=PriceChangeReason.INLINE_EDIT,
            stock_at_time=product.quantity,
        )
        history = history + (entry,)

    updated = replace(
        product,
        quantity=new_quantity,
        original_price=new_original,
        selling_price=new_selling,
    )
    new_state = replace(state.with_products([updated]), price_history=history)
    return new_state, updated


def delete_product(state: StoreState, ctx, product_id) -> tuple[StoreState, Product]:
    """Remove the product. Its sales and history records stay as they are."""
    product = get_product(state, product_id)
    remaining = tuple(p for p in state.products if p.id != product.id)
    return replace(state, products=remaining), product


def _matches_filter(product: Product, stock_filter: str, threshold: int) -> bool:
    if stock_filter == "in-stock":
        return product.quantity > threshold
    if stock_filter == "low-stock":
        return is_low_stock(product, threshold)
    if stock_filter == "out-of-stock":
        return product.quantity == 0
    return True


def _sort(products: list[Product], sort_by: str) -> list[Product]:
    if sort_by == "stock-asc":
        return sorted(products, key=lambda p: p.quantity)
    if sort_by == "stock-desc":
        return sorted(products, key=lambda p: p.quantity, reverse=True)
    if sort_by == "value-desc":
        return sorted(products, key=lambda p: p.stock_value, reverse=True)
    if sort_by == "margin-desc":
        return sorted(products, key=lambda p: p.margin, reverse=True)
    return sorted(products, key=lambda p: p.name.lower())


def list_products(
    state: StoreState,
    *,
    search: str | None = None,
    stock_filter: str = "all",
    sort_by: str = "name",
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Filtered, sorted product listing with optional pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    stock_filter = stock_filter or "all"
    sort_by = sort_by or "name"
    if stock_filter not in STOCK_FILTERS:
        raise ValidationError(f"Unknown stock filter: {stock_filter}", field="stock_filter", value=stock_filter)
    if sort_by not in SORT_KEYS:
        raise ValidationError(f"Unknown sort: {sort_by}", field="sort_by", value=sort_by)

    threshold = state.low_stock_threshold
    needle = (search or "").strip().lower()
    products = [
        p for p in state.products
        if (not needle or needle in p.name.lower()) and _matches_filter(p, stock_filter, threshold)
    ]
    products = _sort(products, sort_by)

    if page is None:
        return {
            "items": [product_view(p, threshold) for p in products],
            "count": len(products),
        }

    per_page = max(min(per_page or DEFAULT_PER_PAGE, MAX_PER_PAGE), 1)
    page = max(page, 1)

    total = len(products)
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    window = products[(page - 1) * per_page: page * per_page]

    return {
        "items": [product_view(p, threshold) for p in window],
        "count": len(window),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
