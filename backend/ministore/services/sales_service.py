# Overview: Sales operations; recording sales against stock and reversing them.

from __future__ import annotations

from dataclasses import dataclass, replace

from ..models import Sale, StoreState
from ..validation import InsufficientStockError, NotFoundError, require_positive_int


@dataclass(frozen=True)
class SaleDeletionPreview:
    """Side effects of deleting a sale, computed without applying them."""
    sale: Sale
    product_exists: bool
    restore_quantity: int
    stock_after: int | None
    total_sold_after: int | None

    @property
    def message(self) -> str:
        if not self.product_exists:
            return (
                f"Product {self.sale.product_name} no longer exists; "
                "only the sale record will be removed"
            )
        return f"This will restore {self.restore_quantity} units to {self.sale.product_name}"

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(),
            "productExists": self.product_exists,
            "restoreQuantity": self.restore_quantity,
            "stockAfter": self.stock_after,
            "totalSoldAfter": self.total_sold_after,
            "message": self.message,
        }


def get_sale(state: StoreState, sale_id) -> Sale:
    sale = state.sale(sale_id)
    if sale is None:
        raise NotFoundError("Sale not found", entity="sale", value=sale_id)
    return sale


def record_sale(state: StoreState, ctx, product_id, quantity) -> tuple[StoreState, Sale]:
    """
    Sell quantity units of a product at its current prices.

    The sale keeps a snapshot of name, selling price and cost; the product
    loses the stock and gains totalSold.
    """
    quantity = require_positive_int(quantity, "quantity")
    product = state.product(product_id)
    if product is None:
        raise NotFoundError("Selected product not found", entity="product", value=product_id)
    if quantity > product.quantity:
        raise InsufficientStockError(
            f"Insufficient stock. Available quantity: {product.quantity}",
            available=product.quantity,
            requested=quantity,
            entity="product",
            field="quantity",
            value=quantity,
        )

    sale = Sale(
        id=ctx.next_id(),
        date=ctx.now,
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        unit_price=product.selling_price,
        original_price=product.original_price,
        total_amount=quantity * product.selling_price,
    )
    updated = replace(
        product,
        quantity=product.quantity - quantity,
        total_sold=product.total_sold + quantity,
    )
    new_state = replace(state.with_products([updated]), sales=state.sales + (sale,))
    return new_state, sale


def preview_sale_deletion(state: StoreState, sale_id) -> SaleDeletionPreview:
    sale = get_sale(state, sale_id)
    product = state.product(sale.product_id)
    if product is None:
        return SaleDeletionPreview(
            sale=sale,
            product_exists=False,
            restore_quantity=0,
            stock_after=None,
            total_sold_after=None,
        )
    return SaleDeletionPreview(
        sale=sale,
        product_exists=True,
        restore_quantity=sale.quantity,
        stock_after=product.quantity + sale.quantity,
        total_sold_after=max(0, product.total_sold - sale.quantity),
    )


def delete_sale(state: StoreState, ctx, sale_id) -> tuple[StoreState, SaleDeletionPreview]:
    """Remove a sale and give its units back to the product, if it still exists."""
    preview = preview_sale_deletion(state, sale_id)
    remaining = tuple(s for s in state.sales if s.id != preview.sale.id)
    new_state = replace(state, sales=remaining)

    if preview.product_exists:
        product = state.product(preview.sale.product_id)
        restored = replace(
            product,
            quantity=preview.stock_after,
            total_sold=preview.total_sold_after,
        )
        new_state = new_state.with_products([restored])
    return new_state, preview


def list_sales(state: StoreState, *, product_id=None, limit: int | None = None) -> list[Sale]:
    """Newest first."""
    sales = [s for s in reversed(state.sales) if product_id is None or s.product_id == product_id]
    if limit is not None:
        sales = sales[:max(limit, 0)]
    return sales
