# Overview: Deterministic sample store used by offline demo mode and the seed-demo command.

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from ..models import (
    PriceChange,
    PriceChangeReason,
    PriceHistoryEntry,
    Product,
    RestockHistoryEntry,
    RestockReason,
    Sale,
    Settings,
    StoreState,
)

# name, category, barcode, quantity, original price, selling price
DEMO_PRODUCTS = (
    ("Instant Noodles", "Food", "4800016644290", 48, 9.50, 14.00),
    ("Canned Sardines", "Food", "4800249500127", 3, 18.00, 25.00),
    ("Bottled Water 500ml", "Beverages", "4800049720121", 60, 8.00, 12.00),
    ("Cola 1.5L", "Beverages", "4801981118502", 0, 52.00, 68.00),
    ("Laundry Powder 70g", "Household", "4800888141125", 14, 6.50, 9.00),
    ("Bath Soap", "Personal Care", "4800888192509", 2, 22.00, 32.00),
    ("Brown Sugar 1kg", "Food", "", 7, 58.00, 72.00),
    ("Ballpen", "School Supplies", "", 25, 5.00, 10.00),
)

# (product index, days ago, quantity)
DEMO_SALES = (
    (0, 1, 6), (0, 3, 4), (0, 9, 10),
    (1, 2, 5), (1, 12, 4),
    (2, 1, 12), (2, 5, 8), (2, 20, 6),
    (3, 4, 10),
    (4, 6, 6),
    (5, 8, 3),
    (7, 15, 5),
)


def build_demo_state(now: datetime) -> StoreState:
    """Same products, sales and history for the same `now`."""
    created = now - timedelta(days=45)
    products = []
    for index, (name, category, barcode, qty, cost, price) in enumerate(DEMO_PRODUCTS):
        products.append(Product(
            id=1001 + index,
            name=name,
            quantity=qty,
            original_price=cost,
            selling_price=price,
            category=category,
            barcode=barcode,
            created_date=created,
        ))

    sales = []
    sold: dict[int, int] = {}
    for seq, (index, days_ago, qty) in enumerate(sorted(DEMO_SALES, key=lambda s: -s[1])):
        product = products[index]
        sales.append(Sale(
            id=2001 + seq,
            date=now - timedelta(days=days_ago, hours=seq % 5),
            product_id=product.id,
            product_name=product.name,
            quantity=qty,
            unit_price=product.selling_price,
            original_price=product.original_price,
            total_amount=qty * product.selling_price,
        ))
        sold[product.id] = sold.get(product.id, 0) + qty

    products = [
        replace(p, total_sold=sold.get(p.id, 0)) for p in products
    ]

    noodles = products[0]
    price_history = (
        PriceHistoryEntry(
            id=3001,
            date=now - timedelta(days=10),
            product_id=noodles.id,
            product_name=noodles.name,
            old_original_price=noodles.original_price,
            old_selling_price=13.00,
            new_original_price=noodles.original_price,
            new_selling_price=noodles.selling_price,
            reason=PriceChangeReason.RESTOCK_SELLING_PRICE,
            stock_at_time=30,
        ),
    )
    restock_history = (
        RestockHistoryEntry(
            id=4001,
            date=now - timedelta(days=10),
            product_id=noodles.id,
            product_name=noodles.name,
            quantity_added=24,
            stock_before=30,
            stock_after=54,
            original_price=noodles.original_price,
            selling_price=noodles.selling_price,
            reason=RestockReason.MANUAL,
            notes="Weekly supplier delivery",
            price_changes=(PriceChange("selling", 13.00, noodles.selling_price),),
        ),
    )

    return StoreState(
        products=tuple(products),
        sales=tuple(sales),
        price_history=price_history,
        restock_history=restock_history,
        settings=Settings(business_name="Demo Mini Store"),
    )
