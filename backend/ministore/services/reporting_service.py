# Overview: Read-only aggregation; summary, stock alerts, monthly report, valuation and export rows.

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable

from ..models import Sale, StoreState, CRITICAL_STOCK_LEVEL
from ..validation import ValidationError
from ministore.time_utils import (
    days_in_month,
    month_bounds,
    month_key,
    parse_month_key,
    previous_month_key,
    to_utc_z,
)
from .products_service import is_low_stock, stock_status

TOP_SUMMARY_PRODUCTS = 5
TOP_MONTHLY_PRODUCTS = 10
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _revenue(sales: Iterable[Sale]) -> float:
    return sum(s.total_amount for s in sales)


def _profit(sales: Iterable[Sale]) -> float:
    return sum(s.profit for s in sales)


def _items(sales: Iterable[Sale]) -> int:
    return sum(s.quantity for s in sales)


def growth_pct(previous: float, current: float) -> float:
    """Percent change; from a zero base this is 100 if anything happened, else 0."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def _check_month(key: str) -> str:
    try:
        year, month = parse_month_key(key)
    except ValueError:
        raise ValidationError("month must be in YYYY-MM format", field="month", value=key)
    return f"{year:04d}-{month:02d}"


def sales_in_month(state: StoreState, key: str) -> list[Sale]:
    """Sales dated within the calendar month; undated sales are never counted."""
    start, end = month_bounds(_check_month(key))
    return [s for s in state.sales if s.date is not None and start <= s.date < end]


def summary(state: StoreState) -> dict:
    """
    Dashboard totals.

    Profit comes from each sale's own price snapshot, so repricing a product
    never changes historical profit.
    """
    top = sorted(
        (p for p in state.products if p.total_sold > 0),
        key=lambda p: p.total_sold,
        reverse=True,
    )[:TOP_SUMMARY_PRODUCTS]
    return {
        "total_revenue": _revenue(state.sales),
        "total_profit": _profit(state.sales),
        "products_in_stock": sum(1 for p in state.products if p.quantity > 0),
        "total_transactions": len(state.sales),
        "top_products": [
            {
                "product_id": p.id,
                "name": p.name,
                "total_sold": p.total_sold,
                "revenue": _revenue(state.sales_for(p.id)),
            }
            for p in top
        ],
    }


def stock_alerts(state: StoreState) -> dict:
    threshold = state.low_stock_threshold
    low = [p for p in state.products if is_low_stock(p, threshold)]
    return {
        "threshold": threshold,
        "low": low,
        "critical": [p for p in state.products if 0 < p.quantity <= CRITICAL_STOCK_LEVEL],
        "warning": [p for p in state.products if CRITICAL_STOCK_LEVEL < p.quantity <= threshold],
        "out_of_stock": [p for p in state.products if p.quantity == 0],
    }


def _top_products(sales: list[Sale], limit: int) -> list[dict]:
    grouped: dict = {}
    for sale in sales:
        row = grouped.setdefault(sale.product_id, {
            "product_id": sale.product_id,
            "name": sale.product_name,
            "quantity": 0,
            "revenue": 0.0,
            "profit": 0.0,
        })
        row["quantity"] += sale.quantity
        row["revenue"] += sale.total_amount
        row["profit"] += sale.profit
    ranked = sorted(grouped.values(), key=lambda r: r["quantity"], reverse=True)[:limit]
    for row in ranked:
        row["profit_margin"] = row["profit"] / row["revenue"] * 100 if row["revenue"] > 0 else 0.0
    return ranked


def monthly_report(state: StoreState, key: str) -> dict:
    """Metrics, zero-filled daily breakdown, top products and growth for one month."""
    key = _check_month(key)
    sales = sales_in_month(state, key)
    previous = sales_in_month(state, previous_month_key(key))

    revenue = _revenue(sales)
    profit = _profit(sales)
    items = _items(sales)
    transactions = len(sales)

    days = days_in_month(key)
    daily = [
        {"day": day, "revenue": 0.0, "profit": 0.0, "items_sold": 0, "transactions": 0}
        for day in range(1, days + 1)
    ]
    for sale in sales:
        bucket = daily[sale.date.day - 1]
        bucket["revenue"] += sale.total_amount
        bucket["profit"] += sale.profit
        bucket["items_sold"] += sale.quantity
        bucket["transactions"] += 1

    return {
        "month": key,
        "metrics": {
            "revenue": revenue,
            "profit": profit,
            "items_sold": items,
            "transactions": transactions,
            "avg_transaction_value": revenue / transactions if transactions else 0.0,
            "profit_margin": profit / revenue * 100 if revenue > 0 else 0.0,
        },
        "daily": daily,
        "top_products": _top_products(sales, TOP_MONTHLY_PRODUCTS),
        "growth": {
            "previous_month": previous_month_key(key),
            "revenue": growth_pct(_revenue(previous), revenue),
            "profit": growth_pct(_profit(previous), profit),
            "volume": growth_pct(_items(previous), items),
        },
    }


def available_months(state: StoreState, now: datetime) -> list[str]:
    """Months with sales plus the current month, newest first."""
    months = {month_key(s.date) for s in state.sales if s.date is not None}
    months.add(month_key(now))
    return sorted(months, reverse=True)


def inventory_valuation(state: StoreState) -> dict:
    selling_value = sum(p.stock_value for p in state.products)
    cost_value = sum(p.cost_value for p in state.products)
    cogs = sum(s.cost for s in state.sales)
    return {
        "selling_value": selling_value,
        "cost_value": cost_value,
        "potential_profit": selling_value - cost_value,
        "cost_of_goods_sold": cogs,
        "turnover": cogs / cost_value if cost_value > 0 else None,
    }


def inventory_stats(state: StoreState) -> dict:
    threshold = state.low_stock_threshold
    total = len(state.products)
    out_of_stock = sum(1 for p in state.products if p.quantity == 0)
    return {
        "total_products": total,
        "total_inventory_value": sum(p.stock_value for p in state.products),
        "low_stock_count": sum(1 for p in state.products if is_low_stock(p, threshold)),
        "out_of_stock_count": out_of_stock,
        "stock_coverage": (total - out_of_stock) / total * 100 if total else 0.0,
    }


def performance_insights(state: StoreState) -> dict:
    dated = [s for s in state.sales if s.date is not None]

    by_weekday: dict[str, float] = defaultdict(float)
    for sale in dated:
        by_weekday[WEEKDAYS[sale.date.weekday()]] += sale.total_amount
    best_day = max(by_weekday.items(), key=lambda kv: kv[1]) if by_weekday else None

    distinct_days = {s.date.date() for s in dated}
    avg_daily = _revenue(dated) / len(distinct_days) if distinct_days else 0.0

    by_product: dict[str, float] = defaultdict(float)
    for sale in state.sales:
        by_product[sale.product_name] += sale.profit
    most_profitable = max(by_product.items(), key=lambda kv: kv[1]) if by_product else None

    return {
        "best_selling_day": {"day": best_day[0], "revenue": best_day[1]} if best_day else None,
        "avg_daily_revenue": avg_daily,
        "most_profitable_product": (
            {"name": most_profitable[0], "profit": most_profitable[1]} if most_profitable else None
        ),
        "inventory_turnover": inventory_valuation(state)["turnover"],
    }


def category_breakdown_rows(state: StoreState) -> list[dict]:
    stats: dict[str, dict] = {}
    for product in state.products:
        row = stats.setdefault(product.category, {
            "category": product.category,
            "products": 0,
            "total_stock": 0,
            "cost_value": 0.0,
            "selling_value": 0.0,
        })
        row["products"] += 1
        row["total_stock"] += product.quantity
        row["cost_value"] += product.cost_value
        row["selling_value"] += product.stock_value
    rows = list(stats.values())
    for row in rows:
        row["profit_potential"] = row["selling_value"] - row["cost_value"]
    return rows


def inventory_report_rows(state: StoreState, now: datetime) -> list[dict]:
    threshold = state.low_stock_threshold
    rows = []
    for p in state.products:
        rows.append({
            "product_id": p.id,
            "name": p.name,
            "category": p.category,
            "barcode": p.barcode,
            "quantity": p.quantity,
            "original_price": p.original_price,
            "selling_price": p.selling_price,
            "margin": p.margin,
            "stock_value": p.stock_value,
            "profit_per_unit": p.profit_per_unit,
            "potential_profit": p.quantity * p.profit_per_unit,
            "total_sold": p.total_sold,
            "revenue": _revenue(state.sales_for(p.id)),
            "stock_status": stock_status(p, threshold),
            "days_since_created": (now - p.created_date).days if p.created_date else None,
        })
    return rows


def stock_alert_rows(state: StoreState) -> list[dict]:
    threshold = state.low_stock_threshold
    return [
        {
            "product_id": p.id,
            "name": p.name,
            "category": p.category,
            "quantity": p.quantity,
            "threshold": threshold,
            "stock_status": stock_status(p, threshold),
        }
        for p in sorted(state.products, key=lambda p: p.quantity)
        if p.quantity <= threshold
    ]


def monthly_report_rows(state: StoreState, key: str) -> list[dict]:
    return [
        {
            "sale_id": s.id,
            "date": to_utc_z(s.date),
            "product_name": s.product_name,
            "quantity": s.quantity,
            "unit_price": s.unit_price,
            "total_amount": s.total_amount,
            "profit": s.profit,
        }
        for s in sales_in_month(state, key)
    ]
