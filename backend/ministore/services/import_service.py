# Overview: Product import from CSV text or parsed rows; all rows validate or nothing is applied.

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, replace
from typing import Any

from ..models import (
    DEFAULT_CATEGORY,
    PriceChangeReason,
    PriceHistoryEntry,
    Product,
    RestockHistoryEntry,
    RestockReason,
    StoreState,
)
from ..validation import ValidationError, coerce_price, require_non_negative_int, require_text

# Normalized header -> field. Accepts camelCase, snake_case and spaced titles.
HEADER_ALIASES = {
    "name": "name",
    "productname": "name",
    "category": "category",
    "barcode": "barcode",
    "quantity": "quantity",
    "qty": "quantity",
    "originalprice": "original_price",
    "cost": "original_price",
    "sellingprice": "selling_price",
    "price": "selling_price",
}
REQUIRED_FIELDS = ("name", "quantity", "original_price", "selling_price")


@dataclass(frozen=True)
class ImportRow:
    row_number: int
    name: str
    category: str
    barcode: str
    quantity: int
    original_price: float
    selling_price: float


@dataclass(frozen=True)
class ImportSummary:
    created: tuple[Product, ...] = ()
    updated: tuple[Product, ...] = ()
    price_changes: int = 0

    def to_dict(self) -> dict:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "price_changes": self.price_changes,
            "products": [p.to_dict() for p in self.created + self.updated],
        }


def normalize_header(header: str | None) -> str | None:
    key = re.sub(r"[^a-z]", "", (header or "").lower())
    return HEADER_ALIASES.get(key)


def parse_csv(text: str) -> list[dict[str, Any]]:
    """CSV text -> rows keyed by field name; unknown columns are dropped."""
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValidationError("CSV file is empty", field="file")

    mapping = {h: normalize_header(h) for h in reader.fieldnames}
    missing = [f for f in REQUIRED_FIELDS if f not in mapping.values()]
    if missing:
        raise ValidationError(
            f"CSV is missing required columns: {', '.join(missing)}",
            field="header",
            details={"columns": list(reader.fieldnames)},
        )

    rows = []
    for raw in reader:
        row = {mapping[k]: v for k, v in raw.items() if k is not None and mapping.get(k)}
        if not any((str(v or "")).strip() for v in row.values()):
            continue
        rows.append(row)
    return rows


def rows_from_table(table: list) -> list[dict[str, Any]]:
    """Spreadsheet values (header row first) -> rows keyed by field name."""
    if not table:
        return []
    fields = [normalize_header(str(h) if h is not None else "") for h in table[0]]
    rows = []
    for values in table[1:]:
        if all(v in (None, "") for v in values):
            continue
        rows.append({f: v for f, v in zip(fields, values) if f})
    return rows


def _validate_row(row: dict, row_number: int) -> ImportRow:
    try:
        return ImportRow(
            row_number=row_number,
            name=require_text(row.get("name"), "name"),
            category=str(row.get("category") or "").strip() or DEFAULT_CATEGORY,
            barcode=str(row.get("barcode") or "").strip(),
            quantity=require_non_negative_int(row.get("quantity"), "quantity"),
            original_price=coerce_price(row.get("original_price"), "originalPrice"),
            selling_price=coerce_price(row.get("selling_price"), "sellingPrice"),
        )
    except ValidationError as e:
        raise ValidationError(
            f"Row {row_number}: {e.message}",
            entity="import_row",
            field=e.field,
            value=e.value,
            details={"row": row_number},
        )


def _apply_row(state: StoreState, ctx, row: ImportRow) -> tuple[StoreState, Product, bool, int]:
    existing = state.product_by_name(row.name)

    if row.barcode:
        for p in state.products:
            if p.barcode == row.barcode and (existing is None or p.id != existing.id):
                raise ValidationError(
                    f"Row {row.row_number}: barcode {row.barcode} already belongs to {p.name}",
                    entity="import_row",
                    field="barcode",
                    value=row.barcode,
                    details={"row": row.row_number},
                )

    if existing is None:
        product = Product(
            id=ctx.next_id(),
            name=row.name,
            quantity=row.quantity,
            original_price=row.original_price,
            selling_price=row.selling_price,
            category=row.category,
            barcode=row.barcode,
            created_date=ctx.now,
        )
        state = replace(state, products=state.products + (product,))
        restocked_from = 0
        price_changes = 0
    else:
        price_history = state.price_history
        price_changes = 0
        if existing.original_price != row.original_price or existing.selling_price != row.selling_price:
            price_history = price_history + (PriceHistoryEntry(
                id=ctx.next_id(),
                date=ctx.now,
                product_id=existing.id,
                product_name=existing.name,
                old_original_price=existing.original_price,
                old_selling_price=existing.selling_price,
                new_original_price=row.original_price,
                new_selling_price=row.selling_price,
                reason=PriceChangeReason.CSV_IMPORT,
                stock_at_time=existing.quantity,
            ),)
            price_changes = 1
        product = replace(
            existing,
            quantity=existing.quantity + row.quantity,
            original_price=row.original_price,
            selling_price=row.selling_price,
            category=row.category if row.category != DEFAULT_CATEGORY else existing.category,
            barcode=row.barcode or existing.barcode,
        )
        state = replace(state.with_products([product]), price_history=price_history)
        restocked_from = existing.quantity

    if row.quantity > 0:
        entry = RestockHistoryEntry(
            id=ctx.next_id(),
            date=ctx.now,
            product_id=product.id,
            product_name=product.name,
            quantity_added=row.quantity,
            stock_before=restocked_from,
            stock_after=product.quantity,
            original_price=product.original_price,
            selling_price=product.selling_price,
            reason=RestockReason.CSV_IMPORT,
        )
        state = replace(state, restock_history=state.restock_history + (entry,))

    return state, product, existing is None, price_changes


def import_products(state: StoreState, ctx, rows: list[dict]) -> tuple[StoreState, ImportSummary]:
    """
    Apply parsed rows in order.

    Every row is validated first; any invalid row aborts the import with the
    row number (header is row 1), leaving state untouched.
    """
    if not rows:
        raise ValidationError("No rows to import", field="rows")
    if not all(isinstance(r, dict) for r in rows):
        raise ValidationError("Each row must be an object", field="rows")

    parsed = [_validate_row(row, index + 2) for index, row in enumerate(rows)]

    created: dict = {}
    updated: dict = {}
    price_changes = 0
    new_state = state
    for row in parsed:
        new_state, product, is_new, changed = _apply_row(new_state, ctx, row)
        price_changes += changed
        if is_new or product.id in created:
            created[product.id] = product
        else:
            updated[product.id] = product

    summary = ImportSummary(
        created=tuple(created.values()),
        updated=tuple(updated.values()),
        price_changes=price_changes,
    )
    return new_state, summary


def import_products_csv(state: StoreState, ctx, text: str) -> tuple[StoreState, ImportSummary]:
    try:
        rows = parse_csv(text)
    except csv.Error as e:
        raise ValidationError(f"Malformed CSV: {e}", field="file")
    return import_products(state, ctx, rows)
