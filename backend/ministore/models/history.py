from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ministore.time_utils import parse_timestamp, to_utc_z
from .inventory import margin_pct, record_id

"""
Append-only audit records.

Reasons are closed enums; their values are the exact display strings written
to the persisted documents, so serialization is the only place text appears.
"""

CURRENCY_SYMBOL = "₱"
NO_PRICE_CHANGES = "No price changes"
NO_NOTES = "No notes"

_PRICE_CHANGE_RE = re.compile(r"(Original|Selling):\s*\S?([-\d.,]+)\s*→\s*\S?([-\d.,]+)")


class PriceChangeReason(Enum):
    RESTOCK_ORIGINAL_PRICE = "Restock - Original Price Update"
    RESTOCK_SELLING_PRICE = "Restock - Selling Price Update"
    BULK_UPDATE = "Bulk Price Update"
    INLINE_EDIT = "Inline Edit from Inventory"
    CSV_IMPORT = "CSV Import"
    OTHER = "Other"

    @classmethod
    def parse(cls, text: str | None) -> tuple["PriceChangeReason", str | None]:
        """Display string -> (reason, leftover text for unrecognised values)."""
        for reason in cls:
            if reason is not cls.OTHER and reason.value == text:
                return reason, None
        return cls.OTHER, text


class RestockReason(Enum):
    MANUAL = "Restock"
    QUICK_LOW_STOCK_ALERT = "Quick restock from low stock alert"
    QUICK = "Quick Restock"
    BULK_SUGGESTION = "Bulk restock - Auto suggestion"
    BULK_UNIFORM = "Bulk Restock - Low Stock"
    CSV_IMPORT = "CSV Import"

    @classmethod
    def parse(cls, text: str | None) -> "RestockReason | None":
        for reason in cls:
            if reason.value == text:
                return reason
        return None


@dataclass(frozen=True)
class PriceChange:
    field: str  # "original" | "selling"
    old: float
    new: float

    def describe(self) -> str:
        label = "Original" if self.field == "original" else "Selling"
        return f"{label}: {CURRENCY_SYMBOL}{self.old:.2f} → {CURRENCY_SYMBOL}{self.new:.2f}"

    def to_dict(self) -> dict:
        return {"field": self.field, "old": self.old, "new": self.new}

    @classmethod
    def from_dict(cls, data: dict) -> "PriceChange":
        return cls(field=data["field"], old=float(data["old"]), new=float(data["new"]))


def describe_price_changes(changes) -> str:
    if not changes:
        return NO_PRICE_CHANGES
    return ", ".join(c.describe() for c in changes)


def _parse_price_change_text(text: str | None) -> tuple[PriceChange, ...]:
    if not text or text == NO_PRICE_CHANGES:
        return ()
    changes = []
    for label, old, new in _PRICE_CHANGE_RE.findall(text):
        try:
            changes.append(PriceChange(
                field="original" if label == "Original" else "selling",
                old=float(old.replace(",", "")),
                new=float(new.replace(",", "")),
            ))
        except ValueError:
            continue
    return tuple(changes)


@dataclass(frozen=True)
class PriceHistoryEntry:
    id: int
    date: datetime | None
    product_id: int
    product_name: str
    old_original_price: float
    old_selling_price: float
    new_original_price: float
    new_selling_price: float
    reason: PriceChangeReason
    stock_at_time: int
    reason_text: str | None = None

    @property
    def old_margin(self) -> float:
        return margin_pct(self.old_selling_price, self.old_original_price)

    @property
    def new_margin(self) -> float:
        return margin_pct(self.new_selling_price, self.new_original_price)

    @property
    def display_reason(self) -> str:
        if self.reason is PriceChangeReason.OTHER and self.reason_text:
            return self.reason_text
        return self.reason.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "productId": self.product_id,
            "productName": self.product_name,
            "oldOriginalPrice": self.old_original_price,
            "oldSellingPrice": self.old_selling_price,
            "newOriginalPrice": self.new_original_price,
            "newSellingPrice": self.new_selling_price,
            "oldMargin": self.old_margin,
            "newMargin": self.new_margin,
            "reason": self.display_reason,
            "stockAtTime": self.stock_at_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PriceHistoryEntry":
        reason, text = PriceChangeReason.parse(data.get("reason"))
        return cls(
            id=record_id(data["id"]),
            date=parse_timestamp(data.get("date")),
            product_id=record_id(data.get("productId")),
            product_name=str(data.get("productName") or ""),
            old_original_price=float(data.get("oldOriginalPrice") or 0),
            old_selling_price=float(data.get("oldSellingPrice") or 0),
            new_original_price=float(data.get("newOriginalPrice") or 0),
            new_selling_price=float(data.get("newSellingPrice") or 0),
            reason=reason,
            stock_at_time=int(data.get("stockAtTime") or 0),
            reason_text=text,
        )


@dataclass(frozen=True)
class RestockHistoryEntry:
    id: int
    date: datetime | None
    product_id: int
    product_name: str
    quantity_added: int
    stock_before: int
    stock_after: int
    original_price: float
    selling_price: float
    reason: RestockReason = RestockReason.MANUAL
    notes: str = ""
    price_changes: tuple[PriceChange, ...] = ()

    @property
    def display_notes(self) -> str:
        if self.reason is RestockReason.MANUAL:
            return self.notes or NO_NOTES
        return self.reason.value

    @property
    def price_change_description(self) -> str:
        return describe_price_changes(self.price_changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "productId": self.product_id,
            "productName": self.product_name,
            "quantityAdded": self.quantity_added,
            "priceChanges": self.price_change_description,
            "priceChangeDetails": [c.to_dict() for c in self.price_changes],
            "notes": self.display_notes,
            "reason": self.reason.value,
            "stockBefore": self.stock_before,
            "stockAfter": self.stock_after,
            "originalPrice": self.original_price,
            "sellingPrice": self.selling_price,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RestockHistoryEntry":
        quantity_added = int(data.get("quantityAdded") or 0)
        stock_after = data.get("stockAfter", data.get("newQuantity"))
        stock_after = int(stock_after or 0)
        stock_before = data.get("stockBefore", data.get("previousQuantity"))
        stock_before = int(stock_before) if stock_before is not None else stock_after - quantity_added

        notes = data.get("notes") or ""
        reason = (
            RestockReason.parse(data.get("reason"))
            or RestockReason.parse(notes)
            or RestockReason.MANUAL
        )
        if reason is not RestockReason.MANUAL or notes == NO_NOTES:
            notes = ""

        details = data.get("priceChangeDetails")
        if details is not None:
            price_changes = tuple(PriceChange.from_dict(d) for d in details)
        else:
            price_changes = _parse_price_change_text(data.get("priceChanges"))

        original_price = data.get("originalPrice", data.get("unitCost"))
        return cls(
            id=record_id(data["id"]),
            date=parse_timestamp(data.get("date")),
            product_id=record_id(data.get("productId")),
            product_name=str(data.get("productName") or ""),
            quantity_added=quantity_added,
            stock_before=stock_before,
            stock_after=stock_after,
            original_price=float(original_price or 0),
            selling_price=float(data.get("sellingPrice") or 0),
            reason=reason,
            notes=notes,
            price_changes=price_changes,
        )
