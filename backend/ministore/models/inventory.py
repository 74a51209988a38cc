from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ministore.time_utils import parse_timestamp, to_utc_z

DEFAULT_CATEGORY = "Other"
CRITICAL_STOCK_LEVEL = 2


def margin_pct(selling_price: float, original_price: float) -> float:
    """
    Margin as a percentage of the selling price (not of cost).

    A zero selling price has no meaningful margin and reports 0.
    """
    if not selling_price:
        return 0.0
    return (selling_price - original_price) / selling_price * 100


def record_id(value):
    """Ids are integers; legacy exports may carry fractional ids, kept as-is."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return value
    return value


@dataclass(frozen=True)
class Product:
    """
    Product master data.

    name is unique case-insensitively; barcode is unique when present.
    quantity never goes below zero.
    """
    id: int
    name: str
    quantity: int
    original_price: float
    selling_price: float
    category: str = DEFAULT_CATEGORY
    barcode: str = ""
    total_sold: int = 0
    created_date: datetime | None = None

    @property
    def margin(self) -> float:
        return margin_pct(self.selling_price, self.original_price)

    @property
    def stock_value(self) -> float:
        return self.quantity * self.selling_price

    @property
    def cost_value(self) -> float:
        return self.quantity * self.original_price

    @property
    def profit_per_unit(self) -> float:
        return self.selling_price - self.original_price

    def matches_name(self, name: str) -> bool:
        return self.name.lower() == name.strip().lower()

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "barcode": self.barcode,
            "quantity": self.quantity,
            "originalPrice": self.original_price,
            "sellingPrice": self.selling_price,
            "totalSold": self.total_sold,
            "createdDate": to_utc_z(self.created_date),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(
            id=record_id(data["id"]),
            name=str(data.get("name") or ""),
            quantity=int(data.get("quantity") or 0),
            original_price=float(data.get("originalPrice") or 0),
            selling_price=float(data.get("sellingPrice") or 0),
            category=data.get("category") or DEFAULT_CATEGORY,
            barcode=data.get("barcode") or "",
            total_sold=int(data.get("totalSold") or 0),
            created_date=parse_timestamp(data.get("createdDate")),
        )
