from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ministore.time_utils import parse_timestamp, to_utc_z
from .inventory import record_id


@dataclass(frozen=True)
class Sale:
    """
    Immutable record of one sale.

    product_id is a weak reference: the product may since have been deleted.
    product_name and both prices are snapshots taken at sale time, so later
    repricing never changes historical revenue or profit.
    """
    id: int
    date: datetime | None
    product_id: int
    product_name: str
    quantity: int
    unit_price: float
    original_price: float
    total_amount: float

    @property
    def profit(self) -> float:
        return (self.unit_price - self.original_price) * self.quantity

    @property
    def cost(self) -> float:
        return self.original_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "originalPrice": self.original_price,
            "totalAmount": self.total_amount,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Sale":
        quantity = int(data.get("quantity") or 0)
        unit_price = float(data.get("unitPrice") or 0)
        total = data.get("totalAmount")
        return cls(
            id=record_id(data["id"]),
            date=parse_timestamp(data.get("date")),
            product_id=record_id(data.get("productId")),
            product_name=str(data.get("productName") or ""),
            quantity=quantity,
            unit_price=unit_price,
            original_price=float(data.get("originalPrice") or 0),
            total_amount=float(total) if total is not None else quantity * unit_price,
        )
