from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable

from .inventory import Product, record_id
from .sales import Sale
from .history import PriceHistoryEntry, RestockHistoryEntry
from .settings import Settings

"""
StoreState is the whole persisted bundle as one immutable value.

Operations build a new StoreState from the current one; nothing mutates a
state in place, so a failed operation can never leave a half-applied change
visible to other readers.
"""

PRODUCTS = "products"
SALES = "sales"
PRICE_HISTORY = "priceHistory"
RESTOCK_HISTORY = "restockHistory"
SETTINGS = "settings"

COLLECTION_KEYS = (PRODUCTS, SALES, PRICE_HISTORY, RESTOCK_HISTORY, SETTINGS)

_ATTRS = {
    PRODUCTS: "products",
    SALES: "sales",
    PRICE_HISTORY: "price_history",
    RESTOCK_HISTORY: "restock_history",
    SETTINGS: "settings",
}

_RECORD_TYPES = {
    PRODUCTS: Product,
    SALES: Sale,
    PRICE_HISTORY: PriceHistoryEntry,
    RESTOCK_HISTORY: RestockHistoryEntry,
}


def _lookup_key(value):
    """Ids posted as numeric text ("123") match the stored integer id."""
    if isinstance(value, bool):
        return None
    return record_id(value)


@dataclass(frozen=True)
class StoreState:
    products: tuple[Product, ...] = ()
    sales: tuple[Sale, ...] = ()
    price_history: tuple[PriceHistoryEntry, ...] = ()
    restock_history: tuple[RestockHistoryEntry, ...] = ()
    settings: Settings = field(default_factory=Settings)

    @property
    def low_stock_threshold(self) -> int:
        return self.settings.low_stock_threshold

    def product(self, product_id) -> Product | None:
        product_id = _lookup_key(product_id)
        for p in self.products:
            if p.id == product_id:
                return p
        return None

    def product_by_name(self, name: str) -> Product | None:
        for p in self.products:
            if p.matches_name(name):
                return p
        return None

    def sale(self, sale_id) -> Sale | None:
        sale_id = _lookup_key(sale_id)
        for s in self.sales:
            if s.id == sale_id:
                return s
        return None

    def sales_for(self, product_id) -> list[Sale]:
        return [s for s in self.sales if s.product_id == product_id]

    def with_products(self, updated: Iterable[Product]) -> "StoreState":
        """Replace products by id, keeping collection order."""
        by_id = {p.id: p for p in updated}
        if not by_id:
            return self
        return replace(self, products=tuple(by_id.get(p.id, p) for p in self.products))

    def changed_keys(self, other: "StoreState") -> set[str]:
        """Collections whose value differs between self and other."""
        changed = set()
        for key in COLLECTION_KEYS:
            mine, theirs = getattr(self, _ATTRS[key]), getattr(other, _ATTRS[key])
            if mine is not theirs and mine != theirs:
                changed.add(key)
        return changed

    def all_record_ids(self) -> list:
        ids = []
        for key in (PRODUCTS, SALES, PRICE_HISTORY, RESTOCK_HISTORY):
            ids.extend(r.id for r in getattr(self, _ATTRS[key]))
        return ids

    def serialize(self, key: str):
        value = getattr(self, _ATTRS[key])
        if key == SETTINGS:
            return value.to_dict()
        return [record.to_dict() for record in value]

    def to_document(self) -> dict:
        return {key: self.serialize(key) for key in COLLECTION_KEYS}

    @classmethod
    def from_document(cls, document: dict | None) -> "StoreState":
        """Absent fields hydrate as empty collections / default settings."""
        document = document or {}
        values = {}
        for key, record_type in _RECORD_TYPES.items():
            rows = document.get(key) or []
            values[_ATTRS[key]] = tuple(record_type.from_dict(row) for row in rows)
        values["settings"] = Settings.from_dict(document.get(SETTINGS))
        return cls(**values)
