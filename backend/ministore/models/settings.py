from __future__ import annotations

from dataclasses import dataclass

from ..validation import coerce_bool

DEFAULT_LOW_STOCK_THRESHOLD = 5
DEFAULT_BUSINESS_NAME = "My Mini Store"


@dataclass(frozen=True)
class Settings:
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    reorder_suggestions: bool = True
    business_name: str = DEFAULT_BUSINESS_NAME
    tax_rate: float = 0.0

    def to_dict(self) -> dict:
        return {
            "lowStockThreshold": self.low_stock_threshold,
            "reorderSuggestions": self.reorder_suggestions,
            "businessName": self.business_name,
            "taxRate": self.tax_rate,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "Settings":
        data = data or {}
        threshold = data.get("lowStockThreshold")
        reorder = data.get("reorderSuggestions")
        return cls(
            low_stock_threshold=int(threshold) if threshold is not None else DEFAULT_LOW_STOCK_THRESHOLD,
            reorder_suggestions=coerce_bool(reorder, "reorderSuggestions") if reorder is not None else True,
            business_name=data.get("businessName") or DEFAULT_BUSINESS_NAME,
            tax_rate=float(data.get("taxRate") or 0),
        )
