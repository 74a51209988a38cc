# Overview: Store settings read and validated update.

from __future__ import annotations

import math
from dataclasses import replace
from typing import Any

from ..models import Settings, StoreState
from ..validation import ValidationError, coerce_bool, require_json_object, require_non_negative_int, require_text

# Payload key -> Settings attribute
SETTING_FIELDS = {
    "lowStockThreshold": "low_stock_threshold",
    "reorderSuggestions": "reorder_suggestions",
    "businessName": "business_name",
    "taxRate": "tax_rate",
}


def get_settings(state: StoreState) -> Settings:
    return state.settings


def _coerce_rate(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field, value=value)
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", field=field, value=value)
    if not math.isfinite(rate) or rate < 0:
        raise ValidationError(f"{field} must be a finite number >= 0", field=field, value=value)
    return rate


def _coerce_setting(key: str, value: Any):
    if key == "lowStockThreshold":
        return require_non_negative_int(value, key)
    if key == "reorderSuggestions":
        return coerce_bool(value, key)
    if key == "businessName":
        return require_text(value, key, max_length=120)
    return _coerce_rate(value, key)


def update_settings(state: StoreState, ctx, patch) -> tuple[StoreState, Settings]:
    patch = require_json_object(patch)
    unknown = sorted(set(patch) - set(SETTING_FIELDS))
    if unknown:
        raise ValidationError(
            f"Unknown settings: {', '.join(unknown)}",
            entity="settings",
            details={"allowed": sorted(SETTING_FIELDS)},
        )

    changes = {SETTING_FIELDS[key]: _coerce_setting(key, value) for key, value in patch.items()}
    settings = replace(state.settings, **changes)
    return replace(state, settings=settings), settings
