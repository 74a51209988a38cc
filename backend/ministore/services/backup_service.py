# Overview: Full-state backup snapshot, restore and wipe.

from __future__ import annotations

from datetime import datetime

from ..models import StoreState
from ..models.state import COLLECTION_KEYS, SETTINGS
from ..models.inventory import record_id
from ..validation import ValidationError, coerce_price, require_non_negative_int, require_text
from ministore.time_utils import to_utc_z

SYSTEM_VERSION = "Mini Store Manager 2.0"


def export_snapshot(state: StoreState, now: datetime) -> dict:
    """All five collections plus export metadata."""
    snapshot = state.to_document()
    snapshot.update({
        "exportDate": to_utc_z(now),
        "totalProducts": len(state.products),
        "totalSales": len(state.sales),
        "systemVersion": SYSTEM_VERSION,
    })
    return snapshot


def _check_products(records: list) -> None:
    """Reject products that break stock/price rules or collide on id, name or barcode."""
    seen_ids, seen_names, seen_barcodes = set(), set(), set()
    for index, raw in enumerate(records, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Product {index} must be an object", entity="backup", field="products")
        label = f"Product {index} ({raw.get('name')!r})"
        try:
            require_non_negative_int(raw.get("quantity") or 0, "quantity")
            require_non_negative_int(raw.get("totalSold") or 0, "totalSold")
            coerce_price(raw.get("originalPrice") or 0, "originalPrice")
            coerce_price(raw.get("sellingPrice") or 0, "sellingPrice")
            name = require_text(raw.get("name"), "name")
        except ValidationError as e:
            raise ValidationError(f"{label}: {e.message}", entity="product", field=e.field, value=e.value)

        product_id = record_id(raw.get("id"))
        if product_id in seen_ids:
            raise ValidationError(f"{label}: duplicate product id", entity="product", field="id", value=product_id)
        if name.lower() in seen_names:
            raise ValidationError(f"{label}: duplicate product name", entity="product", field="name", value=name)
        barcode = str(raw.get("barcode") or "").strip()
        if barcode and barcode in seen_barcodes:
            raise ValidationError(f"{label}: duplicate barcode", entity="product", field="barcode", value=barcode)
        seen_ids.add(product_id)
        seen_names.add(name.lower())
        if barcode:
            seen_barcodes.add(barcode)


def restore_snapshot(document) -> StoreState:
    """
    Build a full state from a backup or remote document.

    Absent collections restore as empty, absent settings as defaults.
    Malformed records reject the whole document.
    """
    if not isinstance(document, dict):
        raise ValidationError("Backup must be a JSON object", entity="backup")

    for key in COLLECTION_KEYS:
        value = document.get(key)
        if value is None:
            continue
        expected = dict if key == SETTINGS else list
        if not isinstance(value, expected):
            raise ValidationError(
                f"{key} must be {'an object' if expected is dict else 'a list'}",
                entity="backup",
                field=key,
            )

    _check_products(document.get("products") or [])

    try:
        return StoreState.from_document(document)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ValidationError(f"Backup contains an invalid record: {e}", entity="backup")


def clear_all_data() -> StoreState:
    return StoreState()
