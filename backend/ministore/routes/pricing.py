# Overview: Flask API routes for pricing; bulk price changes, optimizations and price history.

from flask import Blueprint, jsonify, request

from ..decorators import handle_store_errors, mutation_response
from ..services import restock_service
from ..services.store_service import get_store
from ..validation import require_json_object

pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/pricing")


@pricing_bp.get("/optimizations")
@handle_store_errors("load profit optimizations")
def optimizations_route():
    items = restock_service.generate_profit_optimizations(get_store().state)
    return jsonify({"items": [o.to_dict() for o in items], "count": len(items)})


@pricing_bp.post("/bulk/preview")
@handle_store_errors("preview bulk price changes")
def bulk_preview_route():
    """Body: adjustmentType (percentage|fixed|margin), value, applyTo (all|low-stock|high-stock)."""
    payload = require_json_object(request.get_json(silent=True))
    proposals = restock_service.preview_bulk_price_changes(
        get_store().state,
        payload.get("adjustmentType"),
        payload.get("value"),
        payload.get("applyTo", "all"),
    )
    return jsonify({"changes": [p.to_dict() for p in proposals], "count": len(proposals)})


@pricing_bp.post("/bulk/apply")
@handle_store_errors("apply bulk price changes")
def bulk_apply_route():
    """Body: changes: [{productId, newPrice}, ...]"""
    payload = require_json_object(request.get_json(silent=True))
    result = get_store().execute(restock_service.apply_bulk_price_changes, payload.get("changes"))
    return mutation_response(
        result,
        {"products": [p.to_dict() for p in result.value], "count": len(result.value)},
    )


@pricing_bp.get("/history")
@handle_store_errors("load price history")
def price_history_route():
    entries = restock_service.price_history_for(
        get_store().state,
        request.args.get("product_id", type=int),
    )
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)})
