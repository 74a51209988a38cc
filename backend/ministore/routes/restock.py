# Overview: Flask API routes for restocking; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import handle_store_errors, mutation_response
from ..services import restock_service
from ..services.store_service import get_store
from ..validation import require_json_object

restock_bp = Blueprint("restock", __name__, url_prefix="/api/restock")


@restock_bp.post("")
@handle_store_errors("restock product")
def restock_route():
    """
    Add stock, optionally with new prices.

    Body: productId, quantityAdded, newOriginalPrice?, newSellingPrice?, notes?
    """
    payload = require_json_object(request.get_json(silent=True))
    result = get_store().execute(
        restock_service.restock,
        payload.get("productId"),
        payload.get("quantityAdded"),
        new_original_price=payload.get("newOriginalPrice"),
        new_selling_price=payload.get("newSellingPrice"),
        notes=payload.get("notes"),
    )
    return mutation_response(result, result.value.to_dict(), 201)


@restock_bp.post("/quick")
@handle_store_errors("quick restock")
def quick_restock_route():
    payload = require_json_object(request.get_json(silent=True))
    result = get_store().execute(
        restock_service.quick_restock,
        payload.get("productId"),
        payload.get("quantityAdded"),
        source=payload.get("source", "alert"),
    )
    return mutation_response(result, result.value.to_dict(), 201)


@restock_bp.post("/bulk/suggested")
@handle_store_errors("bulk restock")
def bulk_restock_suggested_route():
    result = get_store().execute(restock_service.bulk_restock_suggested)
    return mutation_response(result, result.value.to_dict())


@restock_bp.post("/bulk/uniform")
@handle_store_errors("bulk restock")
def bulk_restock_uniform_route():
    payload = require_json_object(request.get_json(silent=True))
    result = get_store().execute(restock_service.bulk_restock_uniform, payload.get("amount"))
    return mutation_response(result, result.value.to_dict())


@restock_bp.get("/suggestions")
@handle_store_errors("load reorder suggestions")
def reorder_suggestions_route():
    store = get_store()
    state = store.state
    if not state.settings.reorder_suggestions:
        return jsonify({"enabled": False, "suggestions": []})
    suggestions = restock_service.generate_reorder_suggestions(state, store.now())
    return jsonify({"enabled": True, "suggestions": [s.to_dict() for s in suggestions]})


@restock_bp.get("/history")
@handle_store_errors("load restock history")
def restock_history_route():
    entries = restock_service.restock_history_for(
        get_store().state,
        request.args.get("product_id", type=int),
    )
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)})
