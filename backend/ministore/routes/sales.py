# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import handle_store_errors, mutation_response
from ..services import sales_service
from ..services.store_service import get_store
from ..validation import require_json_object

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@handle_store_errors("list sales")
def list_sales_route():
    sales = sales_service.list_sales(
        get_store().state,
        product_id=request.args.get("product_id", type=int),
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.post("")
@handle_store_errors("record sale")
def record_sale_route():
    payload = require_json_object(request.get_json(silent=True))
    result = get_store().execute(
        sales_service.record_sale,
        payload.get("productId"),
        payload.get("quantity"),
    )
    sale = result.value
    product = get_store().state.product(sale.product_id)
    return mutation_response(
        result,
        {"sale": sale.to_dict(), "product": product.to_dict() if product else None},
        201,
    )


@sales_bp.get("/<int:sale_id>/delete-preview")
@handle_store_errors("preview sale deletion")
def preview_delete_route(sale_id: int):
    preview = sales_service.preview_sale_deletion(get_store().state, sale_id)
    return jsonify(preview.to_dict())


@sales_bp.delete("/<int:sale_id>")
@handle_store_errors("delete sale")
def delete_sale_route(sale_id: int):
    """Remove the sale and restore its stock to the product, if it still exists."""
    result = get_store().execute(sales_service.delete_sale, sale_id)
    return mutation_response(result, {"deleted": result.value.to_dict()})
