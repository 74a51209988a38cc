# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product routes.

Writes go through Store.execute so every response reflects a committed state.
"""

import io
import json

from flask import Blueprint, jsonify, request

from ..decorators import handle_store_errors, mutation_response
from ..services import import_service, products_service, restock_service
from ..services.store_service import get_store
from ..validation import NotFoundError, ValidationError, require_json_object

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@handle_store_errors("list products")
def list_products():
    """
    Query params:
    - search: case-insensitive name substring
    - stock_filter: all | in-stock | low-stock | out-of-stock
    - sort_by: name | stock-asc | stock-desc | value-desc | margin-desc
    - page / per_page: optional pagination (default 20, max 100)
    """
    result = products_service.list_products(
        get_store().state,
        search=request.args.get("search"),
        stock_filter=request.args.get("stock_filter", "all"),
        sort_by=request.args.get("sort_by", "name"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(result)


@products_bp.post("")
@handle_store_errors("save product")
def create_or_update_product_route():
    """Create a product, or add stock to the one with the same name."""
    payload = require_json_object(request.get_json(silent=True))
    result = get_store().execute(
        products_service.create_or_update_product,
        name=payload.get("name"),
        category=payload.get("category"),
        barcode=payload.get("barcode"),
        quantity=payload.get("quantity"),
        original_price=payload.get("originalPrice"),
        selling_price=payload.get("sellingPrice"),
    )
    outcome = result.value
    return mutation_response(
        result,
        {"product": outcome.product.to_dict(), "created": outcome.created},
        201 if outcome.created else 200,
    )


@products_bp.get("/<int:product_id>")
@handle_store_errors("get product")
def get_product_route(product_id: int):
    state = get_store().state
    product = products_service.get_product(state, product_id)
    return jsonify({"product": products_service.product_view(product, state.low_stock_threshold)})


@products_bp.get("/barcode/<barcode>")
@handle_store_errors("look up barcode")
def find_by_barcode_route(barcode: str):
    product = products_service.find_product_by_barcode(get_store().state, barcode)
    if product is None:
        raise NotFoundError("No product with this barcode", entity="product", field="barcode", value=barcode)
    return jsonify({"product": product.to_dict()})


@products_bp.patch("/<int:product_id>")
@handle_store_errors("update product")
def update_product_route(product_id: int):
    """Inline edit of quantity and prices."""
    payload = require_json_object(request.get_json(silent=True))
    result = get_store().execute(
        products_service.update_product,
        product_id,
        quantity=payload.get("quantity"),
        original_price=payload.get("originalPrice"),
        selling_price=payload.get("sellingPrice"),
    )
    return mutation_response(result, {"product": result.value.to_dict()})


@products_bp.delete("/<int:product_id>")
@handle_store_errors("delete product")
def delete_product_route(product_id: int):
    result = get_store().execute(products_service.delete_product, product_id)
    return mutation_response(result, {"deleted": result.value.to_dict()})


@products_bp.get("/<int:product_id>/price-history")
@handle_store_errors("load price history")
def product_price_history(product_id: int):
    entries = restock_service.price_history_for(get_store().state, product_id)
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)})


@products_bp.get("/<int:product_id>/restock-history")
@handle_store_errors("load restock history")
def product_restock_history(product_id: int):
    entries = restock_service.restock_history_for(get_store().state, product_id)
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)})


def _rows_from_upload(file) -> list[dict]:
    filename = file.filename or ""
    ext = filename.rsplit(".", 1)[-1].lower()
    if ext == "csv":
        try:
            text = file.stream.read().decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded", field="file", value=filename)
        return import_service.parse_csv(text)
    if ext == "json":
        try:
            rows = json.load(file.stream)
        except ValueError:
            raise ValidationError("Invalid JSON file", field="file", value=filename)
        if isinstance(rows, dict):
            rows = rows.get("rows", [])
        if not isinstance(rows, list):
            raise ValidationError("JSON file must contain a list of rows", field="file", value=filename)
        return rows
    if ext in {"xlsx", "xlsm"}:
        from openpyxl import load_workbook
        wb = load_workbook(io.BytesIO(file.stream.read()), data_only=True)
        return import_service.rows_from_table(list(wb.active.values))
    raise ValidationError("Unsupported file format", field="file", value=filename)


@products_bp.post("/import")
@handle_store_errors("import products")
def import_products_route():
    """
    Import products from an uploaded csv/json/xlsx file, or a JSON body with
    either "csv" (text) or "rows" (list of objects).
    """
    store = get_store()
    if "file" in request.files:
        rows = _rows_from_upload(request.files["file"])
        result = store.execute(import_service.import_products, rows)
    else:
        payload = require_json_object(request.get_json(silent=True))
        if isinstance(payload.get("csv"), str):
            result = store.execute(import_service.import_products_csv, payload["csv"])
        elif isinstance(payload.get("rows"), list):
            result = store.execute(import_service.import_products, payload["rows"])
        else:
            raise ValidationError("Provide a file, csv text or rows", field="file")
    return mutation_response(result, {"import": result.value.to_dict()}, 201)
