from flask import Blueprint, jsonify, request

from ministore.decorators import handle_store_errors
from ministore.services import reporting_service
from ministore.services.products_service import product_view
from ministore.services.store_service import get_store
from ministore.time_utils import month_key


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@handle_store_errors("build summary")
def summary_report():
    return jsonify(reporting_service.summary(get_store().state)), 200


@reports_bp.get("/stock-alerts")
@handle_store_errors("build stock alerts")
def stock_alerts_report():
    state = get_store().state
    alerts = reporting_service.stock_alerts(state)
    threshold = alerts.pop("threshold")
    body = {key: [product_view(p, threshold) for p in products] for key, products in alerts.items()}
    body["threshold"] = threshold
    return jsonify(body), 200


@reports_bp.get("/months")
@handle_store_errors("list report months")
def available_months():
    store = get_store()
    return jsonify({"months": reporting_service.available_months(store.state, store.now())}), 200


@reports_bp.get("/monthly")
@handle_store_errors("build monthly report")
def monthly_report():
    """?month=YYYY-MM (defaults to the current month)."""
    store = get_store()
    key = request.args.get("month") or month_key(store.now())
    return jsonify(reporting_service.monthly_report(store.state, key)), 200


@reports_bp.get("/inventory")
@handle_store_errors("build inventory report")
def inventory_report():
    state = get_store().state
    return jsonify({
        "stats": reporting_service.inventory_stats(state),
        "valuation": reporting_service.inventory_valuation(state),
        "categories": reporting_service.category_breakdown_rows(state),
    }), 200


@reports_bp.get("/insights")
@handle_store_errors("build performance insights")
def performance_insights():
    return jsonify(reporting_service.performance_insights(get_store().state)), 200


@reports_bp.get("/export/inventory")
@handle_store_errors("export inventory rows")
def export_inventory_rows():
    store = get_store()
    rows = reporting_service.inventory_report_rows(store.state, store.now())
    return jsonify({"rows": rows, "count": len(rows)}), 200


@reports_bp.get("/export/categories")
@handle_store_errors("export category rows")
def export_category_rows():
    rows = reporting_service.category_breakdown_rows(get_store().state)
    return jsonify({"rows": rows, "count": len(rows)}), 200


@reports_bp.get("/export/stock-alerts")
@handle_store_errors("export stock alert rows")
def export_stock_alert_rows():
    rows = reporting_service.stock_alert_rows(get_store().state)
    return jsonify({"rows": rows, "count": len(rows)}), 200


@reports_bp.get("/export/monthly")
@handle_store_errors("export monthly rows")
def export_monthly_rows():
    store = get_store()
    key = request.args.get("month") or month_key(store.now())
    rows = reporting_service.monthly_report_rows(store.state, key)
    return jsonify({"month": key, "rows": rows, "count": len(rows)}), 200
