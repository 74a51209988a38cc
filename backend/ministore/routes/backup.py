# Overview: Flask API routes for backup, restore and wipe of the whole store.

from flask import Blueprint, jsonify, request

from ..decorators import handle_store_errors, mutation_response
from ..services import backup_service
from ..services.store_service import get_store
from ..validation import ValidationError, require_json_object
from ministore.time_utils import to_utc_z

backup_bp = Blueprint("backup", __name__, url_prefix="/api/backup")


@backup_bp.get("/export")
@handle_store_errors("export backup")
def export_backup():
    store = get_store()
    snapshot = backup_service.export_snapshot(store.state, store.now())
    response = jsonify(snapshot)
    filename = f"store-backup-{to_utc_z(store.now())[:10]}.json"
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


@backup_bp.post("/restore")
@handle_store_errors("restore backup")
def restore_backup():
    """Replace every collection with the posted backup document."""
    state = backup_service.restore_snapshot(request.get_json(silent=True))
    result = get_store().replace_state(state)
    return mutation_response(result, {
        "restored": {
            "products": len(state.products),
            "sales": len(state.sales),
            "priceHistory": len(state.price_history),
            "restockHistory": len(state.restock_history),
        },
    })


@backup_bp.post("/clear")
@handle_store_errors("clear data")
def clear_data():
    """Body must be {"confirm": true}; this cannot be undone."""
    payload = require_json_object(request.get_json(silent=True))
    if payload.get("confirm") is not True:
        raise ValidationError("Clearing all data requires confirm=true", field="confirm")
    result = get_store().replace_state(backup_service.clear_all_data())
    return mutation_response(result, {"cleared": True})
