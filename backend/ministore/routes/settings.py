from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..decorators import handle_store_errors, mutation_response
from ..services import settings_service
from ..services.store_service import get_store


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@handle_store_errors("load settings")
def get_settings_route():
    return jsonify({"settings": settings_service.get_settings(get_store().state).to_dict()})


@settings_bp.route("", methods=["PUT", "PATCH"])
@handle_store_errors("update settings")
def update_settings_route():
    result = get_store().execute(settings_service.update_settings, request.get_json(silent=True))
    return mutation_response(result, {"settings": result.value.to_dict()})
