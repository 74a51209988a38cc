# Overview: Flask API routes for system health and remote sync; returns JSON responses.

"""
System health and sync endpoints.

Health reports where the store was loaded from, local storage reachability
and the remote mirror's state (degraded after a failed push).
"""

import time

from flask import Blueprint, current_app, jsonify

from ..decorators import handle_store_errors
from ..extensions import db
from ..models import StorageEntry
from ..services.store_service import get_store
from ministore.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_local_storage_health() -> dict:
    start_time = time.time()
    store = get_store()
    if store.local.kind != "sqlite":
        return {"status": "healthy", "kind": store.local.kind, "latency_ms": 0.0}
    try:
        entries = db.session.query(StorageEntry).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "kind": store.local.kind,
            "latency_ms": round(elapsed_ms, 2),
            "details": {"entries": entries},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Local storage health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "kind": store.local.kind,
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
@handle_store_errors("check health")
def health():
    store = get_store()
    local = check_local_storage_health()
    remote = store.remote.status() if store.remote is not None else None

    status = "healthy"
    if local["status"] != "healthy":
        status = "unhealthy"
    elif remote is not None and remote["degraded"]:
        status = "degraded"

    return jsonify({
        "status": status,
        "timestamp": to_utc_z(utcnow()),
        "store": store.status(),
        "checks": {"local_storage": local, "remote": remote},
    }), (200 if status != "unhealthy" else 503)


@system_bp.post("/flush")
@handle_store_errors("flush remote writes")
def flush():
    """Push any pending remote write now (manual save)."""
    store = get_store()
    pushed = store.flush()
    return jsonify({"pushed": pushed, "notices": list(store.notices())})
