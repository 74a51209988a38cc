# Overview: Route decorators and response helpers for the JSON API.

from functools import wraps

from flask import current_app, jsonify

from .validation import StoreError


def handle_store_errors(action: str):
    """
    Map typed store failures to JSON error responses.

    StoreError subclasses carry their own status code; anything else is
    logged and reported as a 500.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except StoreError as e:
                if e.status_code >= 500:
                    current_app.logger.error("Failed to %s: %s", action, e.message)
                return jsonify(e.to_dict()), e.status_code
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500
        return wrapper
    return decorator


def mutation_response(result, payload: dict, status: int = 200):
    """JSON body for a committed operation, with its advisory notices."""
    body = dict(payload)
    body["notices"] = list(result.notices)
    return jsonify(body), status
