from __future__ import annotations

from typing import Any

# Maximum unit price accepted from callers; keeps nonsense input out of reports.
MAX_PRICE = 9_999_999.99


class StoreError(Exception):
    """
    Base class for typed operation failures.

    Carries enough detail for a caller to render a message: what was wrong,
    which entity, and which value was rejected.
    """
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        entity: str | None = None,
        field: str | None = None,
        value: Any = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.entity = entity
        self.field = field
        self.value = value
        self.details = details or {}

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"error": self.message, "kind": self.kind}
        if self.entity is not None:
            payload["entity"] = self.entity
        if self.field is not None:
            payload["field"] = self.field
        if self.value is not None:
            payload["value"] = self.value
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(StoreError, ValueError):
    """400-level input problem."""


class ConflictError(ValidationError):
    """409-level business rule conflict (e.g., duplicate barcode)."""
    status_code = 409


class NotFoundError(StoreError, LookupError):
    """Referenced product or sale does not exist."""
    status_code = 404


class InsufficientStockError(StoreError):
    """Sale quantity exceeds stock on hand."""
    status_code = 409

    def __init__(self, message: str, *, available: int, requested: int, **kwargs):
        details = dict(kwargs.pop("details", None) or {})
        details.update({"available": available, "requested": requested})
        super().__init__(message, details=details, **kwargs)
        self.available = available
        self.requested = requested


class PersistenceError(StoreError):
    """
    Local or remote write failure.

    scope="local" is fatal to the operation. scope="remote" is advisory only:
    memory and local storage already hold the change.
    """
    status_code = 503

    def __init__(self, message: str, *, scope: str, fatal: bool | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.scope = scope
        self.fatal = (scope == "local") if fatal is None else fatal

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["scope"] = self.scope
        payload["fatal"] = self.fatal
        return payload


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion: rejects floats, booleans, decimals and
    scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field, value=value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{field} must be an integer, not a decimal", field=field, value=value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer", field=field, value=value)
        if "e" in stripped.lower():
            raise ValidationError(
                f"{field} must be a plain integer (scientific notation not allowed)",
                field=field,
                value=value,
            )
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)", field=field, value=value)
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", field=field, value=value)
    raise ValidationError(f"{field} must be an integer", field=field, value=value)


def coerce_bool(value: Any, field: str) -> bool:
    """Booleans plus the usual text spellings ("true", "off", "1", ...)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0", "yes", "no", "on", "off"}:
        return value.strip().lower() in {"true", "1", "yes", "on"}
    raise ValidationError(f"{field} must be a boolean", field=field, value=value)


def coerce_price(value: Any, field: str) -> float:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number", field=field, value=value)
    if isinstance(value, (int, float)):
        price = float(value)
    elif isinstance(value, str):
        try:
            price = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a number", field=field, value=value)
    else:
        raise ValidationError(f"{field} must be a number", field=field, value=value)

    if price != price or price in (float("inf"), float("-inf")):
        raise ValidationError(f"{field} must be a finite number", field=field, value=value)
    if price < 0:
        raise ValidationError(f"{field} must be >= 0", field=field, value=value)
    if price > MAX_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE:,.2f}", field=field, value=value)
    return price


def optional_price(value: Any, field: str) -> float | None:
    """None / blank -> None; otherwise a validated price."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return coerce_price(value, field)


def require_non_negative_int(value: Any, field: str) -> int:
    number = coerce_int(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be >= 0", field=field, value=value)
    return number


def require_positive_int(value: Any, field: str) -> int:
    number = coerce_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be > 0", field=field, value=value)
    return number


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    if value is None:
        raise ValidationError(f"{field} is required", field=field)
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} cannot be blank", field=field, value=value)
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}", field=field, value=value)
    return text


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
