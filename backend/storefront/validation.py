from __future__ import annotations

import re
from typing import Any


PINCODE_RE = re.compile(r"^\d{6}$")
PHONE_RE = re.compile(r"^\d{10}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PAYMENT_STATUSES = ("completed", "failed")
PAYMENT_METHODS = ("upi", "cod")

# Maximum price: 9,999,999.99 in major units
MAX_PRICE = 999_999_999


class ValidationError(ValueError):
    """
    400-level input problem.

    errors is a list of {"path": [...], "message": str} entries, one per
    offending field, so clients can highlight form fields.
    """

    def __init__(self, message: str = "Invalid request data", errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        return {"message": str(self), "errors": self.errors}


class _Collector:
    """Accumulates field errors so a payload reports every problem at once."""

    def __init__(self):
        self.errors: list[dict] = []

    def add(self, path: list, message: str) -> None:
        self.errors.append({"path": list(path), "message": message})

    def raise_if_any(self, message: str) -> None:
        if self.errors:
            raise ValidationError(message, self.errors)


def _require_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload", [{"path": [], "message": "Expected object"}])
    return payload


def _int(errors: _Collector, data: dict, key: str, path: list, *, required: bool = True,
         minimum: int | None = None) -> int | None:
    """
    Strict integer field: rejects booleans, decimals and scientific notation.
    """
    if key not in data or data[key] is None:
        if required:
            errors.add(path + [key], "Required")
        return None

    value = data[key]
    if isinstance(value, bool):
        errors.add(path + [key], "Expected number, received boolean")
        return None
    if isinstance(value, float):
        errors.add(path + [key], "Expected integer, received decimal")
        return None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or not re.fullmatch(r"-?\d+", stripped):
            errors.add(path + [key], "Expected integer")
            return None
        value = int(stripped)
    if not isinstance(value, int):
        errors.add(path + [key], "Expected integer")
        return None

    if minimum is not None and value < minimum:
        errors.add(path + [key], f"Number must be greater than or equal to {minimum}")
        return None
    return value


def _bool(errors: _Collector, data: dict, key: str, path: list, *, required: bool = True,
          default: bool | None = None) -> bool | None:
    if key not in data or data[key] is None:
        if required:
            errors.add(path + [key], "Required")
        return default
    value = data[key]
    if not isinstance(value, bool):
        errors.add(path + [key], "Expected boolean")
        return default
    return value


def _str(errors: _Collector, data: dict, key: str, path: list, *, required: bool = True,
         min_length: int = 0, max_length: int | None = None, message: str | None = None,
         pattern: re.Pattern | None = None, strip: bool = True) -> str | None:
    if key not in data or data[key] is None:
        if required:
            errors.add(path + [key], message or "Required")
        return None
    value = data[key]
    if not isinstance(value, str):
        errors.add(path + [key], "Expected string")
        return None
    if strip:
        value = value.strip()
    if len(value) < min_length:
        errors.add(path + [key], message or f"Must be at least {min_length} characters")
        return None
    if max_length is not None and len(value) > max_length:
        errors.add(path + [key], f"Must be at most {max_length} characters")
        return None
    if pattern is not None and not pattern.match(value):
        errors.add(path + [key], message or "Invalid format")
        return None
    return value


def _choice(errors: _Collector, data: dict, key: str, path: list, choices: tuple) -> str | None:
    value = data.get(key)
    if value not in choices:
        errors.add(path + [key], f"Expected one of: {', '.join(choices)}")
        return None
    return value


# =============================================================================
# CART
# =============================================================================

def validate_cart_add(payload: Any) -> dict:
    data = _require_object(payload)
    errors = _Collector()
    patch = {
        "product_id": _int(errors, data, "productId", []),
        "quantity": _int(errors, data, "quantity", [], minimum=1),
        "is_gift": _bool(errors, data, "isGift", [], required=False),
        "gift_message": _str(errors, data, "giftMessage", [], required=False, max_length=500),
    }
    errors.raise_if_any("Invalid request data")
    return patch


def validate_quantity_update(payload: Any) -> int:
    data = _require_object(payload)
    errors = _Collector()
    quantity = _int(errors, data, "quantity", [], minimum=1)
    errors.raise_if_any("Invalid request data")
    return quantity


def validate_gift_update(payload: Any) -> dict:
    data = _require_object(payload)
    errors = _Collector()
    patch = {
        "is_gift": _bool(errors, data, "isGift", []),
        "gift_message": _str(errors, data, "giftMessage", [], required=False, max_length=500),
    }
    errors.raise_if_any("Invalid request data")
    return patch


def parse_product_id(raw: str) -> int:
    """Path parameter parsing for /api/cart/<productId>/..."""
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Invalid product ID format")


# =============================================================================
# CHECKOUT / ORDERS
# =============================================================================

def _validate_shipping(errors: _Collector, data: dict) -> dict | None:
    raw = data.get("shipping")
    if not isinstance(raw, dict):
        errors.add(["shipping"], "Shipping information is required")
        return None
    path = ["shipping"]
    return {
        "fullName": _str(errors, raw, "fullName", path, min_length=2, message="Full name is required"),
        "address": _str(errors, raw, "address", path, min_length=5, message="Complete address is required"),
        "city": _str(errors, raw, "city", path, min_length=2, message="City is required"),
        "state": _str(errors, raw, "state", path, min_length=2, message="State is required"),
        "pincode": _str(errors, raw, "pincode", path, pattern=PINCODE_RE,
                        message="Please enter a valid 6-digit pincode"),
        "phone": _str(errors, raw, "phone", path, pattern=PHONE_RE,
                      message="Please enter a valid 10-digit phone number"),
    }


def validate_checkout(payload: Any) -> dict:
    """
    Validate a checkout submission.

    Only productId and quantity of each item are trusted; prices and names
    are re-read from the catalog by the order service. total is optional and
    informational.
    """
    data = _require_object(payload)
    errors = _Collector()

    shipping = _validate_shipping(errors, data)

    items: list[dict] = []
    raw_items = data.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        errors.add(["items"], "At least one item is required")
    else:
        for index, raw in enumerate(raw_items):
            path = ["items", index]
            if not isinstance(raw, dict):
                errors.add(path, "Expected object")
                continue
            product_id = _int(errors, raw, "productId", path)
            quantity = _int(errors, raw, "quantity", path, minimum=1)
            items.append({"product_id": product_id, "quantity": quantity})

    total = _int(errors, data, "total", [], required=False, minimum=0)
    user_id = data.get("userId")
    idempotency_key = _str(errors, data, "idempotencyKey", [], required=False, min_length=1, max_length=128)

    errors.raise_if_any("Invalid order data")
    return {
        "shipping": shipping,
        "items": items,
        "total": total,
        "user_id": str(user_id) if user_id is not None else None,
        "idempotency_key": idempotency_key,
    }


def validate_status_update(payload: Any, method_key: str = "method") -> dict:
    data = _require_object(payload)
    errors = _Collector()
    patch = {
        "status": _choice(errors, data, "status", [], PAYMENT_STATUSES),
        "method": _choice(errors, data, method_key, [], PAYMENT_METHODS),
    }
    errors.raise_if_any("Invalid status data")
    return patch


def validate_return_request(payload: Any) -> dict:
    data = _require_object(payload)
    errors = _Collector()

    order_ref = _str(errors, data, "orderRef", [], min_length=1)
    reason = _str(errors, data, "reason", [], min_length=1, max_length=255)
    notes = _str(errors, data, "additionalNotes", [], required=False, max_length=2000)

    items: list[dict] = []
    raw_items = data.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        errors.add(["items"], "At least one item is required")
    else:
        for index, raw in enumerate(raw_items):
            path = ["items", index]
            if not isinstance(raw, dict):
                errors.add(path, "Expected object")
                continue
            items.append({
                "productId": _int(errors, raw, "productId", path),
                "quantity": _int(errors, raw, "quantity", path, minimum=1),
                "reason": _str(errors, raw, "reason", path, min_length=1, max_length=255),
            })

    errors.raise_if_any("Invalid return request")
    return {"order_ref": order_ref, "reason": reason, "items": items, "additional_notes": notes}


# =============================================================================
# AUTH
# =============================================================================

def validate_registration(payload: Any) -> dict:
    data = _require_object(payload)
    errors = _Collector()
    patch = {
        "username": _str(errors, data, "username", [], min_length=3, max_length=255,
                         message="Username must be at least 3 characters"),
        "password": _str(errors, data, "password", [], min_length=8, max_length=255,
                         message="Password must be at least 8 characters", strip=False),
        "email": _str(errors, data, "email", [], pattern=EMAIL_RE, max_length=255,
                      message="Invalid email address"),
        "first_name": _str(errors, data, "first_name", [], required=False, max_length=255),
        "last_name": _str(errors, data, "last_name", [], required=False, max_length=255),
        "referral_code": _str(errors, data, "referralCode", [], required=False, max_length=16),
    }
    errors.raise_if_any("Invalid registration data")
    return patch


def validate_login(payload: Any) -> dict:
    data = _require_object(payload)
    errors = _Collector()
    patch = {
        "username": _str(errors, data, "username", [], min_length=1),
        "password": _str(errors, data, "password", [], min_length=1, strip=False),
    }
    errors.raise_if_any("Username and password are required")
    return patch


def enforce_rules_product(patch: dict) -> None:
    """Catalog rules that JSON shape checks do not capture."""
    price = patch.get("price")
    if not isinstance(price, int) or isinstance(price, bool):
        raise ValidationError("price must be an integer")
    if price < 0:
        raise ValidationError("price must be >= 0")
    if price > MAX_PRICE:
        raise ValidationError(f"price cannot exceed {MAX_PRICE}")
    if not isinstance(patch.get("images", []), list):
        raise ValidationError("images must be a list")
    if not isinstance(patch.get("features", {}), dict):
        raise ValidationError("features must be an object")
