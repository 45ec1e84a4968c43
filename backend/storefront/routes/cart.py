# Overview: Flask API routes for the shopping cart; every route requires a session.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import cart_service
from ..services.cart_service import CartItemNotFoundError, ProductNotFoundError
from ..validation import (
    ValidationError,
    validate_cart_add,
    validate_quantity_update,
    validate_gift_update,
    parse_product_id,
)
from ..decorators import require_auth


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _cart_payload(message: str):
    items = cart_service.get_cart(g.current_user.id)
    return jsonify({"message": message, "cart": [item.to_dict() for item in items]})


@cart_bp.get("")
@require_auth
def get_cart_route():
    try:
        items = cart_service.get_cart(g.current_user.id)
        return jsonify([item.to_dict() for item in items]), 200

    except Exception:
        current_app.logger.exception("Failed to fetch cart items")
        return jsonify({"message": "Failed to fetch cart items"}), 500


@cart_bp.post("")
@cart_bp.post("/add")
@require_auth
def add_to_cart_route():
    """Add a product, or merge into the existing line for that product."""
    try:
        patch = validate_cart_add(request.get_json(silent=True))
        cart_service.add_item(
            g.current_user.id,
            patch["product_id"],
            patch["quantity"],
            is_gift=patch["is_gift"],
            gift_message=patch["gift_message"],
        )
        return _cart_payload("Item added to cart"), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ProductNotFoundError:
        return jsonify({"message": "Product not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to add item to cart")
        return jsonify({"message": "Failed to add item to cart"}), 500


@cart_bp.delete("/<product_id>")
@cart_bp.delete("/remove/<product_id>")
@require_auth
def remove_from_cart_route(product_id: str):
    """Idempotent: removing a product that is not in the cart still succeeds."""
    try:
        pid = parse_product_id(product_id)
        cart_service.remove_item(g.current_user.id, pid)
        return _cart_payload("Item removed from cart"), 200

    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to remove item from cart")
        return jsonify({"message": "Failed to remove item from cart"}), 500


@cart_bp.patch("/<product_id>/quantity")
@cart_bp.patch("/update/<product_id>")
@require_auth
def update_quantity_route(product_id: str):
    try:
        pid = parse_product_id(product_id)
        quantity = validate_quantity_update(request.get_json(silent=True))
        cart_service.update_quantity(g.current_user.id, pid, quantity)
        return _cart_payload("Cart item quantity updated"), 200

    except ValidationError as e:
        if e.errors:
            return jsonify(e.to_dict()), 400
        return jsonify({"message": str(e)}), 400
    except CartItemNotFoundError:
        return jsonify({"message": "Cart item not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to update cart item quantity")
        return jsonify({"message": "Failed to update cart item quantity"}), 500


@cart_bp.patch("/<product_id>/gift")
@cart_bp.patch("/gift/<product_id>")
@require_auth
def update_gift_route(product_id: str):
    try:
        pid = parse_product_id(product_id)
        patch = validate_gift_update(request.get_json(silent=True))
        cart_service.update_gift(g.current_user.id, pid, patch["is_gift"], patch["gift_message"])
        return _cart_payload("Gift status updated"), 200

    except ValidationError as e:
        if e.errors:
            return jsonify(e.to_dict()), 400
        return jsonify({"message": str(e)}), 400
    except CartItemNotFoundError:
        return jsonify({"message": "Cart item not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to update gift status")
        return jsonify({"message": "Failed to update gift status"}), 500


@cart_bp.delete("")
@cart_bp.delete("/clear")
@require_auth
def clear_cart_route():
    try:
        cart_service.clear_cart(g.current_user.id)
        return jsonify({"message": "Cart cleared", "cart": []}), 200

    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return jsonify({"message": "Failed to clear cart"}), 500
