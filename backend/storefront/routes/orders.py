# Overview: Flask API routes for order history, detail and status changes.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import order_service
from ..services.order_service import OrderNotFoundError, OrderAccessError, OrderStateError
from ..validation import ValidationError, validate_checkout, validate_status_update
from ..decorators import require_auth


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """Current user's orders, newest first."""
    try:
        orders = order_service.list_orders(g.current_user.id)
        return jsonify([order.to_dict() for order in orders]), 200

    except Exception:
        current_app.logger.exception("Failed to fetch orders")
        return jsonify({"message": "Failed to fetch orders"}), 500


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place a pending order directly from a shipping form and item list.

    Unlike /api/checkout this empties the cart as soon as the order exists.
    Item prices come from the catalog; an Idempotency-Key replay returns the
    first order with 200.
    """
    try:
        patch = validate_checkout(request.get_json(silent=True))
        idempotency_key = (request.headers.get("Idempotency-Key") or "").strip() or patch["idempotency_key"]

        order, created = order_service.create_order(
            user_id=g.current_user.id,
            items=patch["items"],
            shipping=patch["shipping"],
            idempotency_key=idempotency_key,
            client_total=patch["total"],
            clear_cart=True,
        )
        if not created:
            return jsonify({"message": "Order already created", "order": order.to_dict()}), 200
        return jsonify({"message": "Order created successfully", "order": order.to_dict()}), 201

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"message": "Failed to create order"}), 500


@orders_bp.get("/<order_ref>")
@require_auth
def get_order_route(order_ref: str):
    """Order detail including status history (tracking page)."""
    try:
        order = order_service.get_order_for_user(order_ref, g.current_user.id)
        return jsonify(order.to_dict(include_history=True)), 200

    except OrderNotFoundError:
        return jsonify({"message": "Order not found"}), 404
    except OrderAccessError as e:
        return jsonify({"message": str(e)}), 403
    except Exception:
        current_app.logger.exception("Failed to fetch order %s", order_ref)
        return jsonify({"message": "Failed to fetch order"}), 500


@orders_bp.patch("/<order_ref>/status")
@require_auth
def update_order_status_route(order_ref: str):
    """Same transition rules as /api/payment/<ref>/status, keyed by paymentMethod."""
    try:
        patch = validate_status_update(request.get_json(silent=True), method_key="paymentMethod")
        order = order_service.update_status(
            order_ref, g.current_user.id, patch["status"], payment_method=patch["method"]
        )
        return jsonify({"message": "Order status updated", "order": order.to_dict()}), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except OrderNotFoundError:
        return jsonify({"message": "Order not found"}), 404
    except OrderAccessError as e:
        return jsonify({"message": str(e)}), 403
    except OrderStateError as e:
        return jsonify({"message": str(e), **e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"message": "Failed to update order status"}), 500
