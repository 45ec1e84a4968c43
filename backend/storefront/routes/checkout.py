# Overview: Flask API routes for checkout and the simulated UPI payment step.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import order_service, payment_service
from ..services.order_service import OrderNotFoundError, OrderAccessError, OrderStateError
from ..validation import ValidationError, validate_checkout, validate_status_update
from ..decorators import require_auth


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api")


@checkout_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Create a pending order and point the browser at the payment page.

    Prices come from the catalog; the submitted total is only compared and
    logged. Idempotency-Key (header) or idempotencyKey (body) makes a
    resubmission return the order created the first time.
    """
    try:
        patch = validate_checkout(request.get_json(silent=True))

        if patch["user_id"] is not None and patch["user_id"] != str(g.current_user.id):
            current_app.logger.warning(
                "Checkout user mismatch: session=%s payload=%s", g.current_user.id, patch["user_id"]
            )
            return jsonify({"message": "User ID mismatch"}), 400

        idempotency_key = (request.headers.get("Idempotency-Key") or "").strip() or patch["idempotency_key"]

        order, created = order_service.create_order(
            user_id=g.current_user.id,
            items=patch["items"],
            shipping=patch["shipping"],
            idempotency_key=idempotency_key,
            client_total=patch["total"],
        )
        return jsonify({
            "message": "Order created successfully" if created else "Order already created",
            "redirectUrl": f"/checkout/payment?ref={order.order_ref}",
            "orderRef": order.order_ref,
        }), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to process checkout")
        return jsonify({"message": "Failed to process checkout. Please try again."}), 500


@checkout_bp.get("/payment/<ref>")
@require_auth
def payment_details_route(ref: str):
    try:
        order = order_service.get_order_for_user(ref, g.current_user.id)
        return jsonify(payment_service.payment_details(order)), 200

    except OrderNotFoundError:
        return jsonify({"message": "Order not found"}), 404
    except OrderAccessError:
        return jsonify({"message": "Unauthorized"}), 403
    except Exception:
        current_app.logger.exception("Failed to fetch payment details")
        return jsonify({"message": "Failed to fetch payment details"}), 500


@checkout_bp.post("/payment/<ref>/status")
@require_auth
def payment_status_route(ref: str):
    """Record the payment outcome: {status: completed|failed, method: upi|cod}."""
    try:
        patch = validate_status_update(request.get_json(silent=True), method_key="method")
        order = payment_service.record_payment_result(ref, g.current_user.id, patch["status"], patch["method"])
        return jsonify({
            "message": "Payment status updated successfully",
            "status": order.status,
            "orderRef": order.order_ref,
        }), 200

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except OrderNotFoundError:
        return jsonify({"message": "Order not found"}), 404
    except OrderAccessError:
        return jsonify({"message": "Unauthorized"}), 403
    except OrderStateError as e:
        return jsonify({"message": str(e), **e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to update payment status")
        return jsonify({"message": "Failed to update payment status"}), 500
