# Overview: Flask API routes for return requests.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import return_service
from ..services.order_service import OrderNotFoundError, OrderAccessError, OrderStateError
from ..validation import ValidationError, validate_return_request
from ..decorators import require_auth


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.get("")
@require_auth
def list_returns_route():
    try:
        requests = return_service.list_returns(g.current_user.id)
        return jsonify([req.to_dict() for req in requests]), 200

    except Exception:
        current_app.logger.exception("Failed to fetch return requests")
        return jsonify({"message": "Failed to fetch return requests"}), 500


@returns_bp.post("")
@require_auth
def create_return_route():
    try:
        patch = validate_return_request(request.get_json(silent=True))
        req = return_service.create_return(
            user_id=g.current_user.id,
            order_ref=patch["order_ref"],
            reason=patch["reason"],
            items=patch["items"],
            additional_notes=patch["additional_notes"],
        )
        return jsonify({"message": "Return request submitted", "returnRequest": req.to_dict()}), 201

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except OrderNotFoundError:
        return jsonify({"message": "Order not found"}), 404
    except OrderAccessError as e:
        return jsonify({"message": str(e)}), 403
    except OrderStateError as e:
        return jsonify({"message": str(e), **e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to create return request")
        return jsonify({"message": "Failed to create return request"}), 500
