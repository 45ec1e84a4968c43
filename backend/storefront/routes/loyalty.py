# Overview: Flask API routes for loyalty points and referral stats.

from flask import Blueprint, jsonify, current_app, g

from ..services import loyalty_service
from ..decorators import require_auth


loyalty_bp = Blueprint("loyalty", __name__, url_prefix="/api")


@loyalty_bp.get("/loyalty")
@require_auth
def loyalty_summary_route():
    try:
        return jsonify(loyalty_service.get_summary(g.current_user.id)), 200

    except Exception:
        current_app.logger.exception("Failed to fetch loyalty summary")
        return jsonify({"message": "Failed to fetch loyalty summary"}), 500


@loyalty_bp.get("/referrals/stats")
@require_auth
def referral_stats_route():
    try:
        return jsonify(loyalty_service.referral_stats(g.current_user.id)), 200

    except Exception:
        current_app.logger.exception("Failed to fetch referral stats")
        return jsonify({"message": "Failed to fetch referral stats"}), 500
