# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/storefront/routes/auth.py
"""
Authentication API routes

- Registration (optionally with a referral code), login and logout
- Guest login with random credentials and conversion to a permanent account
- Session token returned in the body and set as an HttpOnly cookie
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import AccountError
from ..validation import ValidationError, validate_registration, validate_login
from ..decorators import require_auth, extract_token
from storefront.time_utils import utcnow


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _session_response(user, status: int, message: str):
    """Start a session for user and return the JSON body with the cookie attached."""
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    response = jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    })
    response.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "sid"),
        token,
        max_age=max(int((session.expires_at - utcnow()).total_seconds()), 0),
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite="Lax",
    )
    return response, status


@auth_bp.post("/register")
def register_route():
    try:
        patch = validate_registration(request.get_json(silent=True))
        user = auth_service.create_user(**patch)
        return _session_response(user, 201, "Registration successful")

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except AccountError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"message": "Registration failed"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by username (or email) and password.

    Returns user info and session token on success.
    """
    try:
        patch = validate_login(request.get_json(silent=True))

        user = auth_service.authenticate(patch["username"], patch["password"])
        if not user:
            current_app.logger.info("Failed login for %s from %s", patch["username"], request.remote_addr)
            return jsonify({"message": "Invalid username or password"}), 401

        return _session_response(user, 200, "Login successful")

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"message": "Login failed"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the current session (if any) and clear the cookie."""
    try:
        token = extract_token()
        if token:
            session_service.revoke_session(token, reason="User logout")

        response = jsonify({"message": "Logged out successfully"})
        response.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "sid"))
        return response, 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"message": "Logout failed"}), 500


@auth_bp.post("/guest-login")
def guest_login_route():
    try:
        user = auth_service.create_guest_user()
        return _session_response(user, 201, "Guest session started")

    except Exception:
        current_app.logger.exception("Failed to create guest user")
        return jsonify({"message": "Guest login failed"}), 500


@auth_bp.post("/convert-guest")
@require_auth
def convert_guest_route():
    """
    Turn the current guest into a permanent account.

    Cart and orders stay with the same user id. Existing sessions remain valid
    but stop being capped by the guest expiry only for new sessions, so a
    fresh session is issued.
    """
    try:
        if not g.current_user.is_guest:
            return jsonify({"message": "Only guest accounts can be converted"}), 400

        patch = validate_registration(request.get_json(silent=True))
        patch.pop("referral_code", None)

        user = auth_service.convert_guest(g.current_user, **patch)
        session_service.revoke_session(g.session_token, reason="Guest converted")
        return _session_response(user, 200, "Account converted successfully")

    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except AccountError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to convert guest user")
        return jsonify({"message": "Account conversion failed"}), 500


@auth_bp.get("/user")
@require_auth
def current_user_route():
    return jsonify(g.current_user.to_dict()), 200
