# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import session_service


def extract_token() -> str | None:
    """
    Session token from a Bearer header, falling back to the auth cookie.

    Browsers send the HttpOnly cookie; scripted clients send the token
    returned in the login response. An explicit header wins.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token

    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "sid")
    return request.cookies.get(cookie_name) or None


def load_current_user() -> bool:
    """
    Resolve the request's session into g.current_user / g.session_token.

    Returns False when there is no valid session.
    """
    token = extract_token()
    if not token:
        return False

    context = session_service.validate_session(token)
    if not context:
        return False

    g.current_user = context.user
    g.session_token = token
    g.session_context = context
    return True


def require_auth(f):
    """
    Require a valid session.

    Sets g.current_user, g.session_token and g.session_context.
    Returns 401 {"message": "Authentication required"} otherwise.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not load_current_user():
            return jsonify({"message": "Authentication required"}), 401
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """Like require_auth, but anonymous requests proceed with g.current_user = None."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not load_current_user():
            g.current_user = None
        return f(*args, **kwargs)

    return decorated_function
