# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import get_store
from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid gate session.

    Sets g.access_session to the AccessSession record.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired, idle or revoked token
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        record = session_service.validate_session(get_store(), token)
        if record is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.access_session = record
        g.access_token = token
        return f(*args, **kwargs)

    return decorated_function
