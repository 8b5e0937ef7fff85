# Overview: Flask API routes for the passcode gate; login, logout and session check.

# backend/printpos/routes/auth.py
"""
Passcode gate API routes

One shared passcode opens a session; the returned bearer token is sent on
every protected request.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import get_store
from ..services import auth_service
from ..services.auth_service import PasscodeValidationError
from ..services import session_service
from ..store import LedgerStoreError
from ..decorators import require_auth, bearer_token
from printpos.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Check the passcode and create a session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    passcode = data.get("passcode")

    if not passcode or not isinstance(passcode, str):
        return jsonify({"error": "passcode required"}), 400

    try:
        accepted = auth_service.check_passcode(current_app.config, passcode)
    except PasscodeValidationError:
        current_app.logger.exception("Configured access passcode is invalid")
        return jsonify({"error": "Internal server error"}), 500

    if not accepted:
        current_app.logger.warning("Failed login attempt from %s", request.remote_addr)
        return jsonify({"error": "Invalid passcode"}), 401

    try:
        session, token = session_service.create_session(
            get_store(),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except LedgerStoreError:
        current_app.logger.exception("Failed to create session")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "token": token,
        "expires_at": to_utc_z(session.expires_at),
        "session": session.to_dict(),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    token = bearer_token()
    if token is None:
        return jsonify({"error": "Authorization header required"}), 401

    try:
        revoked = session_service.revoke_session(get_store(), token, reason="Logout")
    except LedgerStoreError:
        current_app.logger.exception("Failed to logout")
        return jsonify({"error": "Internal server error"}), 500

    if not revoked:
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/session")
@require_auth
def session_route():
    return jsonify({"session": g.access_session.to_dict()}), 200
