# Overview: Flask API routes for the shop profile; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..models import ShopProfile
from ..services import settings_service
from ..store import LedgerStoreError
from ..validation import (
    PROFILE_POLICY,
    ValidationError,
    enforce_rules_profile,
    validate_payload,
)
from ..decorators import require_auth


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/profile")
@require_auth
def get_profile_route():
    try:
        profile = settings_service.get_profile(get_store())
    except LedgerStoreError:
        current_app.logger.exception("Failed to load shop profile")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"profile": profile.to_dict()})


@settings_bp.put("/profile")
@require_auth
def save_profile_route():
    """Replace the shop profile. Omitted optional fields are cleared."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=ShopProfile, payload=payload, policy=PROFILE_POLICY, partial=False)
        enforce_rules_profile(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        profile = settings_service.save_profile(get_store(), patch)
    except LedgerStoreError:
        current_app.logger.exception("Failed to save shop profile")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"profile": profile.to_dict()})
