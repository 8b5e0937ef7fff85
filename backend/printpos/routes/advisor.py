# Overview: Flask API routes for the advisory panel; free-form questions and marketing copy.

"""
Advisory API routes

The external text service may be unavailable; the service layer answers
with a fixed apology in that case, so these routes only fail on bad input
or a ledger read error.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..services import settings_service
from ..services.advisory_service import AdvisoryClient
from ..store import LedgerStoreError, PRODUCTS, SALES
from ..decorators import require_auth


advisor_bp = Blueprint("advisor", __name__, url_prefix="/api/advisor")

ADVISORY_CLIENT_KEY = "advisory_client"


def _client(shop_name: str) -> AdvisoryClient:
    """Per-app client override (tests install one with a mock transport)."""
    client = current_app.extensions.get(ADVISORY_CLIENT_KEY)
    if client is not None:
        return client
    return AdvisoryClient.from_config(current_app.config, shop_name=shop_name)


@advisor_bp.post("/query")
@require_auth
def query_route():
    data = request.get_json(silent=True) or {}
    query = (data.get("query") or "").strip()
    if not query:
        return jsonify({"error": "query is required"}), 400

    store = get_store()
    try:
        sales = store.list_all(SALES)
        products = store.list_all(PRODUCTS)
        profile = settings_service.get_profile(store)
    except LedgerStoreError:
        current_app.logger.exception("Failed to load ledger for advisory query")
        return jsonify({"error": "Internal server error"}), 500

    answer = _client(profile.name).analyze_business_data(sales, products, query)
    return jsonify({"answer": answer})


@advisor_bp.post("/marketing-copy")
@require_auth
def marketing_copy_route():
    data = request.get_json(silent=True) or {}
    product_name = (data.get("product_name") or "").strip()
    if not product_name:
        return jsonify({"error": "product_name is required"}), 400

    copy = _client("").generate_marketing_copy(product_name)
    return jsonify({"copy": copy})
