# backend/printpos/routes/system.py
"""
System health endpoint.

Reports ledger store reachability so a deployment can be health-checked without a
session token.
"""

import time
from flask import Blueprint, current_app, jsonify

from ..extensions import get_store
from ..store import LedgerStoreError, PRODUCTS, SALES

system_bp = Blueprint("system", __name__)


def check_store_health() -> dict:
    """
    Check that the ledger store is open and its collections are readable.

    Returns dict with status and details.
    """
    start_time = time.time()
    store = get_store()
    try:
        product_count = len(store.list_all(PRODUCTS))
        sale_count = len(store.list_all(SALES))
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "sales": sale_count,
            },
        }
    except LedgerStoreError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Ledger store health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Ledger store error",
        }


@system_bp.get("/health")
def health():
    store_health = check_store_health()
    healthy = store_health["status"] == "healthy"
    body = {
        "status": "ok" if healthy else "error",
        "checks": {"ledger_store": store_health},
        "advisory_configured": bool(current_app.config.get("GEMINI_API_KEY")),
    }
    return jsonify(body), (200 if healthy else 503)
