# Overview: Flask API routes for the customer credit ledger; outstanding balances and settlement.

"""
Credit ledger API routes

Balances are derived from the sale history on every request; settlement is
the only write.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..services import credit_service
from ..services.credit_service import SettlementError
from ..services.sales_service import SaleNotFoundError
from ..store import ImmutableRecordError, LedgerStoreError, SALES
from ..decorators import require_auth


credit_bp = Blueprint("credit", __name__, url_prefix="/api/credit")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


@credit_bp.get("/customers")
@require_auth
def list_customers_route():
    """
    Customer credit accounts, largest outstanding balance first.

    Query params:
    - include_settled: bool - also list accounts with nothing outstanding
    - q: str - match on customer name (case-insensitive) or contact
    """
    try:
        sales = get_store().list_all(SALES)
    except LedgerStoreError:
        current_app.logger.exception("Failed to load credit ledger")
        return jsonify({"error": "Internal server error"}), 500

    entries = credit_service.list_outstanding(
        sales,
        include_settled=_truthy(request.args.get("include_settled")),
        search=request.args.get("q"),
    )
    return jsonify({
        "items": [e.to_dict() for e in entries],
        "count": len(entries),
        "total_receivables_cents": credit_service.total_receivables(entries),
    })


@credit_bp.get("/customers/history")
@require_auth
def customer_history_route():
    name = (request.args.get("name") or "").strip()
    if not name:
        return jsonify({"error": "name is required"}), 400
    contact = (request.args.get("contact") or "").strip()

    try:
        sales = get_store().list_all(SALES)
    except LedgerStoreError:
        current_app.logger.exception("Failed to load customer history")
        return jsonify({"error": "Internal server error"}), 500

    history = credit_service.customer_history(sales, name, contact)
    return jsonify({"items": [s.to_dict() for s in history], "count": len(history)})


@credit_bp.post("/sales/<sale_id>/settle")
@require_auth
def settle_route(sale_id: str):
    """Settle one pending credit sale (marks it Paid in Cash)."""
    try:
        sale = credit_service.settle(get_store(), sale_id)
    except SaleNotFoundError:
        return jsonify({"error": "Sale not found"}), 404
    except SettlementError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except ImmutableRecordError as e:
        return jsonify({"error": str(e)}), 409
    except LedgerStoreError:
        current_app.logger.exception("Failed to settle sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale.to_dict()})
