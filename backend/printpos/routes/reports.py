# Overview: Flask API routes for reports; read-only aggregates over the ledger.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..store import LedgerStoreError, PRODUCTS, PURCHASES, SALES
from ..decorators import require_auth


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range_args():
    return request.args.get("start"), request.args.get("end")


@reports_bp.get("/sales")
@require_auth
def sales_report_route():
    start, end = _range_args()
    try:
        report = reporting_service.sales_report(get_store().list_all(SALES), start, end)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except LedgerStoreError:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(report)


@reports_bp.get("/purchases")
@require_auth
def purchases_report_route():
    start, end = _range_args()
    try:
        report = reporting_service.purchases_report(get_store().list_all(PURCHASES), start, end)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except LedgerStoreError:
        current_app.logger.exception("Failed to build purchases report")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(report)


@reports_bp.get("/profit")
@require_auth
def profit_report_route():
    start, end = _range_args()
    try:
        report = reporting_service.profit_report(get_store().list_all(SALES), start, end)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except LedgerStoreError:
        current_app.logger.exception("Failed to build profit report")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(report)


@reports_bp.get("/inventory")
@require_auth
def inventory_report_route():
    try:
        report = reporting_service.inventory_valuation(get_store().list_all(PRODUCTS))
    except LedgerStoreError:
        current_app.logger.exception("Failed to build inventory valuation")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(report)


@reports_bp.get("/dashboard")
@require_auth
def dashboard_route():
    store = get_store()
    try:
        stats = reporting_service.dashboard_stats(store.list_all(PRODUCTS), store.list_all(SALES))
    except LedgerStoreError:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(stats)
