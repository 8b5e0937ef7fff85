# Overview: Flask API routes for supplier purchases; parses input and returns JSON responses.

"""
Purchase (stock intake) API routes

A purchase is recorded in one request and committed together with the stock
increment and cost update of every line.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..services import purchase_service
from ..services.products_service import ProductNotFoundError, get_product
from ..services.purchase_service import (
    PurchaseLineInput,
    PurchaseNotFoundError,
    PurchaseValidationError,
)
from ..store import LedgerStoreError
from ..validation import ValidationError, coerce_int
from ..decorators import require_auth
from printpos.time_utils import parse_iso_date


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


def _parse_lines(store, items) -> list[PurchaseLineInput]:
    """
    Existing product: {"product_id", "quantity", "unit_cost_cents"}
    New product:      {"product_name", "quantity", "unit_cost_cents",
                       optional "category", "price_cents"}
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("lines must be a non-empty list")

    lines = []
    for i, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"lines[{i}] must be an object")
        if item.get("unit_cost_cents") is None:
            raise ValidationError(f"lines[{i}].unit_cost_cents is required")

        product_id = item.get("product_id")
        if product_id:
            try:
                get_product(store, str(product_id))
            except ProductNotFoundError:
                raise ValidationError(f"lines[{i}]: product {product_id} not found")

        price = item.get("price_cents")
        lines.append(PurchaseLineInput(
            quantity=coerce_int(item.get("quantity"), f"lines[{i}].quantity"),
            unit_cost_cents=coerce_int(item["unit_cost_cents"], f"lines[{i}].unit_cost_cents"),
            product_id=str(product_id) if product_id else None,
            product_name=item.get("product_name"),
            category=item.get("category"),
            price_cents=coerce_int(price, f"lines[{i}].price_cents") if price is not None else None,
        ))
    return lines


@purchases_bp.post("")
@require_auth
def record_purchase_route():
    data = request.get_json(silent=True) or {}
    store = get_store()

    try:
        lines = _parse_lines(store, data.get("lines"))
        purchase = purchase_service.record_purchase(store, data.get("supplier"), lines)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PurchaseValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except LedgerStoreError:
        current_app.logger.exception("Failed to record purchase")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"purchase": purchase.to_dict()}), 201


@purchases_bp.get("")
@require_auth
def list_purchases_route():
    try:
        start = parse_iso_date(request.args.get("start"))
        end = parse_iso_date(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start/end must be YYYY-MM-DD dates"}), 400

    try:
        purchases = purchase_service.list_purchases(get_store(), start, end)
    except LedgerStoreError:
        current_app.logger.exception("Failed to list purchases")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"items": [p.to_dict() for p in purchases], "count": len(purchases)})


@purchases_bp.get("/<purchase_id>")
@require_auth
def get_purchase_route(purchase_id: str):
    try:
        purchase = purchase_service.get_purchase(get_store(), purchase_id)
    except PurchaseNotFoundError:
        return jsonify({"error": "Purchase not found"}), 404
    except LedgerStoreError:
        current_app.logger.exception("Failed to load purchase")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"purchase": purchase.to_dict()})
