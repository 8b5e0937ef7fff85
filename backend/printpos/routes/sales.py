# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales API routes - checkout and invoice lookup

A checkout is one request: the whole cart is validated and committed as a
Sale together with its stock decrements, or rejected with nothing written.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..services import sales_service, settings_service
from ..services.document_service import build_invoice_document
from ..services.products_service import ProductNotFoundError, get_product
from ..services.sales_service import CartLine, SaleError, SaleNotFoundError, cart_line_for_product
from ..store import LedgerStoreError
from ..validation import ValidationError, coerce_int
from ..decorators import require_auth
from printpos.time_utils import parse_iso_date


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _parse_cart_lines(store, items) -> list[CartLine]:
    """
    Turn request items into cart lines.

    Catalog item: {"product_id", "quantity", optional "unit_price_cents"}
    Manual item:  {"name", "unit_price_cents", "quantity"}
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for i, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{i}] must be an object")

        quantity = coerce_int(item.get("quantity", 1), f"items[{i}].quantity")
        product_id = item.get("product_id")

        if product_id:
            try:
                product = get_product(store, str(product_id))
            except ProductNotFoundError:
                raise ValidationError(f"items[{i}]: product {product_id} not found")
            line = cart_line_for_product(product, quantity)
            if item.get("unit_price_cents") is not None:
                line = CartLine(
                    name=line.name,
                    unit_price_cents=coerce_int(item["unit_price_cents"], f"items[{i}].unit_price_cents"),
                    unit_cost_cents=line.unit_cost_cents,
                    quantity=quantity,
                    product_id=line.product_id,
                )
        else:
            if item.get("unit_price_cents") is None:
                raise ValidationError(f"items[{i}].unit_price_cents is required for a manual item")
            line = CartLine(
                name=str(item.get("name") or "").strip(),
                unit_price_cents=coerce_int(item["unit_price_cents"], f"items[{i}].unit_price_cents"),
                quantity=quantity,
            )
        lines.append(line)
    return lines


@sales_bp.post("")
@require_auth
def checkout_route():
    """
    Check out a cart.

    Body: items, customer_name, customer_contact, discount_cents,
    payment_method (Cash/Card/Online/Credit).
    """
    data = request.get_json(silent=True) or {}
    store = get_store()

    try:
        lines = _parse_cart_lines(store, data.get("items"))
        discount = coerce_int(data.get("discount_cents", 0) or 0, "discount_cents")
        sale = sales_service.checkout(
            store,
            lines,
            customer_name=data.get("customer_name"),
            customer_contact=data.get("customer_contact"),
            discount_cents=discount,
            payment_method=data.get("payment_method") or "Cash",
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except LedgerStoreError:
        current_app.logger.exception("Failed to check out sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale.to_dict()}), 201


@sales_bp.get("")
@require_auth
def list_sales_route():
    """Sales newest first; optional inclusive start/end dates (YYYY-MM-DD)."""
    try:
        start = parse_iso_date(request.args.get("start"))
        end = parse_iso_date(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start/end must be YYYY-MM-DD dates"}), 400

    try:
        sales = sales_service.list_sales(get_store(), start, end)
    except LedgerStoreError:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/<sale_id>")
@require_auth
def get_sale_route(sale_id: str):
    try:
        sale = sales_service.get_sale(get_store(), sale_id)
    except SaleNotFoundError:
        return jsonify({"error": "Sale not found"}), 404
    except LedgerStoreError:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale.to_dict()})


@sales_bp.get("/<sale_id>/invoice")
@require_auth
def invoice_route(sale_id: str):
    store = get_store()
    try:
        sale = sales_service.get_sale(store, sale_id)
        profile = settings_service.get_profile(store)
    except SaleNotFoundError:
        return jsonify({"error": "Sale not found"}), 404
    except LedgerStoreError:
        current_app.logger.exception("Failed to build invoice")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"invoice": build_invoice_document(sale, profile)})
