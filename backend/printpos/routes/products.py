# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/printpos/routes/products.py
"""
Product catalog routes.

Products are never deleted. Stock normally changes only through sales and
purchases; PATCH may also set it directly for stock corrections.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import get_store
from ..models import Product
from ..services import products_service
from ..services.products_service import ProductNotFoundError, ProductUpdate
from ..store import LedgerStoreError
from ..validation import (
    PRODUCT_POLICY,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)
from ..decorators import require_auth

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


@products_bp.get("")
@require_auth
def list_products():
    """
    List catalog products ordered by name.

    Query params:
    - q: str (optional) - case-insensitive match on name or category
    - low_stock: bool (optional) - only products at or below min_stock_level
    """
    try:
        products = products_service.list_products(
            get_store(),
            low_stock_only=_truthy(request.args.get("low_stock")),
            search=request.args.get("q"),
        )
    except LedgerStoreError:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/low-stock")
@require_auth
def low_stock_route():
    try:
        products = products_service.list_products(get_store(), low_stock_only=True)
    except LedgerStoreError:
        current_app.logger.exception("Failed to list low stock products")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = products_service.create_product(get_store(), patch=patch)
    except LedgerStoreError:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created.to_dict()), 201


@products_bp.get("/<product_id>")
@require_auth
def get_product_route(product_id: str):
    try:
        product = products_service.get_product(get_store(), product_id)
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except LedgerStoreError:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(product.to_dict())


@products_bp.patch("/<product_id>")
@require_auth
def update_product_route(product_id: str):
    """
    Partially update a product.

    Only provided fields are changed; the id is not writable.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = products_service.update_product(get_store(), product_id, ProductUpdate.from_patch(patch))
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except LedgerStoreError:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated.to_dict())
