# Overview: Service-layer operations for product maintenance; catalog create, edit and lookup.

"""
Products Service

Products are never deleted: sales and purchases keep referring to them.
Edits go through an explicit ProductUpdate; only the fields it carries are
changed and the id is never updatable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields

from ..models import Product
from ..store import PRODUCTS
from .identifier_service import next_record_id
from .inventory_service import low_stock_products

logger = logging.getLogger(__name__)


class ProductNotFoundError(Exception):
    """Raised when a product id does not exist."""
    pass


@dataclass(frozen=True)
class ProductUpdate:
    """Partial product edit; None means 'leave unchanged'."""
    name: str | None = None
    category: str | None = None
    price_cents: int | None = None
    cost_cents: int | None = None
    stock: int | None = None
    min_stock_level: int | None = None

    @classmethod
    def from_patch(cls, patch: dict) -> "ProductUpdate":
        allowed = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in patch.items() if k in allowed})

    def changes(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


def apply_product_update(product: Product, update: ProductUpdate) -> Product:
    for k, v in update.changes().items():
        setattr(product, k, v)
    return product


def list_products(store, *, low_stock_only: bool = False, search: str | None = None) -> list[Product]:
    products = store.list_all(PRODUCTS)
    if search:
        term = search.strip().lower()
        products = [p for p in products if term in p.name.lower() or term in p.category.lower()]
    if low_stock_only:
        return low_stock_products(products)
    return products


def get_product(store, product_id: str) -> Product:
    product = store.get_by_id(PRODUCTS, product_id)
    if product is None:
        raise ProductNotFoundError(f"Product {product_id} not found")
    return product


def create_product(store, *, patch: dict) -> Product:
    """Create a catalog product from a validated patch dict."""
    product = Product(
        id=next_record_id(),
        name=patch["name"],
        category=patch.get("category") or "General",
        price_cents=patch.get("price_cents", 0),
        cost_cents=patch.get("cost_cents", 0),
        stock=patch.get("stock", 0),
        min_stock_level=patch.get("min_stock_level", 5),
    )
    created = store.execute(lambda uow: uow.insert(PRODUCTS, product), PRODUCTS)
    logger.info("Product %s created: %s", created.id, created.name)
    return created


def _update_inner(uow, product_id: str, update: ProductUpdate) -> Product:
    product = uow.get(PRODUCTS, product_id, lock=True)
    if product is None:
        raise ProductNotFoundError(f"Product {product_id} not found")
    apply_product_update(product, update)
    uow.session.flush()
    return product


def update_product(store, product_id: str, update: ProductUpdate) -> Product:
    """Apply a partial edit; returns the updated product."""
    product = store.execute(lambda uow: _update_inner(uow, product_id, update), PRODUCTS)
    logger.info("Product %s updated: %s", product_id, sorted(update.changes()))
    return product
