# Overview: Service-layer operations for inventory; stock effects of sales and purchases.

from __future__ import annotations

import logging

from ..models import Product
from ..store import PRODUCTS

logger = logging.getLogger(__name__)

"""
Inventory Invariants (authoritative)

Stock model:
- Product.stock is a stored, mutable quantity. It changes only through a
  sale or purchase commit (or an explicit inventory edit).
- A sale decrements stock by the quantity of every product-backed line.
  Manual lines (no product id) have no stock effect.
- A purchase increments stock by the line quantity and overwrites the
  product's unit cost with the purchase unit cost (last cost wins).
- There is no floor: stock may go negative when more is sold than is on hand.
- A line whose product id is not in the catalog keeps its record but has no
  stock effect (logged as a warning).

Atomicity:
- Both effects run inside the same unit of work as the owning Sale/Purchase
  insert. A failure here aborts the whole commit.
"""


def _locked_product(uow, product_id: str, record_id: str) -> Product | None:
    product = uow.get(PRODUCTS, product_id, lock=True)
    if product is None:
        logger.warning("Product %s not found, no stock effect for %s", product_id, record_id)
    return product


def apply_sale_effect(uow, sale) -> list[tuple[str, int]]:
    """
    Decrement stock for every product-backed line of a sale.

    Returns (product_id, new_stock) pairs for the products touched.
    """
    touched = []
    for line in sale.lines:
        if line.product_id is None:
            continue
        product = _locked_product(uow, line.product_id, sale.id)
        if product is None:
            continue
        product.stock -= line.quantity
        touched.append((product.id, product.stock))
    uow.session.flush()

    for product_id, stock in touched:
        if stock < 0:
            logger.warning("Product %s stock is negative after sale %s: %d", product_id, sale.id, stock)
    return touched


def apply_purchase_effect(uow, purchase) -> list[tuple[str, int]]:
    """
    Increment stock and set the unit cost for every line of a purchase.

    Returns (product_id, new_stock) pairs for the products touched.
    """
    touched = []
    for line in purchase.lines:
        product = _locked_product(uow, line.product_id, purchase.id)
        if product is None:
            continue
        product.stock += line.quantity
        product.cost_cents = line.unit_cost_cents
        touched.append((product.id, product.stock))
    uow.session.flush()
    return touched


def low_stock_products(products) -> list[Product]:
    """Products at or below their minimum stock level, lowest stock first."""
    low = [p for p in products if p.is_low_stock]
    low.sort(key=lambda p: (p.stock, p.name))
    return low


def stock_summary(product: Product) -> dict:
    return {
        "product_id": product.id,
        "name": product.name,
        "stock": product.stock,
        "min_stock_level": product.min_stock_level,
        "is_low_stock": product.is_low_stock,
        "retail_value_cents": product.stock * product.price_cents,
        "cost_value_cents": product.stock * product.cost_cents,
    }
