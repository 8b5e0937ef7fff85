# Overview: Service-layer operations for supplier purchases; stock intake with cost update.

"""
Purchase Service

WHY: Stock intake is document-first. A purchase records the supplier and
every line received, and is committed together with the stock increment and
the cost update of each product.

IMMUTABLE: A stored purchase is never edited or deleted.

NEW PRODUCTS:
A line may name a product that is not in the catalog yet. The product is
created inside the same commit with zero stock and then incremented like
any other line, so a failed purchase leaves no orphan product behind.

UNKNOWN PRODUCTS:
A line naming a product id that is not in the catalog is still recorded
(with the id as given); only its stock effect is skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from ..models import Product, Purchase, PurchaseLine
from ..store import PRODUCTS, PURCHASES
from printpos.time_utils import in_date_range, utcnow
from .identifier_service import next_record_id
from . import inventory_service

logger = logging.getLogger(__name__)


class PurchaseValidationError(Exception):
    """Raised when a purchase fails validation; nothing is written."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class PurchaseNotFoundError(Exception):
    """Raised when a purchase id does not exist."""
    pass


@dataclass(frozen=True)
class PurchaseLineInput:
    """
    One line of a purchase order.

    Either product_id (an existing product) or product_name (a new product)
    identifies the item. category and price_cents only apply to new products;
    a new product's selling price defaults to the unit cost.
    """
    quantity: int
    unit_cost_cents: int
    product_id: str | None = None
    product_name: str | None = None
    category: str | None = None
    price_cents: int | None = None

    @property
    def is_new_product(self) -> bool:
        return self.product_id is None


def _validate(supplier, lines) -> tuple[str, list[PurchaseLineInput]]:
    supplier = (supplier or "").strip()
    if not supplier:
        raise PurchaseValidationError("supplier is required")

    lines = list(lines or [])
    if not lines:
        raise PurchaseValidationError("At least one purchase line is required")

    problems = []
    for i, line in enumerate(lines, start=1):
        if not isinstance(line.quantity, int) or isinstance(line.quantity, bool) or line.quantity < 1:
            problems.append({"line": i, "field": "quantity", "error": "must be an integer >= 1"})
        if not isinstance(line.unit_cost_cents, int) or line.unit_cost_cents < 0:
            problems.append({"line": i, "field": "unit_cost_cents", "error": "must be an integer >= 0"})
        if line.is_new_product:
            if not (line.product_name or "").strip():
                problems.append({"line": i, "field": "product_name", "error": "required for a new product"})
            if line.price_cents is not None and (not isinstance(line.price_cents, int) or line.price_cents < 0):
                problems.append({"line": i, "field": "price_cents", "error": "must be an integer >= 0"})

    if problems:
        raise PurchaseValidationError("Invalid purchase lines", details={"lines": problems})
    return supplier, lines


def _record_purchase_inner(uow, supplier: str, lines: list[PurchaseLineInput]) -> Purchase:
    """Create new products, insert the purchase and apply its stock effect. Does NOT commit."""
    purchase = Purchase(
        id=next_record_id(),
        created_at=utcnow(),
        supplier=supplier,
    )

    total = 0
    for i, line in enumerate(lines, start=1):
        if line.is_new_product:
            product = Product(
                id=next_record_id(),
                name=line.product_name.strip(),
                category=(line.category or "").strip() or "General",
                price_cents=line.price_cents if line.price_cents is not None else line.unit_cost_cents,
                cost_cents=line.unit_cost_cents,
                stock=0,
            )
            uow.insert(PRODUCTS, product)
            logger.info("Purchase %s created product %s (%s)", purchase.id, product.id, product.name)
        else:
            product = uow.get(PRODUCTS, line.product_id)

        line_total = line.quantity * line.unit_cost_cents
        total += line_total
        purchase.lines.append(PurchaseLine(
            line_number=i,
            product_id=product.id if product else line.product_id,
            product_name=product.name if product else (line.product_name or "").strip() or line.product_id,
            quantity=line.quantity,
            unit_cost_cents=line.unit_cost_cents,
            line_total_cents=line_total,
        ))

    purchase.total_cents = total
    uow.insert(PURCHASES, purchase)
    inventory_service.apply_purchase_effect(uow, purchase)
    return purchase


def record_purchase(store, supplier: str, lines) -> Purchase:
    """
    Validate a supplier order and commit it as a new Purchase together with
    the stock increments and cost updates. Returns the stored Purchase.
    """
    supplier, lines = _validate(supplier, lines)

    purchase = store.execute(
        lambda uow: _record_purchase_inner(uow, supplier, lines),
        PURCHASES,
        PRODUCTS,
    )

    logger.info(
        "Purchase %s recorded from %s: %d lines, total_cents=%d",
        purchase.id,
        purchase.supplier,
        len(purchase.lines),
        purchase.total_cents,
    )
    return purchase


def get_purchase(store, purchase_id: str) -> Purchase:
    purchase = store.get_by_id(PURCHASES, purchase_id)
    if purchase is None:
        raise PurchaseNotFoundError(f"Purchase {purchase_id} not found")
    return purchase


def list_purchases(store, start: date | None = None, end: date | None = None) -> list[Purchase]:
    """Purchases within an inclusive calendar-date range, newest first."""
    purchases = [p for p in store.list_all(PURCHASES) if in_date_range(p.created_at, start, end)]
    purchases.sort(key=lambda p: p.id, reverse=True)
    return purchases
