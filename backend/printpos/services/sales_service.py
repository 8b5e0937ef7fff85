"""
Sales Service - cart checkout into an immutable Sale

WHY: A sale and the stock it consumes must never disagree. Checkout builds
the Sale from cart lines, validates it completely before anything is
written, then inserts it and decrements stock in one ledger commit.

RULES:
- Blank customer name becomes "Walk-in Customer"; contact is optional.
- Credit sales require both a customer name and a contact (they are the
  grouping key of the credit ledger).
- subtotal = sum(unit price * quantity); total = subtotal - discount.
  A discount larger than the subtotal is allowed (negative total).
- Status is Pending for Credit, Paid otherwise. The creation-time method is
  kept in original_payment_method forever.
- Manual lines (no product id) have a zero unit cost and no stock effect.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from ..models import (
    Product,
    Sale,
    SaleLine,
    PAYMENT_CREDIT,
    PAYMENT_METHODS,
    STATUS_PAID,
    STATUS_PENDING,
    WALK_IN_CUSTOMER,
)
from ..store import PRODUCTS, SALES
from printpos.time_utils import in_date_range, utcnow
from .identifier_service import next_record_id
from . import inventory_service

logger = logging.getLogger(__name__)


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CreditIdentityError(SaleError):
    """Raised when a credit sale lacks the customer name or contact."""
    pass


class SaleNotFoundError(Exception):
    """Raised when a sale id does not exist."""
    pass


@dataclass(frozen=True)
class CartLine:
    """One line of a cart before checkout."""
    name: str
    unit_price_cents: int
    quantity: int
    unit_cost_cents: int = 0
    product_id: str | None = None

    @property
    def is_manual(self) -> bool:
        return self.product_id is None


def cart_line_for_product(product: Product, quantity: int = 1) -> CartLine:
    """Snapshot a catalog product's name, price and cost into a cart line."""
    return CartLine(
        name=product.name,
        unit_price_cents=product.price_cents,
        unit_cost_cents=product.cost_cents,
        quantity=quantity,
        product_id=product.id,
    )


def _validate_lines(lines) -> list[CartLine]:
    lines = list(lines or [])
    if not lines:
        raise SaleError("Cannot check out an empty cart")

    problems = []
    for i, line in enumerate(lines, start=1):
        if not isinstance(line.quantity, int) or isinstance(line.quantity, bool) or line.quantity < 1:
            problems.append({"line": i, "field": "quantity", "error": "must be an integer >= 1"})
        if not isinstance(line.unit_price_cents, int) or line.unit_price_cents < 0:
            problems.append({"line": i, "field": "unit_price_cents", "error": "must be an integer >= 0"})
        if not isinstance(line.unit_cost_cents, int) or line.unit_cost_cents < 0:
            problems.append({"line": i, "field": "unit_cost_cents", "error": "must be an integer >= 0"})
        if not (line.name or "").strip():
            problems.append({"line": i, "field": "name", "error": "is required"})

    if problems:
        raise SaleError("Invalid cart lines", details={"lines": problems})
    return lines


def build_sale(
    lines,
    *,
    customer_name: str | None = None,
    customer_contact: str | None = None,
    discount_cents: int = 0,
    payment_method: str = "Cash",
) -> Sale:
    """
    Construct (but do not store) a Sale from cart lines.

    Raises SaleError / CreditIdentityError before anything is written.
    """
    lines = _validate_lines(lines)

    if payment_method not in PAYMENT_METHODS:
        raise SaleError(
            f"Invalid payment method: {payment_method}",
            details={"allowed": list(PAYMENT_METHODS)},
        )

    if not isinstance(discount_cents, int) or isinstance(discount_cents, bool) or discount_cents < 0:
        raise SaleError("discount_cents must be an integer >= 0")

    name = (customer_name or "").strip()
    contact = (customer_contact or "").strip()

    if payment_method == PAYMENT_CREDIT and (not name or not contact):
        raise CreditIdentityError(
            "missing customer identity",
            details={"required": ["customer_name", "customer_contact"]},
        )

    sale = Sale(
        id=next_record_id(),
        created_at=utcnow(),
        customer_name=name or WALK_IN_CUSTOMER,
        customer_contact=contact,
        discount_cents=discount_cents,
        payment_method=payment_method,
        payment_status=STATUS_PENDING if payment_method == PAYMENT_CREDIT else STATUS_PAID,
        original_payment_method=payment_method,
    )

    subtotal = 0
    for i, cart_line in enumerate(lines, start=1):
        line_total = cart_line.unit_price_cents * cart_line.quantity
        subtotal += line_total
        sale.lines.append(SaleLine(
            line_number=i,
            product_id=cart_line.product_id,
            name=cart_line.name.strip(),
            quantity=cart_line.quantity,
            unit_price_cents=cart_line.unit_price_cents,
            unit_cost_cents=0 if cart_line.is_manual else cart_line.unit_cost_cents,
            line_total_cents=line_total,
        ))

    sale.subtotal_cents = subtotal
    sale.total_cents = subtotal - discount_cents
    return sale


def _checkout_inner(uow, sale: Sale) -> Sale:
    """Insert the sale and apply its stock effect. Does NOT commit."""
    uow.insert(SALES, sale)
    inventory_service.apply_sale_effect(uow, sale)
    return sale


def checkout(
    store,
    lines,
    customer_name: str | None = None,
    customer_contact: str | None = None,
    discount_cents: int = 0,
    payment_method: str = "Cash",
) -> Sale:
    """
    Validate a cart and commit it as a new Sale together with its stock
    decrements. Returns the stored Sale.
    """
    sale = build_sale(
        lines,
        customer_name=customer_name,
        customer_contact=customer_contact,
        discount_cents=discount_cents,
        payment_method=payment_method,
    )

    stored = store.execute(lambda uow: _checkout_inner(uow, sale), SALES, PRODUCTS)

    logger.info(
        "Sale %s checked out: %d lines, total_cents=%d, %s/%s",
        stored.id,
        len(stored.lines),
        stored.total_cents,
        stored.payment_method,
        stored.payment_status,
    )
    return stored


def get_sale(store, sale_id: str) -> Sale:
    sale = store.get_by_id(SALES, sale_id)
    if sale is None:
        raise SaleNotFoundError(f"Sale {sale_id} not found")
    return sale


def list_sales(store, start: date | None = None, end: date | None = None) -> list[Sale]:
    """Sales within an inclusive calendar-date range, newest first."""
    sales = [s for s in store.list_all(SALES) if in_date_range(s.created_at, start, end)]
    sales.sort(key=lambda s: s.id, reverse=True)
    return sales
