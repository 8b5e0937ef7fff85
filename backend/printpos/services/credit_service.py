# Overview: Service-layer operations for the customer credit ledger; outstanding balances and settlement.

"""
Credit Ledger Service

WHY: Credit (accounts receivable) is not stored separately. Every balance is
derived on demand from the Sale history, so it can never drift from the
sales that produced it.

GROUPING:
- A customer account is keyed by (customer_name, customer_contact).
- Membership is decided by original_payment_method == "Credit", so a credit
  sale that has been settled still belongs to its customer's account.
- billed = sum of totals of the account's sales
- paid = sum of totals of those with status Paid
- outstanding = billed - paid

SETTLEMENT:
- Only a Pending sale can be settled; a second settlement is rejected.
- Settling sets status Paid, method Cash and settled_at. Identity, lines and
  the original payment method are untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ..models import Sale, PAYMENT_CASH, STATUS_PAID
from ..store import SALES
from printpos.time_utils import to_utc_z, utcnow
from .sales_service import SaleNotFoundError

logger = logging.getLogger(__name__)

# Balances at or below one cent count as settled
OUTSTANDING_EPSILON_CENTS = 1


class SettlementError(Exception):
    """Raised when a sale cannot be settled in its current state."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class CustomerLedgerEntry:
    """Derived per-customer credit account; never persisted."""
    customer_name: str
    customer_contact: str
    billed_cents: int = 0
    paid_cents: int = 0
    sale_count: int = 0
    pending_count: int = 0
    last_sale_at: datetime | None = None

    @property
    def outstanding_cents(self) -> int:
        return self.billed_cents - self.paid_cents

    @property
    def key(self) -> tuple[str, str]:
        return (self.customer_name, self.customer_contact)

    def to_dict(self) -> dict:
        return {
            "customer_name": self.customer_name,
            "customer_contact": self.customer_contact,
            "billed_cents": self.billed_cents,
            "paid_cents": self.paid_cents,
            "outstanding_cents": self.outstanding_cents,
            "sale_count": self.sale_count,
            "pending_count": self.pending_count,
            "last_sale_at": to_utc_z(self.last_sale_at),
        }


def _matches(entry: CustomerLedgerEntry, search: str | None) -> bool:
    if not search:
        return True
    term = search.strip().lower()
    if not term:
        return True
    return term in entry.customer_name.lower() or term in entry.customer_contact.lower()


def list_outstanding(
    sales,
    include_settled: bool = False,
    search: str | None = None,
) -> list[CustomerLedgerEntry]:
    """
    Group credit-originated sales per customer.

    Pure function of `sales`. Accounts with nothing outstanding are dropped
    unless include_settled. Sorted by outstanding balance, largest first.
    """
    groups: dict[tuple[str, str], CustomerLedgerEntry] = {}

    for sale in sales:
        if not sale.is_credit_originated:
            continue
        key = (sale.customer_name, sale.customer_contact or "")
        entry = groups.get(key)
        if entry is None:
            entry = CustomerLedgerEntry(customer_name=key[0], customer_contact=key[1])
            groups[key] = entry

        entry.billed_cents += sale.total_cents
        entry.sale_count += 1
        if sale.payment_status == STATUS_PAID:
            entry.paid_cents += sale.total_cents
        else:
            entry.pending_count += 1
        if entry.last_sale_at is None or sale.created_at > entry.last_sale_at:
            entry.last_sale_at = sale.created_at

    entries = [
        e for e in groups.values()
        if (include_settled or e.outstanding_cents > OUTSTANDING_EPSILON_CENTS) and _matches(e, search)
    ]
    entries.sort(key=lambda e: (-e.outstanding_cents, e.customer_name, e.customer_contact))
    return entries


def total_receivables(entries) -> int:
    return sum(max(e.outstanding_cents, 0) for e in entries)


def customer_history(sales, customer_name: str, customer_contact: str | None) -> list[Sale]:
    """The credit-originated sales of one customer, newest first."""
    contact = customer_contact or ""
    history = [
        s for s in sales
        if s.is_credit_originated
        and s.customer_name == customer_name
        and (s.customer_contact or "") == contact
    ]
    history.sort(key=lambda s: s.id, reverse=True)
    return history


def _settle_inner(uow, sale_id: str) -> Sale:
    """Mark a pending sale as paid in cash. Does NOT commit."""
    sale = uow.get(SALES, sale_id, lock=True)
    if sale is None:
        raise SaleNotFoundError(f"Sale {sale_id} not found")

    if not sale.is_pending:
        raise SettlementError(
            f"Sale {sale_id} is not pending",
            details={"payment_status": sale.payment_status, "payment_method": sale.payment_method},
        )

    sale.payment_status = STATUS_PAID
    sale.payment_method = PAYMENT_CASH
    sale.settled_at = utcnow()
    uow.upsert(SALES, sale)
    return sale


def settle(store, sale_id: str) -> Sale:
    """Settle one pending credit sale. Returns the updated Sale."""
    sale = store.execute(lambda uow: _settle_inner(uow, sale_id), SALES)
    logger.info(
        "Credit sale %s settled for %s (%s): %d cents",
        sale.id,
        sale.customer_name,
        sale.customer_contact,
        sale.total_cents,
    )
    return sale
