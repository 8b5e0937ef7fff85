from __future__ import annotations

from ..extensions import db
from printpos.time_utils import to_utc_z

PAYMENT_CASH = "Cash"
PAYMENT_CARD = "Card"
PAYMENT_ONLINE = "Online"
PAYMENT_CREDIT = "Credit"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_ONLINE, PAYMENT_CREDIT)

STATUS_PAID = "Paid"
STATUS_PENDING = "Pending"

WALK_IN_CUSTOMER = "Walk-in Customer"


class Sale(db.Model):
    """
    Sale (invoice) record.

    WHY: A sale is written once, atomically with the stock decrement of its
    product-backed lines. Identity and lines never change afterwards.

    PAYMENT STATE:
    - payment_status is Pending iff the sale was created on Credit.
    - Settlement flips payment_status to Paid and payment_method to Cash.
    - original_payment_method keeps the method used at creation time, so a
      settled credit sale still belongs to its customer's credit account.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created_at", "created_at"),
        db.Index("ix_sales_customer", "customer_name", "customer_contact"),
        db.Index("ix_sales_original_method_status", "original_payment_method", "payment_status"),
    )

    # Time-ordered record id (see identifier_service.next_record_id)
    id = db.Column(db.String(32), primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    customer_name = db.Column(db.String(255), nullable=False, default=WALK_IN_CUSTOMER)
    customer_contact = db.Column(db.String(64), nullable=False, default="")

    # All amounts in cents. total_cents may be negative (discount > subtotal).
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, index=True)
    payment_status = db.Column(db.String(16), nullable=False, index=True)
    original_payment_method = db.Column(db.String(16), nullable=False)
    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    lines = db.relationship(
        "SaleLine",
        back_populates="sale",
        order_by="SaleLine.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_credit_originated(self) -> bool:
        return self.original_payment_method == PAYMENT_CREDIT

    @property
    def is_pending(self) -> bool:
        return self.payment_status == STATUS_PENDING

    @property
    def cogs_cents(self) -> int:
        return sum(line.unit_cost_cents * line.quantity for line in self.lines)

    def immutable_snapshot(self) -> tuple:
        """Fields that must never change once the sale is stored."""
        return (
            self.id,
            self.created_at,
            self.customer_name,
            self.customer_contact or "",
            self.subtotal_cents,
            self.discount_cents,
            self.total_cents,
            self.original_payment_method,
            tuple(line.snapshot() for line in self.lines),
        )

    def __repr__(self) -> str:
        return (
            f"<Sale id={self.id} customer={self.customer_name!r} "
            f"total_cents={self.total_cents} {self.payment_method}/{self.payment_status}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": to_utc_z(self.created_at),
            "customer_name": self.customer_name,
            "customer_contact": self.customer_contact,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "original_payment_method": self.original_payment_method,
            "settled_at": to_utc_z(self.settled_at) if self.settled_at else None,
            "lines": [line.to_dict() for line in self.lines],
        }


class SaleLine(db.Model):
    """
    Individual line item on a sale: a snapshot of name, price and cost.

    product_id is NULL for a manually entered line; such lines have no stock
    effect and a zero unit cost.
    """
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(32), db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    # Not a foreign key: the id is kept even when the product is unknown
    product_id = db.Column(db.String(32), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="lines")

    @property
    def is_manual(self) -> bool:
        return self.product_id is None

    def snapshot(self) -> tuple:
        return (
            self.line_number,
            self.product_id,
            self.name,
            self.quantity,
            self.unit_price_cents,
            self.unit_cost_cents,
            self.line_total_cents,
        )

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
            "is_manual": self.is_manual,
        }
