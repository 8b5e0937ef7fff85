from __future__ import annotations

from ..extensions import db
from printpos.time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Product master data with its running stock level.

    STOCK DESIGN DECISION:
    Product.stock is a mutable quantity maintained by the inventory adjuster
    inside the same commit as every Sale/Purchase insert. It is allowed to go
    negative (no backorder guard); low stock is stock <= min_stock_level.

    COST BASIS:
    cost_cents is last-cost-wins: every purchase line overwrites it with the
    purchase unit cost. Sale lines snapshot it at sale time for COGS.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_name", "category", "name"),
    )

    id = db.Column(db.String(32), primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False, default="General")

    # Authoritative storage in cents (clients may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=5)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock_level

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "stock": self.stock,
            "min_stock_level": self.min_stock_level,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Purchase(db.Model):
    """
    Supplier purchase (stock intake) document.

    IMMUTABLE: Written once, together with the stock increment and cost
    update of every line. Never edited or deleted afterwards.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_created_at", "created_at"),
    )

    id = db.Column(db.String(32), primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    supplier = db.Column(db.String(255), nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    lines = db.relationship(
        "PurchaseLine",
        back_populates="purchase",
        order_by="PurchaseLine.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} supplier={self.supplier!r} total_cents={self.total_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": to_utc_z(self.created_at),
            "supplier": self.supplier,
            "total_cents": self.total_cents,
            "lines": [line.to_dict() for line in self.lines],
        }


class PurchaseLine(db.Model):
    """Individual product line on a purchase."""
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.String(32), db.ForeignKey("purchases.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    # Not a foreign key: the id is kept even when the product is unknown
    product_id = db.Column(db.String(32), nullable=False, index=True)
    # Name snapshot at intake time
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship("Purchase", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
        }
