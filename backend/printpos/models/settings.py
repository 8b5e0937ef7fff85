from __future__ import annotations

from ..extensions import db
from printpos.time_utils import to_utc_z

PROFILE_ID = "profile"

# Data-URL payload limit for the invoice logo
MAX_LOGO_LENGTH = 500_000


class ShopProfile(db.Model):
    """
    Singleton shop identity printed on invoices.

    Keyed by the fixed id "profile"; saving replaces every field.
    """
    __tablename__ = "shop_profile"

    id = db.Column(db.String(32), primary_key=True, default=PROFILE_ID)

    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(512), nullable=False, default="")
    phone = db.Column(db.String(64), nullable=False, default="")
    email = db.Column(db.String(255), nullable=False, default="")
    website = db.Column(db.String(255), nullable=True)
    footer_note = db.Column(db.String(512), nullable=False, default="")
    logo = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "footer_note": self.footer_note,
            "logo": self.logo,
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
        }
