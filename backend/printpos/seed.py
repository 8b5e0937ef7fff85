# Overview: First-run defaults for the catalog and the shop profile.

from __future__ import annotations

import logging

from .models import Product, ShopProfile, PROFILE_ID
from .services.identifier_service import next_record_id
from .store import PRODUCTS, PROFILE
from .time_utils import utcnow

logger = logging.getLogger(__name__)

# name, category, price_cents, cost_cents, stock, min_stock_level
SEED_CATALOG = (
    ("Business Cards (100pcs)", "Printing", 1500, 500, 50, 10),
    ("A4 Glossy Paper", "Materials", 50, 20, 500, 100),
    ("Banner Printing (per sqft)", "Printing", 250, 80, 1000, 200),
    ("T-Shirt Sublimation", "Merchandise", 2500, 800, 20, 5),
    ("Mug Printing", "Merchandise", 1000, 350, 35, 10),
    ("Spiral Binding", "Services", 300, 50, 200, 50),
)

DEFAULT_PROFILE = {
    "name": "AR PRINTERS",
    "address": "Mukkarawewa, Horowpothana",
    "phone": "0778824235",
    "email": "arprintersmk@gmail.com",
    "website": None,
    "footer_note": "Thank you for your business!",
    "logo": None,
}


def default_profile() -> ShopProfile:
    return ShopProfile(id=PROFILE_ID, **DEFAULT_PROFILE)


def seed_defaults(uow) -> dict:
    """
    Insert the starter catalog when the products collection is empty and the
    default shop profile when none is stored. Runs inside the caller's unit
    of work.
    """
    created = {"products": 0, "profile": False}

    if not uow.list_all(PRODUCTS):
        for name, category, price_cents, cost_cents, stock, min_stock in SEED_CATALOG:
            uow.insert(PRODUCTS, Product(
                id=next_record_id(),
                name=name,
                category=category,
                price_cents=price_cents,
                cost_cents=cost_cents,
                stock=stock,
                min_stock_level=min_stock,
            ))
            created["products"] += 1

    if uow.get(PROFILE, PROFILE_ID) is None:
        profile = default_profile()
        profile.updated_at = utcnow()
        uow.insert(PROFILE, profile)
        created["profile"] = True

    if created["products"] or created["profile"]:
        logger.info(
            "Seeded defaults: %d products, profile=%s",
            created["products"],
            created["profile"],
        )
    return created
