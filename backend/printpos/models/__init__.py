from .inventory import Product, Purchase, PurchaseLine
from .sales import (
    Sale,
    SaleLine,
    PAYMENT_CASH,
    PAYMENT_CARD,
    PAYMENT_ONLINE,
    PAYMENT_CREDIT,
    PAYMENT_METHODS,
    STATUS_PAID,
    STATUS_PENDING,
    WALK_IN_CUSTOMER,
)
from .settings import ShopProfile, PROFILE_ID, MAX_LOGO_LENGTH
from .auth import AccessSession

__all__ = [
    'Product', 'Purchase', 'PurchaseLine',
    'Sale', 'SaleLine',
    'PAYMENT_CASH', 'PAYMENT_CARD', 'PAYMENT_ONLINE', 'PAYMENT_CREDIT', 'PAYMENT_METHODS',
    'STATUS_PAID', 'STATUS_PENDING', 'WALK_IN_CUSTOMER',
    'ShopProfile', 'PROFILE_ID', 'MAX_LOGO_LENGTH',
    'AccessSession',
]
