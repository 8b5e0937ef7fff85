# Overview: Service-layer operations for documents; structured invoice content for a stored sale.

"""
Invoice Documents

Builds the printable content of an invoice as plain data. Rendering to PDF,
printing and sharing are left to the client; this module only decides what
the invoice says.
"""

from __future__ import annotations

import re

from ..models import Sale, ShopProfile
from printpos.time_utils import to_utc_z
from .identifier_service import invoice_number

CURRENCY_PREFIX = "Rs."
DIRECT_CUSTOMER_LABEL = "Direct Customer"


def format_money(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{CURRENCY_PREFIX} {whole:,}.{frac:02d}"


def invoice_filename(shop_name: str, number: str) -> str:
    safe_name = re.sub(r"\s+", "_", (shop_name or "").strip()) or "Invoice"
    return f"{safe_name}_Inv_{number}.pdf"


def build_invoice_document(sale: Sale, profile: ShopProfile) -> dict:
    number = invoice_number(sale.id)

    return {
        "invoice_number": number,
        "issued_at": to_utc_z(sale.created_at),
        "filename": invoice_filename(profile.name, number),
        "shop": {
            "name": profile.name,
            "address": profile.address,
            "phone": profile.phone,
            "email": profile.email,
            "website": profile.website,
            "logo": profile.logo,
        },
        "customer": {
            "name": sale.customer_name,
            "contact": sale.customer_contact or DIRECT_CUSTOMER_LABEL,
        },
        "lines": [
            {
                "line_number": line.line_number,
                "name": line.name,
                "quantity": line.quantity,
                "unit_price_cents": line.unit_price_cents,
                "line_total_cents": line.line_total_cents,
                "unit_price": format_money(line.unit_price_cents),
                "line_total": format_money(line.line_total_cents),
            }
            for line in sale.lines
        ],
        "totals": {
            "subtotal_cents": sale.subtotal_cents,
            "discount_cents": sale.discount_cents,
            "total_cents": sale.total_cents,
            "subtotal": format_money(sale.subtotal_cents),
            "discount": format_money(sale.discount_cents) if sale.discount_cents > 0 else None,
            "total": format_money(sale.total_cents),
        },
        "payment": {
            "method": sale.payment_method,
            "status": sale.payment_status,
            "original_method": sale.original_payment_method,
            "settled_at": to_utc_z(sale.settled_at) if sale.settled_at else None,
        },
        "footer_note": profile.footer_note,
    }
