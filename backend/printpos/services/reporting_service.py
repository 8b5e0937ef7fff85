# Overview: Service-layer operations for reporting; read-only revenue, cost, profit and stock views.

"""
Reporting Service

All reports are pure, read-only aggregations over lists of ledger records.
Nothing here writes to the store.

TIME SEMANTICS:
- Ranges are inclusive on the UTC calendar date of the record.
- With no range given, reports cover the last 30 days ending today.
- Payment-method totals use the CURRENT payment method, so a settled credit
  sale is reported as Cash.
"""

from __future__ import annotations

from datetime import date, timedelta

from ..models import PAYMENT_METHODS
from printpos.time_utils import in_date_range, parse_iso_date, to_utc_z, utcnow
from .inventory_service import low_stock_products, stock_summary

DEFAULT_RANGE_DAYS = 30
DASHBOARD_DAYS = 7


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def resolve_range(
    start: str | date | None,
    end: str | date | None,
    *,
    today: date | None = None,
) -> tuple[date, date]:
    """
    Normalize a report range. Missing ends default to the last 30 days
    ending today.
    """
    today = today or utcnow().date()
    try:
        start_d = start if isinstance(start, date) else parse_iso_date(start)
        end_d = end if isinstance(end, date) else parse_iso_date(end)
    except ValueError as exc:
        raise ReportError(f"Invalid date: {exc}") from exc

    if end_d is None:
        end_d = today
    if start_d is None:
        start_d = end_d - timedelta(days=DEFAULT_RANGE_DAYS)
    if start_d > end_d:
        raise ReportError("start must be on or before end")
    return start_d, end_d


def _period(start: date, end: date) -> dict:
    return {"start": start.isoformat(), "end": end.isoformat()}


def _sales_in_range(sales, start: date, end: date) -> list:
    rows = [s for s in sales if in_date_range(s.created_at, start, end)]
    rows.sort(key=lambda s: s.id, reverse=True)
    return rows


def sales_report(sales, start=None, end=None, *, today: date | None = None) -> dict:
    start_d, end_d = resolve_range(start, end, today=today)
    rows = _sales_in_range(sales, start_d, end_d)

    by_method = {method: 0 for method in PAYMENT_METHODS}
    for sale in rows:
        by_method[sale.payment_method] = by_method.get(sale.payment_method, 0) + sale.total_cents

    return {
        "period": _period(start_d, end_d),
        "revenue_cents": sum(s.total_cents for s in rows),
        "invoice_count": len(rows),
        "totals_by_method_cents": by_method,
        "sales": [s.to_dict() for s in rows],
    }


def purchases_report(purchases, start=None, end=None, *, today: date | None = None) -> dict:
    start_d, end_d = resolve_range(start, end, today=today)
    rows = [p for p in purchases if in_date_range(p.created_at, start_d, end_d)]
    rows.sort(key=lambda p: p.id, reverse=True)

    return {
        "period": _period(start_d, end_d),
        "total_expenses_cents": sum(p.total_cents for p in rows),
        "order_count": len(rows),
        "purchases": [p.to_dict() for p in rows],
    }


def _margin_percent(profit_cents: int, revenue_cents: int) -> float:
    if revenue_cents == 0:
        return 0.0
    return round(profit_cents * 100.0 / revenue_cents, 2)


def profit_report(sales, start=None, end=None, *, today: date | None = None) -> dict:
    start_d, end_d = resolve_range(start, end, today=today)
    rows = _sales_in_range(sales, start_d, end_d)

    revenue = sum(s.total_cents for s in rows)
    cogs = sum(s.cogs_cents for s in rows)
    gross_profit = revenue - cogs

    return {
        "period": _period(start_d, end_d),
        "revenue_cents": revenue,
        "cogs_cents": cogs,
        "gross_profit_cents": gross_profit,
        "margin_percent": _margin_percent(gross_profit, revenue),
    }


def inventory_valuation(products) -> dict:
    rows = [stock_summary(p) for p in products]
    return {
        "retail_value_cents": sum(r["retail_value_cents"] for r in rows),
        "cost_value_cents": sum(r["cost_value_cents"] for r in rows),
        "product_count": len(rows),
        "low_stock_count": sum(1 for r in rows if r["is_low_stock"]),
        "products": rows,
    }


def dashboard_stats(products, sales, *, today: date | None = None) -> dict:
    """Headline figures over all sales plus a daily revenue series for the last 7 days."""
    sales = list(sales)
    today = today or utcnow().date()

    total_sales = sum(s.total_cents for s in sales)
    total_cogs = sum(s.cogs_cents for s in sales)
    low_stock = low_stock_products(products)

    days = [today - timedelta(days=offset) for offset in range(DASHBOARD_DAYS - 1, -1, -1)]
    daily = {d: 0 for d in days}
    for sale in sales:
        day = sale.created_at.date()
        if day in daily:
            daily[day] += sale.total_cents

    recent = sorted(sales, key=lambda s: s.id, reverse=True)[:5]

    return {
        "total_sales_cents": total_sales,
        "order_count": len(sales),
        "low_stock_count": len(low_stock),
        "low_stock": [{"id": p.id, "name": p.name, "stock": p.stock} for p in low_stock],
        "total_profit_cents": total_sales - total_cogs,
        "daily_revenue": [
            {"date": d.isoformat(), "revenue_cents": daily[d]} for d in days
        ],
        "recent_sales": [
            {
                "id": s.id,
                "created_at": to_utc_z(s.created_at),
                "customer_name": s.customer_name,
                "total_cents": s.total_cents,
                "payment_status": s.payment_status,
            }
            for s in recent
        ],
    }
