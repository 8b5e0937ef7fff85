"""
HTTP API tests.

Verifies:
- Protected endpoints return 401 without a session token
- Passcode login/logout
- Checkout, purchase, credit settlement and invoice flows over HTTP
- Input errors map to 400, missing records to 404, state conflicts to 409
"""

import httpx
import pytest

from printpos import create_app
from printpos.extensions import LEDGER_STORE_KEY
from printpos.routes.advisor import ADVISORY_CLIENT_KEY
from printpos.services.advisory_service import AdvisoryClient, FALLBACK_ANSWER

from conftest import auth_headers, get_auth_token


def _first_product(client, headers, name="Mug Printing"):
    items = client.get("/api/products", headers=headers, query_string={"q": name}).json["items"]
    return items[0]


def _credit_checkout(client, headers, amount_cents, name="Nimal Perera", contact="0771234567"):
    resp = client.post("/api/sales", headers=headers, json={
        "items": [{"name": "Print job", "unit_price_cents": amount_cents, "quantity": 1}],
        "customer_name": name,
        "customer_contact": contact,
        "payment_method": "Credit",
    })
    assert resp.status_code == 201, resp.json
    return resp.json["sale"]


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/purchases"),
            ("GET", "/api/credit/customers"),
            ("POST", "/api/credit/sales/0000000000000001/settle"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/settings/profile"),
            ("POST", "/api/advisor/query"),
            ("GET", "/api/auth/session"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client):
        resp = client.get("/api/products", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_health_is_public(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "ok"
        assert resp.json["checks"]["ledger_store"]["details"]["products"] == 6


class TestLogin:

    def test_wrong_passcode(self, client):
        resp = client.post("/api/auth/login", json={"passcode": "0000"})
        assert resp.status_code == 401

    def test_missing_passcode(self, client):
        resp = client.post("/api/auth/login", json={})
        assert resp.status_code == 400

    def test_login_session_logout(self, client):
        token = get_auth_token(client)
        assert token

        resp = client.get("/api/auth/session", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.json["session"]["is_revoked"] is False

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/session", headers=auth_headers(token)).status_code == 401
        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 401

    def test_invalid_configured_passcode_is_server_error(self):
        app = create_app({
            "TESTING": True,
            "DATABASE_URL": "sqlite://",
            "ACCESS_PASSCODE": "12",
            "ACCESS_PASSCODE_HASH": None,
            "GEMINI_API_KEY": None,
        })
        try:
            resp = app.test_client().post("/api/auth/login", json={"passcode": "12"})
            assert resp.status_code == 500
            assert resp.json == {"error": "Internal server error"}
        finally:
            app.extensions[LEDGER_STORE_KEY].close()


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProducts:

    def test_seeded_catalog_listed(self, client, headers):
        resp = client.get("/api/products", headers=headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 6

    def test_create_and_patch(self, client, headers):
        resp = client.post("/api/products", headers=headers, json={
            "name": "Photo Frame",
            "price_cents": "1800",
            "cost_cents": 900,
            "stock": 3,
            "min_stock_level": 5,
        })
        assert resp.status_code == 201
        created = resp.json
        assert created["category"] == "General"
        assert created["price_cents"] == 1800
        assert created["is_low_stock"] is True

        resp = client.patch(f"/api/products/{created['id']}", headers=headers, json={"stock": 20})
        assert resp.status_code == 200
        assert resp.json["stock"] == 20
        assert resp.json["price_cents"] == 1800

        low = client.get("/api/products/low-stock", headers=headers).json["items"]
        assert created["id"] not in [p["id"] for p in low]

    @pytest.mark.parametrize(
        "payload",
        [
            {"price_cents": 100},
            {"name": "", "price_cents": 100},
            {"name": "Frame", "price_cents": 12.5},
            {"name": "Frame", "price_cents": -1},
            {"name": "Frame", "price_cents": 100, "id": "x"},
        ],
    )
    def test_invalid_product_rejected(self, client, headers, payload):
        resp = client.post("/api/products", headers=headers, json=payload)
        assert resp.status_code == 400

    def test_missing_product(self, client, headers):
        assert client.get("/api/products/nope", headers=headers).status_code == 404
        assert client.patch("/api/products/nope", headers=headers, json={"stock": 1}).status_code == 404


# =============================================================================
# SALES
# =============================================================================


class TestCheckout:

    def test_checkout_decrements_stock(self, client, headers):
        mug = _first_product(client, headers)
        resp = client.post("/api/sales", headers=headers, json={
            "items": [
                {"product_id": mug["id"], "quantity": 2},
                {"name": "Design fee", "unit_price_cents": 1500, "quantity": 1},
            ],
            "discount_cents": 500,
            "payment_method": "Card",
        })
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["subtotal_cents"] == 2 * mug["price_cents"] + 1500
        assert sale["total_cents"] == sale["subtotal_cents"] - 500
        assert sale["payment_status"] == "Paid"
        assert sale["customer_name"] == "Walk-in Customer"

        after = client.get(f"/api/products/{mug['id']}", headers=headers).json
        assert after["stock"] == mug["stock"] - 2

        fetched = client.get(f"/api/sales/{sale['id']}", headers=headers).json["sale"]
        assert fetched == sale

    def test_price_override(self, client, headers):
        mug = _first_product(client, headers)
        resp = client.post("/api/sales", headers=headers, json={
            "items": [{"product_id": mug["id"], "quantity": 1, "unit_price_cents": 800}],
        })
        assert resp.status_code == 201
        assert resp.json["sale"]["total_cents"] == 800

    def test_credit_without_contact_rejected(self, client, headers):
        mug = _first_product(client, headers)
        resp = client.post("/api/sales", headers=headers, json={
            "items": [{"product_id": mug["id"], "quantity": 1}],
            "customer_name": "Nimal Perera",
            "payment_method": "Credit",
        })
        assert resp.status_code == 400
        assert resp.json["error"] == "missing customer identity"
        assert client.get("/api/sales", headers=headers).json["count"] == 0
        assert client.get(f"/api/products/{mug['id']}", headers=headers).json["stock"] == mug["stock"]

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"items": []},
            {"items": [{"product_id": "nope", "quantity": 1}]},
            {"items": [{"name": "Fee", "quantity": 1}]},
            {"items": [{"name": "Fee", "unit_price_cents": 100, "quantity": 0}]},
            {"items": [{"name": "Fee", "unit_price_cents": 100, "quantity": 1}], "payment_method": "Barter"},
        ],
    )
    def test_invalid_checkout(self, client, headers, body):
        resp = client.post("/api/sales", headers=headers, json=body)
        assert resp.status_code == 400

    def test_list_with_bad_date(self, client, headers):
        resp = client.get("/api/sales", headers=headers, query_string={"start": "yesterday"})
        assert resp.status_code == 400

    def test_missing_sale(self, client, headers):
        assert client.get("/api/sales/0000000000000000", headers=headers).status_code == 404
        assert client.get("/api/sales/0000000000000000/invoice", headers=headers).status_code == 404

    def test_invoice(self, client, headers):
        sale = _credit_checkout(client, headers, 4500)
        resp = client.get(f"/api/sales/{sale['id']}/invoice", headers=headers)
        assert resp.status_code == 200
        invoice = resp.json["invoice"]
        assert invoice["invoice_number"] == sale["id"][-6:]
        assert invoice["filename"].startswith("AR_PRINTERS_Inv_")
        assert invoice["totals"]["total"] == "Rs. 45.00"


# =============================================================================
# PURCHASES
# =============================================================================


class TestPurchases:

    def test_record_purchase(self, client, headers):
        mug = _first_product(client, headers)
        resp = client.post("/api/purchases", headers=headers, json={
            "supplier": "Lanka Paper",
            "lines": [
                {"product_id": mug["id"], "quantity": 10, "unit_cost_cents": 320},
                {"product_name": "Photo Frame", "quantity": 5, "unit_cost_cents": 900, "price_cents": 1800},
            ],
        })
        assert resp.status_code == 201
        purchase = resp.json["purchase"]
        assert purchase["total_cents"] == 3200 + 4500

        after = client.get(f"/api/products/{mug['id']}", headers=headers).json
        assert after["stock"] == mug["stock"] + 10
        assert after["cost_cents"] == 320

        frame = _first_product(client, headers, "Photo Frame")
        assert frame["stock"] == 5
        assert frame["price_cents"] == 1800

        listed = client.get("/api/purchases", headers=headers).json
        assert [p["id"] for p in listed["items"]] == [purchase["id"]]
        assert client.get(f"/api/purchases/{purchase['id']}", headers=headers).json["purchase"] == purchase

    @pytest.mark.parametrize(
        "body",
        [
            {"lines": [{"product_name": "X", "quantity": 1, "unit_cost_cents": 1}]},
            {"supplier": "Lanka Paper", "lines": []},
            {"supplier": "Lanka Paper", "lines": [{"product_name": "X", "quantity": 1}]},
            {"supplier": "Lanka Paper", "lines": [{"product_id": "nope", "quantity": 1, "unit_cost_cents": 1}]},
        ],
    )
    def test_invalid_purchase(self, client, headers, body):
        resp = client.post("/api/purchases", headers=headers, json=body)
        assert resp.status_code == 400
        assert client.get("/api/purchases", headers=headers).json["count"] == 0

    def test_missing_purchase(self, client, headers):
        assert client.get("/api/purchases/0000000000000000", headers=headers).status_code == 404


# =============================================================================
# CREDIT
# =============================================================================


class TestCredit:

    def test_settlement_flow(self, client, headers):
        first = _credit_checkout(client, headers, 10000)
        second = _credit_checkout(client, headers, 5000)

        resp = client.get("/api/credit/customers", headers=headers)
        assert resp.json["total_receivables_cents"] == 15000

        resp = client.post(f"/api/credit/sales/{first['id']}/settle", headers=headers)
        assert resp.status_code == 200
        assert resp.json["sale"]["payment_status"] == "Paid"
        assert resp.json["sale"]["payment_method"] == "Cash"

        [entry] = client.get("/api/credit/customers", headers=headers).json["items"]
        assert entry["outstanding_cents"] == 5000

        client.post(f"/api/credit/sales/{second['id']}/settle", headers=headers)
        assert client.get("/api/credit/customers", headers=headers).json["count"] == 0

        resp = client.get("/api/credit/customers", headers=headers, query_string={"include_settled": "true"})
        [entry] = resp.json["items"]
        assert entry["outstanding_cents"] == 0
        assert entry["paid_cents"] == 15000

    def test_double_settlement_conflict(self, client, headers):
        sale = _credit_checkout(client, headers, 10000)
        assert client.post(f"/api/credit/sales/{sale['id']}/settle", headers=headers).status_code == 200
        assert client.post(f"/api/credit/sales/{sale['id']}/settle", headers=headers).status_code == 409

    def test_settle_missing_sale(self, client, headers):
        resp = client.post("/api/credit/sales/0000000000000000/settle", headers=headers)
        assert resp.status_code == 404

    def test_customer_history(self, client, headers):
        sale = _credit_checkout(client, headers, 10000)
        resp = client.get("/api/credit/customers/history", headers=headers,
                          query_string={"name": "Nimal Perera", "contact": "0771234567"})
        assert resp.status_code == 200
        assert [s["id"] for s in resp.json["items"]] == [sale["id"]]

        assert client.get("/api/credit/customers/history", headers=headers).status_code == 400


# =============================================================================
# REPORTS
# =============================================================================


class TestReports:

    def test_sales_and_profit(self, client, headers):
        mug = _first_product(client, headers)
        client.post("/api/sales", headers=headers, json={"items": [{"product_id": mug["id"], "quantity": 2}]})

        sales = client.get("/api/reports/sales", headers=headers).json
        assert sales["invoice_count"] == 1
        assert sales["totals_by_method_cents"]["Cash"] == 2 * mug["price_cents"]

        profit = client.get("/api/reports/profit", headers=headers).json
        assert profit["cogs_cents"] == 2 * mug["cost_cents"]
        assert profit["gross_profit_cents"] == 2 * (mug["price_cents"] - mug["cost_cents"])

    def test_inverted_range_rejected(self, client, headers):
        resp = client.get("/api/reports/sales", headers=headers,
                          query_string={"start": "2026-03-10", "end": "2026-03-01"})
        assert resp.status_code == 400

    def test_inventory_and_dashboard(self, client, headers):
        inventory = client.get("/api/reports/inventory", headers=headers).json
        assert inventory["product_count"] == 6

        dashboard = client.get("/api/reports/dashboard", headers=headers).json
        assert len(dashboard["daily_revenue"]) == 7
        assert dashboard["order_count"] == 0

    def test_purchases_report(self, client, headers):
        resp = client.get("/api/reports/purchases", headers=headers)
        assert resp.status_code == 200
        assert resp.json["total_expenses_cents"] == 0


# =============================================================================
# SETTINGS
# =============================================================================


class TestProfile:

    def test_default_profile(self, client, headers):
        profile = client.get("/api/settings/profile", headers=headers).json["profile"]
        assert profile["name"] == "AR PRINTERS"

    def test_replace_profile(self, client, headers):
        resp = client.put("/api/settings/profile", headers=headers, json={
            "name": "AR Printers & Graphics",
            "phone": "0778824235",
            "logo": "data:image/png;base64,iVBORw0KGgo=",
        })
        assert resp.status_code == 200
        profile = client.get("/api/settings/profile", headers=headers).json["profile"]
        assert profile["name"] == "AR Printers & Graphics"
        assert profile["address"] == ""
        assert profile["logo"].startswith("data:image/png")

    @pytest.mark.parametrize(
        "payload",
        [
            {"phone": "0778824235"},
            {"name": "AR", "logo": "https://example.com/logo.png"},
            {"name": "AR", "logo": "data:image/png;base64," + "A" * 500_000},
        ],
    )
    def test_invalid_profile(self, client, headers, payload):
        resp = client.put("/api/settings/profile", headers=headers, json=payload)
        assert resp.status_code == 400


# =============================================================================
# ADVISOR
# =============================================================================


class TestAdvisor:

    def test_unconfigured_returns_fallback(self, client, headers):
        resp = client.post("/api/advisor/query", headers=headers, json={"query": "How is business?"})
        assert resp.status_code == 200
        assert resp.json["answer"] == FALLBACK_ANSWER

    def test_query_and_copy(self, app, client, headers):
        def handler(request):
            text = "Restock A4 paper." if b"User Question" in request.content else "Mugs for everyone!"
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

        app.extensions[ADVISORY_CLIENT_KEY] = AdvisoryClient(
            api_key="test-key",
            model="gemini-test",
            api_base="https://example.test/v1beta",
            transport=httpx.MockTransport(handler),
        )

        resp = client.post("/api/advisor/query", headers=headers, json={"query": "What to restock?"})
        assert resp.json["answer"] == "Restock A4 paper."

        resp = client.post("/api/advisor/marketing-copy", headers=headers, json={"product_name": "Mug Printing"})
        assert resp.json["copy"] == "Mugs for everyone!"

    def test_blank_query_rejected(self, client, headers):
        assert client.post("/api/advisor/query", headers=headers, json={"query": " "}).status_code == 400
        assert client.post("/api/advisor/marketing-copy", headers=headers, json={}).status_code == 400
