"""
Pytest fixtures for printpos backend tests.

Provides isolated in-memory ledger stores, a Flask app + test client per
test, and an authenticated header for protected routes.
"""

import pytest

from printpos import create_app
from printpos.extensions import LEDGER_STORE_KEY
from printpos.services import products_service
from printpos.store import LedgerStore


TEST_PASSCODE = "4321"


@pytest.fixture(scope='function')
def store():
    """Empty in-memory ledger store (no seed data), closed after the test."""
    ledger = LedgerStore("sqlite://", retry_backoff=0.0).open(seed=False)
    yield ledger
    ledger.close()


@pytest.fixture(scope='function')
def seeded_store():
    """In-memory ledger store with the starter catalog and default profile."""
    ledger = LedgerStore("sqlite://", retry_backoff=0.0).open(seed=True)
    yield ledger
    ledger.close()


def make_product(store, name="Mug Printing", *, price_cents=1000, cost_cents=350, stock=35,
                 min_stock_level=10, category="Merchandise"):
    return products_service.create_product(store, patch={
        "name": name,
        "category": category,
        "price_cents": price_cents,
        "cost_cents": cost_cents,
        "stock": stock,
        "min_stock_level": min_stock_level,
    })


@pytest.fixture(scope='function')
def product(store):
    """A catalog product: price 10.00, cost 3.50, stock 35."""
    return make_product(store)


@pytest.fixture(scope='function')
def app():
    """Create application for testing with a fresh in-memory database."""
    app = create_app({
        'TESTING': True,
        'DATABASE_URL': 'sqlite://',
        'SEED_DEFAULTS': True,
        'ACCESS_PASSCODE': TEST_PASSCODE,
        'ACCESS_PASSCODE_HASH': None,
        'GEMINI_API_KEY': None,
    })
    yield app
    app.extensions[LEDGER_STORE_KEY].close()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


def get_auth_token(client, passcode: str = TEST_PASSCODE) -> str | None:
    """Helper to get a session token for the shared passcode."""
    response = client.post('/api/auth/login', json={'passcode': passcode})
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers(client):
    token = get_auth_token(client)
    assert token, "login with the test passcode failed"
    return auth_headers(token)
