"""
Ledger store tests.

Verifies:
- Explicit open/close lifecycle and first-run seeding
- All-or-nothing multi-record commits
- Immutability of stored purchases and sale identity
- Transient engine errors are retried, then surfaced as LedgerStoreError
"""

import pytest
from sqlalchemy.exc import OperationalError

from printpos.models import Product, Purchase, PurchaseLine, PROFILE_ID, STATUS_PAID, STATUS_PENDING
from printpos.seed import SEED_CATALOG, seed_defaults
from printpos.services import credit_service, sales_service
from printpos.services.identifier_service import next_record_id
from printpos.store import (
    DuplicateRecordError,
    ImmutableRecordError,
    LedgerStore,
    LedgerStoreError,
    OP_INSERT,
    PRODUCTS,
    PROFILE,
    PURCHASES,
    SALES,
    StoreClosedError,
    Write,
)
from printpos.time_utils import utcnow

from conftest import make_product


def _product(name="Sticker Sheet", stock=10, record_id=None):
    return Product(
        id=record_id or next_record_id(),
        name=name,
        category="Printing",
        price_cents=200,
        cost_cents=80,
        stock=stock,
        min_stock_level=2,
    )


# =============================================================================
# LIFECYCLE
# =============================================================================


class TestLifecycle:

    def test_unopened_store_rejects_operations(self):
        store = LedgerStore("sqlite://")
        assert not store.is_open
        with pytest.raises(StoreClosedError):
            store.list_all(PRODUCTS)

    def test_closed_store_rejects_operations(self):
        store = LedgerStore("sqlite://").open(seed=False)
        store.close()
        assert not store.is_open
        with pytest.raises(StoreClosedError):
            store.get_by_id(SALES, "0000000000000001")

    def test_close_is_idempotent(self, store):
        store.close()
        store.close()
        assert not store.is_open

    def test_context_manager_opens_and_closes(self):
        with LedgerStore("sqlite://") as store:
            assert store.is_open
            assert len(store.list_all(PRODUCTS)) == len(SEED_CATALOG)
        assert not store.is_open

    def test_unknown_collection_rejected(self, store):
        with pytest.raises(LedgerStoreError, match="Unknown collection"):
            store.list_all("customers")


class TestSeeding:

    def test_seed_creates_catalog_and_profile(self, seeded_store):
        products = seeded_store.list_all(PRODUCTS)
        assert sorted(p.name for p in products) == sorted(row[0] for row in SEED_CATALOG)
        profile = seeded_store.get_by_id(PROFILE, PROFILE_ID)
        assert profile.name == "AR PRINTERS"

    def test_seed_skipped_for_non_empty_catalog(self, store):
        make_product(store, "Only Product")
        created = store.execute(seed_defaults, PRODUCTS, PROFILE)
        assert created == {"products": 0, "profile": True}
        names = [p.name for p in store.list_all(PRODUCTS)]
        assert names == ["Only Product"]
        # Profile is still created when missing
        assert store.get_by_id(PROFILE, PROFILE_ID) is not None

    def test_unseeded_store_is_empty(self, store):
        assert store.list_all(PRODUCTS) == []
        assert store.get_by_id(PROFILE, PROFILE_ID) is None

    def test_reset_clears_ledger(self, seeded_store):
        product = seeded_store.list_all(PRODUCTS)[0]
        sales_service.checkout(seeded_store, [sales_service.cart_line_for_product(product, 1)])
        seeded_store.reset(seed=False)
        assert seeded_store.list_all(SALES) == []
        assert seeded_store.list_all(PRODUCTS) == []


# =============================================================================
# READS AND WRITES
# =============================================================================


class TestReadsAndWrites:

    def test_get_by_id_missing_returns_none(self, store):
        assert store.get_by_id(PRODUCTS, "missing") is None

    def test_put_inserts_then_replaces(self, store):
        product = store.put(PRODUCTS, _product(stock=10))
        product.stock = 4
        product.name = "Sticker Sheet (A5)"
        store.put(PRODUCTS, product)

        stored = store.get_by_id(PRODUCTS, product.id)
        assert stored.stock == 4
        assert stored.name == "Sticker Sheet (A5)"
        assert len(store.list_all(PRODUCTS)) == 1

    def test_listing_is_idempotent(self, store, product):
        for _ in range(3):
            sales_service.checkout(store, [sales_service.cart_line_for_product(product, 1)])

        first = [(s.id, s.total_cents) for s in store.list_all(SALES)]
        second = [(s.id, s.total_cents) for s in store.list_all(SALES)]
        assert first == second
        assert len(first) == 3

    def test_returned_record_matches_stored_record(self, store, product):
        sale = sales_service.checkout(
            store,
            [sales_service.cart_line_for_product(product, 2)],
            customer_name="Nimal",
            customer_contact="0771234567",
        )
        stored = store.get_by_id(SALES, sale.id)
        assert stored.to_dict() == sale.to_dict()

    def test_transaction_rolls_back_on_error(self, store, product):
        with pytest.raises(RuntimeError):
            with store.transaction(PRODUCTS) as uow:
                row = uow.get(PRODUCTS, product.id)
                row.stock = 0
                uow.session.flush()
                raise RuntimeError("abort")
        assert store.get_by_id(PRODUCTS, product.id).stock == product.stock

    def test_transaction_rejects_unnamed_collection(self, store):
        with pytest.raises(LedgerStoreError, match="not named"):
            with store.transaction(PRODUCTS) as uow:
                uow.list_all(SALES)


class TestAtomicCommit:

    def test_commit_applies_every_write(self, store):
        a, b = _product("A"), _product("B")
        store.commit([Write(PRODUCTS, a, OP_INSERT), Write(PRODUCTS, b, OP_INSERT)])
        assert sorted(p.name for p in store.list_all(PRODUCTS)) == ["A", "B"]

    def test_commit_with_duplicate_applies_nothing(self, store):
        shared_id = next_record_id()
        first = _product("First", record_id=shared_id)
        duplicate = _product("Duplicate", record_id=shared_id)

        with pytest.raises(DuplicateRecordError):
            store.commit([
                Write(PRODUCTS, first, OP_INSERT),
                Write(PRODUCTS, duplicate, OP_INSERT),
            ])
        assert store.list_all(PRODUCTS) == []

    def test_empty_commit_is_noop(self, store):
        assert store.commit([]) == []


# =============================================================================
# IMMUTABILITY
# =============================================================================


class TestImmutability:

    def test_stored_purchase_cannot_be_replaced(self, store, product):
        purchase = Purchase(id=next_record_id(), created_at=utcnow(), supplier="Lanka Paper", total_cents=500)
        purchase.lines.append(PurchaseLine(
            line_number=1,
            product_id=product.id,
            product_name=product.name,
            quantity=5,
            unit_cost_cents=100,
            line_total_cents=500,
        ))
        store.put(PURCHASES, purchase)

        purchase.supplier = "Someone Else"
        with pytest.raises(ImmutableRecordError):
            store.put(PURCHASES, purchase)
        assert store.get_by_id(PURCHASES, purchase.id).supplier == "Lanka Paper"

    def test_sale_totals_cannot_change(self, store, product):
        sale = sales_service.checkout(store, [sales_service.cart_line_for_product(product, 1)])
        sale.total_cents = 1

        with pytest.raises(ImmutableRecordError):
            store.put(SALES, sale)
        assert store.get_by_id(SALES, sale.id).total_cents == product.price_cents

    def test_sale_payment_fields_may_change(self, store, product):
        sale = sales_service.checkout(
            store,
            [sales_service.cart_line_for_product(product, 1)],
            customer_name="Kamal",
            customer_contact="0711111111",
            payment_method="Credit",
        )
        sale.payment_status = STATUS_PAID
        sale.payment_method = "Cash"
        sale.settled_at = utcnow()
        store.put(SALES, sale)

        stored = store.get_by_id(SALES, sale.id)
        assert stored.payment_status == STATUS_PAID
        assert stored.payment_method == "Cash"
        assert stored.original_payment_method == "Credit"

    def _credit_sale(self, store, product):
        return sales_service.checkout(
            store,
            [sales_service.cart_line_for_product(product, 1)],
            customer_name="Kamal",
            customer_contact="0711111111",
            payment_method="Credit",
        )

    def test_settled_sale_cannot_return_to_pending(self, store, product):
        sale = self._credit_sale(store, product)
        credit_service.settle(store, sale.id)

        settled = store.get_by_id(SALES, sale.id)
        settled.payment_status = STATUS_PENDING
        settled.payment_method = "Credit"
        with pytest.raises(ImmutableRecordError):
            store.put(SALES, settled)
        assert store.get_by_id(SALES, sale.id).payment_status == STATUS_PAID

    def test_cash_sale_cannot_become_pending(self, store, product):
        sale = sales_service.checkout(store, [sales_service.cart_line_for_product(product, 1)])
        sale.payment_status = STATUS_PENDING

        with pytest.raises(ImmutableRecordError):
            store.put(SALES, sale)
        assert store.get_by_id(SALES, sale.id).payment_status == STATUS_PAID

    def test_unknown_payment_method_rejected(self, store, product):
        sale = sales_service.checkout(store, [sales_service.cart_line_for_product(product, 1)])
        sale.payment_method = "Bogus"

        with pytest.raises(ImmutableRecordError):
            store.put(SALES, sale)
        assert store.get_by_id(SALES, sale.id).payment_method == "Cash"

    def test_pending_credit_sale_can_be_put_unchanged(self, store, product):
        sale = self._credit_sale(store, product)
        store.put(SALES, sale)

        stored = store.get_by_id(SALES, sale.id)
        assert stored.payment_status == STATUS_PENDING
        assert stored.payment_method == "Credit"


# =============================================================================
# TRANSIENT ERRORS
# =============================================================================


class TestRetry:

    def test_transient_error_retried_then_wrapped(self, store):
        calls = []

        def flaky(uow):
            calls.append(1)
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))

        with pytest.raises(LedgerStoreError, match="commit failed"):
            store.execute(flaky, PRODUCTS)
        assert len(calls) == store.retry_attempts

    def test_transient_error_recovers(self, store):
        calls = []

        def flaky_once(uow):
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("UPDATE products", {}, Exception("database is locked"))
            return uow.insert(PRODUCTS, _product("Recovered"))

        created = store.execute(flaky_once, PRODUCTS)
        assert created.name == "Recovered"
        assert len(calls) == 2
        assert [p.name for p in store.list_all(PRODUCTS)] == ["Recovered"]

    def test_domain_errors_are_not_retried(self, store):
        calls = []

        def failing(uow):
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            store.execute(failing, PRODUCTS)
        assert len(calls) == 1
