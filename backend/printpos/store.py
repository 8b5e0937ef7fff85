# Overview: Ledger Store; persistent product/sale/purchase/profile collections with atomic multi-collection commits.

"""
Ledger Store

WHY: Sales and purchases are only meaningful together with the stock change
they imply. The store is the single writer of every collection and applies a
record insert and its inventory effect in one commit, or not at all.

LIFECYCLE:
The store is an explicitly constructed object. open() creates the engine,
the schema and the first-run defaults; close() disposes the engine. The
Flask application owns one instance (app.extensions["ledger_store"]); tests
build isolated in-memory stores.

CONCURRENCY:
Each collection has an in-process re-entrant lock. A transaction holds the
locks of every collection it names for its whole duration, so at most one
mutation per collection is in flight. Transient engine errors are retried
with exponential backoff by execute()/commit().
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .extensions import db
from .models import (
    AccessSession,
    Product,
    Purchase,
    Sale,
    ShopProfile,
    PAYMENT_CREDIT,
    PAYMENT_METHODS,
    STATUS_PAID,
    STATUS_PENDING,
)
from .services.concurrency import CollectionLocks, TRANSIENT_ERRORS, lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

PRODUCTS = "products"
SALES = "sales"
PURCHASES = "purchases"
PROFILE = "profile"
ACCESS_SESSIONS = "access_sessions"

COLLECTIONS = {
    PRODUCTS: Product,
    SALES: Sale,
    PURCHASES: Purchase,
    PROFILE: ShopProfile,
    ACCESS_SESSIONS: AccessSession,
}

# Default listing order per collection
_ORDERING = {
    PRODUCTS: (Product.name, Product.id),
    SALES: (Sale.id,),
    PURCHASES: (Purchase.id,),
    PROFILE: (ShopProfile.id,),
    ACCESS_SESSIONS: (AccessSession.id,),
}

OP_INSERT = "insert"
OP_UPSERT = "upsert"

# Only these Sale fields may change after the sale is stored
SALE_MUTABLE_FIELDS = ("payment_method", "payment_status", "settled_at")


class LedgerStoreError(Exception):
    """Raised when a store operation fails; nothing from the commit was applied."""
    pass


class StoreClosedError(LedgerStoreError):
    """Raised when the store is used before open() or after close()."""
    pass


class DuplicateRecordError(LedgerStoreError):
    """Raised when an insert targets an id that already exists."""
    pass


class ImmutableRecordError(LedgerStoreError):
    """Raised when a write would change an immutable ledger record."""
    pass


@dataclass(frozen=True)
class Write:
    """One element of an atomic commit."""
    collection: str
    record: object
    op: str = OP_UPSERT


def _check_payment_transition(existing: Sale, record: Sale) -> None:
    """
    Payment state may only move forward: Pending only for credit-originated
    sales, and never back to Pending once Paid.
    """
    if record.payment_method not in PAYMENT_METHODS:
        raise ImmutableRecordError(f"Sale {record.id}: invalid payment method {record.payment_method!r}")
    if record.payment_status not in (STATUS_PAID, STATUS_PENDING):
        raise ImmutableRecordError(f"Sale {record.id}: invalid payment status {record.payment_status!r}")
    if record.payment_status == STATUS_PENDING:
        if existing.original_payment_method != PAYMENT_CREDIT:
            raise ImmutableRecordError(f"Sale {record.id}: only credit sales can be Pending")
        if existing.payment_status == STATUS_PAID:
            raise ImmutableRecordError(f"Sale {record.id}: a paid sale cannot return to Pending")


def _model_for(collection: str):
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise LedgerStoreError(f"Unknown collection: {collection}") from None


class UnitOfWork:
    """
    Operations available inside LedgerStore.transaction().

    Nothing is visible to other sessions until the transaction exits cleanly.
    """

    def __init__(self, session, collections):
        self.session = session
        self.collections = frozenset(collections)

    def _check(self, collection: str):
        model = _model_for(collection)
        if collection not in self.collections:
            raise LedgerStoreError(
                f"Collection '{collection}' was not named when the transaction was opened"
            )
        return model

    def get(self, collection: str, record_id, *, lock: bool = False):
        model = self._check(collection)
        if lock:
            query = self.session.query(model).filter(model.id == record_id)
            return lock_for_update(query).one_or_none()
        return self.session.get(model, record_id)

    def list_all(self, collection: str) -> list:
        model = self._check(collection)
        stmt = select(model).order_by(*_ORDERING[collection])
        return list(self.session.scalars(stmt))

    def insert(self, collection: str, record):
        model = self._check(collection)
        if not isinstance(record, model):
            raise LedgerStoreError(f"Expected {model.__name__} for collection '{collection}'")
        if record.id is not None and self.session.get(model, record.id) is not None:
            raise DuplicateRecordError(f"{model.__name__} {record.id} already exists")
        self.session.add(record)
        self.session.flush()
        return record

    def upsert(self, collection: str, record):
        model = self._check(collection)
        if not isinstance(record, model):
            raise LedgerStoreError(f"Expected {model.__name__} for collection '{collection}'")

        existing = self.session.get(model, record.id) if record.id is not None else None
        if existing is None:
            return self.insert(collection, record)
        if existing is record:
            self.session.flush()
            return existing

        if collection == PURCHASES:
            raise ImmutableRecordError(f"Purchase {record.id} is immutable")
        if collection == SALES:
            if existing.immutable_snapshot() != record.immutable_snapshot():
                raise ImmutableRecordError(
                    f"Sale {record.id}: only payment method, status and settlement time may change"
                )
            _check_payment_transition(existing, record)
            for field in SALE_MUTABLE_FIELDS:
                setattr(existing, field, getattr(record, field))
            self.session.flush()
            return existing

        merged = self.session.merge(record)
        self.session.flush()
        return merged

    def apply(self, writes) -> list:
        results = []
        for write in writes:
            if write.op == OP_INSERT:
                results.append(self.insert(write.collection, write.record))
            elif write.op == OP_UPSERT:
                results.append(self.upsert(write.collection, write.record))
            else:
                raise LedgerStoreError(f"Unknown write op: {write.op}")
        return results


class LedgerStore:
    """
    Persistent product, sale, purchase, profile and session collections.

    Construct with a SQLAlchemy URI, then open() before use and close() when
    done (or use it as a context manager). Every mutation runs through a
    UnitOfWork that commits all of its writes or none of them.
    """

    def __init__(self, uri: str, *, retry_attempts: int = 3, retry_backoff: float = 0.1):
        self.uri = uri
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff
        self._engine = None
        self._session_factory = None
        self._locks = CollectionLocks(COLLECTIONS)

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<LedgerStore uri={self.uri!r} {state}>"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self, *, seed: bool = True) -> "LedgerStore":
        if self.is_open:
            return self

        engine_kwargs = {}
        if self.uri.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self.uri in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool

        try:
            self._engine = create_engine(self.uri, **engine_kwargs)
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
            db.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            self._dispose()
            raise LedgerStoreError(f"Could not open ledger store at {self.uri}") from exc

        if seed:
            from .seed import seed_defaults
            self.execute(seed_defaults, PRODUCTS, PROFILE)

        logger.info("Ledger store opened: %s", self.uri)
        return self

    def close(self) -> None:
        if not self.is_open:
            return
        self._dispose()
        logger.info("Ledger store closed: %s", self.uri)

    def _dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    def __enter__(self) -> "LedgerStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_open(self):
        if not self.is_open:
            raise StoreClosedError("Ledger store is not open")

    def reset(self, *, seed: bool = True) -> None:
        """Drop and recreate every table. Destroys all ledger data."""
        self._require_open()
        with self._locks.hold(*COLLECTIONS):
            try:
                db.metadata.drop_all(self._engine)
                db.metadata.create_all(self._engine)
            except SQLAlchemyError as exc:
                raise LedgerStoreError("Could not reset ledger store") from exc
        if seed:
            from .seed import seed_defaults
            self.execute(seed_defaults, PRODUCTS, PROFILE)
        logger.warning("Ledger store reset: %s", self.uri)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, collections):
        self._require_open()
        for name in collections:
            _model_for(name)
        with self._locks.hold(*collections):
            session = self._session_factory()
            try:
                yield UnitOfWork(session, collections)
                session.commit()
            except BaseException:
                session.rollback()
                raise
            finally:
                session.close()

    @contextmanager
    def transaction(self, *collections):
        """
        Unit of work over the named collections.

        Commits on clean exit; rolls back on any exception. Engine errors are
        surfaced as LedgerStoreError. No retry: use execute() for that.
        """
        try:
            with self._transaction(collections) as uow:
                yield uow
        except SQLAlchemyError as exc:
            logger.error("Ledger transaction failed on %s: %s", ",".join(collections), exc)
            raise LedgerStoreError("Ledger commit failed") from exc

    def execute(self, func, *collections):
        """
        Run func(uow) inside one transaction and return its result.

        Transient engine errors roll back and re-run func from scratch.
        Any exception raised by func aborts the transaction unchanged.
        """
        def _attempt():
            with self._transaction(collections) as uow:
                return func(uow)

        def _on_retry(exc):
            logger.warning("Transient ledger error, retrying: %s", exc)

        try:
            return run_with_retry(
                _attempt,
                attempts=self.retry_attempts,
                backoff_base=self.retry_backoff,
                on_retry=_on_retry,
            )
        except SQLAlchemyError as exc:
            logger.error("Ledger transaction failed on %s: %s", ",".join(collections), exc)
            raise LedgerStoreError("Ledger commit failed") from exc

    # ------------------------------------------------------------------
    # Collection operations
    # ------------------------------------------------------------------

    def list_all(self, collection: str) -> list:
        return self.execute(lambda uow: uow.list_all(collection), collection)

    def get_by_id(self, collection: str, record_id):
        return self.execute(lambda uow: uow.get(collection, record_id), collection)

    def put(self, collection: str, record):
        """Insert-or-replace a single record by id."""
        return self.execute(lambda uow: uow.upsert(collection, record), collection)

    def commit(self, writes) -> list:
        """Apply every write or none of them."""
        writes = list(writes)
        if not writes:
            return []
        collections = {w.collection for w in writes}
        return self.execute(lambda uow: uow.apply(writes), *collections)


__all__ = [
    "LedgerStore",
    "UnitOfWork",
    "Write",
    "LedgerStoreError",
    "StoreClosedError",
    "DuplicateRecordError",
    "ImmutableRecordError",
    "PRODUCTS",
    "SALES",
    "PURCHASES",
    "PROFILE",
    "ACCESS_SESSIONS",
    "COLLECTIONS",
    "OP_INSERT",
    "OP_UPSERT",
    "TRANSIENT_ERRORS",
]
