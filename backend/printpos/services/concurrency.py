# Overview: Concurrency helpers for ledger writes: row locking, transient-error retry, per-collection locks.

from __future__ import annotations

import threading
import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, on_retry=None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). on_retry is called after each failed
    attempt so the caller can discard its session state.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except TRANSIENT_ERRORS as exc:
            if on_retry is not None:
                on_retry(exc)
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


class CollectionLocks:
    """
    One re-entrant lock per collection name.

    Locks are always taken in sorted name order so two transactions naming
    overlapping collections cannot deadlock each other.
    """

    def __init__(self, names):
        self._locks = {name: threading.RLock() for name in names}

    @contextmanager
    def hold(self, *names):
        ordered = sorted(set(names))
        unknown = [n for n in ordered if n not in self._locks]
        if unknown:
            raise KeyError(f"Unknown collection(s): {', '.join(unknown)}")
        acquired = []
        try:
            for name in ordered:
                self._locks[name].acquire()
                acquired.append(name)
            yield
        finally:
            for name in reversed(acquired):
                self._locks[name].release()
