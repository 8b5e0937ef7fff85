# Overview: Service-layer operations for record identifiers; time-ordered ids for ledger records.

"""
Identifier Service - time-ordered record ids

WHY: Sales, purchases and products are keyed by opaque string ids that sort
in creation order. Ids are derived from the wall clock in millisecond
resolution and are forced to be strictly increasing within the process: a
record created in an already used millisecond takes the next free one.

FORMAT: the epoch-millisecond timestamp as 16 zero-padded decimal digits. The
invoice number printed on a document is the last 6 characters of the sale id,
so it repeats only every 1000 seconds.
"""

from __future__ import annotations

import threading
import time

ID_WIDTH = 16
INVOICE_NUMBER_LENGTH = 6

_lock = threading.Lock()
_last_issued = 0


def next_record_id(now: float | None = None) -> str:
    """Allocate the next record id; strictly greater than any id issued before."""
    global _last_issued
    timestamp = time.time() if now is None else now
    candidate = int(timestamp * 1000)
    with _lock:
        if candidate <= _last_issued:
            candidate = _last_issued + 1
        _last_issued = candidate
    return f"{candidate:0{ID_WIDTH}d}"


def invoice_number(record_id: str) -> str:
    return record_id[-INVOICE_NUMBER_LENGTH:]
