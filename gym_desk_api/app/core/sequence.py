"""
Sequential invoice identifiers.

Invoice ids look like ``#MP0001``: a fixed prefix followed by a
zero-padded sequence of at least four digits.  Both the Record Store
and the replica resume numbering from the highest id already present,
so identifiers keep increasing across restarts.
"""

import re
from typing import Callable, Iterable, Optional

INVOICE_PREFIX = "#MP"
_INVOICE_ID = re.compile(r"^#MP(\d{4,})$")


def format_invoice_id(sequence: int) -> str:
    return f"{INVOICE_PREFIX}{sequence:04d}"


def parse_invoice_id(value: object) -> Optional[int]:
    """Return the numeric suffix of an ``#MP####`` id, or ``None``."""
    if not isinstance(value, str):
        return None
    match = _INVOICE_ID.match(value)
    return int(match.group(1)) if match else None


def highest_sequence(ids: Iterable[object]) -> int:
    """Largest sequence number among ``ids`` (``0`` when none match)."""
    highest = 0
    for value in ids:
        number = parse_invoice_id(value)
        if number is not None and number > highest:
            highest = number
    return highest


class SequentialIdAllocator:
    """In-process invoice id counter.

    ``existing_ids`` is consulted on the first call to :meth:`next` so
    that a restarted process resumes after the highest id it can see.
    The counter is a plain integer and is not safe for concurrent
    callers; the Record Store serializes allocation through a database
    transaction instead (see ``InvoiceNumberAllocator``).
    """

    def __init__(self, existing_ids: Callable[[], Iterable[object]], last_sequence: int = 0) -> None:
        self._existing_ids = existing_ids
        self._last = last_sequence
        self._seeded = False

    @property
    def last_sequence(self) -> int:
        return self._last

    def next(self) -> str:
        if not self._seeded:
            self._last = max(self._last, highest_sequence(self._existing_ids()))
            self._seeded = True
        self._last += 1
        return format_invoice_id(self._last)


class InvoiceNumberAllocator:
    """Invoice id allocator backed by the ``sequences`` table.

    :meth:`next` must be called inside ``repository.transaction(immediate=True)``
    so that concurrent writers are serialized by SQLite.  Each id is one
    past the larger of the stored counter and the highest ``#MP`` id
    present, so ids pushed by a replica with a client-supplied id are
    never undercut, and ids of deleted invoices are never reused.
    """

    sequence_name = "invoice"
    table = "invoices"

    def next(self, tx) -> str:
        highest = highest_sequence(row["id"] for row in tx.find(self.table))
        return format_invoice_id(tx.next_sequence(self.sequence_name, lambda: highest, minimum=highest))
