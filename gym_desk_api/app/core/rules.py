"""
Derived-field rules shared by the Record Store and the Sync Client.

Everything here is a pure function over plain values or dictionaries
so that both the SQLite-backed services and the local replica compute
membership expiry dates, invoice totals, follow-up completion stamps
and product margins the same way.
"""

import calendar
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

CENT = Decimal("0.01")

# Calendar months added by each membership type.
MEMBERSHIP_MONTHS = {
    "monthly": 1,
    "quarterly": 3,
    "annual": 12,
}


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def today() -> date:
    return utc_now().date()


def timestamp(value: Optional[datetime] = None) -> str:
    """ISO-8601 UTC string in the same shape pydantic emits (``...Z``)."""
    value = value or utc_now()
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def quantize_money(value: Any) -> Decimal:
    """Round a monetary value to two fractional digits (half up)."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month.

    ``add_months(date(2024, 1, 31), 1)`` is ``2024-02-29`` while
    ``add_months(date(2023, 1, 31), 1)`` is ``2023-02-28``.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def compute_expiry_date(start: date, membership_type: str) -> date:
    """Return the expiry date of a membership starting on ``start``."""
    try:
        months = MEMBERSHIP_MONTHS[membership_type]
    except KeyError:
        raise ValueError(f"Unknown membership type: {membership_type}") from None
    return add_months(start, months)


def parse_date(value: Any) -> Optional[date]:
    """Accept a ``date``, ``datetime`` or ISO string and return a ``date``."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    if len(text) > 10:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def is_lapsed(member: Mapping[str, Any], on: Optional[date] = None) -> bool:
    """True when an active membership's expiry date is strictly in the past."""
    if member.get("status") != "active":
        return False
    expiry = parse_date(member.get("expiry_date"))
    if expiry is None:
        return False
    return expiry < (on or today())


def compute_invoice_totals(
    items: Iterable[Mapping[str, Any]], tax_rate: Decimal
) -> Tuple[List[Dict[str, Any]], Decimal, Decimal, Decimal]:
    """Recompute line totals, subtotal, tax and total from invoice items.

    Any ``total`` supplied on an item is discarded.  Returns
    ``(items, subtotal, tax, total)`` where each item carries its
    computed ``total``.
    """
    computed: List[Dict[str, Any]] = []
    subtotal = Decimal("0")
    for item in items:
        quantity = int(item.get("quantity", 1))
        unit_price = quantize_money(item["unit_price"])
        line_total = quantize_money(unit_price * quantity)
        computed.append(
            {
                "description": item["description"],
                "quantity": quantity,
                "unit_price": unit_price,
                "total": line_total,
            }
        )
        subtotal += line_total
    subtotal = quantize_money(subtotal)
    tax = quantize_money(subtotal * Decimal(str(tax_rate)))
    return computed, subtotal, tax, quantize_money(subtotal + tax)


def apply_completion(followup: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Keep ``completed_at`` set if and only if the status is ``completed``."""
    if followup.get("status") == "completed":
        if not followup.get("completed_at"):
            followup["completed_at"] = now or utc_now()
    else:
        followup["completed_at"] = None
    return followup


def apply_paid_date(invoice: Dict[str, Any], on: Optional[date] = None) -> Dict[str, Any]:
    """Stamp ``paid_date`` when an invoice becomes paid."""
    if invoice.get("status") == "paid" and not invoice.get("paid_date"):
        invoice["paid_date"] = on or today()
    return invoice


def product_margins(product: Dict[str, Any]) -> Dict[str, Any]:
    """Recompute ``margin`` and ``profit`` of a supplement product."""
    margin = quantize_money(product["selling_price"]) - quantize_money(product["base_price"])
    product["margin"] = quantize_money(margin)
    product["profit"] = quantize_money(margin * int(product.get("units_sold") or 0))
    return product
