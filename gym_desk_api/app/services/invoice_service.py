"""
Business logic for invoices.

Invoice ids are allocated sequentially (``#MP0001``...) inside the
creating transaction.  Line totals, subtotal, tax and total are derived
from the items on every create and on every update that touches them;
``member_name`` is a snapshot taken at creation time.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict

from ..core.rules import apply_paid_date, compute_invoice_totals, quantize_money, today
from ..core.sequence import InvoiceNumberAllocator
from ..schemas.invoice import InvoiceCreate, InvoiceRead, InvoiceStatusUpdate, InvoiceUpdate
from .base import CollectionService

logger = logging.getLogger(__name__)

INVOICE_STATUSES = ("pending", "paid", "overdue")


class InvoiceService(CollectionService):
    table = "invoices"
    label = "Invoice"
    activity_type = "invoice"

    create_schema = InvoiceCreate
    update_schema = InvoiceUpdate
    read_schema = InvoiceRead

    filter_fields = ("status", "member_id")
    search_columns = ("id", "member_name", "description")
    sort_fields = ("created_at", "due_date", "id", "member_name", "status")
    default_sort = "created_at"

    allocator = InvoiceNumberAllocator()

    def new_id(self, tx) -> str:
        return self.allocator.next(tx)

    def display_name(self, record):
        return f"{record['id']} ({record['member_name']})"

    def activity_refs(self, record):
        return {"member_id": record["member_id"], "invoice_id": record["id"]}

    def apply_totals(self, record: Dict[str, Any]) -> Dict[str, Any]:
        items, subtotal, tax, total = compute_invoice_totals(record["items"], self.config.tax_rate)
        record.update(items=items, subtotal=subtotal, tax=tax, total=total, amount=total)
        return record

    def prepare_create(self, tx, record):
        member = self.require(tx, "members", record["member_id"], "Member")
        record["member_name"] = member["name"]
        if not record.get("due_date"):
            record["due_date"] = today() + timedelta(days=self.config.invoice_due_days)
        self.apply_totals(record)
        return apply_paid_date(record)

    def prepare_update(self, tx, current, record, changes):
        if "items" in changes:
            self.apply_totals(record)
        return apply_paid_date(record)

    async def update_status(self, invoice_id: str, payload: Any) -> Dict[str, Any]:
        """Change only the status; ``paid`` stamps ``paid_date`` when absent."""
        change = self.parse(InvoiceStatusUpdate, payload)
        return await self.update(invoice_id, {"status": change.status})

    async def summary(self) -> Dict[str, Any]:
        """Counts and amounts of invoices grouped by status."""
        counts = {status: 0 for status in INVOICE_STATUSES}
        amounts = {status: Decimal("0") for status in INVOICE_STATUSES}
        invoices = self.repository.find(self.table)
        for invoice in invoices:
            counts[invoice["status"]] += 1
            amounts[invoice["status"]] += Decimal(invoice["total"])
        total_amount = sum(amounts.values(), Decimal("0"))
        return {
            "total_invoices": len(invoices),
            "paid_invoices": counts["paid"],
            "pending_invoices": counts["pending"],
            "overdue_invoices": counts["overdue"],
            "total_amount": str(quantize_money(total_amount)),
            "paid_amount": str(quantize_money(amounts["paid"])),
            "pending_amount": str(quantize_money(amounts["pending"])),
            "overdue_amount": str(quantize_money(amounts["overdue"])),
        }
