"""
Pydantic models for invoices.

Line totals, ``subtotal``, ``tax`` and ``total`` are always derived on
the server.  Any totals a client sends are ignored: they are not part
of the create/update schemas and the item ``total`` is recomputed.
"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .common import Money

InvoiceStatus = Literal["pending", "paid", "overdue"]


class InvoiceItem(BaseModel):
    description: str = Field(..., min_length=1, examples=["Monthly membership"])
    quantity: int = Field(1, ge=1)
    unit_price: Money = Field(..., examples=["1999.00"])
    total: Optional[Money] = None


class InvoiceBase(BaseModel):
    member_id: str
    description: Optional[str] = None
    items: List[InvoiceItem] = Field(..., min_length=1)
    status: InvoiceStatus = "pending"
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    notes: Optional[str] = None
    membership_start_date: Optional[date] = None
    membership_end_date: Optional[date] = None


class InvoiceCreate(InvoiceBase):
    """Schema for creating an invoice; ``id`` is allocated when omitted."""

    id: Optional[str] = None


class InvoiceUpdate(BaseModel):
    description: Optional[str] = None
    items: Optional[List[InvoiceItem]] = Field(None, min_length=1)
    status: Optional[InvoiceStatus] = None
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    notes: Optional[str] = None
    membership_start_date: Optional[date] = None
    membership_end_date: Optional[date] = None


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceRead(InvoiceBase):
    """Schema for reading an invoice."""

    id: str
    member_name: str
    subtotal: Money
    tax: Money
    total: Money
    amount: Money
    due_date: date
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }
