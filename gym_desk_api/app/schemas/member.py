"""
Pydantic models for gym members.

``MemberCreate`` accepts an optional ``expiry_date``; when omitted the
service derives it from ``start_date`` and ``membership_type``.  The
visit counters are read-only and only change through check-ins.
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..core.rules import today
from .common import Email, Name, Phone

MembershipType = Literal["monthly", "quarterly", "annual"]
MemberStatus = Literal["active", "inactive", "expired", "pending", "suspended"]


class MemberBase(BaseModel):
    name: Name = Field(..., examples=["Rahul Sharma"])
    email: Email = Field(..., examples=["rahul@example.com"])
    phone: Phone = Field(..., examples=["+91 98765 43210"])
    membership_type: MembershipType = Field(..., examples=["monthly"])
    start_date: date = Field(default_factory=today)
    expiry_date: Optional[date] = None
    status: MemberStatus = "active"
    assigned_trainer: Optional[str] = Field(None, description="ID of the trainer, if any")
    emergency_contact: Optional[str] = None
    address: Optional[str] = None
    medical_conditions: Optional[str] = None
    goals: Optional[str] = None
    notes: Optional[str] = None


class MemberCreate(MemberBase):
    """Schema for registering a member.

    ``id`` may be supplied by a replica pushing a record it created
    offline; the server assigns one otherwise.
    """

    id: Optional[str] = None


class MemberUpdate(BaseModel):
    """Partial update; only provided fields are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[Email] = None
    phone: Optional[Phone] = None
    membership_type: Optional[MembershipType] = None
    start_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: Optional[MemberStatus] = None
    assigned_trainer: Optional[str] = None
    emergency_contact: Optional[str] = None
    address: Optional[str] = None
    medical_conditions: Optional[str] = None
    goals: Optional[str] = None
    notes: Optional[str] = None


class MemberRead(MemberBase):
    """Schema for reading a member."""

    id: str
    expiry_date: date
    total_visits: int = Field(0, ge=0)
    last_visit: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }


class MemberRenew(BaseModel):
    membership_type: MembershipType
    start_date: date = Field(default_factory=today)
