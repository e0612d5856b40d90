"""Pydantic models for walk-in visitors."""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..core.rules import today
from .common import Email, Name, Phone

VisitorStatus = Literal["checked_in", "checked_out", "converted"]


class VisitorBase(BaseModel):
    name: Name = Field(..., examples=["Priya Nair"])
    phone: Phone
    email: Optional[Email] = None
    purpose: Optional[str] = Field(None, examples=["Trial session"])
    status: VisitorStatus = "checked_in"
    visit_date: date = Field(default_factory=today)
    host_member: Optional[str] = None
    notes: Optional[str] = None


class VisitorCreate(VisitorBase):
    id: Optional[str] = None


class VisitorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[Phone] = None
    email: Optional[Email] = None
    purpose: Optional[str] = None
    status: Optional[VisitorStatus] = None
    visit_date: Optional[date] = None
    host_member: Optional[str] = None
    notes: Optional[str] = None


class VisitorRead(VisitorBase):
    id: str
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }
