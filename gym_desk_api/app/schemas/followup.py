"""
Pydantic models for follow-ups.

A follow-up refers to exactly one member or one visitor.
``completed_at`` is maintained by the service and is set only while
the status is ``completed``.
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, model_validator

FollowUpType = Literal[
    "payment_reminder",
    "membership_renewal",
    "visit_reminder",
    "general",
    "membership_expiry",
    "inquiry",
    "complaint",
    "trial_request",
    "price_inquiry",
    "facility_tour",
    "callback_request",
]
FollowUpCategory = Literal["member", "visitor", "facility", "staff", "equipment", "general", "marketing"]
FollowUpPriority = Literal["low", "medium", "high"]
FollowUpStatus = Literal["pending", "in_progress", "completed", "cancelled", "snoozed"]


class FollowUpBase(BaseModel):
    member_id: Optional[str] = None
    visitor_id: Optional[str] = None
    type: FollowUpType
    category: FollowUpCategory = "member"
    priority: FollowUpPriority = "medium"
    status: FollowUpStatus = "pending"
    due_date: date
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_subject(self) -> "FollowUpBase":
        if bool(self.member_id) == bool(self.visitor_id):
            raise ValueError("Exactly one of member_id or visitor_id must be set")
        return self


class FollowUpCreate(FollowUpBase):
    id: Optional[str] = None


class FollowUpUpdate(BaseModel):
    member_id: Optional[str] = None
    visitor_id: Optional[str] = None
    type: Optional[FollowUpType] = None
    category: Optional[FollowUpCategory] = None
    priority: Optional[FollowUpPriority] = None
    status: Optional[FollowUpStatus] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None


class FollowUpRead(FollowUpBase):
    id: str
    subject_name: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }
