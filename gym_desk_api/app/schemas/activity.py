"""Pydantic models for the activity log and member check-ins."""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel

ActivityType = Literal[
    "member", "invoice", "followup", "checkin", "trainer", "visitor", "session", "product", "system",
]


class ActivityRead(BaseModel):
    """An append-only log entry describing one mutation."""

    id: str
    type: ActivityType
    action: str
    name: str
    time: datetime
    details: Optional[str] = None
    member_id: Optional[str] = None
    invoice_id: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class CheckInRead(BaseModel):
    id: str
    member_id: str
    member_name: str
    check_in_time: datetime
    date: date

    model_config = {
        "from_attributes": True,
    }
