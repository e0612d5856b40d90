"""
Pydantic models for training sessions.

A session links a trainer to (optionally) a member.  Trainer counters
are recomputed from the sessions table whenever a session changes.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

SessionType = Literal["personal", "group", "assessment"]
SessionStatus = Literal["scheduled", "in_progress", "completed", "cancelled"]


class SessionBase(BaseModel):
    trainer_id: str
    member_id: Optional[str] = None
    type: SessionType = "personal"
    status: SessionStatus = "scheduled"
    start_time: datetime = Field(..., examples=["2025-09-01T07:00:00Z"])
    end_time: Optional[datetime] = None
    notes: Optional[str] = None


class SessionCreate(SessionBase):
    id: Optional[str] = None


class SessionUpdate(BaseModel):
    trainer_id: Optional[str] = None
    member_id: Optional[str] = None
    type: Optional[SessionType] = None
    status: Optional[SessionStatus] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None


class SessionRead(SessionBase):
    id: str
    trainer_name: Optional[str] = None
    member_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }
