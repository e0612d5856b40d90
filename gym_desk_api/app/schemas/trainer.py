"""Pydantic models for trainers."""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .common import Email, Name, Phone

TrainerStatus = Literal["available", "busy"]


class TrainerBase(BaseModel):
    name: Name = Field(..., examples=["Vikram Singh"])
    email: Optional[Email] = None
    phone: Optional[Phone] = None
    specialization: Optional[str] = Field(None, examples=["Strength training"])
    status: TrainerStatus = "available"
    certifications: List[str] = Field(default_factory=list)
    experience: Optional[str] = None
    bio: Optional[str] = None
    join_date: Optional[date] = None


class TrainerCreate(TrainerBase):
    id: Optional[str] = None


class TrainerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[Email] = None
    phone: Optional[Phone] = None
    specialization: Optional[str] = None
    status: Optional[TrainerStatus] = None
    certifications: Optional[List[str]] = None
    experience: Optional[str] = None
    bio: Optional[str] = None
    join_date: Optional[date] = None


class TrainerRead(TrainerBase):
    """Trainer with session counters derived from assigned sessions."""

    id: str
    current_sessions: int = Field(0, ge=0)
    total_sessions: int = Field(0, ge=0)
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }
