"""Pydantic models for runtime business settings (pricing and terms)."""

from decimal import Decimal

from pydantic import BaseModel, Field

from .common import Money

DEFAULT_TERMS = (
    "Membership fees are non-refundable and non-transferable. "
    "Members must carry their membership card and follow gym rules at all times."
)


class Pricing(BaseModel):
    monthly_fee: Money = Decimal("1999.00")
    quarterly_fee: Money = Decimal("5500.00")
    half_yearly_fee: Money = Decimal("6999.00")
    yearly_fee: Money = Decimal("8500.00")
    personal_training_fee: Money = Decimal("5500.00")


class Terms(BaseModel):
    text: str = Field(DEFAULT_TERMS, max_length=20000)
