"""
Shared field types and the pagination block.

Money values are ``Decimal`` quantized to two fractional digits and are
serialized as strings in JSON mode (``"1179.00"``).  E-mail addresses
are stripped and lower-cased so uniqueness checks are case-insensitive.
"""

import math
import re
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field

from ..core.rules import quantize_money

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email")
    return value


def _check_phone(value: str) -> str:
    value = value.strip()
    if not PHONE_PATTERN.match(value):
        raise ValueError("Please provide a valid phone number")
    return value


Email = Annotated[str, AfterValidator(_check_email)]
Phone = Annotated[str, AfterValidator(_check_phone)]

# Non-negative amount (prices, fees, invoice lines).
Money = Annotated[Decimal, Field(ge=0), AfterValidator(quantize_money)]

# Derived amount that may be negative (product margin and profit).
SignedMoney = Annotated[Decimal, AfterValidator(quantize_money)]

Name = Annotated[str, Field(min_length=1, max_length=100)]


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool
    limit: Optional[int] = None

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
            limit=limit,
        )
