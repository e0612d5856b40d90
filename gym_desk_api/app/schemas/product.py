"""
Pydantic models for the supplement store.

``margin`` (selling minus base price) and ``profit`` (margin times
units sold) are derived and may be negative.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import Money, Name, SignedMoney


class ProductBase(BaseModel):
    name: Name = Field(..., examples=["Whey Protein 1kg"])
    base_price: Money = Field(..., examples=["1800.00"])
    selling_price: Money = Field(..., examples=["2400.00"])
    quantity_in_stock: int = Field(0, ge=0)
    supplier_name: Optional[str] = None
    expiry_date: Optional[date] = None


class ProductCreate(ProductBase):
    id: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    base_price: Optional[Money] = None
    selling_price: Optional[Money] = None
    quantity_in_stock: Optional[int] = Field(None, ge=0)
    supplier_name: Optional[str] = None
    expiry_date: Optional[date] = None


class ProductSale(BaseModel):
    units: int = Field(..., ge=1)


class ProductRead(ProductBase):
    id: str
    units_sold: int = Field(0, ge=0)
    margin: SignedMoney
    profit: SignedMoney
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }
