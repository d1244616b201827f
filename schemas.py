"""
Insert records for the storage layer.

Each field documents its default, so a record built from a half filled
form is always complete before it reaches the database.
"""

from typing import List

from pydantic import BaseModel, Field, field_validator

from calculations import parse_number
from config import DEFAULT_CURRENCY, DEFAULT_VAT_PERCENT
from utils import SUPPORTED_CURRENCIES


def _number(value):
    return parse_number(value)


def _currency(value):
    if not value:
        return DEFAULT_CURRENCY
    value = str(value).upper()
    if value not in SUPPORTED_CURRENCIES:
        raise ValueError(f"Unsupported currency: {value}")
    return value


class ProfitScenarioCreate(BaseModel):
    """Raw pricing inputs of a named scenario (derived values are not stored)"""

    name: str = Field(description="User label for the scenario")
    product_name: str = Field(description="Product the scenario prices")
    rrp: float = Field(default=0.0, description="Retail price, may include VAT")
    vat_registered: bool = Field(default=False)
    vat_percent: float = Field(default=DEFAULT_VAT_PERCENT, description="Used only when VAT registered")
    list_price: float = Field(default=0.0, description="Wholesale price before discounts")
    discount: float = Field(default=0.0, description="Percent")
    retro_discount: float = Field(default=0.0, description="Percent")
    usage: float = Field(default=0.0, description="Percent lost to wastage")
    commission: float = Field(default=0.0, description="Percent of net sale price")
    currency: str = Field(default=DEFAULT_CURRENCY)

    @field_validator('name', 'product_name')
    @classmethod
    def must_not_be_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    # A blank VAT % parses to 0 like the live calculation; the default only
    # covers a missing field
    @field_validator('rrp', 'vat_percent', 'list_price', 'discount', 'retro_discount',
                     'usage', 'commission', mode='before')
    @classmethod
    def parse_numbers(cls, v):
        return _number(v)

    @field_validator('currency', mode='before')
    @classmethod
    def known_currency(cls, v):
        return _currency(v)


class SupplierCreate(BaseModel):
    name: str
    allocation: float = Field(default=0.0)

    @field_validator('name')
    @classmethod
    def must_not_be_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator('allocation', mode='before')
    @classmethod
    def parse_allocation(cls, v):
        return _number(v)


class BudgetCreate(BaseModel):
    """Current retail or professional budget for a user"""

    revenue_base: float = Field(default=0.0, description="Net sales (retail) or net services (professional)")
    budget_percent: float = Field(default=0.0, description="Percent of revenue allocated to stock")
    currency: str = Field(default=DEFAULT_CURRENCY)
    suppliers: List[SupplierCreate] = Field(default_factory=list)

    @field_validator('revenue_base', 'budget_percent', mode='before')
    @classmethod
    def parse_numbers(cls, v):
        return _number(v)

    @field_validator('currency', mode='before')
    @classmethod
    def known_currency(cls, v):
        return _currency(v)
