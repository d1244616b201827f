"""
Profit and stock budget calculations.

Pure functions over the raw form values. Every numeric field goes through
parse_number, so blank or malformed entries count as 0 instead of raising:
the forms recalculate on every edit and half-typed values are normal.

Profit (per product):
    sale_price        = rrp, or rrp / (1 + vat%/100) when VAT registered
    after_discount    = list_price × (1 - discount%/100)
    after_retro       = after_discount × (1 - retro%/100)
    usage_adjustment  = after_retro × usage%/100
    cost_after_usage  = after_retro + usage_adjustment
    commission_amount = sale_price × commission%/100
    real_cost         = cost_after_usage + commission_amount
    net_profit        = sale_price - real_cost
    profit_margin     = net_profit / real_cost × 100   (0 when real_cost <= 0)

Budget (retail or professional stock):
    total_budget      = revenue_base × budget%/100
    total_allocated   = Σ supplier allocations
    remaining         = total_budget - total_allocated   (negative = over budget)
    utilization       = total_allocated / total_budget × 100   (0 when no budget)
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from config import DEFAULT_VAT_PERCENT

NumberLike = Union[str, int, float, None]

# Leading numeric prefix, the same part a browser's parseFloat would read
_NUMBER_PREFIX = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


def parse_number(value: NumberLike, default: float = 0.0) -> float:
    """
    Parse a form value into a float.

    Blank, None, non-numeric and non-finite values return `default`.
    Trailing junk after a number is ignored ("12abc" -> 12.0).
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        text = value
    else:
        match = _NUMBER_PREFIX.match(str(value))
        if not match:
            return default
        text = match.group(1)
    try:
        number = float(text)
    except (ValueError, OverflowError):
        return default
    if not math.isfinite(number):
        return default
    return number


@dataclass
class ProductPricingInput:
    rrp: NumberLike = ""
    vat_registered: bool = False
    vat_percent: NumberLike = DEFAULT_VAT_PERCENT
    list_price: NumberLike = ""
    discount: NumberLike = ""
    retro_discount: NumberLike = ""
    usage: NumberLike = ""
    commission: NumberLike = ""


@dataclass(frozen=True)
class ProfitBreakdown:
    list_price: float
    after_discount: float
    after_retro: float
    usage_adjustment: float
    commission_amount: float


@dataclass(frozen=True)
class ProfitCalculation:
    real_cost: float
    sale_price: float
    net_profit: float
    profit_margin: float
    cost_after_usage: float
    breakdown: ProfitBreakdown


def net_sale_price(rrp: float, vat_registered: bool, vat_percent: float) -> float:
    """Back VAT out of the RRP for VAT registered businesses"""
    if vat_registered and rrp > 0:
        return rrp / (1 + vat_percent / 100)
    return rrp


def calculate_profit(pricing: ProductPricingInput) -> Optional[ProfitCalculation]:
    """
    Calculate real cost, net profit and margin for one product.

    Returns None when neither a list price nor an RRP has been entered.
    Values are not clamped: a discount above 100% gives a negative cost.
    """
    rrp = parse_number(pricing.rrp)
    list_price = parse_number(pricing.list_price)
    discount = parse_number(pricing.discount)
    retro_discount = parse_number(pricing.retro_discount)
    usage = parse_number(pricing.usage)
    commission = parse_number(pricing.commission)
    vat_percent = parse_number(pricing.vat_percent)

    if list_price == 0 and rrp == 0:
        return None

    # Commission is paid on the net price, so VAT comes off first
    sale_price = net_sale_price(rrp, pricing.vat_registered, vat_percent)

    after_discount = list_price * (1 - discount / 100)
    after_retro = after_discount * (1 - retro_discount / 100)
    usage_adjustment = after_retro * (usage / 100)
    cost_after_usage = after_retro + usage_adjustment

    commission_amount = sale_price * (commission / 100)
    real_cost = cost_after_usage + commission_amount

    net_profit = sale_price - real_cost
    profit_margin = (net_profit / real_cost * 100) if real_cost > 0 else 0.0

    return ProfitCalculation(
        real_cost=real_cost,
        sale_price=sale_price,
        net_profit=net_profit,
        profit_margin=profit_margin,
        cost_after_usage=cost_after_usage,
        breakdown=ProfitBreakdown(
            list_price=list_price,
            after_discount=after_discount,
            after_retro=after_retro,
            usage_adjustment=usage_adjustment,
            commission_amount=commission_amount,
        ),
    )


@dataclass
class Supplier:
    name: str = ""
    allocation: str = ""


@dataclass(frozen=True)
class BudgetSummary:
    total_budget: float
    total_allocated: float
    remaining: float
    utilization: float

    @property
    def is_over_budget(self) -> bool:
        return self.remaining < 0

    @property
    def progress_width(self) -> float:
        """Utilization clamped to 0-100, for progress bars only"""
        return min(max(self.utilization, 0.0), 100.0)


def total_budget(revenue_base: NumberLike, budget_percent: NumberLike) -> float:
    return parse_number(revenue_base) * (parse_number(budget_percent) / 100)


def total_allocated(suppliers: Iterable[Supplier]) -> float:
    # Incomplete rows count too; only persistence filters them out
    return sum(parse_number(supplier.allocation) for supplier in suppliers)


def utilization(allocated: float, budget: float) -> float:
    return (allocated / budget * 100) if budget > 0 else 0.0


def calculate_budget(revenue_base: NumberLike, budget_percent: NumberLike,
                     suppliers: Iterable[Supplier]) -> BudgetSummary:
    """Total budget, allocations and what is left over"""
    budget = total_budget(revenue_base, budget_percent)
    allocated = total_allocated(suppliers)
    return BudgetSummary(
        total_budget=budget,
        total_allocated=allocated,
        remaining=budget - allocated,
        utilization=utilization(allocated, budget),
    )


def suppliers_for_save(suppliers: Iterable[Supplier]) -> List[Supplier]:
    """Drop rows with a blank name or allocation, keeping order"""
    return [
        Supplier(name=supplier.name, allocation=supplier.allocation)
        for supplier in suppliers
        if supplier.name.strip() and str(supplier.allocation).strip()
    ]
