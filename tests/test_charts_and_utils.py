"""
Tests for chart builders and currency formatting
"""

import numpy as np
import pytest

from calculations import ProductPricingInput, Supplier, calculate_budget, calculate_profit
from charts import cost_breakdown_chart, profit_by_rrp, profit_by_rrp_chart, supplier_allocation_chart
from utils import format_currency, format_percent, get_currency_symbol


class TestCurrency:

    @pytest.mark.parametrize("code, expected", [
        ("GBP", "£1,234.50"),
        ("USD", "$1,234.50"),
        ("EUR", "€1,234.50"),
        ("AUD", "$1,234.50"),
        ("JPY", "$1,234.50"),
    ])
    def test_format_currency(self, code, expected):
        assert format_currency(1234.5, code) == expected

    def test_negative_and_default(self):
        assert format_currency(-5) == "£-5.00"

    def test_symbol(self):
        assert get_currency_symbol("EUR") == "€"
        assert get_currency_symbol("XXX") == "$"

    def test_format_percent(self):
        assert format_percent(69.3327) == "69.3%"


class TestCharts:

    def test_allocation_chart_includes_unallocated(self):
        suppliers = [Supplier("Wella", "3000"), Supplier("", "500"), Supplier("Redken", "2500")]
        summary = calculate_budget("15000", "65", suppliers)

        fig = supplier_allocation_chart(suppliers, summary, "GBP")

        pie = fig.data[0]
        assert list(pie.labels) == ["Wella", "Redken", "Unallocated"]
        assert list(pie.values) == pytest.approx([3000, 2500, 3750])

    def test_allocation_chart_empty(self):
        summary = calculate_budget("", "65", [Supplier()])
        assert supplier_allocation_chart([Supplier()], summary, "GBP") is None

    def test_cost_breakdown_chart(self, worked_pricing):
        calculation = calculate_profit(worked_pricing)

        fig = cost_breakdown_chart(calculation, "GBP")

        waterfall = fig.data[0]
        assert list(waterfall.x)[-1] == "Real Cost"
        assert waterfall.y[-1] == pytest.approx(47.2445)

    def test_profit_by_rrp(self, worked_pricing):
        rrps, profits, margins = profit_by_rrp(worked_pricing, points=11)

        assert rrps[0] == pytest.approx(40)
        assert rrps[-1] == pytest.approx(160)
        assert np.all(np.diff(profits) > 0)
        assert len(margins) == 11

    def test_profit_by_rrp_needs_rrp(self):
        assert profit_by_rrp(ProductPricingInput(list_price="45")) is None
        assert profit_by_rrp_chart(ProductPricingInput(list_price="45"), "GBP") is None

    def test_profit_by_rrp_chart(self, worked_pricing):
        fig = profit_by_rrp_chart(worked_pricing, "GBP")

        assert [trace.name for trace in fig.data] == ["Net Profit", "Current RRP"]
