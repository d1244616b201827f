from dataclasses import replace

import numpy as np
import plotly.graph_objects as go

from calculations import calculate_profit, parse_number, suppliers_for_save
from utils import format_currency


def supplier_allocation_chart(suppliers, summary, currency):
    """Pie of allocations per supplier, plus whatever budget is left"""
    labels = []
    values = []
    for supplier in suppliers_for_save(suppliers):
        amount = parse_number(supplier.allocation)
        if amount > 0:
            labels.append(supplier.name)
            values.append(amount)

    if summary.remaining > 0:
        labels.append("Unallocated")
        values.append(summary.remaining)

    if not values:
        return None

    fig = go.Figure(data=[go.Pie(
        labels=labels,
        values=values,
        textinfo='label+percent',
        insidetextorientation='radial',
        hole=.3
    )])
    fig.update_layout(title=f"Budget Allocation ({format_currency(summary.total_budget, currency)})")
    return fig


def cost_breakdown_chart(calculation, currency):
    """Waterfall from list price to real cost"""
    breakdown = calculation.breakdown
    steps = [
        ("List Price", breakdown.list_price, "absolute"),
        ("Discount", breakdown.after_discount - breakdown.list_price, "relative"),
        ("Retro", breakdown.after_retro - breakdown.after_discount, "relative"),
        ("Usage", breakdown.usage_adjustment, "relative"),
        ("Commission", breakdown.commission_amount, "relative"),
        ("Real Cost", calculation.real_cost, "total"),
    ]

    fig = go.Figure(go.Waterfall(
        x=[label for label, _, _ in steps],
        y=[value for _, value, _ in steps],
        measure=[measure for _, _, measure in steps],
        text=[format_currency(value, currency) for _, value, _ in steps],
        textposition='outside'
    ))
    fig.update_layout(title="Cost Breakdown", showlegend=False, height=400)
    return fig


def profit_by_rrp(pricing, low=0.5, high=2.0, points=50):
    """
    Net profit and margin across a range of RRPs around the current one.

    Returns (rrps, profits, margins) as numpy arrays, or None when there is
    no RRP to vary.
    """
    rrp = parse_number(pricing.rrp)
    if rrp <= 0:
        return None

    rrps = np.linspace(rrp * low, rrp * high, points)
    profits = np.zeros(points)
    margins = np.zeros(points)
    for i, value in enumerate(rrps):
        calculation = calculate_profit(replace(pricing, rrp=float(value)))
        profits[i] = calculation.net_profit
        margins[i] = calculation.profit_margin
    return rrps, profits, margins


def profit_by_rrp_chart(pricing, currency):
    modelled = profit_by_rrp(pricing)
    if modelled is None:
        return None
    rrps, profits, _ = modelled

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=rrps,
        y=profits,
        mode='lines',
        name='Net Profit',
        line=dict(color='green', width=3)
    ))
    fig.add_trace(go.Scatter(
        x=[parse_number(pricing.rrp)],
        y=[calculate_profit(pricing).net_profit],
        mode='markers',
        name='Current RRP',
        marker=dict(size=12, color='blue')
    ))
    fig.add_hline(y=0, line_dash="dash", line_color="red")
    fig.update_layout(
        title="Profit at Different RRPs",
        xaxis=dict(title=f"RRP ({currency})"),
        yaxis=dict(title=f"Net Profit ({currency})"),
        height=400
    )
    return fig
