import io
import logging
from datetime import datetime

import pandas as pd

from calculations import total_budget

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

REVENUE_LABELS = {
    'retail': 'Net Sales',
    'professional': 'Net Services',
}


class ExportError(Exception):
    """Raised when there is nothing to export"""


def export_filename(prefix):
    return f"{prefix}_{datetime.now().strftime('%Y-%m-%d')}.xlsx"


def profit_scenarios_dataframe(scenarios):
    """One row of raw inputs per saved scenario"""
    rows = []
    for scenario in scenarios:
        rows.append({
            'Scenario Name': scenario.name,
            'Product Name': scenario.product_name,
            'RRP': float(scenario.rrp or 0),
            'VAT Registered': 'Yes' if scenario.vat_registered else 'No',
            'VAT %': float(scenario.vat_percent or 0),
            'List Price': float(scenario.list_price or 0),
            'Discount %': float(scenario.discount or 0),
            'Retro Discount %': float(scenario.retro_discount or 0),
            'Usage %': float(scenario.usage or 0),
            'Commission %': float(scenario.commission or 0),
            'Currency': scenario.currency,
            'Created': scenario.created_at.strftime("%d/%m/%Y") if scenario.created_at else '',
        })
    columns = ['Scenario Name', 'Product Name', 'RRP', 'VAT Registered', 'VAT %',
               'List Price', 'Discount %', 'Retro Discount %', 'Usage %',
               'Commission %', 'Currency', 'Created']
    return pd.DataFrame(rows, columns=columns)


def budget_dataframes(kind, budget, suppliers):
    """Summary and supplier sheets for a stored budget"""
    revenue_base = float(budget.revenue_base or 0)
    budget_percent = float(budget.budget_percent or 0)

    summary_df = pd.DataFrame([{
        REVENUE_LABELS[kind]: revenue_base,
        'Budget Percentage': budget_percent,
        'Total Budget': total_budget(revenue_base, budget_percent),
        'Currency': budget.currency,
    }])

    suppliers_df = pd.DataFrame(
        [{'Supplier Name': s.name, 'Allocation': float(s.allocation or 0)} for s in suppliers],
        columns=['Supplier Name', 'Allocation']
    )
    return summary_df, suppliers_df


def export_profit_scenarios(scenarios):
    """Workbook with a single 'Profit Scenarios' sheet"""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='xlsxwriter') as writer:
        profit_scenarios_dataframe(scenarios).to_excel(writer, sheet_name="Profit Scenarios", index=False)
        worksheet = writer.sheets["Profit Scenarios"]

        # Set column widths
        worksheet.set_column('A:B', 22)
        worksheet.set_column('C:L', 15)

    buffer.seek(0)
    return buffer


def export_budget(kind, latest):
    """Workbook with 'Budget Summary' and 'Suppliers' sheets"""
    if latest is None:
        raise ExportError(f"No {kind} budget found")

    budget, suppliers = latest
    summary_df, suppliers_df = budget_dataframes(kind, budget, suppliers)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='xlsxwriter') as writer:
        summary_df.to_excel(writer, sheet_name="Budget Summary", index=False)
        suppliers_df.to_excel(writer, sheet_name="Suppliers", index=False)

        workbook = writer.book
        money_format = workbook.add_format({'num_format': '#,##0.00'})
        writer.sheets["Budget Summary"].set_column('A:D', 18)
        writer.sheets["Suppliers"].set_column('A:A', 25)
        writer.sheets["Suppliers"].set_column('B:B', 15, money_format)

    buffer.seek(0)
    logger.info("Exported %s budget %s with %d suppliers", kind, budget.id, len(suppliers))
    return buffer
