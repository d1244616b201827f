"""
Editable form state for the profit calculator and the stock budgets.

Every mutation goes through the form's UndoHistory, so undo always restores
a whole form at once. Field edits coalesce until the field is committed
(blur); adding, removing and clearing rows are always their own step.
"""

import copy

from calculations import (
    ProductPricingInput,
    Supplier,
    calculate_budget,
    calculate_profit,
    suppliers_for_save,
)
from config import (
    DEFAULT_PROFESSIONAL_BUDGET_PERCENT,
    DEFAULT_RETAIL_BUDGET_PERCENT,
    DEFAULT_VAT_PERCENT,
)
from schemas import BudgetCreate, ProfitScenarioCreate, SupplierCreate
from undo import UndoHistory

RETAIL = 'retail'
PROFESSIONAL = 'professional'

BUDGET_DEFAULT_PERCENTS = {
    RETAIL: DEFAULT_RETAIL_BUDGET_PERCENT,
    PROFESSIONAL: DEFAULT_PROFESSIONAL_BUDGET_PERCENT,
}


def _as_text(value):
    if value is None:
        return ""
    return str(value)


class ProfitForm:
    PRICING_FIELDS = ('rrp', 'list_price', 'discount', 'retro_discount',
                      'usage', 'commission', 'vat_percent')
    FIELDS = ('product_name', 'vat_registered') + PRICING_FIELDS

    def __init__(self, vat_percent=DEFAULT_VAT_PERCENT, history=None):
        self.default_vat_percent = _as_text(vat_percent)
        self.history = history or UndoHistory()
        self.values = self._blank_values()

    def _blank_values(self):
        values = {field: "" for field in self.FIELDS}
        values['vat_registered'] = False
        values['vat_percent'] = self.default_vat_percent
        return values

    def snapshot(self):
        return copy.deepcopy(self.values)

    def restore(self, snapshot):
        self.values = copy.deepcopy(snapshot)

    def set_field(self, field, value):
        if field not in self.FIELDS:
            raise KeyError(f"Unknown profit form field: {field}")
        if self.values[field] == value:
            return
        self.history.record_edit(self.snapshot())
        self.values[field] = value

    def commit_field(self):
        self.history.end_edit()

    def edit_field(self, field, value):
        """A completed edit: the change plus the blur that ends it"""
        self.set_field(field, value)
        self.commit_field()

    def pricing_input(self):
        return ProductPricingInput(
            rrp=self.values['rrp'],
            vat_registered=bool(self.values['vat_registered']),
            vat_percent=self.values['vat_percent'],
            list_price=self.values['list_price'],
            discount=self.values['discount'],
            retro_discount=self.values['retro_discount'],
            usage=self.values['usage'],
            commission=self.values['commission'],
        )

    @property
    def calculation(self):
        return calculate_profit(self.pricing_input())

    def load_scenario(self, scenario):
        """Copy a saved scenario's inputs into the form"""
        self.history.push(self.snapshot())
        self.values = {
            'product_name': _as_text(scenario.product_name),
            'vat_registered': bool(scenario.vat_registered),
        }
        for field in self.PRICING_FIELDS:
            self.values[field] = _as_text(getattr(scenario, field, None))
        if not self.values['vat_percent']:
            self.values['vat_percent'] = self.default_vat_percent

    def clear(self):
        self.history.push(self.snapshot())
        self.values = self._blank_values()

    def undo(self):
        previous = self.history.pop()
        if previous is None:
            return False
        self.restore(previous)
        return True

    def to_scenario(self, name, currency):
        """Insert record for the current inputs (raises ValidationError on blank names)"""
        return ProfitScenarioCreate(
            name=name,
            product_name=self.values['product_name'],
            rrp=self.values['rrp'],
            vat_registered=bool(self.values['vat_registered']),
            vat_percent=self.values['vat_percent'],
            list_price=self.values['list_price'],
            discount=self.values['discount'],
            retro_discount=self.values['retro_discount'],
            usage=self.values['usage'],
            commission=self.values['commission'],
            currency=currency,
        )


class BudgetForm:
    SUPPLIER_FIELDS = ('name', 'allocation')

    def __init__(self, kind=RETAIL, budget_percent=None, history=None):
        if kind not in BUDGET_DEFAULT_PERCENTS:
            raise ValueError(f"Unknown budget kind: {kind}")
        self.kind = kind
        if budget_percent is None:
            budget_percent = BUDGET_DEFAULT_PERCENTS[kind]
        self.history = history or UndoHistory()
        self.revenue_base = ""
        self.budget_percent = _as_text(budget_percent)
        self.suppliers = [Supplier()]

    def snapshot(self):
        return {
            'revenue_base': self.revenue_base,
            'budget_percent': self.budget_percent,
            'suppliers': copy.deepcopy(self.suppliers),
        }

    def restore(self, snapshot):
        self.revenue_base = snapshot['revenue_base']
        self.budget_percent = snapshot['budget_percent']
        self.suppliers = copy.deepcopy(snapshot['suppliers'])

    def _record_edit(self):
        self.history.record_edit(self.snapshot())

    def set_revenue_base(self, value):
        if value == self.revenue_base:
            return
        self._record_edit()
        self.revenue_base = value

    def set_budget_percent(self, value):
        if value == self.budget_percent:
            return
        self._record_edit()
        self.budget_percent = value

    def update_supplier(self, index, field, value):
        if field not in self.SUPPLIER_FIELDS:
            raise KeyError(f"Unknown supplier field: {field}")
        supplier = self.suppliers[index]
        if getattr(supplier, field) == value:
            return
        self._record_edit()
        setattr(self.suppliers[index], field, value)

    def commit_field(self):
        self.history.end_edit()

    def add_supplier(self):
        self.history.push(self.snapshot())
        self.suppliers.append(Supplier())

    def remove_supplier(self, index):
        # Always keep one row to type into
        if len(self.suppliers) <= 1:
            return False
        self.history.push(self.snapshot())
        del self.suppliers[index]
        return True

    def clear(self):
        """Reset revenue and suppliers; the budget percent is kept"""
        self.history.push(self.snapshot())
        self.revenue_base = ""
        self.suppliers = [Supplier()]

    def undo(self):
        previous = self.history.pop()
        if previous is None:
            return False
        self.restore(previous)
        return True

    @property
    def summary(self):
        return calculate_budget(self.revenue_base, self.budget_percent, self.suppliers)

    def load_saved(self, budget, suppliers):
        """Replace the form with a stored budget; edits before it cannot be undone"""
        self.revenue_base = _as_text(budget.revenue_base)
        self.budget_percent = _as_text(budget.budget_percent)
        self.suppliers = [
            Supplier(name=supplier.name, allocation=_as_text(supplier.allocation))
            for supplier in suppliers
        ] or [Supplier()]
        self.history.clear()

    def to_save_payload(self, currency):
        """Budget record with blank supplier rows left out"""
        return BudgetCreate(
            revenue_base=self.revenue_base or "0",
            budget_percent=self.budget_percent or "0",
            currency=currency,
            suppliers=[
                SupplierCreate(name=supplier.name, allocation=supplier.allocation)
                for supplier in suppliers_for_save(self.suppliers)
            ],
        )
