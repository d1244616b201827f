"""
Tests for the editable form state
"""

from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from calculations import Supplier
from forms import PROFESSIONAL, RETAIL, BudgetForm, ProfitForm


class TestProfitForm:

    def test_starts_blank_with_no_calculation(self):
        form = ProfitForm()

        assert form.values['vat_percent'] == '20.0'
        assert form.values['vat_registered'] is False
        assert form.calculation is None

    def test_edits_recalculate_immediately(self):
        form = ProfitForm()
        form.edit_field('list_price', '45')
        form.edit_field('rrp', '80')

        assert form.calculation.net_profit == pytest.approx(35.0)

    def test_undo_restores_each_committed_edit(self):
        form = ProfitForm()
        original = form.snapshot()
        form.edit_field('list_price', '45')
        form.edit_field('discount', '10')
        form.edit_field('rrp', '80')

        assert form.undo()
        assert form.values['rrp'] == ''
        assert form.undo()
        assert form.undo()
        assert form.values == original
        assert not form.undo()
        assert form.values == original

    def test_changes_before_blur_are_one_step(self):
        form = ProfitForm()
        form.set_field('rrp', '8')
        form.set_field('rrp', '80')
        form.commit_field()

        assert len(form.history) == 1
        form.undo()
        assert form.values['rrp'] == ''

    def test_unchanged_value_records_nothing(self):
        form = ProfitForm()
        form.edit_field('rrp', '')

        assert len(form.history) == 0

    def test_unknown_field(self):
        with pytest.raises(KeyError):
            ProfitForm().set_field('price', '1')

    def test_load_scenario_is_undoable(self):
        form = ProfitForm()
        form.edit_field('product_name', 'Shampoo')
        scenario = SimpleNamespace(
            product_name='Conditioner', rrp=80.0, vat_registered=True, vat_percent=None,
            list_price=45.0, discount=10.0, retro_discount=5.0, usage=2.0, commission=10.0
        )

        form.load_scenario(scenario)

        assert form.values['product_name'] == 'Conditioner'
        assert form.values['list_price'] == '45.0'
        assert form.values['vat_percent'] == '20.0'
        form.undo()
        assert form.values['product_name'] == 'Shampoo'

    def test_clear(self):
        form = ProfitForm(vat_percent=17.5)
        form.edit_field('rrp', '80')
        form.clear()

        assert form.values['rrp'] == ''
        assert form.values['vat_percent'] == '17.5'
        form.undo()
        assert form.values['rrp'] == '80'

    def test_to_scenario_defaults_blank_fields(self):
        form = ProfitForm()
        form.edit_field('product_name', 'Shampoo')
        form.edit_field('rrp', '80')

        scenario = form.to_scenario('Summer', 'EUR')

        assert scenario.name == 'Summer'
        assert scenario.rrp == 80.0
        assert scenario.discount == 0.0
        assert scenario.vat_percent == 20.0
        assert scenario.currency == 'EUR'

    def test_blank_vat_survives_save_and_load(self):
        form = ProfitForm()
        form.edit_field('product_name', 'Shampoo')
        form.edit_field('vat_registered', True)
        form.edit_field('rrp', '120')
        form.edit_field('list_price', '45')
        form.edit_field('vat_percent', '')
        before = form.calculation.sale_price

        scenario = form.to_scenario('No VAT rate', 'GBP')
        reloaded = ProfitForm()
        reloaded.load_scenario(scenario)

        assert scenario.vat_percent == 0.0
        assert before == 120.0
        assert reloaded.calculation.sale_price == before

    def test_to_scenario_requires_names(self):
        form = ProfitForm()
        with pytest.raises(ValidationError):
            form.to_scenario('Summer', 'GBP')
        form.edit_field('product_name', 'Shampoo')
        with pytest.raises(ValidationError):
            form.to_scenario('   ', 'GBP')


class TestBudgetForm:

    def test_defaults(self):
        assert BudgetForm(RETAIL).budget_percent == '65.0'
        assert BudgetForm(PROFESSIONAL).budget_percent == '7.0'
        assert BudgetForm(PROFESSIONAL, budget_percent=9.5).budget_percent == '9.5'
        assert len(BudgetForm().suppliers) == 1

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            BudgetForm('wholesale')

    def test_summary(self):
        form = BudgetForm(RETAIL)
        form.set_revenue_base('15000')
        form.commit_field()
        form.update_supplier(0, 'name', 'Wella')
        form.commit_field()
        form.update_supplier(0, 'allocation', '3000')
        form.commit_field()
        form.add_supplier()
        form.update_supplier(1, 'allocation', '6750')
        form.commit_field()

        summary = form.summary
        assert summary.total_budget == pytest.approx(9750)
        assert summary.total_allocated == pytest.approx(9750)
        assert summary.utilization == pytest.approx(100)

    def test_undo_restores_original_state(self):
        form = BudgetForm(RETAIL)
        original = form.snapshot()

        form.set_revenue_base('15000')
        form.commit_field()
        form.set_budget_percent('50')
        form.commit_field()
        form.add_supplier()
        form.update_supplier(1, 'name', 'Wella')
        form.commit_field()
        form.remove_supplier(0)

        while form.undo():
            pass

        assert form.snapshot() == original

    def test_remove_last_supplier_is_noop(self):
        form = BudgetForm()

        assert not form.remove_supplier(0)
        assert len(form.suppliers) == 1
        assert len(form.history) == 0

    def test_clear_keeps_budget_percent(self):
        form = BudgetForm(RETAIL)
        form.set_revenue_base('1000')
        form.set_budget_percent('40')
        form.commit_field()
        form.update_supplier(0, 'name', 'Wella')
        form.commit_field()

        form.clear()

        assert form.revenue_base == ''
        assert form.budget_percent == '40'
        assert form.suppliers == [Supplier()]
        form.undo()
        assert form.suppliers[0].name == 'Wella'

    def test_undo_does_not_share_supplier_rows(self):
        form = BudgetForm()
        form.update_supplier(0, 'name', 'Wella')
        form.commit_field()
        form.update_supplier(0, 'name', 'Redken')
        form.commit_field()

        form.undo()
        assert form.suppliers[0].name == 'Wella'
        form.undo()
        assert form.suppliers[0].name == ''

    def test_save_payload_skips_blank_rows(self):
        form = BudgetForm(PROFESSIONAL)
        form.set_revenue_base('20000')
        form.update_supplier(0, 'name', 'Wella')
        form.update_supplier(0, 'allocation', '800')
        form.add_supplier()
        form.update_supplier(1, 'name', 'Half filled')

        payload = form.to_save_payload('GBP')

        assert payload.revenue_base == 20000
        assert payload.budget_percent == 7.0
        assert [(s.name, s.allocation) for s in payload.suppliers] == [('Wella', 800.0)]

    def test_load_saved_replaces_state_and_history(self):
        form = BudgetForm(RETAIL)
        form.set_revenue_base('5')
        form.commit_field()
        budget = SimpleNamespace(revenue_base=15000.0, budget_percent=65.0)
        suppliers = [SimpleNamespace(name='Wella', allocation=3000.0)]

        form.load_saved(budget, suppliers)

        assert form.revenue_base == '15000.0'
        assert form.suppliers == [Supplier('Wella', '3000.0')]
        assert not form.history.can_undo

    def test_load_saved_without_suppliers_keeps_a_row(self):
        form = BudgetForm(RETAIL)
        form.load_saved(SimpleNamespace(revenue_base=100.0, budget_percent=10.0), [])

        assert form.suppliers == [Supplier()]
