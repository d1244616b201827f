import streamlit as st
from pydantic import ValidationError

from auth import change_password_form, logout, require_authentication
from charts import cost_breakdown_chart, profit_by_rrp_chart, supplier_allocation_chart
from config import DEFAULT_CURRENCY, DEFAULT_PROFESSIONAL_BUDGET_PERCENT, DEFAULT_VAT_PERCENT, configure_logging
from database import (
    create_profit_scenario,
    delete_profit_scenario,
    get_latest_budget,
    get_profit_scenarios,
    save_budget,
    update_user_preferences,
)
from excel_export import XLSX_MIME, export_budget, export_filename, export_profit_scenarios
from forms import PROFESSIONAL, RETAIL, BudgetForm, ProfitForm
from utils import CURRENCY_LABELS, SUPPORTED_CURRENCIES, format_currency, format_percent

# Page configuration
st.set_page_config(
    page_title="Salon Stock Planner",
    page_icon="✂️",
    layout="wide"
)

configure_logging()

PROFIT_LABELS = {
    'product_name': "Product Name",
    'rrp': "RRP",
    'list_price': "List Price",
    'discount': "Discount (%)",
    'retro_discount': "Retro Discount (%)",
    'usage': "Usage / Loss (%)",
    'commission': "Commission (%)",
    'vat_percent': "VAT (%)",
}

PROFIT_HELP = {
    'rrp': "Recommended retail price, including VAT if you are VAT registered",
    'list_price': "Wholesale price before any discount",
    'retro_discount': "Retrospective rebate applied after the standard discount",
    'usage': "Extra cost for product lost to wastage",
    'commission': "Commission paid on the net sale price",
}

BUDGET_LABELS = {
    RETAIL: {
        'title': "Retail Stock Budget",
        'caption': "Manage your retail stock purchasing budget based on sales performance",
        'revenue': "Net Sales",
        'revenue_help': "Total amount of retail items sold",
        'percent': "Retail Stock Budget (%)",
        'file': "retail_budget",
    },
    PROFESSIONAL: {
        'title': "Professional Stock Budget",
        'caption': "Manage your professional stock budget based on service revenue",
        'revenue': "Total Salon Net Services",
        'revenue_help': "Total service revenue excluding VAT",
        'percent': "Professional Stock Budget (%)",
        'file': "professional_budget",
    },
}


def init_session_state():
    if 'currency' not in st.session_state:
        st.session_state.currency = DEFAULT_CURRENCY

    if 'profit_form' not in st.session_state:
        st.session_state.profit_form = ProfitForm(vat_percent=st.session_state.get("vat_percent") or DEFAULT_VAT_PERCENT)

    if 'retail_form' not in st.session_state:
        st.session_state.retail_form = BudgetForm(RETAIL)

    if 'professional_form' not in st.session_state:
        st.session_state.professional_form = BudgetForm(
            PROFESSIONAL, budget_percent=st.session_state.get('professional_budget_percent')
        )

    # Bring back the last saved budgets once per session
    for kind in (RETAIL, PROFESSIONAL):
        loaded_key = f"{kind}_loaded"
        if loaded_key not in st.session_state:
            st.session_state[loaded_key] = True
            latest = get_latest_budget(st.session_state.user_id, kind)
            if latest:
                st.session_state[f"{kind}_form"].load_saved(*latest)


# Widgets hold their own state; copy the form values in before drawing them
# so undo and scenario loading show up in the inputs.
def sync_widget(key, value):
    st.session_state[key] = value


def on_profit_change(field, key):
    st.session_state.profit_form.edit_field(field, st.session_state[key])


def on_budget_change(kind, key, setter, *args):
    form = st.session_state[f"{kind}_form"]
    getattr(form, setter)(*args, st.session_state[key])
    form.commit_field()


def render_header():
    header_col1, header_col2, header_col3 = st.columns([3, 1, 1])

    with header_col1:
        st.title("Salon Stock Planner")

    with header_col2:
        st.selectbox(
            "Currency",
            options=SUPPORTED_CURRENCIES,
            format_func=lambda code: CURRENCY_LABELS[code],
            key="currency"
        )

    with header_col3:
        st.write(f"**{st.session_state.get('username', 'User')}**")
        with st.popover("⋮", use_container_width=False):
            if st.button("Logout", key="logout_menu_btn", use_container_width=True):
                logout()


def render_profit_tab():
    form = st.session_state.profit_form
    currency = st.session_state.currency

    st.header("Profit Calculator")
    st.caption("Calculate profit margins for individual products and compare scenarios")

    input_col, result_col = st.columns([2, 1])

    with input_col:
        title_col, undo_col, clear_col = st.columns([4, 1, 1])
        with title_col:
            st.subheader("Product Details")
        with undo_col:
            if st.button("↶ Undo", key="profit_undo", disabled=not form.history.can_undo):
                form.undo()
                st.rerun()
        with clear_col:
            if st.button("Clear", key="profit_clear"):
                form.clear()
                st.rerun()

        sync_widget("profit_product_name", form.values['product_name'])
        st.text_input(PROFIT_LABELS['product_name'], key="profit_product_name",
                      on_change=on_profit_change, args=('product_name', "profit_product_name"))

        col1, col2 = st.columns(2)
        with col1:
            sync_widget("profit_rrp", form.values['rrp'])
            st.text_input(PROFIT_LABELS['rrp'], key="profit_rrp", help=PROFIT_HELP['rrp'],
                          on_change=on_profit_change, args=('rrp', "profit_rrp"))
        with col2:
            sync_widget("profit_vat_registered", form.values['vat_registered'])
            st.checkbox("VAT Registered Business", key="profit_vat_registered",
                        on_change=on_profit_change, args=('vat_registered', "profit_vat_registered"))
            if form.values['vat_registered']:
                sync_widget("profit_vat_percent", form.values['vat_percent'])
                st.text_input(PROFIT_LABELS['vat_percent'], key="profit_vat_percent",
                              on_change=on_profit_change, args=('vat_percent', "profit_vat_percent"))

        col1, col2 = st.columns(2)
        for i, field in enumerate(('list_price', 'discount', 'retro_discount', 'usage', 'commission')):
            key = f"profit_{field}"
            with (col1 if i % 2 == 0 else col2):
                sync_widget(key, form.values[field])
                st.text_input(PROFIT_LABELS[field], key=key, help=PROFIT_HELP.get(field),
                              on_change=on_profit_change, args=(field, key))

    with result_col:
        st.subheader("Results")
        calculation = form.calculation
        if calculation is None:
            st.info("Enter a list price or RRP to see the profit calculation")
        else:
            st.metric("Real Cost", format_currency(calculation.real_cost, currency))
            st.metric("Sale Price", format_currency(calculation.sale_price, currency),
                      help="Net of VAT" if form.values['vat_registered'] else None)
            st.metric("Net Profit", format_currency(calculation.net_profit, currency))
            st.metric("Profit Margin", format_percent(calculation.profit_margin))

            breakdown = calculation.breakdown
            with st.expander("Cost Breakdown", expanded=True):
                st.write(f"List Price: {format_currency(breakdown.list_price, currency)}")
                st.write(f"After Discount: {format_currency(breakdown.after_discount, currency)}")
                st.write(f"After Retro: {format_currency(breakdown.after_retro, currency)}")
                st.write(f"Usage Adjustment: +{format_currency(breakdown.usage_adjustment, currency)}")
                st.write(f"Commission: +{format_currency(breakdown.commission_amount, currency)}")

    if calculation is not None:
        chart_col1, chart_col2 = st.columns(2)
        with chart_col1:
            st.plotly_chart(cost_breakdown_chart(calculation, currency), use_container_width=True, key="cost_breakdown_chart")
        with chart_col2:
            fig = profit_by_rrp_chart(form.pricing_input(), currency)
            if fig is not None:
                st.plotly_chart(fig, use_container_width=True, key="profit_by_rrp_chart")

    st.markdown("---")
    render_scenarios(form, currency)


def render_scenarios(form, currency):
    user_id = st.session_state.user_id
    save_col, list_col = st.columns([2, 3])

    with save_col:
        st.subheader("Save Scenario")
        with st.form("save_scenario_form", clear_on_submit=True):
            scenario_name = st.text_input("Scenario Name")
            submit = st.form_submit_button("💾 Save Scenario")

        if submit:
            if not scenario_name.strip():
                st.error("Please enter a scenario name")
            elif not form.values['product_name'].strip():
                st.error("Please enter a product name")
            else:
                try:
                    scenario = form.to_scenario(scenario_name, currency)
                except ValidationError as e:
                    st.error(f"Invalid scenario data: {e.errors()[0]['msg']}")
                else:
                    record, message = create_profit_scenario(user_id, scenario)
                    if record:
                        st.success(message)
                    else:
                        st.error(message)

    with list_col:
        scenarios = get_profit_scenarios(user_id)
        title_col, export_col = st.columns([3, 1])
        with title_col:
            st.subheader("Saved Scenarios")
        with export_col:
            if scenarios:
                st.download_button(
                    label="📊 Export to Excel",
                    data=export_profit_scenarios(scenarios),
                    file_name=export_filename("profit_scenarios"),
                    mime=XLSX_MIME,
                    key="export_profit"
                )

        if not scenarios:
            st.info("No saved scenarios yet.")
        for scenario in scenarios:
            name_col, load_col, delete_col = st.columns([4, 1, 1])
            with name_col:
                st.write(f"**{scenario.name}** - {scenario.product_name} "
                         f"(RRP {format_currency(scenario.rrp, scenario.currency)})")
            with load_col:
                if st.button("Load", key=f"load_scenario_{scenario.id}"):
                    form.load_scenario(scenario)
                    st.rerun()
            with delete_col:
                if st.button("🗑️", key=f"delete_scenario_{scenario.id}"):
                    if delete_profit_scenario(scenario.id, user_id):
                        st.success(f"Scenario '{scenario.name}' deleted.")
                        st.rerun()
                    else:
                        st.error("Failed to delete scenario")


def render_budget_tab(kind):
    form = st.session_state[f"{kind}_form"]
    labels = BUDGET_LABELS[kind]
    currency = st.session_state.currency

    st.header(labels['title'])
    st.caption(labels['caption'])

    setup_col, summary_col = st.columns([2, 1])

    with setup_col:
        st.subheader("Budget Configuration")
        col1, col2 = st.columns(2)
        with col1:
            key = f"{kind}_revenue_base"
            sync_widget(key, form.revenue_base)
            st.text_input(labels['revenue'], key=key, help=labels['revenue_help'],
                          on_change=on_budget_change, args=(kind, key, 'set_revenue_base'))
        with col2:
            key = f"{kind}_budget_percent"
            sync_widget(key, form.budget_percent)
            st.text_input(labels['percent'], key=key,
                          on_change=on_budget_change, args=(kind, key, 'set_budget_percent'))

        title_col, add_col = st.columns([4, 1])
        with title_col:
            st.subheader("Suppliers")
        with add_col:
            if st.button("➕ Add Supplier", key=f"{kind}_add_supplier"):
                form.add_supplier()
                st.rerun()

        for i, supplier in enumerate(form.suppliers):
            name_col, allocation_col, remove_col = st.columns([3, 2, 0.5])
            with name_col:
                key = f"{kind}_supplier_name_{i}"
                sync_widget(key, supplier.name)
                st.text_input("Supplier Name", key=key, label_visibility="collapsed",
                              placeholder="Supplier name",
                              on_change=on_budget_change, args=(kind, key, 'update_supplier', i, 'name'))
            with allocation_col:
                key = f"{kind}_supplier_allocation_{i}"
                sync_widget(key, supplier.allocation)
                st.text_input("Allocation", key=key, label_visibility="collapsed",
                              placeholder="Allocation",
                              on_change=on_budget_change, args=(kind, key, 'update_supplier', i, 'allocation'))
            with remove_col:
                if st.button("✕", key=f"{kind}_remove_supplier_{i}", disabled=len(form.suppliers) <= 1):
                    form.remove_supplier(i)
                    st.rerun()

    with summary_col:
        summary = form.summary
        st.subheader("Budget Summary")
        st.metric("Total Budget", format_currency(summary.total_budget, currency))
        st.metric("Allocated", format_currency(summary.total_allocated, currency))
        if summary.is_over_budget:
            st.metric("Over Budget", format_currency(abs(summary.remaining), currency))
            st.error("Allocations exceed the budget")
        else:
            st.metric("Remaining", format_currency(summary.remaining, currency))
        st.progress(int(summary.progress_width), text=f"Budget utilization {format_percent(summary.utilization)}")

        undo_col, clear_col = st.columns(2)
        with undo_col:
            if st.button("↶ Undo", key=f"{kind}_undo", disabled=not form.history.can_undo):
                form.undo()
                st.rerun()
        with clear_col:
            if st.button("Clear", key=f"{kind}_clear"):
                form.clear()
                st.rerun()

        if st.button("💾 Save Budget", key=f"{kind}_save", use_container_width=True):
            try:
                payload = form.to_save_payload(currency)
            except ValidationError as e:
                st.error(f"Invalid budget data: {e.errors()[0]['msg']}")
            else:
                result, message = save_budget(st.session_state.user_id, kind, payload)
                if result:
                    st.success(message)
                else:
                    st.error(message)

        latest = get_latest_budget(st.session_state.user_id, kind)
        if latest:
            st.download_button(
                label="📊 Export to Excel",
                data=export_budget(kind, latest),
                file_name=export_filename(labels['file']),
                mime=XLSX_MIME,
                key=f"{kind}_export",
                use_container_width=True
            )
        else:
            st.caption("Save the budget to enable Excel export")

    fig = supplier_allocation_chart(form.suppliers, form.summary, currency)
    if fig is not None:
        st.plotly_chart(fig, use_container_width=True, key=f"{kind}_allocation_chart")


def render_settings_tab():
    st.header("Settings")

    with st.form("preferences_form"):
        vat_percent = st.number_input(
            "Default VAT (%)",
            min_value=0.0,
            value=float(st.session_state.get("vat_percent") or DEFAULT_VAT_PERCENT),
            step=0.5
        )
        professional_percent = st.number_input(
            "Default Professional Stock Budget (%)",
            min_value=0.0,
            value=float(st.session_state.get("professional_budget_percent") or DEFAULT_PROFESSIONAL_BUDGET_PERCENT),
            step=0.5
        )
        submit = st.form_submit_button("Save Preferences")

        if submit:
            if update_user_preferences(st.session_state.user_id, vat_percent, professional_percent):
                st.session_state.vat_percent = vat_percent
                st.session_state.professional_budget_percent = professional_percent
                st.success("Preferences updated")
            else:
                st.error("Failed to update preferences")

    st.subheader("Change Password")
    change_password_form()


@require_authentication
def main():
    init_session_state()
    render_header()
    st.markdown("---")

    profit_tab, retail_tab, professional_tab, settings_tab = st.tabs(
        ["Profit Calculator", "Retail Budget", "Professional Budget", "Settings"]
    )

    with profit_tab:
        render_profit_tab()
    with retail_tab:
        render_budget_tab(RETAIL)
    with professional_tab:
        render_budget_tab(PROFESSIONAL)
    with settings_tab:
        render_settings_tab()


main()
