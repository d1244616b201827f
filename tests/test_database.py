"""
Tests for the storage layer against in-memory SQLite
"""

import pytest

import database
from schemas import BudgetCreate, ProfitScenarioCreate, SupplierCreate


def make_scenario(name="Summer", **overrides):
    data = dict(name=name, product_name="Shampoo", rrp="80", list_price="45",
                discount="10", retro_discount="5", usage="2", commission="10")
    data.update(overrides)
    return ProfitScenarioCreate(**data)


class TestUsers:

    def test_create_and_authenticate(self, user):
        assert user.id is not None
        assert user.hashed_password != "secret123"
        assert user.vat_percent == 20.0
        assert user.professional_budget_percent == 7.0

        assert database.authenticate_user("salon", "secret123").id == user.id
        assert database.authenticate_user("salon", "wrong") is None
        assert database.authenticate_user("nobody", "secret123") is None

    def test_duplicate_username_and_email(self, user):
        created, message = database.create_user("salon", "other@salon.test", "secret123")
        assert created is None
        assert message == "Username already exists"

        created, message = database.create_user("other", "owner@salon.test", "secret123")
        assert created is None
        assert message == "Email already exists"

    def test_update_password(self, user):
        assert database.update_user_password(user.id, "newpass1")
        assert database.authenticate_user("salon", "newpass1") is not None
        assert not database.update_user_password(9999, "newpass1")

    def test_update_preferences(self, user):
        assert database.update_user_preferences(user.id, vat_percent=17.5)
        refreshed = database.get_user(user.id)

        assert refreshed.vat_percent == 17.5
        assert refreshed.professional_budget_percent == 7.0

    def test_reset_tokens(self, user):
        token = database.create_password_reset_token(user.id, "abc123", ttl_minutes=60)
        found = database.get_password_reset_token("abc123")

        assert found.user_id == user.id
        assert found.expires_at > found.created_at

        database.delete_password_reset_token(token.id)
        assert database.get_password_reset_token("abc123") is None


class TestProfitScenarios:

    def test_create_stores_raw_inputs(self, user):
        record, message = database.create_profit_scenario(user.id, make_scenario())

        assert record.id is not None
        assert message == "Scenario saved successfully"
        stored = database.get_profit_scenarios(user.id)[0]
        assert stored.rrp == 80.0
        assert stored.list_price == 45.0
        assert stored.retro_discount == 5.0
        assert stored.currency == "GBP"
        assert stored.vat_registered is False

    def test_newest_first_and_scoped_to_user(self, user):
        other, _ = database.create_user("other", "other@salon.test", "secret123")
        database.create_profit_scenario(user.id, make_scenario("First"))
        database.create_profit_scenario(user.id, make_scenario("Second"))
        database.create_profit_scenario(other.id, make_scenario("Theirs"))

        names = [s.name for s in database.get_profit_scenarios(user.id)]
        assert names == ["Second", "First"]

    def test_delete_only_own(self, user):
        other, _ = database.create_user("other", "other@salon.test", "secret123")
        record, _ = database.create_profit_scenario(user.id, make_scenario())

        assert not database.delete_profit_scenario(record.id, other.id)
        assert len(database.get_profit_scenarios(user.id)) == 1

        assert database.delete_profit_scenario(record.id, user.id)
        assert database.get_profit_scenarios(user.id) == []


class TestBudgets:

    @pytest.mark.parametrize("kind", ["retail", "professional"])
    def test_no_budget(self, user, kind):
        assert database.get_latest_budget(user.id, kind) is None

    @pytest.mark.parametrize("kind", ["retail", "professional"])
    def test_save_and_load(self, user, kind):
        payload = BudgetCreate(
            revenue_base="15000", budget_percent="65", currency="EUR",
            suppliers=[SupplierCreate(name="Wella", allocation="3000"),
                       SupplierCreate(name="Redken", allocation="2500")]
        )
        result, message = database.save_budget(user.id, kind, payload)
        assert result is not None, message

        budget, suppliers = database.get_latest_budget(user.id, kind)
        assert budget.revenue_base == 15000.0
        assert budget.budget_percent == 65.0
        assert budget.currency == "EUR"
        assert [(s.name, s.allocation) for s in suppliers] == [("Wella", 3000.0), ("Redken", 2500.0)]

    def test_save_replaces_current_budget(self, user):
        first = BudgetCreate(revenue_base="1000", budget_percent="10",
                             suppliers=[SupplierCreate(name="Old", allocation="50")])
        second = BudgetCreate(revenue_base="2000", budget_percent="20",
                              suppliers=[SupplierCreate(name="New", allocation="75")])
        database.save_budget(user.id, "retail", first)
        database.save_budget(user.id, "retail", second)

        db = database.get_db_session()
        try:
            assert db.query(database.RetailBudget).count() == 1
            assert db.query(database.RetailSupplier).count() == 1
        finally:
            db.close()

        budget, suppliers = database.get_latest_budget(user.id, "retail")
        assert budget.net_sales == 2000.0
        assert [s.name for s in suppliers] == ["New"]

    def test_budgets_are_per_user_and_kind(self, user):
        other, _ = database.create_user("other", "other@salon.test", "secret123")
        database.save_budget(user.id, "retail", BudgetCreate(revenue_base="1000", budget_percent="10"))

        assert database.get_latest_budget(other.id, "retail") is None
        assert database.get_latest_budget(user.id, "professional") is None
