"""
Pytest configuration and fixtures for the salon stock planner tests
"""

import os

# database.py builds its engine at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("BREVO_API_KEY", None)

import pytest

import database
from calculations import ProductPricingInput


@pytest.fixture(autouse=True)
def clean_db():
    """Fresh tables for every test"""
    database.Base.metadata.drop_all(bind=database.engine)
    database.Base.metadata.create_all(bind=database.engine)
    yield


@pytest.fixture
def user():
    created, message = database.create_user("salon", "owner@salon.test", "secret123")
    assert created is not None, message
    return created


@pytest.fixture
def worked_pricing():
    return ProductPricingInput(
        list_price="45",
        discount="10",
        retro_discount="5",
        usage="2",
        commission="10",
        rrp="80",
        vat_registered=False,
    )
