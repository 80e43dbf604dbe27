from datetime import date
from decimal import Decimal

import pytest

from mortgage_calc.data_models import LoanParameters
from mortgage_calc_web.app import create_app
from mortgage_calc_web.config import Config


@pytest.fixture()
def make_params():
    """Factory for LoanParameters with a small, easy-to-check default loan."""

    def _make(**overrides):
        values = dict(
            principal=Decimal("10000"),
            rate_value=Decimal("12"),
            term=12,
            rate_kind="nominal",
            capitalization="monthly",
            start_date=date(2024, 1, 15),
        )
        values.update(overrides)
        return LoanParameters(**values)

    return _make


@pytest.fixture()
def make_app(tmp_path):
    """Factory for the web app on a throwaway SQLite database."""

    def _make(**overrides):
        settings = dict(
            TESTING=True,
            SIMULATION_DATABASE_URL=f"sqlite:///{tmp_path / 'simulations.sqlite3'}",
            SIMULATION_MAX_PER_USER=3,
            TRUST_USER_TOKEN_HEADER=True,
        )
        settings.update(overrides)
        return create_app(type("TestConfig", (Config,), settings))

    return _make


@pytest.fixture()
def app(make_app):
    return make_app()


@pytest.fixture()
def client(app):
    return app.test_client()
