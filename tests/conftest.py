"""
Test configuration and fixtures for the DCF engine test suite
"""

import pytest
import tempfile
import shutil
from pathlib import Path

from dcf_builder.data_pipeline.models import (
    CompanyProfile,
    DCFAssumptions,
    FinancialStatement,
    TerminalValueInputs,
    WACCInputs,
)
from dcf_builder.utils import logging_config
from dcf_builder.utils.config import load_config


@pytest.fixture(scope="session")
def test_config():
    """Test configuration fixture"""
    return load_config(overrides={
        "scenarios": {"max_workers": 2},
        "logging": {"level": "DEBUG"},
    })


@pytest.fixture
def temp_directory():
    """Create temporary directory for test files"""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def base_year():
    """Reference base year used throughout the valuation tests"""
    return FinancialStatement(
        year=2023,
        revenue=1_000_000,
        cost_of_revenue=600_000,
        gross_profit=400_000,
        operating_expenses=200_000,
        operating_income=200_000,
        interest_expense=25_000,
        income_before_tax=175_000,
        income_tax_expense=36_750,
        net_income=138_250,
        depreciation=30_000,
        capital_expenditures=40_000,
        change_in_working_capital=5_000,
        total_debt=500_000,
        total_equity=500_000,
        shares_outstanding=100_000,
    )


@pytest.fixture
def historical_financials(base_year):
    """Three fiscal years, oldest first, ending at the base year"""
    earlier = [
        FinancialStatement(
            year=2021, revenue=800_000, gross_profit=312_000, operating_income=152_000,
            income_before_tax=130_000, income_tax_expense=27_300, depreciation=24_000,
            capital_expenditures=-30_000, total_debt=450_000, shares_outstanding=100_000,
        ),
        FinancialStatement(
            year=2022, revenue=900_000, gross_profit=355_500, operating_income=175_500,
            income_before_tax=152_000, income_tax_expense=31_920, depreciation=27_000,
            capital_expenditures=-36_000, total_debt=480_000, shares_outstanding=100_000,
        ),
    ]
    return earlier + [base_year]


@pytest.fixture
def company(historical_financials):
    """Company context for the reference scenario"""
    return CompanyProfile(
        ticker="TEST",
        current_price=40.0,
        shares_outstanding=100_000,
        total_debt=500_000,
        cash=100_000,
        historical_financials=historical_financials,
        name="Test Corp",
        sector="Industrials",
    )


@pytest.fixture
def assumptions():
    """Base scenario: 10% growth for five years"""
    return DCFAssumptions(
        revenue_growth_rates=(0.10, 0.10, 0.10, 0.10, 0.10),
        gross_margin=0.40,
        operating_margin=0.20,
        tax_rate=0.21,
        depreciation_pct_of_revenue=0.03,
        capex_pct_of_revenue=0.04,
        nwc_pct_of_revenue=0.10,
        projection_years=5,
    )


@pytest.fixture
def wacc_inputs():
    return WACCInputs(
        risk_free_rate=0.04,
        beta=1.0,
        equity_risk_premium=0.055,
        cost_of_debt=0.05,
        market_cap_equity=1_000_000,
        total_debt=500_000,
        tax_rate=0.21,
    )


@pytest.fixture
def terminal_inputs():
    return TerminalValueInputs.perpetuity(0.025)


@pytest.fixture
def fresh_engine_logger(monkeypatch):
    """Isolated metrics store for performance_monitor assertions"""
    instance = logging_config.EngineLogger()
    monkeypatch.setattr(logging_config, "engine_logger", instance)
    return instance
