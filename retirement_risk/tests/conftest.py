"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from retirement_risk.config import (
    AssetBuckets,
    HouseholdParameters,
    IncomeStream,
    MarketAssumptions,
    ModelConfig,
    PersonProfile,
    SimulationConfig,
    TaxConfig,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: long-running statistical tests")
    config.addinivalue_line(
        "markers", "requires_multiprocessing: tests that start worker processes"
    )


def flat_market(rate: float = 0.0, inflation: float = 0.0) -> MarketAssumptions:
    """Zero-volatility market where every asset earns ``rate``."""
    return MarketAssumptions(
        stock_return=rate,
        stock_volatility=0.0,
        bond_return=rate,
        bond_volatility=0.0,
        cash_return=rate,
        inflation=inflation,
        healthcare_inflation=inflation,
    )


@pytest.fixture
def zero_market():
    """Market with no returns, no volatility and no inflation."""
    return flat_market()


@pytest.fixture
def zero_tax_models():
    """Sub-model configuration with a zero-rate tax engine."""
    return ModelConfig(tax=TaxConfig(ordinary_rate=0.0, capital_gains_rate=0.0))


@pytest.fixture
def in_process_simulation():
    """Small, deterministic, single-process execution settings."""
    return SimulationConfig(simulation_count=40, n_workers=4, use_processes=False)


@pytest.fixture
def example_household(zero_market):
    """Retired 65-year-old, $1M tax-deferred, income exactly covering expenses."""
    return HouseholdParameters(
        primary=PersonProfile(
            current_age=65,
            retirement_age=65,
            life_expectancy=95,
            gender="male",
            income_streams=[
                IncomeStream(kind="social_security", annual_amount=40_000, start_age=65)
            ],
        ),
        assets=AssetBuckets(tax_deferred=1_000_000),
        market=zero_market,
        annual_expenses=40_000,
        model_ltc=False,
    )


@pytest.fixture
def couple_household():
    """Working couple with mixed buckets and default market assumptions."""
    return HouseholdParameters(
        primary=PersonProfile(
            current_age=60,
            retirement_age=65,
            life_expectancy=92,
            gender="male",
            health_status="good",
            contribution_tax_deferred=20_000,
            contribution_tax_free=7_000,
            income_streams=[
                IncomeStream(kind="social_security", annual_amount=32_000, start_age=67),
                IncomeStream(
                    kind="pension",
                    annual_amount=12_000,
                    start_age=65,
                    inflation_adjusted=False,
                    survivor_fraction=0.5,
                ),
            ],
        ),
        spouse=PersonProfile(
            current_age=58,
            retirement_age=63,
            life_expectancy=95,
            gender="female",
            health_status="excellent",
            income_streams=[
                IncomeStream(kind="social_security", annual_amount=24_000, start_age=67)
            ],
        ),
        assets=AssetBuckets(
            tax_deferred=600_000,
            tax_free=150_000,
            capital_gains=200_000,
            cash_equivalents=50_000,
        ),
        annual_expenses=90_000,
        annual_healthcare_cost=12_000,
        filing_status="married_joint",
        state="CA",
    )


@pytest.fixture
def make_market():
    """Factory for zero-volatility markets."""
    return flat_market


@pytest.fixture
def parameters_dir():
    """Directory holding the bundled example parameter files."""
    return Path(__file__).parent.parent / "data" / "parameters"
