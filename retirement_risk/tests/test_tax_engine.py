"""Tests for the tax engine interface."""

import pytest

from retirement_risk.config import TaxConfig
from retirement_risk.tax_engine import FlatRateTaxEngine, TaxEngine


def test_flat_rates():
    """Ordinary income and gains are taxed at their own rates."""
    engine = FlatRateTaxEngine(0.22, 0.15)
    assert engine.compute_tax(100_000, 10_000, "single", "TX", 2025) == pytest.approx(23_500)


def test_state_rate_applies_to_all_income():
    """A state rate is added to both federal rates."""
    engine = FlatRateTaxEngine.from_config(
        TaxConfig(ordinary_rate=0.22, capital_gains_rate=0.15, state_rates={"ca": 0.05})
    )
    assert engine.compute_tax(100_000, 10_000, "single", "CA", 2025) == pytest.approx(29_000)
    assert engine.compute_tax(100_000, 10_000, "single", "TX", 2025) == pytest.approx(23_500)


def test_negative_income_untaxed():
    """Losses do not produce negative tax."""
    engine = FlatRateTaxEngine()
    assert engine.compute_tax(-5_000, -1_000, "single", "TX", 2025) == 0.0


def test_protocol_conformance():
    """The flat engine satisfies the TaxEngine protocol."""
    assert isinstance(FlatRateTaxEngine(), TaxEngine)

    class NoTax:
        def compute_tax(self, ordinary_income, capital_gains, filing_status, state, year):
            return 0.0

    assert isinstance(NoTax(), TaxEngine)
