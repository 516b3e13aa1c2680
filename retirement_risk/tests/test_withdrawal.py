"""Tests for the withdrawal engine and guardrail policy."""

import pytest

from retirement_risk.config import (
    AssetBuckets,
    GuardrailConfig,
    HouseholdParameters,
    PersonProfile,
)
from retirement_risk.contributions import ContributionSplit
from retirement_risk.market_returns import AssetReturns
from retirement_risk.tax_engine import FlatRateTaxEngine
from retirement_risk.withdrawal import (
    BucketBalances,
    GuardrailPolicy,
    WithdrawalEngine,
    WithdrawalPhase,
    YearCashFlows,
    _gross_up,
)

NO_TAX = FlatRateTaxEngine(0.0, 0.0)
FLAT = AssetReturns(0.0, 0.0, 0.0)


def make_household(expenses=40_000, current_age=65, retirement_age=65, **kwargs):
    assets = AssetBuckets(
        **{
            k: kwargs.pop(k)
            for k in ("cash_equivalents", "capital_gains", "tax_deferred", "tax_free")
            if k in kwargs
        },
        capital_gains_basis_ratio=kwargs.pop("basis_ratio", 0.5),
    )
    kwargs.setdefault("use_guardrails", False)
    return HouseholdParameters(
        primary=PersonProfile(current_age=current_age, retirement_age=retirement_age),
        assets=assets,
        annual_expenses=expenses,
        **kwargs,
    )


def flows(living=40_000, income=0.0, returns=FLAT, contributions=None, ltc=0.0, healthcare=0.0):
    return YearCashFlows(
        living_expenses=living,
        healthcare=healthcare,
        ltc_cost=ltc,
        guaranteed_income=income,
        contributions=contributions or ContributionSplit(),
        returns=returns,
    )


class TestBucketOrder:
    """Draws follow cash, brokerage, tax-deferred, tax-free."""

    def test_draw_order(self):
        """Earlier buckets are exhausted before later ones are touched."""
        household = make_household(
            cash_equivalents=10_000, capital_gains=20_000, tax_deferred=100_000, tax_free=50_000
        )
        engine = WithdrawalEngine(household, NO_TAX)
        outcome = engine.step(0, 65, flows(living=25_000), 2025, 30)

        assert outcome.withdrawal == pytest.approx(25_000)
        assert engine.balances.cash == 0.0
        assert engine.balances.capital_gains == pytest.approx(5_000)
        assert engine.balances.tax_deferred == 100_000
        assert engine.balances.tax_free == 50_000

    def test_tax_free_drawn_last(self):
        """Roth balances fund only what other buckets cannot."""
        household = make_household(tax_deferred=10_000, tax_free=50_000)
        engine = WithdrawalEngine(household, NO_TAX)
        engine.step(0, 65, flows(living=15_000), 2025, 30)
        assert engine.balances.tax_deferred == 0.0
        assert engine.balances.tax_free == pytest.approx(45_000)

    def test_from_assets(self):
        """Opening balances mirror the household buckets."""
        balances = BucketBalances.from_assets(AssetBuckets(cash_equivalents=1, tax_free=2))
        assert balances.as_dict() == {
            "cash": 1,
            "capital_gains": 0,
            "tax_deferred": 0,
            "tax_free": 2,
        }
        assert balances.total == 3


class TestTaxGrossUp:
    """Taxable draws are grossed up so the net covers the need."""

    def test_tax_deferred_gross_up(self):
        """A 20% ordinary rate turns an 8,000 need into a 10,000 draw."""
        household = make_household(tax_deferred=100_000)
        engine = WithdrawalEngine(household, FlatRateTaxEngine(0.20, 0.0))
        outcome = engine.step(0, 65, flows(living=8_000), 2025, 30)

        assert outcome.withdrawal == pytest.approx(10_000, abs=0.05)
        assert outcome.tax_paid == pytest.approx(2_000, abs=0.05)
        assert engine.balance == pytest.approx(90_000, abs=0.05)

    def test_brokerage_taxes_only_gains(self):
        """Only the gain share of a brokerage draw is taxed."""
        household = make_household(capital_gains=100_000, basis_ratio=0.5)
        engine = WithdrawalEngine(household, FlatRateTaxEngine(0.0, 0.20))
        outcome = engine.step(0, 65, flows(living=9_000), 2025, 30)

        assert outcome.withdrawal == pytest.approx(10_000, abs=0.05)
        assert outcome.tax_paid == pytest.approx(1_000, abs=0.05)

    def test_guaranteed_income_tax_not_drawn(self):
        """Tax on guaranteed income is reported but never funded from the portfolio."""
        household = make_household(expenses=30_000, tax_free=100_000)
        engine = WithdrawalEngine(household, FlatRateTaxEngine(0.10, 0.0))
        outcome = engine.step(0, 65, flows(living=30_000, income=30_000), 2025, 30)
        assert outcome.withdrawal == 0.0
        assert outcome.tax_paid == 0.0
        assert outcome.income_tax == pytest.approx(3_000)
        assert engine.balance == pytest.approx(100_000)

    def test_income_above_expenses_leaves_surplus_under_tax(self):
        """Income a little above spending is a surplus even at a 22% rate."""
        household = make_household(expenses=40_000, cash_equivalents=20_000)
        engine = WithdrawalEngine(household, FlatRateTaxEngine(0.22, 0.15))
        outcome = engine.step(0, 65, flows(living=40_000, income=41_000), 2025, 30)
        assert outcome.surplus == pytest.approx(1_000)
        assert engine.balance == pytest.approx(21_000)

    def test_gross_up_converges(self):
        """Fixed-point iteration solves gross - tax(gross) = net."""
        gross = _gross_up(7_500, lambda g: 0.25 * g)
        assert gross == pytest.approx(10_000, abs=0.02)


class TestYearMechanics:
    """Returns, surpluses and depletion."""

    def test_returns_applied_after_withdrawal(self):
        """The year's return applies to the post-withdrawal balance."""
        household = make_household(tax_deferred=100_000)
        engine = WithdrawalEngine(household, NO_TAX)
        growth = AssetReturns(0.1, 0.1, 0.1)
        outcome = engine.step(0, 65, flows(living=10_000, returns=growth), 2025, 30)
        assert outcome.start_balance == 100_000
        assert outcome.end_balance == pytest.approx(99_000)

    def test_surplus_reinvested_as_cash(self):
        """Income above spending is added to cash."""
        household = make_household(tax_deferred=1_000_000)
        engine = WithdrawalEngine(household, NO_TAX)
        outcome = engine.step(0, 65, flows(living=40_000, income=50_000), 2025, 30)

        assert outcome.withdrawal == 0.0
        assert outcome.surplus == pytest.approx(10_000)
        assert engine.balances.cash == pytest.approx(10_000)
        assert outcome.end_balance == pytest.approx(1_010_000)

    def test_exact_coverage_leaves_balance(self):
        """Income exactly covering spending leaves the portfolio untouched."""
        household = make_household(tax_deferred=1_000_000)
        engine = WithdrawalEngine(household, NO_TAX)
        for year in range(30):
            engine.step(
                year, 65 + year, flows(living=40_000, income=40_000), 2025 + year, 30 - year
            )
        assert engine.balance == pytest.approx(1_000_000)

    def test_depletion_is_terminal(self):
        """A shortfall clamps the balance to zero for the rest of the path."""
        household = make_household(tax_deferred=5_000)
        engine = WithdrawalEngine(household, NO_TAX)
        outcome = engine.step(3, 68, flows(living=10_000), 2028, 20)

        assert outcome.depleted_this_year
        assert outcome.unfunded == pytest.approx(5_000)
        assert outcome.end_balance == 0.0
        assert engine.phase is WithdrawalPhase.DEPLETED
        assert engine.depletion_year == 3

        later = engine.step(4, 69, flows(living=0, income=100_000), 2029, 19)
        assert later.end_balance == 0.0
        assert engine.balance == 0.0
        assert engine.depletion_year == 3

    def test_ltc_and_healthcare_add_to_need(self):
        """Care and healthcare costs are funded like living expenses."""
        household = make_household(tax_deferred=500_000)
        engine = WithdrawalEngine(household, NO_TAX)
        outcome = engine.step(0, 65, flows(living=10_000, ltc=80_000, healthcare=5_000), 2025, 30)
        assert outcome.withdrawal == pytest.approx(95_000)


class TestAccumulation:
    """Pre-retirement years."""

    def test_contributions_then_growth(self):
        """Contributions are deposited before the year's return."""
        household = make_household(current_age=60, retirement_age=62, tax_deferred=100_000)
        engine = WithdrawalEngine(household, NO_TAX)
        assert engine.phase is WithdrawalPhase.ACCUMULATING

        contributions = ContributionSplit(10_000, 5_000, 1_000)
        outcome = engine.step(
            0, 60, flows(contributions=contributions, returns=AssetReturns(0.1, 0.1, 0.1)), 2025, 37
        )
        assert outcome.contributions == 16_000
        assert outcome.withdrawal == 0.0
        assert engine.balances.tax_deferred == pytest.approx(121_000)
        assert engine.balances.tax_free == pytest.approx(5_500)
        assert engine.balances.capital_gains == pytest.approx(1_100)

    def test_switches_to_withdrawing_at_retirement(self):
        """Withdrawals begin in the retirement year."""
        household = make_household(current_age=60, retirement_age=61, tax_deferred=100_000)
        engine = WithdrawalEngine(household, NO_TAX)
        engine.step(0, 60, flows(), 2025, 36)
        outcome = engine.step(1, 61, flows(living=10_000), 2026, 35)
        assert engine.phase is WithdrawalPhase.WITHDRAWING
        assert outcome.withdrawal == pytest.approx(10_000)

    def test_contributions_deposited_while_withdrawing(self):
        """A working spouse's contributions land after the primary retires."""
        household = make_household(expenses=10_000, cash_equivalents=100_000)
        engine = WithdrawalEngine(household, NO_TAX)
        contributions = ContributionSplit(tax_deferred=20_000)
        outcome = engine.step(0, 65, flows(living=10_000, contributions=contributions), 2025, 30)

        assert outcome.contributions == 20_000
        assert outcome.withdrawal == pytest.approx(10_000)
        assert engine.balances.tax_deferred == pytest.approx(20_000)
        assert engine.balances.cash == pytest.approx(90_000)
        assert outcome.end_balance == pytest.approx(110_000)


class TestGuardrails:
    """Guyton-Klinger multiplier updates."""

    def test_cut_and_raise(self):
        """High withdrawal rates cut, low ones raise."""
        policy = GuardrailPolicy(GuardrailConfig(), initial_rate=0.04)
        assert policy.adjust(60_000, 1_000_000, 30) == pytest.approx(0.9)
        assert policy.adjust(20_000, 1_000_000, 30) == pytest.approx(0.99)
        assert policy.adjust(40_000, 1_000_000, 30) == pytest.approx(0.99)

    def test_no_cut_near_horizon(self):
        """Cuts are skipped when few years remain."""
        policy = GuardrailPolicy(GuardrailConfig(min_remaining_years=15), initial_rate=0.04)
        assert policy.adjust(60_000, 1_000_000, 15) == 1.0

    def test_bounded(self):
        """The multiplier stays within its bounds."""
        policy = GuardrailPolicy(GuardrailConfig(), initial_rate=0.04)
        for _ in range(50):
            policy.adjust(100_000, 1_000_000, 30)
        assert policy.multiplier == pytest.approx(0.5)
        for _ in range(50):
            policy.adjust(1_000, 1_000_000, 30)
        assert policy.multiplier == pytest.approx(1.5)

    def test_inactive_cases(self):
        """Disabled policies and zero planned draws leave the multiplier alone."""
        disabled = GuardrailPolicy(GuardrailConfig(), 0.04, enabled=False)
        assert disabled.adjust(100_000, 1_000_000, 30) == 1.0
        policy = GuardrailPolicy(GuardrailConfig(), 0.04)
        assert policy.adjust(0.0, 1_000_000, 30) == 1.0
        assert policy.adjust(-5_000, 1_000_000, 30) == 1.0

    def test_engine_cuts_discretionary_share_only(self):
        """Only the discretionary share of spending is scaled."""
        household = make_household(
            expenses=100_000, tax_deferred=1_000_000, use_guardrails=True, discretionary_ratio=0.25
        )
        engine = WithdrawalEngine(household, NO_TAX, GuardrailConfig())
        outcome = engine.step(0, 65, flows(living=100_000), 2025, 30)
        assert outcome.discretionary_multiplier == pytest.approx(0.9)
        assert outcome.withdrawal == pytest.approx(75_000 + 25_000 * 0.9)
