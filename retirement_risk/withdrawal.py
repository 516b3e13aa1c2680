"""Yearly portfolio cash-flow engine.

The :class:`WithdrawalEngine` owns a household's bucket balances for one
simulated path and moves through three phases:

``ACCUMULATING``
    Before the primary person's retirement age. Capped contributions are
    deposited and returns applied; spending is funded from earnings.
``WITHDRAWING``
    Contributions from a household member still working are deposited. The
    spending need left after guaranteed income is drawn from the buckets
    in the order cash, taxable brokerage, tax-deferred, tax-free. Taxable
    draws are grossed up so their tax is paid from the portfolio. Returns are
    applied to what remains. A surplus is reinvested as cash. Tax on the
    guaranteed income itself is reported but is not funded from the portfolio;
    the income only sets the base the taxable draws stack on.
``DEPLETED``
    Entered when a year's need cannot be met. The balance is clamped to zero
    and stays there; depletion is recorded, never raised.
"""

from dataclasses import asdict, dataclass
from enum import Enum
import logging
from typing import Callable, ClassVar, Dict, Optional, Tuple

from .config.household import AllocationConfig, AssetBuckets, HouseholdParameters
from .config.models import GuardrailConfig
from .contributions import ContributionSplit
from .market_returns import AssetReturns
from .tax_engine import TaxEngine

logger = logging.getLogger(__name__)

_EPSILON = 0.01  # one cent


class WithdrawalPhase(str, Enum):
    """Lifecycle phase of a path's portfolio."""

    ACCUMULATING = "accumulating"
    WITHDRAWING = "withdrawing"
    DEPLETED = "depleted"


@dataclass
class BucketBalances:
    """Mutable nominal balances by tax treatment."""

    cash: float = 0.0
    capital_gains: float = 0.0
    tax_deferred: float = 0.0
    tax_free: float = 0.0

    DRAW_ORDER: ClassVar[Tuple[str, ...]] = ("cash", "capital_gains", "tax_deferred", "tax_free")

    @classmethod
    def from_assets(cls, assets: AssetBuckets) -> "BucketBalances":
        """Opening balances from the household's buckets."""
        return cls(
            cash=assets.cash_equivalents,
            capital_gains=assets.capital_gains,
            tax_deferred=assets.tax_deferred,
            tax_free=assets.tax_free,
        )

    @property
    def total(self) -> float:
        """Sum of all buckets."""
        return self.cash + self.capital_gains + self.tax_deferred + self.tax_free

    def deposit(self, contributions: ContributionSplit) -> None:
        """Add a year's contributions to their buckets."""
        self.tax_deferred += contributions.tax_deferred
        self.tax_free += contributions.tax_free
        self.capital_gains += contributions.taxable

    def grow(self, returns: AssetReturns, allocation: AllocationConfig) -> None:
        """Apply one year of returns; cash equivalents earn the cash rate."""
        invested = 1.0 + returns.portfolio(allocation)
        self.cash = max(0.0, self.cash * (1.0 + returns.cash))
        self.capital_gains = max(0.0, self.capital_gains * invested)
        self.tax_deferred = max(0.0, self.tax_deferred * invested)
        self.tax_free = max(0.0, self.tax_free * invested)

    def clear(self) -> None:
        """Zero every bucket."""
        self.cash = self.capital_gains = self.tax_deferred = self.tax_free = 0.0

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class YearCashFlows:
    """Nominal inputs to one year of the engine.

    Attributes:
        living_expenses: Living expenses before guardrails, survivor-adjusted.
        healthcare: Healthcare add-on.
        ltc_cost: Out-of-pocket long-term care, including premiums.
        guaranteed_income: Social Security, pensions, annuities and wages.
        contributions: Capped contributions of every member still working.
        returns: The year's asset returns.
    """

    living_expenses: float
    healthcare: float
    ltc_cost: float
    guaranteed_income: float
    contributions: ContributionSplit
    returns: AssetReturns


@dataclass(frozen=True)
class YearOutcome:
    """What the engine did in one year."""

    phase: WithdrawalPhase
    start_balance: float
    end_balance: float
    withdrawal: float = 0.0
    tax_paid: float = 0.0
    income_tax: float = 0.0
    spending_need: float = 0.0
    surplus: float = 0.0
    unfunded: float = 0.0
    contributions: float = 0.0
    discretionary_multiplier: float = 1.0
    depleted_this_year: bool = False


class GuardrailPolicy:
    """Guyton-Klinger capital-preservation and prosperity rules.

    Tracks a multiplier on the discretionary share of spending. Each year the
    current withdrawal rate (planned draw over start-of-year balance) is
    compared with the initial rate, and the multiplier moves at most once.
    Cuts are skipped when no more than ``min_remaining_years`` remain. No
    adjustment is made in years the portfolio funds nothing.

    Args:
        config: Band and adjustment sizes.
        initial_rate: Initial withdrawal rate the bands are centred on.
        enabled: When False the multiplier stays at 1.0.
    """

    def __init__(self, config: GuardrailConfig, initial_rate: float, enabled: bool = True):
        self.config = config
        self.initial_rate = initial_rate
        self.enabled = enabled
        self.multiplier = 1.0

    def adjust(
        self, planned_withdrawal: float, portfolio_value: float, remaining_years: int
    ) -> float:
        """Update and return the discretionary multiplier for this year."""
        if not self.enabled or planned_withdrawal <= 0 or portfolio_value <= 0:
            return self.multiplier

        cfg = self.config
        ratio = (planned_withdrawal / portfolio_value) / self.initial_rate
        if ratio > 1.0 + cfg.upper_band and remaining_years > cfg.min_remaining_years:
            self.multiplier *= 1.0 - cfg.cut_pct
        elif ratio < 1.0 - cfg.lower_band:
            self.multiplier *= 1.0 + cfg.raise_pct
        self.multiplier = min(max(self.multiplier, cfg.min_multiplier), cfg.max_multiplier)
        return self.multiplier


class WithdrawalEngine:
    """Per-path portfolio state machine.

    Args:
        household: Household parameters.
        tax_engine: Tax collaborator used to gross up taxable draws.
        guardrails: Guardrail configuration; the policy is active only when
            the household enables guardrails.
    """

    def __init__(
        self,
        household: HouseholdParameters,
        tax_engine: TaxEngine,
        guardrails: Optional[GuardrailConfig] = None,
    ):
        self.household = household
        self.tax_engine = tax_engine
        self.balances = BucketBalances.from_assets(household.assets)
        self.guardrails = GuardrailPolicy(
            guardrails or GuardrailConfig(),
            household.withdrawal_rate,
            enabled=household.use_guardrails,
        )
        primary = household.primary
        self.phase = (
            WithdrawalPhase.ACCUMULATING
            if primary.current_age < primary.retirement_age
            else WithdrawalPhase.WITHDRAWING
        )
        self.depletion_year: Optional[int] = None

    @property
    def balance(self) -> float:
        """Current total balance."""
        return self.balances.total

    def step(
        self,
        year_index: int,
        age: int,
        flows: YearCashFlows,
        calendar_year: int,
        remaining_years: int,
    ) -> YearOutcome:
        """Advance the portfolio by one year.

        Args:
            year_index: Zero-based simulation year.
            age: Primary person's age this year.
            flows: The year's nominal cash flows and returns.
            calendar_year: Calendar year passed to the tax engine.
            remaining_years: Years left to the planning horizon.

        Returns:
            YearOutcome describing the year.
        """
        retirement_age = self.household.primary.retirement_age
        if self.phase is WithdrawalPhase.ACCUMULATING and age >= retirement_age:
            self.phase = WithdrawalPhase.WITHDRAWING
            logger.debug("Year %d: retirement at age %d", year_index, age)

        start = self.balances.total

        if self.phase is WithdrawalPhase.DEPLETED:
            return YearOutcome(self.phase, start_balance=0.0, end_balance=0.0)

        if self.phase is WithdrawalPhase.ACCUMULATING:
            self.balances.deposit(flows.contributions)
            self.balances.grow(flows.returns, self.household.allocation)
            return YearOutcome(
                self.phase,
                start_balance=start,
                end_balance=self.balances.total,
                contributions=flows.contributions.total,
            )

        return self._withdraw(year_index, flows, calendar_year, remaining_years, start)

    def _withdraw(
        self,
        year_index: int,
        flows: YearCashFlows,
        calendar_year: int,
        remaining_years: int,
        start: float,
    ) -> YearOutcome:
        household = self.household
        income = flows.guaranteed_income
        income_tax = self._tax(income, 0.0, calendar_year)
        # a spouse still working keeps contributing after the primary retires
        self.balances.deposit(flows.contributions)
        contributed = flows.contributions.total

        discretionary = flows.living_expenses * household.discretionary_ratio
        fixed_need = (
            flows.living_expenses - discretionary + flows.healthcare + flows.ltc_cost - income
        )
        multiplier = self.guardrails.adjust(
            fixed_need + discretionary * self.guardrails.multiplier, start, remaining_years
        )
        need = fixed_need + discretionary * multiplier

        if need <= 0:
            self.balances.cash += -need
            self.balances.grow(flows.returns, household.allocation)
            return YearOutcome(
                self.phase,
                start_balance=start,
                end_balance=self.balances.total,
                income_tax=income_tax,
                contributions=contributed,
                spending_need=need,
                surplus=-need,
                discretionary_multiplier=multiplier,
            )

        withdrawn, draw_tax, unfunded = self._draw(need, income, calendar_year)

        if unfunded > _EPSILON:
            self.balances.clear()
            self.phase = WithdrawalPhase.DEPLETED
            self.depletion_year = year_index
            logger.debug(
                "Year %d: portfolio depleted with %.2f of %.2f unfunded", year_index, unfunded, need
            )
            return YearOutcome(
                self.phase,
                start_balance=start,
                end_balance=0.0,
                withdrawal=withdrawn,
                tax_paid=draw_tax,
                income_tax=income_tax,
                contributions=contributed,
                spending_need=need,
                unfunded=unfunded,
                discretionary_multiplier=multiplier,
                depleted_this_year=True,
            )

        self.balances.grow(flows.returns, household.allocation)
        return YearOutcome(
            self.phase,
            start_balance=start,
            end_balance=self.balances.total,
            withdrawal=withdrawn,
            tax_paid=draw_tax,
            income_tax=income_tax,
            contributions=contributed,
            spending_need=need,
            discretionary_multiplier=multiplier,
        )

    def _tax(self, ordinary: float, gains: float, calendar_year: int) -> float:
        household = self.household
        return self.tax_engine.compute_tax(
            ordinary, gains, household.filing_status, household.state, calendar_year
        )

    def _draw(self, need: float, ordinary: float, calendar_year: int) -> Tuple[float, float, float]:
        """Withdraw ``need`` after tax from the buckets in draw order.

        Returns:
            Tuple of ``(gross_withdrawn, tax_on_draws, unfunded_need)``.
        """
        gains = 0.0
        withdrawn = 0.0
        tax_paid = 0.0
        gain_share = 1.0 - self.household.assets.capital_gains_basis_ratio

        for bucket in BucketBalances.DRAW_ORDER:
            if need <= _EPSILON:
                break
            available = getattr(self.balances, bucket)
            if available <= 0:
                continue

            if bucket == "tax_deferred":
                base = self._tax(ordinary, gains, calendar_year)

                def incremental(gross: float) -> float:
                    return self._tax(ordinary + gross, gains, calendar_year) - base

            elif bucket == "capital_gains":
                base = self._tax(ordinary, gains, calendar_year)

                def incremental(gross: float) -> float:
                    return self._tax(ordinary, gains + gross * gain_share, calendar_year) - base

            else:

                def incremental(gross: float) -> float:
                    return 0.0

            required = _gross_up(need, incremental)
            gross = min(required, available)
            tax = incremental(gross)

            setattr(self.balances, bucket, available - gross)
            if bucket == "tax_deferred":
                ordinary += gross
            elif bucket == "capital_gains":
                gains += gross * gain_share
            withdrawn += gross
            tax_paid += tax
            if required <= available:
                need = 0.0
            else:
                need -= max(0.0, gross - tax)

        return withdrawn, tax_paid, max(0.0, need)


def _gross_up(net: float, incremental_tax: Callable[[float], float], max_iter: int = 100) -> float:
    """Gross amount whose after-tax value is ``net`` (fixed-point iteration)."""
    gross = net
    for _ in range(max_iter):
        updated = net + incremental_tax(gross)
        if abs(updated - gross) < 0.005:
            return updated
        gross = updated
    return gross
