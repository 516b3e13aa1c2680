"""Household parameter set: the immutable input to every simulated path.

Contains the people, guaranteed income streams, account buckets, asset
allocation, capital-market assumptions, spending and planning toggles that
describe one household. A :class:`HouseholdParameters` instance is built once
per request, validated up front and never mutated; workers receive a pickled
copy.

Note:
    Monetary values are in today's dollars. Rates and ratios are decimals.
"""

import logging
from typing import List, Literal, Optional
import warnings

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .._warnings import ConfigurationWarning

logger = logging.getLogger(__name__)

HealthStatus = Literal["excellent", "good", "fair", "poor"]
Gender = Literal["male", "female"]
FilingStatus = Literal["single", "married_joint", "married_separate", "head_of_household"]


class IncomeStream(BaseModel):
    """A guaranteed income source owned by one person.

    Social Security, pensions, annuities and part-time work all share this
    shape. ``start_age`` is the claim age for Social Security. Amounts are
    in today's dollars when ``inflation_adjusted`` is set, otherwise they
    are fixed nominal payments.

    Attributes:
        kind: Type of income stream.
        annual_amount: Annual payment.
        start_age: Owner age at which payments begin.
        end_age: Owner age after which payments stop (None = for life).
        inflation_adjusted: Whether payments carry a cost-of-living adjustment.
        survivor_fraction: Share of a pension or annuity that continues to
            a surviving spouse. Social Security ignores it and uses the
            higher-of-two-benefits rule instead.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["social_security", "pension", "part_time", "annuity"] = Field(
        description="Income stream type"
    )
    annual_amount: float = Field(ge=0, description="Annual payment")
    start_age: int = Field(ge=0, le=120, description="Owner age when payments begin")
    end_age: Optional[int] = Field(
        default=None, ge=0, le=120, description="Owner age after which payments stop"
    )
    inflation_adjusted: bool = Field(default=True, description="Cost-of-living adjusted")
    survivor_fraction: float = Field(
        default=0.5, ge=0, le=1, description="Share continuing to a surviving spouse"
    )

    @model_validator(mode="after")
    def validate_age_window(self) -> "IncomeStream":
        """Ensure the payment window is not inverted."""
        if self.end_age is not None and self.end_age < self.start_age:
            raise ValueError(
                f"Income stream end_age ({self.end_age}) is before start_age ({self.start_age})"
            )
        return self

    def is_active(self, owner_age: int) -> bool:
        """Whether the stream pays in the year its owner is ``owner_age``."""
        if owner_age < self.start_age:
            return False
        return self.end_age is None or owner_age <= self.end_age

    def amount(self, owner_age: int, inflation_factor: float) -> float:
        """Nominal payment for the year its owner is ``owner_age``.

        Args:
            owner_age: Age of the stream's owner (alive or not) this year.
            inflation_factor: Cumulative general price index since today.

        Returns:
            Nominal annual payment, zero outside the payment window.
        """
        if not self.is_active(owner_age):
            return 0.0
        if self.inflation_adjusted:
            return self.annual_amount * inflation_factor
        return self.annual_amount


class PersonProfile(BaseModel):
    """One member of the household.

    Attributes:
        current_age: Age today.
        retirement_age: Age at which contributions stop and, for the primary
            person, withdrawals begin.
        life_expectancy: Planning ceiling; nobody is simulated beyond it.
        gender: Drives the mortality table and LTC duration.
        health_status: Scales mortality hazard.
        contribution_tax_deferred: Desired annual 401(k)-style deferral.
        contribution_tax_free: Desired annual Roth-style contribution.
        contribution_taxable: Desired annual brokerage contribution.
        income_streams: Guaranteed income owned by this person.
    """

    model_config = ConfigDict(frozen=True)

    current_age: int = Field(ge=18, le=120, description="Age today")
    retirement_age: int = Field(ge=18, le=120, description="Retirement age")
    life_expectancy: int = Field(default=95, ge=18, le=120, description="Planning age ceiling")
    gender: Gender = Field(default="female", description="Gender for actuarial tables")
    health_status: HealthStatus = Field(default="good", description="Self-reported health")

    contribution_tax_deferred: float = Field(default=0.0, ge=0)
    contribution_tax_free: float = Field(default=0.0, ge=0)
    contribution_taxable: float = Field(default=0.0, ge=0)

    income_streams: List[IncomeStream] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_ages(self) -> "PersonProfile":
        """Ensure retirement and life expectancy do not precede today."""
        if self.retirement_age < self.current_age:
            raise ValueError(
                f"retirement_age ({self.retirement_age}) must be >= "
                f"current_age ({self.current_age})"
            )
        if self.life_expectancy < self.current_age:
            raise ValueError(
                f"life_expectancy ({self.life_expectancy}) must be >= "
                f"current_age ({self.current_age})"
            )
        return self

    def social_security_amount(self, owner_age: int, inflation_factor: float) -> float:
        """Total Social Security paid to this person at ``owner_age``."""
        return sum(
            s.amount(owner_age, inflation_factor)
            for s in self.income_streams
            if s.kind == "social_security"
        )


class AssetBuckets(BaseModel):
    """Investable balances split by tax treatment.

    Withdrawals draw cash first, then the taxable brokerage account
    (``capital_gains``), then tax-deferred and finally tax-free accounts.

    Attributes:
        tax_deferred: Traditional 401(k)/IRA balances.
        tax_free: Roth balances.
        capital_gains: Taxable brokerage balances.
        cash_equivalents: Checking, savings and money-market balances.
        capital_gains_basis_ratio: Share of a brokerage draw that is return of
            basis and therefore untaxed.
        total_assets: Optional declared total; must match the bucket sum.
    """

    model_config = ConfigDict(frozen=True)

    tax_deferred: float = Field(default=0.0, ge=0)
    tax_free: float = Field(default=0.0, ge=0)
    capital_gains: float = Field(default=0.0, ge=0)
    cash_equivalents: float = Field(default=0.0, ge=0)
    capital_gains_basis_ratio: float = Field(default=0.5, ge=0, le=1)
    total_assets: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_total(self) -> "AssetBuckets":
        """Ensure the declared total equals the sum of the buckets."""
        if self.total_assets is not None and abs(self.total - self.total_assets) > 0.01:
            raise ValueError(
                f"Bucket balances sum to {self.total:,.2f} but total_assets is "
                f"{self.total_assets:,.2f}"
            )
        return self

    @property
    def total(self) -> float:
        """Sum of all buckets."""
        return self.tax_deferred + self.tax_free + self.capital_gains + self.cash_equivalents


class AllocationConfig(BaseModel):
    """Portfolio weights applied to every invested bucket."""

    model_config = ConfigDict(frozen=True)

    stocks: float = Field(default=0.6, ge=0, le=1)
    bonds: float = Field(default=0.35, ge=0, le=1)
    cash: float = Field(default=0.05, ge=0, le=1)

    @model_validator(mode="after")
    def validate_weights(self) -> "AllocationConfig":
        """Ensure weights sum to 1.0."""
        total = self.stocks + self.bonds + self.cash
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Allocation weights sum to {total:.6f}, not 1.0")
        return self


class MarketAssumptions(BaseModel):
    """Long-run capital-market assumptions for one household.

    Volatilities are deliberately unconstrained here: the return model clamps
    out-of-range values to ``[0, 1]`` and reports them with a
    :class:`~retirement_risk._warnings.DataQualityWarning`.
    """

    model_config = ConfigDict(frozen=True)

    stock_return: float = Field(default=0.07, ge=-0.5, le=0.5)
    stock_volatility: float = Field(default=0.16)
    bond_return: float = Field(default=0.04, ge=-0.5, le=0.5)
    bond_volatility: float = Field(default=0.06)
    cash_return: float = Field(default=0.02, ge=-0.5, le=0.5)
    stock_bond_correlation: float = Field(default=0.1, ge=-1, le=1)
    inflation: float = Field(default=0.025, ge=-0.1, le=0.5)
    healthcare_inflation: float = Field(default=0.05, ge=-0.1, le=0.5)

    def expected_portfolio_return(self, allocation: AllocationConfig) -> float:
        """Allocation-weighted arithmetic expected return."""
        return (
            allocation.stocks * self.stock_return
            + allocation.bonds * self.bond_return
            + allocation.cash * self.cash_return
        )


class HouseholdParameters(BaseModel):
    """Complete, immutable description of a household for simulation.

    Examples:
        A single retiree living on Social Security plus a 401(k)::

            household = HouseholdParameters(
                primary=PersonProfile(
                    current_age=65,
                    retirement_age=65,
                    income_streams=[
                        IncomeStream(kind="social_security", annual_amount=30_000, start_age=65)
                    ],
                ),
                assets=AssetBuckets(tax_deferred=800_000),
                annual_expenses=60_000,
            )
    """

    model_config = ConfigDict(frozen=True)

    primary: PersonProfile
    spouse: Optional[PersonProfile] = None

    assets: AssetBuckets = Field(default_factory=AssetBuckets)
    allocation: AllocationConfig = Field(default_factory=AllocationConfig)
    market: MarketAssumptions = Field(default_factory=MarketAssumptions)

    annual_expenses: float = Field(ge=0, description="Annual living expenses in retirement")
    annual_healthcare_cost: float = Field(
        default=0.0, ge=0, description="Healthcare add-on, inflated at healthcare inflation"
    )
    discretionary_ratio: float = Field(
        default=0.25, ge=0, le=1, description="Share of expenses the guardrails may adjust"
    )
    survivor_expense_factor: float = Field(default=0.75, ge=0, le=1)
    survivor_healthcare_factor: float = Field(default=0.85, ge=0, le=1)

    withdrawal_rate: float = Field(
        default=0.04, gt=0, le=1, description="Initial withdrawal rate anchoring the guardrails"
    )
    legacy_goal: float = Field(default=0.0, ge=0, description="Desired real terminal balance")

    use_guardrails: bool = Field(default=True)
    model_ltc: bool = Field(default=True)
    has_ltc_insurance: bool = Field(default=False)
    stochastic_mortality: bool = Field(default=True)

    filing_status: FilingStatus = Field(default="single")
    state: str = Field(default="TX", min_length=2, max_length=2)
    start_year: int = Field(default=2025, ge=1900, le=2200)

    @field_validator("state")
    @classmethod
    def normalize_state(cls, v: str) -> str:
        """Store state codes upper-case."""
        return v.upper()

    @model_validator(mode="after")
    def check_typical_ranges(self) -> "HouseholdParameters":
        """Warn (never fail) on values that are legal but unusual."""
        if self.withdrawal_rate > 0.10:
            warnings.warn(
                f"Withdrawal rate {self.withdrawal_rate:.1%} is far above typical "
                "sustainable rates; guardrails will cut spending early.",
                ConfigurationWarning,
                stacklevel=2,
            )
        if self.spouse is not None and self.filing_status == "single":
            logger.debug("Couple configured with filing_status='single'")
        return self

    @property
    def is_couple(self) -> bool:
        """Whether a spouse is modeled."""
        return self.spouse is not None

    @property
    def horizon_age(self) -> int:
        """Last primary age simulated.

        The later of the primary's ceiling and the primary age at which the
        spouse reaches their own ceiling.
        """
        horizon = self.primary.life_expectancy
        if self.spouse is not None:
            offset = self.primary.current_age - self.spouse.current_age
            horizon = max(horizon, self.spouse.life_expectancy + offset)
        return horizon

    @property
    def horizon_years(self) -> int:
        """Number of simulated years, counting the current year."""
        return self.horizon_age - self.primary.current_age + 1

    @property
    def people(self) -> List[PersonProfile]:
        """Primary first, then spouse when present."""
        return [self.primary] if self.spouse is None else [self.primary, self.spouse]
