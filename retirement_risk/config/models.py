"""Configuration of the stochastic and rule-based sub-models.

Contains the pluggable data inputs behind each simulation component:
mortality adjustments, long-term-care shock parameters and insurance terms,
Guyton-Klinger guardrail bands, contribution limits and the default flat
tax rates. :class:`ModelConfig` composes them together with the market
regime configuration.
"""

import logging
from typing import Dict, Literal, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import HEALTH_MORTALITY_MULTIPLIERS, LTC_DURATION_GENDER_MULTIPLIERS
from .market import MarketRegimeConfig

logger = logging.getLogger(__name__)


class MortalityConfig(BaseModel):
    """Mortality model parameters.

    Attributes:
        table: Name of the period life table.
        health_multipliers: Hazard multiplier by health status.
        young_age_gompertz_slope: Annual log-hazard slope used to extrapolate
            below the table's first age.
    """

    table: Literal["ssa_2021"] = Field(default="ssa_2021")
    health_multipliers: Dict[str, float] = Field(
        default_factory=lambda: dict(HEALTH_MORTALITY_MULTIPLIERS)
    )
    young_age_gompertz_slope: float = Field(default=0.085, gt=0, le=0.2)

    @field_validator("health_multipliers")
    @classmethod
    def validate_health_multipliers(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Ensure every health status has a positive multiplier."""
        missing = set(HEALTH_MORTALITY_MULTIPLIERS) - set(v)
        if missing:
            raise ValueError(f"Missing health multipliers for: {sorted(missing)}")
        if any(m <= 0 for m in v.values()):
            raise ValueError("Health multipliers must be positive")
        return v


class LTCConfig(BaseModel):
    """Long-term-care shock parameters.

    One episode at most is drawn per person per path.

    Attributes:
        lifetime_probability: Probability a person ever needs paid care.
        onset_age_range: Inclusive range the onset age is drawn from.
        mean_duration_years: Mean episode length before the gender multiplier.
        duration_shape: Gamma shape for the episode length.
        gender_duration_multipliers: Duration multiplier by gender.
        annual_cost_range: Range the annual cost is drawn from, today's dollars.
        cost_inflation: LTC-specific nominal cost inflation.
    """

    lifetime_probability: float = Field(default=0.48, ge=0, le=1)
    onset_age_range: Tuple[int, int] = Field(default=(75, 85))
    mean_duration_years: float = Field(default=3.0, gt=0, le=20)
    duration_shape: float = Field(default=2.0, gt=0)
    gender_duration_multipliers: Dict[str, float] = Field(
        default_factory=lambda: dict(LTC_DURATION_GENDER_MULTIPLIERS)
    )
    annual_cost_range: Tuple[float, float] = Field(default=(70_800.0, 127_800.0))
    cost_inflation: float = Field(default=0.049, ge=-0.1, le=0.5)

    @model_validator(mode="after")
    def validate_ranges(self) -> "LTCConfig":
        """Ensure ranges are ordered and non-negative."""
        low_age, high_age = self.onset_age_range
        if not 0 <= low_age <= high_age <= 120:
            raise ValueError(f"Invalid onset_age_range {self.onset_age_range}")
        low_cost, high_cost = self.annual_cost_range
        if not 0 <= low_cost <= high_cost:
            raise ValueError(f"Invalid annual_cost_range {self.annual_cost_range}")
        return self


class LTCInsuranceConfig(BaseModel):
    """Terms of a traditional fixed-benefit long-term-care policy."""

    daily_benefit: float = Field(default=200.0, ge=0)
    elimination_days: int = Field(default=90, ge=0, le=365)
    benefit_years: float = Field(default=3.0, gt=0, le=30)
    annual_premium: float = Field(default=3_000.0, ge=0)
    benefit_inflation: float = Field(default=0.0, ge=0, le=0.1)


class GuardrailConfig(BaseModel):
    """Guyton-Klinger guardrail parameters.

    The discretionary share of spending is multiplied by a running factor.
    When the current withdrawal rate exceeds the initial rate by more than
    ``upper_band`` (relative) the factor is cut by ``cut_pct``. When it falls
    more than ``lower_band`` below, the factor is raised by ``raise_pct``.

    Attributes:
        upper_band: Relative excess over the initial rate that triggers a cut.
        lower_band: Relative shortfall under the initial rate that triggers a raise.
        cut_pct: Proportional cut applied to the factor.
        raise_pct: Proportional raise applied to the factor.
        min_multiplier: Lower bound of the factor.
        max_multiplier: Upper bound of the factor.
        min_remaining_years: Cuts are skipped once fewer years remain.
    """

    upper_band: float = Field(default=0.20, gt=0, le=1)
    lower_band: float = Field(default=0.20, gt=0, lt=1)
    cut_pct: float = Field(default=0.10, ge=0, lt=1)
    raise_pct: float = Field(default=0.10, ge=0, le=1)
    min_multiplier: float = Field(default=0.5, ge=0, le=1)
    max_multiplier: float = Field(default=1.5, ge=1, le=3)
    min_remaining_years: int = Field(default=15, ge=0)


class ContributionLimitConfig(BaseModel):
    """Annual contribution ceilings and their indexation.

    Defaults are the 2025 limits. Limits grow at ``growth_rate`` per year
    after ``base_year`` and are rounded to the nearest ``rounding_increment``.
    """

    base_year: int = Field(default=2025)
    deferral_limit: float = Field(default=23_500.0, ge=0)
    catch_up: float = Field(default=7_500.0, ge=0)
    catch_up_age: int = Field(default=50)
    enhanced_catch_up: float = Field(default=11_250.0, ge=0)
    enhanced_catch_up_ages: Tuple[int, int] = Field(default=(60, 63))
    ira_limit: float = Field(default=7_000.0, ge=0)
    ira_catch_up: float = Field(default=1_000.0, ge=0)
    growth_rate: float = Field(default=0.02, ge=0, le=0.2)
    rounding_increment: float = Field(default=500.0, gt=0)


class TaxConfig(BaseModel):
    """Rates for the default flat-rate tax engine."""

    ordinary_rate: float = Field(default=0.22, ge=0, lt=1)
    capital_gains_rate: float = Field(default=0.15, ge=0, lt=1)
    state_rates: Dict[str, float] = Field(default_factory=dict)

    @field_validator("state_rates")
    @classmethod
    def validate_state_rates(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Normalize keys and bound rates."""
        if any(not 0 <= rate < 1 for rate in v.values()):
            raise ValueError("State tax rates must be in [0, 1)")
        return {k.upper(): rate for k, rate in v.items()}


class ModelConfig(BaseModel):
    """All sub-model configuration used to build a path simulator."""

    return_model: Literal["regime", "normal"] = Field(default="regime")
    market_regimes: MarketRegimeConfig = Field(default_factory=MarketRegimeConfig)
    mortality: MortalityConfig = Field(default_factory=MortalityConfig)
    ltc: LTCConfig = Field(default_factory=LTCConfig)
    ltc_insurance: LTCInsuranceConfig = Field(default_factory=LTCInsuranceConfig)
    guardrails: GuardrailConfig = Field(default_factory=GuardrailConfig)
    contribution_limits: ContributionLimitConfig = Field(default_factory=ContributionLimitConfig)
    tax: TaxConfig = Field(default_factory=TaxConfig)
