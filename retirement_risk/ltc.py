"""Long-term-care shock model.

At most one paid-care episode is drawn per person per path. An episode has an
onset age, a duration in whole years and an annual cost in today's dollars
that inflates at an LTC-specific rate. Insurance is a pluggable hook that
reduces the out-of-pocket cost and may charge a premium.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
from typing import Optional

import numpy as np

from .config.household import PersonProfile
from .config.models import LTCConfig, LTCInsuranceConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LTCEpisode:
    """One period of paid long-term care.

    Attributes:
        onset_age: Age of the person in the first year of care.
        duration_years: Number of years of care (at least one).
        annual_cost: Cost in today's dollars.
        cost_inflation: Annual nominal growth of the cost.
    """

    onset_age: int
    duration_years: int
    annual_cost: float
    cost_inflation: float = 0.0

    @property
    def end_age(self) -> int:
        """Last age with care."""
        return self.onset_age + self.duration_years - 1

    def is_active(self, age: int) -> bool:
        """Whether care is needed during the year the person is ``age``."""
        return self.onset_age <= age <= self.end_age

    def years_in_care(self, age: int) -> int:
        """Zero-based year of the episode at ``age``."""
        return age - self.onset_age

    def cost_in_year(self, age: int, year_index: int) -> float:
        """Nominal cost in simulation year ``year_index``; zero when inactive."""
        if not self.is_active(age):
            return 0.0
        return self.annual_cost * (1.0 + self.cost_inflation) ** year_index


class LTCInsuranceBenefit(ABC):
    """Hook deciding how much of an episode's cost is reimbursed."""

    @abstractmethod
    def benefit(self, episode: LTCEpisode, age: int, year_index: int, cost: float) -> float:
        """Reimbursement for one year of care, never more than ``cost``."""

    def premium(self, age: int, year_index: int, on_claim: bool) -> float:
        """Premium due this year."""
        return 0.0


class SelfPay(LTCInsuranceBenefit):
    """No insurance: the household pays all care costs."""

    def benefit(self, episode: LTCEpisode, age: int, year_index: int, cost: float) -> float:
        return 0.0


class FixedBenefitPolicy(LTCInsuranceBenefit):
    """Traditional policy paying a daily benefit after an elimination period.

    The first claim year loses the elimination days. Benefits stop after
    ``benefit_years`` of payments. Premiums are level and waived on claim.
    """

    def __init__(self, config: Optional[LTCInsuranceConfig] = None):
        self.config = config or LTCInsuranceConfig()

    def benefit(self, episode: LTCEpisode, age: int, year_index: int, cost: float) -> float:
        if not episode.is_active(age) or cost <= 0:
            return 0.0
        cfg = self.config
        claim_year = episode.years_in_care(age)
        # Payment years elapsed before this one, net of the elimination period
        elimination_share = cfg.elimination_days / 365.0
        paid_before = max(0.0, claim_year - elimination_share)
        remaining = cfg.benefit_years - paid_before
        if remaining <= 0:
            return 0.0
        payable_share = 1.0 - elimination_share if claim_year == 0 else 1.0
        payable_share = min(payable_share, remaining)
        annual = cfg.daily_benefit * 365.0 * (1.0 + cfg.benefit_inflation) ** year_index
        return min(cost, annual * payable_share)

    def premium(self, age: int, year_index: int, on_claim: bool) -> float:
        return 0.0 if on_claim else self.config.annual_premium


class LTCShockModel(ABC):
    """Abstract base class for long-term-care episode generators."""

    @abstractmethod
    def maybe_trigger_episode(
        self, person: PersonProfile, age: int, rng: np.random.Generator
    ) -> Optional[LTCEpisode]:
        """Draw the person's lifetime care episode, if any.

        Args:
            person: Household member.
            age: Person's age at the start of the path.
            rng: Path random number generator.

        Returns:
            The episode, or None when the person never needs paid care.
        """


class SimpleLTCShockModel(LTCShockModel):
    """Single-episode model with gamma-distributed duration.

    The onset age is uniform over the configured range (never before the
    person's current age). The mean duration is scaled by a gender multiplier
    (men 0.85, women 1.15), and the annual cost is uniform over the cost
    range.
    """

    def __init__(self, config: Optional[LTCConfig] = None):
        self.config = config or LTCConfig()

    def expected_duration(self, gender: str) -> float:
        """Mean episode length in years for ``gender``."""
        return self.config.mean_duration_years * self.config.gender_duration_multipliers[gender]

    def maybe_trigger_episode(
        self, person: PersonProfile, age: int, rng: np.random.Generator
    ) -> Optional[LTCEpisode]:
        cfg = self.config
        # Fixed draw count keeps the path stream aligned whether or not an episode occurs
        occurs, onset_u, duration_g, cost_u = (
            rng.random(),
            rng.random(),
            rng.gamma(cfg.duration_shape, 1.0),
            rng.random(),
        )
        if occurs >= cfg.lifetime_probability:
            return None

        low_age, high_age = cfg.onset_age_range
        low_age = max(low_age, age)
        high_age = max(high_age, low_age)
        onset_age = low_age + int(onset_u * (high_age - low_age + 1))
        onset_age = min(onset_age, high_age)
        if onset_age > person.life_expectancy:
            return None

        mean = self.expected_duration(person.gender)
        duration = max(1, int(round(duration_g * mean / cfg.duration_shape)))

        low_cost, high_cost = cfg.annual_cost_range
        annual_cost = low_cost + cost_u * (high_cost - low_cost)

        episode = LTCEpisode(onset_age, duration, annual_cost, cfg.cost_inflation)
        logger.debug("LTC episode drawn: %s", episode)
        return episode


def create_ltc_insurance(
    insured: bool, config: Optional[LTCInsuranceConfig] = None
) -> LTCInsuranceBenefit:
    """Return the fixed-benefit policy for insured households, self-pay otherwise."""
    if insured:
        return FixedBenefitPolicy(config)
    return SelfPay()
