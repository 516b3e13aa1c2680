"""Pre-retirement contribution scheduling.

Desired contributions (today's dollars) are inflated with general prices and
capped at the statutory limits for the calendar year. Deferrals above the
401(k)-style limit and Roth contributions above the IRA limit spill into the
taxable brokerage bucket instead of being lost.
"""

from dataclasses import dataclass
import logging
from typing import Optional

from .config.household import PersonProfile
from .config.models import ContributionLimitConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContributionSplit:
    """Nominal contributions for one person and year, by destination bucket."""

    tax_deferred: float = 0.0
    tax_free: float = 0.0
    taxable: float = 0.0

    @property
    def total(self) -> float:
        """Sum across buckets."""
        return self.tax_deferred + self.tax_free + self.taxable

    def __add__(self, other: "ContributionSplit") -> "ContributionSplit":
        return ContributionSplit(
            self.tax_deferred + other.tax_deferred,
            self.tax_free + other.tax_free,
            self.taxable + other.taxable,
        )


class ContributionScheduler:
    """Computes capped annual contributions while a person is still working.

    Args:
        limits: Contribution ceilings and indexation.

    Examples:
        A 61-year-old may defer the base limit plus the enhanced catch-up::

            scheduler = ContributionScheduler()
            scheduler.deferral_limit(age=61, year=2025)  # 34_750
    """

    def __init__(self, limits: Optional[ContributionLimitConfig] = None):
        self.limits = limits or ContributionLimitConfig()

    def _indexed(self, amount: float, year: int) -> float:
        cfg = self.limits
        years = max(0, year - cfg.base_year)
        grown = amount * (1.0 + cfg.growth_rate) ** years
        increment = cfg.rounding_increment
        return round(grown / increment) * increment

    def deferral_limit(self, age: int, year: int) -> float:
        """401(k)-style elective deferral limit including catch-up."""
        cfg = self.limits
        limit = self._indexed(cfg.deferral_limit, year)
        low, high = cfg.enhanced_catch_up_ages
        if low <= age <= high:
            limit += self._indexed(cfg.enhanced_catch_up, year)
        elif age >= cfg.catch_up_age:
            limit += self._indexed(cfg.catch_up, year)
        return limit

    def ira_limit(self, age: int, year: int) -> float:
        """IRA/Roth limit including catch-up."""
        cfg = self.limits
        limit = self._indexed(cfg.ira_limit, year)
        if age >= cfg.catch_up_age:
            limit += cfg.ira_catch_up
        return limit

    def contributions_for(
        self, person: PersonProfile, age: int, year: int, inflation_factor: float
    ) -> ContributionSplit:
        """Contributions for ``person`` in the calendar ``year``.

        Args:
            person: Household member.
            age: Person's age this year.
            year: Calendar year, used for limit indexation.
            inflation_factor: Cumulative price index since today.

        Returns:
            Nominal split; all zero once the person has retired.
        """
        if age >= person.retirement_age:
            return ContributionSplit()

        desired_deferred = person.contribution_tax_deferred * inflation_factor
        desired_roth = person.contribution_tax_free * inflation_factor
        desired_taxable = person.contribution_taxable * inflation_factor

        deferred = min(desired_deferred, self.deferral_limit(age, year))
        roth = min(desired_roth, self.ira_limit(age, year))
        spill = (desired_deferred - deferred) + (desired_roth - roth)
        if spill > 0:
            logger.debug("Age %d: %.0f above contribution limits redirected to taxable", age, spill)
        return ContributionSplit(deferred, roth, desired_taxable + spill)
