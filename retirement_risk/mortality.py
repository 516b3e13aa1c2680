"""Annual survival models for household members.

The base hazard comes from the Social Security Administration 2021 period
life table (ages 50 to 120). Below 50 the hazard is extrapolated backwards
with a Gompertz slope. The hazard is then scaled by a health-status
multiplier and capped at 1. Each person is an independent Bernoulli draw per
year, and nobody survives past their planning life-expectancy ceiling.
"""

from abc import ABC, abstractmethod
import logging
import math
from typing import Dict, Optional, Tuple

import numpy as np

from .config.household import PersonProfile
from .config.models import MortalityConfig

logger = logging.getLogger(__name__)

TABLE_FIRST_AGE = 50
TABLE_LAST_AGE = 120

# qx for ages 50..120
SSA_2021_MALE: Tuple[float, ...] = (
    0.004186, 0.004530, 0.004912, 0.005346, 0.005838, 0.006390, 0.006993, 0.007646,
    0.008359, 0.009147, 0.010028, 0.010998, 0.012047, 0.013168, 0.014366, 0.015651,
    0.017030, 0.018506, 0.020088, 0.021791, 0.023640, 0.025660, 0.027872, 0.030275,
    0.032884, 0.035746, 0.038921, 0.042465, 0.046414, 0.050799, 0.055651, 0.061000,
    0.066875, 0.073305, 0.080319, 0.087945, 0.096211, 0.105145, 0.114772, 0.125116,
    0.136200, 0.148046, 0.160674, 0.174102, 0.188348, 0.203426, 0.219352, 0.236136,
    0.253789, 0.272320, 0.291735, 0.312043, 0.333249, 0.355359, 0.378378, 0.402310,
    0.427159, 0.452928, 0.479619, 0.507236, 0.535782, 0.565256, 0.595662, 0.627001,
    0.659274, 0.692482, 0.726625, 0.761705, 0.797720, 0.834672, 1.000000,
)  # fmt: skip

SSA_2021_FEMALE: Tuple[float, ...] = (
    0.002634, 0.002838, 0.003071, 0.003344, 0.003658, 0.004005, 0.004379, 0.004780,
    0.005217, 0.005710, 0.006283, 0.006920, 0.007610, 0.008351, 0.009154, 0.010035,
    0.010998, 0.012049, 0.013201, 0.014477, 0.015901, 0.017483, 0.019230, 0.021139,
    0.023216, 0.025490, 0.027998, 0.030774, 0.033834, 0.037189, 0.040853, 0.044842,
    0.049174, 0.053870, 0.058954, 0.064449, 0.070379, 0.076770, 0.083647, 0.091037,
    0.098966, 0.107461, 0.116549, 0.126257, 0.136613, 0.147644, 0.159378, 0.171842,
    0.185064, 0.199071, 0.213890, 0.229548, 0.246073, 0.263492, 0.281832, 0.301122,
    0.321389, 0.342661, 0.364966, 0.388332, 0.412788, 0.438361, 0.465082, 0.492978,
    0.522080, 0.552418, 0.584022, 0.616923, 0.651152, 0.686741, 1.000000,
)  # fmt: skip

_TABLES: Dict[str, Dict[str, Tuple[float, ...]]] = {
    "ssa_2021": {"male": SSA_2021_MALE, "female": SSA_2021_FEMALE},
}


class MortalityModel(ABC):
    """Abstract base class for survival models."""

    @abstractmethod
    def step_survival(
        self,
        age: int,
        health_status: str,
        rng: np.random.Generator,
        gender: str = "female",
        ceiling: Optional[int] = None,
    ) -> bool:
        """Decide whether a person alive at ``age`` survives to ``age + 1``.

        Args:
            age: Age during the year being simulated.
            health_status: One of excellent, good, fair, poor.
            rng: Path random number generator.
            gender: ``"male"`` or ``"female"``.
            ceiling: Planning life-expectancy ceiling; survival past it is
                impossible.

        Returns:
            True when the person is alive at the start of next year.
        """

    def survives_year(self, person: PersonProfile, age: int, rng: np.random.Generator) -> bool:
        """Profile-based convenience wrapper around :meth:`step_survival`."""
        return self.step_survival(
            age, person.health_status, rng, gender=person.gender, ceiling=person.life_expectancy
        )


class PeriodLifeTableMortality(MortalityModel):
    """Stochastic mortality from a period life table with health multipliers.

    Examples:
        Probability a healthy 65-year-old man reaches 90::

            model = PeriodLifeTableMortality()
            model.survival_probability(65, 90, gender="male", health_status="good")
    """

    def __init__(self, config: Optional[MortalityConfig] = None):
        self.config = config or MortalityConfig()
        self._table = _TABLES[self.config.table]

    def annual_hazard(self, age: int, gender: str = "female", health_status: str = "good") -> float:
        """Health-adjusted probability of dying during the year at ``age``."""
        rates = self._table[gender]
        if age >= TABLE_LAST_AGE:
            return 1.0
        if age < TABLE_FIRST_AGE:
            base = rates[0] * math.exp(
                -self.config.young_age_gompertz_slope * (TABLE_FIRST_AGE - age)
            )
        else:
            base = rates[age - TABLE_FIRST_AGE]
        return min(1.0, base * self.config.health_multipliers[health_status])

    def step_survival(
        self,
        age: int,
        health_status: str,
        rng: np.random.Generator,
        gender: str = "female",
        ceiling: Optional[int] = None,
    ) -> bool:
        # Always consume one draw so path streams stay aligned across households
        draw = rng.random()
        if ceiling is not None and age + 1 > ceiling:
            return False
        return bool(draw >= self.annual_hazard(age, gender, health_status))

    def survival_probability(
        self,
        age: int,
        target_age: int,
        gender: str = "female",
        health_status: str = "good",
    ) -> float:
        """Probability of being alive at ``target_age`` given alive at ``age``."""
        probability = 1.0
        for a in range(age, target_age):
            probability *= 1.0 - self.annual_hazard(a, gender, health_status)
        return probability

    def life_expectancy(
        self, age: int, gender: str = "female", health_status: str = "good"
    ) -> float:
        """Expected age at death (curtate expectation plus half a year)."""
        expected_years = 0.5
        alive = 1.0
        for a in range(age, TABLE_LAST_AGE):
            alive *= 1.0 - self.annual_hazard(a, gender, health_status)
            expected_years += alive
        return age + expected_years


class DeterministicMortality(MortalityModel):
    """Everyone lives exactly to their planning life-expectancy ceiling."""

    def step_survival(
        self,
        age: int,
        health_status: str,
        rng: np.random.Generator,
        gender: str = "female",
        ceiling: Optional[int] = None,
    ) -> bool:
        return ceiling is None or age + 1 <= ceiling


def create_mortality_model(
    stochastic: bool, config: Optional[MortalityConfig] = None
) -> MortalityModel:
    """Build the stochastic table model or the deterministic ceiling model."""
    if stochastic:
        return PeriodLifeTableMortality(config)
    return DeterministicMortality()
