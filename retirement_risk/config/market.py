"""Market regime configuration for the regime-switching return model.

Contains the per-regime return adjustments, the annual Markov transition
matrix between bull, normal, bear and crisis markets, and the distribution
the first regime is drawn from.

Regime mean shifts are expressed in units of each asset's volatility, so a
household with zero volatility sees the same return in every regime. The
return model re-centres the shifts on the chain's stationary distribution,
keeping the long-run mean equal to the household's expected return.
"""

import logging
from typing import Dict

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import REGIME_NAMES

logger = logging.getLogger(__name__)


class RegimeParameters(BaseModel):
    """Return adjustments applied while the market is in one regime.

    Attributes:
        stock_mean_shift: Stock mean shift in stock-volatility units.
        stock_vol_multiplier: Multiplier on stock volatility.
        bond_mean_shift: Bond mean shift in bond-volatility units.
        bond_vol_multiplier: Multiplier on bond volatility.
    """

    stock_mean_shift: float = Field(ge=-5, le=5)
    stock_vol_multiplier: float = Field(gt=0, le=5)
    bond_mean_shift: float = Field(default=0.0, ge=-5, le=5)
    bond_vol_multiplier: float = Field(default=1.0, gt=0, le=5)


def _default_regimes() -> Dict[str, RegimeParameters]:
    # Bull 14%/12%, bear -12%/25%, crisis -35%/45% relative to a 7%/16% normal market
    return {
        "bull": RegimeParameters(stock_mean_shift=0.4375, stock_vol_multiplier=0.75),
        "normal": RegimeParameters(stock_mean_shift=0.0, stock_vol_multiplier=1.0),
        "bear": RegimeParameters(
            stock_mean_shift=-1.1875,
            stock_vol_multiplier=1.5625,
            bond_mean_shift=0.5,
            bond_vol_multiplier=1.2,
        ),
        "crisis": RegimeParameters(
            stock_mean_shift=-2.625,
            stock_vol_multiplier=2.8125,
            bond_mean_shift=1.0,
            bond_vol_multiplier=1.5,
        ),
    }


def _default_transitions() -> Dict[str, Dict[str, float]]:
    return {
        "bull": {"bull": 0.70, "normal": 0.20, "bear": 0.08, "crisis": 0.02},
        "normal": {"bull": 0.25, "normal": 0.50, "bear": 0.20, "crisis": 0.05},
        "bear": {"bull": 0.20, "normal": 0.40, "bear": 0.30, "crisis": 0.10},
        "crisis": {"bull": 0.05, "normal": 0.25, "bear": 0.60, "crisis": 0.10},
    }


def _check_regime_keys(keys, what: str) -> None:
    missing = set(REGIME_NAMES) - set(keys)
    extra = set(keys) - set(REGIME_NAMES)
    if missing or extra:
        raise ValueError(
            f"{what} must cover exactly {list(REGIME_NAMES)}; "
            f"missing={sorted(missing)}, unexpected={sorted(extra)}"
        )


class TransitionProbabilities(BaseModel):
    """Annual regime transition matrix, ``matrix[from][to]``."""

    matrix: Dict[str, Dict[str, float]] = Field(default_factory=_default_transitions)

    @field_validator("matrix")
    @classmethod
    def validate_matrix(cls, v: Dict[str, Dict[str, float]]) -> Dict[str, Dict[str, float]]:
        """Ensure the matrix is 4x4, non-negative and row-stochastic."""
        _check_regime_keys(v.keys(), "Transition matrix rows")
        tolerance = 1e-6
        for origin, row in v.items():
            _check_regime_keys(row.keys(), f"Transition row '{origin}'")
            if any(p < 0 or p > 1 for p in row.values()):
                raise ValueError(f"Transition row '{origin}' has probabilities outside [0, 1]")
            row_sum = sum(row.values())
            if abs(row_sum - 1.0) > tolerance:
                raise ValueError(
                    f"{origin.title()} market transitions sum to {row_sum:.4f}, not 1.0"
                )
        return v

    def row(self, origin: str) -> list:
        """Transition probabilities out of ``origin`` in canonical regime order."""
        return [self.matrix[origin][target] for target in REGIME_NAMES]


class MarketRegimeConfig(BaseModel):
    """Configuration of the regime Markov chain.

    Attributes:
        enabled: When False the return model is a single i.i.d. normal regime.
        regimes: Per-regime adjustments keyed by regime name.
        transitions: Annual transition matrix.
        initial_probabilities: Distribution of the first year's regime.
    """

    enabled: bool = Field(default=True)
    regimes: Dict[str, RegimeParameters] = Field(default_factory=_default_regimes)
    transitions: TransitionProbabilities = Field(default_factory=TransitionProbabilities)
    initial_probabilities: Dict[str, float] = Field(
        default_factory=lambda: {"bull": 0.30, "normal": 0.50, "bear": 0.15, "crisis": 0.05}
    )

    @model_validator(mode="after")
    def validate_regimes(self) -> "MarketRegimeConfig":
        """Ensure every regime is parameterized and the start distribution is valid."""
        _check_regime_keys(self.regimes.keys(), "Regime parameters")
        _check_regime_keys(self.initial_probabilities.keys(), "Initial regime probabilities")
        if any(p < 0 for p in self.initial_probabilities.values()):
            raise ValueError("Initial regime probabilities must be non-negative")
        total = sum(self.initial_probabilities.values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Initial regime probabilities sum to {total:.4f}, not 1.0")
        return self
