"""Annual capital-market return models.

This module provides the market return strategies used by the path
simulator. The default :class:`RegimeSwitchingReturnModel` moves between
bull, normal, bear and crisis regimes along a Markov chain, shifting the mean
and scaling the volatility of stock and bond returns in each regime. A plain
i.i.d. :class:`NormalReturnModel` is available for comparison runs.

Every model receives its random number generator explicitly; nothing here
holds global random state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
import math
from typing import Dict, Optional, Tuple
import warnings

import numpy as np

from ._warnings import DataQualityWarning
from .config.constants import REGIME_NAMES, RETURN_CEILING, RETURN_FLOOR
from .config.household import AllocationConfig, MarketAssumptions
from .config.market import MarketRegimeConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketState:
    """Regime the market is in for the coming year."""

    regime: str = "normal"


@dataclass(frozen=True)
class AssetReturns:
    """Realized annual returns of the three asset classes."""

    stocks: float
    bonds: float
    cash: float
    regime: str = "normal"

    def portfolio(self, allocation: AllocationConfig) -> float:
        """Allocation-weighted return."""
        return (
            allocation.stocks * self.stocks
            + allocation.bonds * self.bonds
            + allocation.cash * self.cash
        )


def _clamp_volatility(name: str, value: float) -> float:
    if 0.0 <= value <= 1.0:
        return value
    clamped = min(max(value, 0.0), 1.0)
    warnings.warn(
        f"{name} of {value} is outside [0, 1]; clamped to {clamped}",
        DataQualityWarning,
        stacklevel=3,
    )
    return clamped


def _clamp_return(value: float) -> float:
    return min(max(value, RETURN_FLOOR), RETURN_CEILING)


class MarketReturnModel(ABC):
    """Abstract base class for annual return models.

    Implementations produce one year of stock, bond and cash returns for a
    given market state and advance the state.
    """

    def __init__(self, market: MarketAssumptions):
        """Initialize the model.

        Args:
            market: Household capital-market assumptions. Volatilities are
                clamped to ``[0, 1]`` with a DataQualityWarning.
        """
        self.market = market
        self.stock_volatility = _clamp_volatility("Stock volatility", market.stock_volatility)
        self.bond_volatility = _clamp_volatility("Bond volatility", market.bond_volatility)
        rho = min(max(market.stock_bond_correlation, -0.999), 0.999)
        self._rho = rho
        self._rho_complement = math.sqrt(1.0 - rho * rho)

    @abstractmethod
    def initial_state(self, rng: np.random.Generator) -> MarketState:
        """Draw the state of the first simulated year."""

    @abstractmethod
    def next_return(
        self, state: MarketState, rng: np.random.Generator
    ) -> Tuple[float, float, float, MarketState]:
        """Draw one year of returns in ``state`` and advance the state.

        Args:
            state: Market state for the year being drawn.
            rng: Path random number generator.

        Returns:
            Tuple of ``(stock_return, bond_return, cash_return, new_state)``.
        """

    def draw(
        self, state: MarketState, rng: np.random.Generator
    ) -> Tuple[AssetReturns, MarketState]:
        """Convenience wrapper returning :class:`AssetReturns`."""
        stocks, bonds, cash, new_state = self.next_return(state, rng)
        return AssetReturns(stocks, bonds, cash, state.regime), new_state

    def expected_portfolio_return(self, allocation: AllocationConfig) -> float:
        """Long-run expected arithmetic portfolio return."""
        return self.market.expected_portfolio_return(allocation)

    def _correlated_shocks(self, rng: np.random.Generator) -> Tuple[float, float]:
        # Cholesky factor of [[1, rho], [rho, 1]]
        z_stock, z_other = rng.standard_normal(2)
        z_bond = self._rho * z_stock + self._rho_complement * z_other
        return float(z_stock), float(z_bond)


class NormalReturnModel(MarketReturnModel):
    """Single-regime model with i.i.d. correlated normal returns."""

    def initial_state(self, rng: np.random.Generator) -> MarketState:
        return MarketState("normal")

    def next_return(
        self, state: MarketState, rng: np.random.Generator
    ) -> Tuple[float, float, float, MarketState]:
        z_stock, z_bond = self._correlated_shocks(rng)
        stocks = _clamp_return(self.market.stock_return + self.stock_volatility * z_stock)
        bonds = _clamp_return(self.market.bond_return + self.bond_volatility * z_bond)
        return stocks, bonds, self.market.cash_return, state


class RegimeSwitchingReturnModel(MarketReturnModel):
    """Markov regime-switching return model.

    Each regime shifts the mean of stock and bond returns by a multiple of the
    asset's volatility and scales that volatility. The shifts are centred on
    the chain's stationary distribution, so over long horizons the mean
    return matches the household's expected return. With zero volatility every
    regime returns exactly the expected return. Cash is regime-insensitive.

    Return draws are clamped to ``[-95%, +300%]``.

    Examples:
        Drawing a decade of returns::

            model = RegimeSwitchingReturnModel(household.market, MarketRegimeConfig())
            rng = np.random.default_rng(7)
            state = model.initial_state(rng)
            for _ in range(10):
                stocks, bonds, cash, state = model.next_return(state, rng)
    """

    def __init__(
        self, market: MarketAssumptions, regime_config: Optional[MarketRegimeConfig] = None
    ):
        """Initialize the regime model.

        Args:
            market: Household capital-market assumptions.
            regime_config: Regime table and transition matrix; defaults to the
                standard four-regime calibration.
        """
        super().__init__(market)
        self.regime_config = regime_config or MarketRegimeConfig()

        self._transition = np.array(
            [self.regime_config.transitions.row(name) for name in REGIME_NAMES], dtype=float
        )
        self._cumulative = np.cumsum(self._transition, axis=1)
        self._initial_cumulative = np.cumsum(
            [self.regime_config.initial_probabilities[name] for name in REGIME_NAMES]
        )
        self.stationary = self.stationary_distribution(self._transition)

        regimes = self.regime_config.regimes
        stock_shifts = np.array([regimes[n].stock_mean_shift for n in REGIME_NAMES])
        bond_shifts = np.array([regimes[n].bond_mean_shift for n in REGIME_NAMES])
        stock_shifts -= float(self.stationary @ stock_shifts)
        bond_shifts -= float(self.stationary @ bond_shifts)

        self._stock_mean: Dict[str, float] = {}
        self._stock_vol: Dict[str, float] = {}
        self._bond_mean: Dict[str, float] = {}
        self._bond_vol: Dict[str, float] = {}
        for i, name in enumerate(REGIME_NAMES):
            params = regimes[name]
            self._stock_mean[name] = market.stock_return + stock_shifts[i] * self.stock_volatility
            self._stock_vol[name] = self.stock_volatility * params.stock_vol_multiplier
            self._bond_mean[name] = market.bond_return + bond_shifts[i] * self.bond_volatility
            self._bond_vol[name] = self.bond_volatility * params.bond_vol_multiplier

        logger.debug(
            "Initialized regime model: stationary=%s, stock means=%s",
            dict(zip(REGIME_NAMES, np.round(self.stationary, 4))),
            {k: round(v, 4) for k, v in self._stock_mean.items()},
        )

    @staticmethod
    def stationary_distribution(transition: np.ndarray) -> np.ndarray:
        """Stationary distribution ``pi`` of a row-stochastic matrix (``pi P = pi``)."""
        n = transition.shape[0]
        system = np.vstack([transition.T - np.eye(n), np.ones(n)])
        target = np.zeros(n + 1)
        target[-1] = 1.0
        pi, *_ = np.linalg.lstsq(system, target, rcond=None)
        pi = np.clip(pi, 0.0, None)
        return pi / pi.sum()

    def regime_mean(self, regime: str) -> Tuple[float, float]:
        """Mean ``(stock, bond)`` return in ``regime``."""
        return self._stock_mean[regime], self._bond_mean[regime]

    def initial_state(self, rng: np.random.Generator) -> MarketState:
        index = int(np.searchsorted(self._initial_cumulative, rng.random(), side="right"))
        return MarketState(REGIME_NAMES[min(index, len(REGIME_NAMES) - 1)])

    def next_return(
        self, state: MarketState, rng: np.random.Generator
    ) -> Tuple[float, float, float, MarketState]:
        regime = state.regime
        z_stock, z_bond = self._correlated_shocks(rng)
        stocks = _clamp_return(self._stock_mean[regime] + self._stock_vol[regime] * z_stock)
        bonds = _clamp_return(self._bond_mean[regime] + self._bond_vol[regime] * z_bond)

        row = self._cumulative[REGIME_NAMES.index(regime)]
        index = int(np.searchsorted(row, rng.random(), side="right"))
        new_state = MarketState(REGIME_NAMES[min(index, len(REGIME_NAMES) - 1)])
        return stocks, bonds, self.market.cash_return, new_state


def create_return_model(
    model_type: str,
    market: MarketAssumptions,
    regime_config: Optional[MarketRegimeConfig] = None,
) -> MarketReturnModel:
    """Factory function to create market return models.

    Args:
        model_type: Type of model ("regime", "regime_switching", "normal").
        market: Household capital-market assumptions.
        regime_config: Regime configuration for the regime model. A config
            with ``enabled=False`` yields the single-regime model.

    Returns:
        MarketReturnModel instance

    Raises:
        ValueError: If model_type is not recognized
    """
    model_map = {
        "regime": RegimeSwitchingReturnModel,
        "regime_switching": RegimeSwitchingReturnModel,
        "normal": NormalReturnModel,
        "iid": NormalReturnModel,
    }

    model_type_lower = model_type.lower()
    if model_type_lower not in model_map:
        raise ValueError(
            f"Unknown return model: {model_type}. " f"Choose from: {list(model_map.keys())}"
        )

    model_class = model_map[model_type_lower]
    if model_class is RegimeSwitchingReturnModel:
        if regime_config is not None and not regime_config.enabled:
            return NormalReturnModel(market)
        return RegimeSwitchingReturnModel(market, regime_config)
    return model_class(market)
