"""Tax engine interface and the default flat-rate implementation.

Withdrawals are grossed up for taxes through a :class:`TaxEngine`. Bracket
tables, IRMAA surcharges and state-specific rules live behind this protocol;
only a flat-rate engine ships with the package.
"""

from typing import Dict, Optional, Protocol, runtime_checkable

from .config.models import TaxConfig


@runtime_checkable
class TaxEngine(Protocol):
    """Computes annual tax for a household."""

    def compute_tax(
        self,
        ordinary_income: float,
        capital_gains: float,
        filing_status: str,
        state: str,
        year: int,
    ) -> float:
        """Total tax owed on the year's income.

        Args:
            ordinary_income: Wages, pensions, Social Security and
                tax-deferred withdrawals.
            capital_gains: Realized long-term gains.
            filing_status: Household filing status.
            state: Two-letter state code.
            year: Calendar year.

        Returns:
            Tax in the same nominal dollars as the inputs.
        """
        ...


class FlatRateTaxEngine:
    """Flat federal ordinary and capital-gains rates plus a flat state rate.

    Args:
        ordinary_rate: Federal rate on ordinary income.
        capital_gains_rate: Federal rate on capital gains.
        state_rates: State code to flat rate applied to all income.
    """

    def __init__(
        self,
        ordinary_rate: float = 0.22,
        capital_gains_rate: float = 0.15,
        state_rates: Optional[Dict[str, float]] = None,
    ):
        self.ordinary_rate = ordinary_rate
        self.capital_gains_rate = capital_gains_rate
        self.state_rates = {k.upper(): v for k, v in (state_rates or {}).items()}

    @classmethod
    def from_config(cls, config: TaxConfig) -> "FlatRateTaxEngine":
        """Build from a :class:`TaxConfig`."""
        return cls(config.ordinary_rate, config.capital_gains_rate, config.state_rates)

    def compute_tax(
        self,
        ordinary_income: float,
        capital_gains: float,
        filing_status: str,
        state: str,
        year: int,
    ) -> float:
        ordinary = max(0.0, ordinary_income)
        gains = max(0.0, capital_gains)
        state_rate = self.state_rates.get(state.upper(), 0.0)
        return ordinary * (self.ordinary_rate + state_rate) + gains * (
            self.capital_gains_rate + state_rate
        )
