"""Configuration management using Pydantic v2 models.

The configuration system is hierarchical: the household parameter set, the
sub-model configuration (market regimes, mortality, long-term care,
guardrails, contribution limits, tax), execution settings and logging are
composed into a master :class:`Config`.

Sub-modules:
    constants: Shared constants (regime names, default run sizes).
    core: Master Config class that composes all sub-configs.
    household: Household parameter set (people, income, assets, spending).
    market: Regime Markov chain configuration.
    models: Mortality, LTC, guardrail, contribution and tax parameters.
    reporting: Logging configuration.
    simulation: Run size, report kind and worker pool settings.

Examples:
    Loading from file::

        config = Config.from_yaml(Path("household.yaml"))

Note:
    Monetary values are in today's dollars unless otherwise specified.
    Rates and ratios are expressed as decimals (0.04 = 4%).
"""

from .core import Config
from .exceptions import ConfigurationError
from .household import (
    AllocationConfig,
    AssetBuckets,
    HouseholdParameters,
    IncomeStream,
    MarketAssumptions,
    PersonProfile,
)
from .market import MarketRegimeConfig, RegimeParameters, TransitionProbabilities
from .models import (
    ContributionLimitConfig,
    GuardrailConfig,
    LTCConfig,
    LTCInsuranceConfig,
    ModelConfig,
    MortalityConfig,
    TaxConfig,
)
from .reporting import LoggingConfig
from .simulation import SimulationConfig

__all__ = [
    "AllocationConfig",
    "AssetBuckets",
    "Config",
    "ConfigurationError",
    "ContributionLimitConfig",
    "GuardrailConfig",
    "HouseholdParameters",
    "IncomeStream",
    "LTCConfig",
    "LTCInsuranceConfig",
    "LoggingConfig",
    "MarketAssumptions",
    "MarketRegimeConfig",
    "ModelConfig",
    "MortalityConfig",
    "PersonProfile",
    "RegimeParameters",
    "SimulationConfig",
    "TaxConfig",
    "TransitionProbabilities",
]
