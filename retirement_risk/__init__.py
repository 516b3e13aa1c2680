"""Household retirement Monte Carlo engine."""

from ._version import __version__

# Use lazy imports to avoid import issues during test discovery
# Direct imports are defined but modules are imported only when accessed

__all__ = [
    "__version__",
    "BandsResult",
    "Config",
    "ConfigurationError",
    "HouseholdParameters",
    "ModelConfig",
    "PathSimulator",
    "RetirementMonteCarlo",
    "ScoreResult",
    "SimulationCancelled",
    "SimulationConfig",
    "WorkerFailureError",
    "WorkerPool",
]


def __getattr__(name):
    """Lazy import modules to avoid circular dependencies during test discovery."""
    if name in ["Config", "ConfigurationError", "HouseholdParameters", "ModelConfig"]:
        from .config import Config, ConfigurationError, HouseholdParameters, ModelConfig

        return locals()[name]
    elif name == "SimulationConfig":
        from .config import SimulationConfig

        return SimulationConfig
    elif name == "PathSimulator":
        from .path_simulator import PathSimulator

        return PathSimulator
    elif name == "RetirementMonteCarlo":
        from .monte_carlo import RetirementMonteCarlo

        return RetirementMonteCarlo
    elif name == "BandsResult" or name == "ScoreResult":
        from .result_aggregator import BandsResult, ScoreResult

        return locals()[name]
    elif name == "SimulationCancelled" or name == "WorkerFailureError":
        from .exceptions import SimulationCancelled, WorkerFailureError

        return locals()[name]
    elif name == "WorkerPool":
        from .parallel_executor import WorkerPool

        return WorkerPool
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
