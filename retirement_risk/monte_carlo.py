"""Retirement Monte Carlo engine.

The :class:`RetirementMonteCarlo` engine is the entry point for callers. It
validates a household up front, fans the requested paths out over a
:class:`~retirement_risk.parallel_executor.WorkerPool`, and merges the
worker partials into a :class:`ScoreResult` or a :class:`BandsResult`.

The engine is stateless between runs and never caches results itself; it
only computes a stable :meth:`~RetirementMonteCarlo.cache_key` for a
persistence layer to use.
"""

import hashlib
import json
import logging
import threading
from typing import Optional, Union

import numpy as np

from .config.constants import MODEL_VERSION
from .config.core import Config
from .config.exceptions import ConfigurationError
from .config.household import HouseholdParameters
from .config.models import ModelConfig
from .config.simulation import ReportKind, SimulationConfig
from .parallel_executor import WorkerPool
from .path_simulator import PathSimulator, SimulationPath
from .result_aggregator import (
    AggregationConfig,
    BandAggregator,
    BandsResult,
    ScoreAggregator,
    ScoreResult,
)
from .simulation_types import BandsPerYear, ScorePart

logger = logging.getLogger(__name__)


class RetirementMonteCarlo:
    """Monte Carlo engine for household retirement outcomes.

    Examples:
        Success probability for a household::

            engine = RetirementMonteCarlo(household)
            score = engine.run_score(runs=1000)
            print(f"Success: {score.success_probability:.1%}")

        Confidence bands from a YAML config::

            engine = RetirementMonteCarlo.from_config(Config.from_yaml(path))
            bands = engine.run_bands()
            bands.to_frame()

    Args:
        household: Household parameters.
        models: Sub-model configuration.
        simulation: Execution settings.
        pool: Pre-built worker pool; built from ``simulation`` when omitted.
    """

    def __init__(
        self,
        household: HouseholdParameters,
        models: Optional[ModelConfig] = None,
        simulation: Optional[SimulationConfig] = None,
        pool: Optional[WorkerPool] = None,
    ):
        self.household = household
        self.models = models or ModelConfig()
        self.simulation = simulation or SimulationConfig()
        self.pool = pool or WorkerPool(
            n_workers=self.simulation.n_workers,
            use_processes=self.simulation.use_processes,
            progress_bar=self.simulation.progress_bar,
            seed_stride=self.simulation.seed_stride,
            min_workers=self.simulation.min_workers,
            max_workers=self.simulation.max_workers,
        )

    @classmethod
    def from_config(cls, config: Config) -> "RetirementMonteCarlo":
        """Build an engine from a master configuration."""
        return cls(config.household, config.models, config.simulation)

    def validate(self, longevity_clamp_age: Optional[int] = None) -> None:
        """Check the household before any path is simulated.

        Building a simulator here surfaces clamped-input warnings in the
        calling process.

        Raises:
            ConfigurationError: If the configuration is inconsistent.
        """
        simulation = self.simulation
        if longevity_clamp_age is not None:
            simulation = simulation.model_copy(update={"longevity_clamp_age": longevity_clamp_age})
        config = Config(household=self.household, models=self.models, simulation=simulation)
        issues = config.collect_issues()
        if issues:
            raise ConfigurationError(issues)
        PathSimulator(self.household, self.models)

    def run_score(
        self, runs: Optional[int] = None, cancel_event: Optional[threading.Event] = None
    ) -> ScoreResult:
        """Estimate the probability the household's plan succeeds.

        Args:
            runs: Paths to simulate; defaults to the configured count.
            cancel_event: Set to abandon the run.

        Returns:
            ScoreResult with the merged success probability.
        """
        runs = runs or self.simulation.simulation_count
        self.validate()
        partials = self.pool.run(self.household, runs, "score", self.models, cancel_event)
        score_parts = [p for p in partials if isinstance(p, ScorePart)]
        return ScoreAggregator().aggregate(score_parts)

    def run_bands(
        self,
        runs: Optional[int] = None,
        longevity_clamp_age: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BandsResult:
        """Per-age portfolio percentile bands.

        Args:
            runs: Paths to simulate; defaults to the configured count.
            longevity_clamp_age: Last age reported; defaults to the configured age.
            cancel_event: Set to abandon the run.

        Returns:
            BandsResult from the current age to the clamp age.
        """
        runs = runs or self.simulation.simulation_count
        clamp_age = longevity_clamp_age or self.simulation.longevity_clamp_age
        self.validate(clamp_age)
        partials = self.pool.run(self.household, runs, "bands", self.models, cancel_event)
        band_parts = [p for p in partials if isinstance(p, BandsPerYear)]
        aggregator = BandAggregator(AggregationConfig(longevity_clamp_age=clamp_age))
        return aggregator.aggregate(
            band_parts,
            current_age=self.household.primary.current_age,
            retirement_age=self.household.primary.retirement_age,
            runs=runs,
        )

    def run(
        self,
        report_kind: Optional[ReportKind] = None,
        runs: Optional[int] = None,
        longevity_clamp_age: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Union[ScoreResult, BandsResult]:
        """Run the configured (or requested) report kind."""
        report_kind = report_kind or self.simulation.report_kind
        if report_kind == "score":
            return self.run_score(runs, cancel_event)
        if report_kind == "bands":
            return self.run_bands(runs, longevity_clamp_age, cancel_event)
        raise ValueError(f"Unknown report kind: {report_kind}. Choose from: ['score', 'bands']")

    def simulate_path(self, seed: int = 0) -> SimulationPath:
        """Simulate and return a single path for inspection."""
        simulator = PathSimulator(self.household, self.models)
        return simulator.simulate(np.random.default_rng(seed))

    def cache_key(
        self,
        report_kind: Optional[ReportKind] = None,
        runs: Optional[int] = None,
        longevity_clamp_age: Optional[int] = None,
    ) -> str:
        """Stable key over the parameter set, run settings and model version.

        Returns:
            Hex SHA-256 digest.
        """
        payload = {
            "household": self.household.model_dump(mode="json"),
            "models": self.models.model_dump(mode="json"),
            "report_kind": report_kind or self.simulation.report_kind,
            "runs": runs or self.simulation.simulation_count,
            "longevity_clamp_age": longevity_clamp_age or self.simulation.longevity_clamp_age,
            "n_workers": self.pool.n_workers,
            "seed_stride": self.pool.seed_stride,
            "model_version": MODEL_VERSION,
        }
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
