"""Simulation execution configuration.

Controls how many paths are run, which report is produced, how the work is
spread over worker processes and where the confidence bands are cut off.
"""

import logging
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .constants import (
    DEFAULT_LONGEVITY_CLAMP_AGE,
    DEFAULT_SIMULATION_COUNT,
    MAX_WORKERS,
    MIN_WORKERS,
    WORKER_SEED_STRIDE,
)

logger = logging.getLogger(__name__)

ReportKind = Literal["score", "bands"]


class SimulationConfig(BaseModel):
    """Simulation execution parameters.

    Attributes:
        simulation_count: Total number of simulated paths.
        report_kind: ``"score"`` for a success probability, ``"bands"`` for
            per-age percentile bands.
        longevity_clamp_age: Last age included in bands.
        n_workers: Worker count override; None sizes the pool from the CPU.
        min_workers: Lower bound of the automatic worker count.
        max_workers: Upper bound of the automatic worker count.
        use_processes: Run workers in separate processes.
        progress_bar: Show a tqdm bar over completed workers.
        seed_stride: Worker ``i`` is seeded with ``i * seed_stride``.

    Examples:
        Quick in-process run for tests::

            sim = SimulationConfig(simulation_count=200, use_processes=False)
    """

    simulation_count: int = Field(default=DEFAULT_SIMULATION_COUNT, ge=1, le=10_000_000)
    report_kind: ReportKind = Field(default="score")
    longevity_clamp_age: int = Field(default=DEFAULT_LONGEVITY_CLAMP_AGE, ge=18, le=120)

    n_workers: Optional[int] = Field(default=None, ge=1, le=256)
    min_workers: int = Field(default=MIN_WORKERS, ge=1)
    max_workers: int = Field(default=MAX_WORKERS, ge=1)
    use_processes: bool = Field(default=True)
    progress_bar: bool = Field(default=False)
    seed_stride: int = Field(default=WORKER_SEED_STRIDE, ge=1)

    @model_validator(mode="after")
    def validate_worker_bounds(self) -> "SimulationConfig":
        """Ensure the automatic worker range is not inverted."""
        if self.min_workers > self.max_workers:
            raise ValueError(
                f"min_workers ({self.min_workers}) exceeds max_workers ({self.max_workers})"
            )
        return self
