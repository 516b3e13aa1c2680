"""Standalone worker function for multiprocessing Monte Carlo simulations."""

from collections import defaultdict
from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional
import warnings

import numpy as np

from ._warnings import DataQualityWarning
from .config.household import HouseholdParameters
from .config.models import ModelConfig
from .config.simulation import ReportKind
from .exceptions import SimulationCancelled
from .path_simulator import PathSimulator
from .simulation_types import BandsPerYear, ScorePart, WorkerPartial, YearBand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionTask:
    """Work assigned to one worker.

    Attributes:
        worker_index: Position of the worker in the pool.
        size: Number of paths to simulate.
        seed: Root seed; path ``i`` uses the ``i``-th spawned child.
        report_kind: ``"score"`` or ``"bands"``.
        household: Frozen household parameters.
        models: Sub-model configuration.
    """

    worker_index: int
    size: int
    seed: int
    report_kind: ReportKind
    household: HouseholdParameters
    models: ModelConfig


def path_generators(seed: int, size: int) -> List[np.random.Generator]:
    """Independent per-path generators derived from one worker seed."""
    return [np.random.default_rng(child) for child in np.random.SeedSequence(seed).spawn(size)]


def run_partition(task: PartitionTask, cancel_event: Optional[Any] = None) -> WorkerPartial:
    """Simulate one partition and summarize it.

    This function is independent of the engine and pool classes so it can be
    pickled for multiprocessing on all platforms.

    Args:
        task: Partition description.
        cancel_event: Optional event (threading or manager proxy) checked
            between paths.

    Returns:
        A ScorePart for score requests, a BandsPerYear for band requests.

    Raises:
        SimulationCancelled: If the cancel event is set mid-partition.
    """
    with warnings.catch_warnings():
        # Already reported by the orchestrating process
        warnings.simplefilter("ignore", DataQualityWarning)
        simulator = PathSimulator(task.household, task.models)

    household = task.household
    successes = 0
    terminals: List[float] = []
    by_year: Dict[int, List[float]] = defaultdict(list)

    for i, rng in enumerate(path_generators(task.seed, task.size)):
        if cancel_event is not None and cancel_event.is_set():
            raise SimulationCancelled(
                f"Worker {task.worker_index} cancelled after {i} of {task.size} paths"
            )
        path = simulator.simulate(rng)
        if task.report_kind == "score":
            successes += int(path.success)
            terminals.append(path.terminal_balance)
        else:
            for record in path.records:
                by_year[record.year_index].append(max(0.0, record.portfolio_balance))

    logger.debug("Worker %d finished %d paths", task.worker_index, task.size)

    if task.report_kind == "score":
        return ScorePart.from_terminals(successes, terminals)

    start_age = household.primary.current_age
    years = {
        year_index: YearBand.from_values(values, start_age + year_index)
        for year_index, values in sorted(by_year.items())
    }
    return BandsPerYear(years=years, paths=task.size)
