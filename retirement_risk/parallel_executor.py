"""Parallel fan-out/fan-in execution of household simulations.

The :class:`WorkerPool` splits a request's iterations into one partition per
worker, runs each partition in its own process (or in-process for tests and
small runs), and returns the per-worker partials in worker order for the
aggregator to merge.

Features:
    - Worker count sized from the CPU: ``min(8, max(2, cores))``
    - Even partitions with the remainder assigned to the first workers
    - Stable seeds: worker ``i`` uses seed ``i * 1000``
    - Cooperative cancellation through an event checked between paths
    - Fail-fast: any worker error discards all partial results

Example:
    >>> from retirement_risk.parallel_executor import WorkerPool
    >>> with WorkerPool(n_workers=4) as pool:
    ...     partials = pool.run(household, 1000, "score")
"""

from concurrent.futures import Future, ProcessPoolExecutor, as_completed
from dataclasses import dataclass
import logging
import multiprocessing as mp
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

import psutil
from tqdm import tqdm

from .config.constants import MAX_WORKERS, MIN_WORKERS, WORKER_SEED_STRIDE
from .config.household import HouseholdParameters
from .config.models import ModelConfig
from .config.simulation import ReportKind
from .exceptions import SimulationCancelled, WorkerFailureError
from .monte_carlo_worker import PartitionTask, run_partition
from .simulation_types import WorkerPartial

logger = logging.getLogger(__name__)


@dataclass
class CPUProfile:
    """CPU resources relevant to sizing the pool."""

    n_cores: int
    n_threads: int
    available_memory: int

    @classmethod
    def detect(cls) -> "CPUProfile":
        """Detect current CPU profile.

        Returns:
            CPUProfile: Current system CPU profile
        """
        cpu_count_physical = psutil.cpu_count(logical=False) or 1
        cpu_count_logical = psutil.cpu_count(logical=True) or 1
        return cls(
            n_cores=cpu_count_physical,
            n_threads=cpu_count_logical,
            available_memory=psutil.virtual_memory().available,
        )


def worker_count(
    available_cores: int, min_workers: int = MIN_WORKERS, max_workers: int = MAX_WORKERS
) -> int:
    """Pool size for ``available_cores``: ``min(max_workers, max(min_workers, cores))``."""
    return min(max_workers, max(min_workers, available_cores))


def partition_iterations(total_iterations: int, n_workers: int) -> List[int]:
    """Split iterations as evenly as possible across workers.

    The first ``total % n_workers`` workers take one extra iteration. Empty
    partitions are dropped, so fewer sizes than workers may be returned.

    Args:
        total_iterations: Number of paths requested.
        n_workers: Number of workers.

    Returns:
        Partition sizes in worker order; they sum to ``total_iterations``.
    """
    if n_workers < 1:
        raise ValueError(f"n_workers must be >= 1, got {n_workers}")
    if total_iterations < 0:
        raise ValueError(f"total_iterations must be >= 0, got {total_iterations}")
    per_worker, remainder = divmod(total_iterations, n_workers)
    sizes = [per_worker + (1 if i < remainder else 0) for i in range(n_workers)]
    return [size for size in sizes if size > 0]


@dataclass
class PerformanceMetrics:
    """Performance metrics for one pool run."""

    total_time: float = 0.0
    setup_time: float = 0.0
    computation_time: float = 0.0
    total_paths: int = 0
    n_workers: int = 0
    paths_per_second: float = 0.0

    def summary(self) -> str:
        """Generate performance summary.

        Returns:
            str: Formatted performance summary
        """
        lines = [
            "Performance Summary\n",
            f"{'=' * 50}\n",
            f"Total Time: {self.total_time:.2f}s\n",
            f"Setup: {self.setup_time:.2f}s\n",
            f"Computation: {self.computation_time:.2f}s\n",
            f"Workers: {self.n_workers}\n",
            f"Paths: {self.total_paths}\n",
            f"Throughput: {self.paths_per_second:.0f} paths/s\n",
        ]
        return "".join(lines)


class WorkerPool:
    """Runs household simulations across a pool of workers.

    Args:
        n_workers: Explicit worker count; None sizes from the CPU.
        use_processes: Run partitions in worker processes. When False they
            run sequentially in the calling process, which is deterministic
            in the same way and convenient for tests.
        progress_bar: Show a tqdm bar over completed workers.
        seed_stride: Worker ``i`` is seeded with ``i * seed_stride``.
        min_workers: Lower bound of the automatic worker count.
        max_workers: Upper bound of the automatic worker count.
    """

    def __init__(
        self,
        n_workers: Optional[int] = None,
        use_processes: bool = True,
        progress_bar: bool = False,
        seed_stride: int = WORKER_SEED_STRIDE,
        min_workers: int = MIN_WORKERS,
        max_workers: int = MAX_WORKERS,
    ):
        if n_workers is None:
            self.cpu_profile: Optional[CPUProfile] = CPUProfile.detect()
            n_workers = worker_count(self.cpu_profile.n_threads, min_workers, max_workers)
        else:
            self.cpu_profile = None
        self.n_workers = n_workers
        self.use_processes = use_processes
        self.progress_bar = progress_bar
        self.seed_stride = seed_stride
        self.performance_metrics = PerformanceMetrics()

    def build_tasks(
        self,
        household: HouseholdParameters,
        total_iterations: int,
        report_kind: ReportKind,
        models: Optional[ModelConfig] = None,
    ) -> List[PartitionTask]:
        """One task per non-empty partition, seeded by worker index."""
        models = models or ModelConfig()
        return [
            PartitionTask(
                worker_index=i,
                size=size,
                seed=i * self.seed_stride,
                report_kind=report_kind,
                household=household,
                models=models,
            )
            for i, size in enumerate(partition_iterations(total_iterations, self.n_workers))
        ]

    def run(
        self,
        household: HouseholdParameters,
        total_iterations: int,
        report_kind: ReportKind,
        models: Optional[ModelConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[WorkerPartial]:
        """Simulate ``total_iterations`` paths and return one partial per worker.

        Args:
            household: Household parameters shared by all workers.
            total_iterations: Total paths across all workers.
            report_kind: ``"score"`` or ``"bands"``.
            models: Sub-model configuration.
            cancel_event: Set to abandon the run.

        Returns:
            Partials ordered by worker index.

        Raises:
            SimulationCancelled: If the cancel event was set.
            WorkerFailureError: If any worker raised.
        """
        start = time.time()
        tasks = self.build_tasks(household, total_iterations, report_kind, models)
        logger.info(
            "Running %d paths (%s) across %d workers", total_iterations, report_kind, len(tasks)
        )
        setup_done = time.time()

        if self.use_processes and len(tasks) > 1:
            partials = self._execute_parallel(tasks, cancel_event)
        else:
            partials = self._execute_sequential(tasks, cancel_event)

        end = time.time()
        metrics = self.performance_metrics
        metrics.total_time = end - start
        metrics.setup_time = setup_done - start
        metrics.computation_time = end - setup_done
        metrics.total_paths = total_iterations
        metrics.n_workers = len(tasks)
        if metrics.computation_time > 0:
            metrics.paths_per_second = total_iterations / metrics.computation_time
        logger.info("Completed %d paths in %.2fs", total_iterations, metrics.total_time)
        return partials

    def _execute_sequential(
        self, tasks: List[PartitionTask], cancel_event: Optional[threading.Event]
    ) -> List[WorkerPartial]:
        partials: List[WorkerPartial] = []
        pbar = tqdm(total=len(tasks), desc="Simulating", disable=not self.progress_bar)
        try:
            for task in tasks:
                if cancel_event is not None and cancel_event.is_set():
                    raise SimulationCancelled("Simulation cancelled before completion")
                try:
                    partials.append(run_partition(task, cancel_event))
                except SimulationCancelled:
                    raise
                except Exception as e:  # pylint: disable=broad-exception-caught
                    raise WorkerFailureError(task.worker_index, str(e)) from e
                pbar.update(1)
        finally:
            pbar.close()
        return partials

    def _execute_parallel(
        self, tasks: List[PartitionTask], cancel_event: Optional[threading.Event]
    ) -> List[WorkerPartial]:
        results: Dict[int, WorkerPartial] = {}

        with mp.Manager() as manager:
            # Thread events cannot cross process boundaries; mirror into a managed one
            shared_cancel = manager.Event()
            stop_mirror = threading.Event()
            mirror = None
            if cancel_event is not None:
                mirror = threading.Thread(
                    target=_mirror_event,
                    args=(cancel_event, shared_cancel, stop_mirror),
                    daemon=True,
                )
                mirror.start()

            try:
                with ProcessPoolExecutor(
                    max_workers=len(tasks), mp_context=mp.get_context()
                ) as executor:
                    futures: Dict[Future, PartitionTask] = {
                        executor.submit(run_partition, task, shared_cancel): task for task in tasks
                    }
                    pbar = tqdm(total=len(tasks), desc="Simulating", disable=not self.progress_bar)
                    try:
                        for future in as_completed(futures):
                            task = futures[future]
                            try:
                                results[task.worker_index] = future.result()
                            except SimulationCancelled:
                                _cancel_all(futures)
                                raise
                            except Exception as e:  # pylint: disable=broad-exception-caught
                                shared_cancel.set()
                                _cancel_all(futures)
                                raise WorkerFailureError(task.worker_index, str(e)) from e
                            pbar.update(1)
                    finally:
                        pbar.close()
            finally:
                stop_mirror.set()
                if mirror is not None:
                    mirror.join(timeout=1.0)

        if cancel_event is not None and cancel_event.is_set():
            raise SimulationCancelled("Simulation cancelled before completion")
        return [results[i] for i in sorted(results)]

    def get_performance_report(self) -> str:
        """Get performance report.

        Returns:
            str: Formatted performance report
        """
        return self.performance_metrics.summary()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        return False


def _cancel_all(futures: Dict[Future, Any]) -> None:
    for f in futures:
        f.cancel()


def _mirror_event(
    source: threading.Event, target: Any, stop: threading.Event, poll: float = 0.05
) -> None:
    while not stop.is_set():
        if source.wait(poll):
            target.set()
            return


def describe_partitions(
    total_iterations: int, n_workers: int, seed_stride: int = WORKER_SEED_STRIDE
) -> List[Tuple[int, int, int]]:
    """``(worker_index, size, seed)`` for each non-empty partition."""
    return [
        (i, size, i * seed_stride)
        for i, size in enumerate(partition_iterations(total_iterations, n_workers))
    ]
