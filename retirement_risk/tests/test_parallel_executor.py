"""Tests for the worker pool and partition worker."""

import threading

import pytest

from retirement_risk.exceptions import SimulationCancelled, WorkerFailureError
from retirement_risk.monte_carlo_worker import PartitionTask, path_generators, run_partition
from retirement_risk.parallel_executor import (
    CPUProfile,
    PerformanceMetrics,
    WorkerPool,
    describe_partitions,
    partition_iterations,
    worker_count,
)
from retirement_risk.simulation_types import BandsPerYear, ScorePart


class TestWorkerCount:
    """Test automatic pool sizing."""

    def test_bounds(self):
        """Pool size is clamped between two and eight workers."""
        assert worker_count(1) == 2
        assert worker_count(4) == 4
        assert worker_count(8) == 8
        assert worker_count(64) == 8

    def test_custom_bounds(self):
        """Bounds can be overridden."""
        assert worker_count(64, min_workers=1, max_workers=16) == 16

    def test_cpu_profile(self):
        """CPU detection reports at least one core."""
        profile = CPUProfile.detect()
        assert profile.n_cores >= 1
        assert profile.n_threads >= 1
        assert profile.available_memory > 0

    def test_auto_sized_pool(self):
        """A pool without an explicit size uses the CPU-based size."""
        pool = WorkerPool()
        assert 2 <= pool.n_workers <= 8
        assert pool.cpu_profile is not None


class TestPartitioning:
    """Test partition sizes and seeds."""

    def test_even_split(self):
        """Divisible totals split evenly."""
        assert partition_iterations(1000, 8) == [125] * 8

    def test_remainder_to_first_workers(self):
        """The first workers absorb the remainder."""
        assert partition_iterations(10, 3) == [4, 3, 3]
        assert partition_iterations(11, 4) == [3, 3, 3, 2]

    def test_fewer_paths_than_workers(self):
        """Empty partitions are dropped."""
        assert partition_iterations(3, 8) == [1, 1, 1]
        assert partition_iterations(0, 4) == []

    @pytest.mark.parametrize("n_workers", range(1, 10))
    def test_partitions_are_complete(self, n_workers):
        """Sizes always sum to the total and differ by at most one."""
        for total in range(0, 60):
            sizes = partition_iterations(total, n_workers)
            assert sum(sizes) == total
            if sizes:
                assert max(sizes) - min(sizes) <= 1
                assert sizes == sorted(sizes, reverse=True)

    def test_invalid_arguments(self):
        """Nonsensical inputs raise ValueError."""
        with pytest.raises(ValueError):
            partition_iterations(10, 0)
        with pytest.raises(ValueError):
            partition_iterations(-1, 2)

    def test_seeds_follow_worker_index(self):
        """Worker i is seeded with i * 1000."""
        assert describe_partitions(10, 3) == [(0, 4, 0), (1, 3, 1000), (2, 3, 2000)]

    def test_tasks(self, example_household):
        """Tasks carry the partition size, seed and report kind."""
        pool = WorkerPool(n_workers=4, use_processes=False)
        tasks = pool.build_tasks(example_household, 10, "bands")
        assert [t.size for t in tasks] == [3, 3, 2, 2]
        assert [t.seed for t in tasks] == [0, 1000, 2000, 3000]
        assert all(t.report_kind == "bands" for t in tasks)


class TestRunPartition:
    """Test the standalone worker function."""

    def _task(self, household, models, kind="score", size=5, seed=0):
        return PartitionTask(
            worker_index=0,
            size=size,
            seed=seed,
            report_kind=kind,
            household=household,
            models=models,
        )

    def test_score_partial(self, example_household, zero_tax_models):
        """Score requests return only a ScorePart."""
        partial = run_partition(self._task(example_household, zero_tax_models))
        assert isinstance(partial, ScorePart)
        assert partial.total == 5
        assert partial.successes == 5
        assert partial.median_ending_balance == pytest.approx(1_000_000)

    def test_bands_partial(self, example_household, zero_tax_models):
        """Band requests return only a BandsPerYear."""
        partial = run_partition(self._task(example_household, zero_tax_models, kind="bands"))
        assert isinstance(partial, BandsPerYear)
        assert partial.paths == 5
        first = partial.years[0]
        assert first.count == 5
        assert first.age == 65
        assert first.p05 == pytest.approx(1_000_000)

    def test_deterministic(self, couple_household, zero_tax_models):
        """The same task always produces the same partial."""
        task = self._task(couple_household, zero_tax_models, size=8, seed=1000)
        assert run_partition(task) == run_partition(task)

    def test_cancelled_between_paths(self, example_household, zero_tax_models):
        """A set cancel event stops the worker."""
        event = threading.Event()
        event.set()
        with pytest.raises(SimulationCancelled, match="Worker 0 cancelled"):
            run_partition(self._task(example_household, zero_tax_models), event)

    def test_path_generators_independent(self):
        """Each path gets its own stream."""
        first, second = path_generators(0, 2)
        assert first.random() != second.random()
        assert path_generators(7, 1)[0].random() == path_generators(7, 1)[0].random()


class TestWorkerPool:
    """Test the pool's fan-out and failure handling."""

    def test_in_process_score(self, example_household, zero_tax_models):
        """One ScorePart per non-empty partition."""
        pool = WorkerPool(n_workers=3, use_processes=False)
        partials = pool.run(example_household, 10, "score", zero_tax_models)
        assert [p.total for p in partials] == [4, 3, 3]
        assert all(isinstance(p, ScorePart) for p in partials)
        assert pool.performance_metrics.total_paths == 10
        assert "Performance Summary" in pool.get_performance_report()

    def test_in_process_bands(self, example_household, zero_tax_models):
        """One BandsPerYear per non-empty partition."""
        with WorkerPool(n_workers=2, use_processes=False) as pool:
            partials = pool.run(example_household, 6, "bands", zero_tax_models)
        assert len(partials) == 2
        assert all(isinstance(p, BandsPerYear) for p in partials)

    def test_worker_failure_discards_results(self, example_household, monkeypatch):
        """Any worker error raises WorkerFailureError."""
        real = run_partition

        def flaky(task, cancel_event=None):
            if task.worker_index == 1:
                raise RuntimeError("boom")
            return real(task, cancel_event)

        monkeypatch.setattr("retirement_risk.parallel_executor.run_partition", flaky)
        pool = WorkerPool(n_workers=3, use_processes=False)
        with pytest.raises(WorkerFailureError, match="Worker 1 failed: boom") as exc_info:
            pool.run(example_household, 9, "score")
        assert exc_info.value.worker_index == 1

    def test_cancel_before_start(self, example_household):
        """A pre-set cancel event aborts the run."""
        event = threading.Event()
        event.set()
        pool = WorkerPool(n_workers=2, use_processes=False)
        with pytest.raises(SimulationCancelled):
            pool.run(example_household, 10, "score", cancel_event=event)

    @pytest.mark.requires_multiprocessing
    def test_processes_match_in_process(self, example_household, zero_tax_models):
        """Process execution returns the same partials as in-process execution."""
        parallel = WorkerPool(n_workers=2, use_processes=True).run(
            example_household, 12, "score", zero_tax_models
        )
        sequential = WorkerPool(n_workers=2, use_processes=False).run(
            example_household, 12, "score", zero_tax_models
        )
        assert parallel == sequential


def test_performance_metrics_summary():
    """Summary lists throughput."""
    metrics = PerformanceMetrics(total_time=2.0, total_paths=1000, paths_per_second=500.0)
    summary = metrics.summary()
    assert "Paths: 1000" in summary
    assert "500 paths/s" in summary
