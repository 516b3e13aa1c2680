"""Data containers exchanged between workers and the aggregator.

Each worker returns exactly one partial: a :class:`ScorePart` for
success-probability requests or a :class:`BandsPerYear` for band requests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple, Union

import numpy as np

BAND_PERCENTILES: Tuple[int, ...] = (5, 25, 50, 75, 95)
BAND_KEYS: Tuple[str, ...] = ("p05", "p25", "p50", "p75", "p95")


@dataclass(frozen=True)
class ScorePart:
    """Success tally and terminal-balance summary for one worker's paths.

    Attributes:
        successes: Paths that met their goal.
        total: Paths simulated.
        median_ending_balance: Median nominal terminal balance.
        percentile10: 10th percentile terminal balance.
        percentile90: 90th percentile terminal balance.
    """

    successes: int
    total: int
    median_ending_balance: float
    percentile10: float
    percentile90: float

    @classmethod
    def from_terminals(cls, successes: int, terminal_balances: Iterable[float]) -> "ScorePart":
        """Summarize a worker's terminal balances."""
        values = np.asarray(list(terminal_balances), dtype=float)
        if values.size == 0:
            return cls(successes, 0, 0.0, 0.0, 0.0)
        p10, p50, p90 = np.percentile(values, [10, 50, 90])
        return cls(successes, int(values.size), float(p50), float(p10), float(p90))


@dataclass(frozen=True)
class YearBand:
    """Portfolio percentiles for one simulation year within one worker."""

    p05: float
    p25: float
    p50: float
    p75: float
    p95: float
    count: int
    age: int

    @classmethod
    def from_values(cls, values: Iterable[float], age: int) -> "YearBand":
        """Compute the band from non-negative balances."""
        arr = np.asarray([v for v in values if v >= 0], dtype=float)
        if arr.size == 0:
            return cls(0.0, 0.0, 0.0, 0.0, 0.0, 0, age)
        p05, p25, p50, p75, p95 = (float(v) for v in np.percentile(arr, BAND_PERCENTILES))
        return cls(p05, p25, p50, p75, p95, int(arr.size), age)

    def value(self, key: str) -> float:
        """Percentile by key (``"p05"`` ... ``"p95"``)."""
        return getattr(self, key)


@dataclass(frozen=True)
class BandsPerYear:
    """Per-year bands computed within one worker's sample.

    Attributes:
        years: Band per zero-based year index.
        paths: Number of paths the worker simulated.
    """

    years: Dict[int, YearBand] = field(default_factory=dict)
    paths: int = 0


WorkerPartial = Union[ScorePart, BandsPerYear]
