"""Merging of per-worker partials into the final results.

Score partials merge exactly for counts. Their terminal-balance percentiles
are averaged, weighted by each worker's share of paths. Band partials merge
approximately: each worker's five percentiles are expanded back into
``count`` synthetic points, the points of all workers are pooled and sorted,
and the percentiles are recomputed by linear interpolation. Both merges are
independent of the order the partials arrive in.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config.constants import DEFAULT_LONGEVITY_CLAMP_AGE
from .simulation_types import BAND_KEYS, BAND_PERCENTILES, BandsPerYear, ScorePart, YearBand

logger = logging.getLogger(__name__)


@dataclass
class AggregationConfig:
    """Configuration for result aggregation."""

    longevity_clamp_age: int = DEFAULT_LONGEVITY_CLAMP_AGE
    floor_at_zero: bool = True
    round_to_dollars: bool = True


@dataclass(frozen=True)
class ScoreResult:
    """Merged success probability and terminal-balance summary."""

    successes: int
    total: int
    median_ending_balance: float
    percentile10: float
    percentile90: float

    @property
    def success_probability(self) -> float:
        """Share of paths that met their goal."""
        return self.successes / self.total if self.total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["success_probability"] = self.success_probability
        return result


@dataclass(frozen=True)
class BandsResult:
    """Per-age portfolio percentile bands.

    Attributes:
        ages: Ages covered, starting at the current age.
        percentiles: ``p05``..``p95`` series aligned with ``ages``.
        meta: Ages, run count and calculation timestamp.
    """

    ages: List[int]
    percentiles: Dict[str, List[float]]
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ages": list(self.ages),
            "percentiles": dict(self.percentiles),
            "meta": dict(self.meta),
        }

    def to_frame(self) -> pd.DataFrame:
        """Bands as a DataFrame indexed by age."""
        frame = pd.DataFrame(self.percentiles, index=pd.Index(self.ages, name="age"))
        return frame[list(BAND_KEYS)]


class BaseAggregator(ABC):
    """Abstract base class for partial aggregation.

    Provides common functionality for all aggregation types.
    """

    def __init__(self, config: Optional[AggregationConfig] = None):
        """Initialize aggregator with configuration.

        Args:
            config: Aggregation configuration
        """
        self.config = config or AggregationConfig()

    @abstractmethod
    def aggregate(self, partials: Sequence[Any], **kwargs: Any) -> Any:
        """Merge worker partials.

        Args:
            partials: One partial per worker, in any order.

        Returns:
            The merged result.
        """
        raise NotImplementedError("Subclasses must implement aggregate method")

    def _round_value(self, value: float) -> float:
        """Round to whole dollars when configured."""
        return float(round(value)) if self.config.round_to_dollars else float(value)


class ScoreAggregator(BaseAggregator):
    """Merges :class:`ScorePart` partials."""

    def aggregate(self, partials: Sequence[ScorePart], **kwargs: Any) -> ScoreResult:
        """Sum counts exactly and weight the balance percentiles by path share."""
        successes = sum(p.successes for p in partials)
        total = sum(p.total for p in partials)
        if total == 0:
            return ScoreResult(successes, 0, 0.0, 0.0, 0.0)

        def weighted(attr: str) -> float:
            # fsum is exactly rounded, so the result does not depend on order
            return self._round_value(
                math.fsum(getattr(p, attr) * p.total for p in partials) / total
            )

        result = ScoreResult(
            successes=successes,
            total=total,
            median_ending_balance=weighted("median_ending_balance"),
            percentile10=weighted("percentile10"),
            percentile90=weighted("percentile90"),
        )
        logger.info(
            "Merged %d score partials: %d/%d successful", len(partials), successes, total
        )
        return result


def reconstruct_points(band: YearBand) -> List[float]:
    """Expand one worker's band into ``count`` synthetic points.

    Point ``i`` sits at percentile ``i / (count - 1) * 100`` and takes the
    first reported percentile at or above it. A single point sits at the
    median.
    """
    count = band.count
    if count <= 0:
        return []
    if count == 1:
        return [band.p50]
    points = []
    for i in range(count):
        percentile = i / (count - 1) * 100
        if percentile <= 5:
            points.append(band.p05)
        elif percentile <= 25:
            points.append(band.p25)
        elif percentile <= 50:
            points.append(band.p50)
        elif percentile <= 75:
            points.append(band.p75)
        else:
            points.append(band.p95)
    return points


class BandAggregator(BaseAggregator):
    """Merges :class:`BandsPerYear` partials with the longevity clamp."""

    def aggregate(
        self,
        partials: Sequence[BandsPerYear],
        current_age: int = 0,
        retirement_age: Optional[int] = None,
        runs: Optional[int] = None,
        **kwargs: Any,
    ) -> BandsResult:
        """Pool reconstructed points per year and recompute the percentiles.

        Args:
            partials: One BandsPerYear per worker.
            current_age: Primary person's age in year 0.
            retirement_age: Reported in the metadata.
            runs: Paths simulated; defaults to the sum over partials.

        Returns:
            BandsResult covering at most ``clamp_age - current_age + 1`` years.
        """
        clamp_age = self.config.longevity_clamp_age
        max_len = max(0, clamp_age - current_age + 1)
        year_indices = sorted({y for p in partials for y in p.years})
        year_indices = [y for y in year_indices if y < max_len]

        ages: List[int] = []
        series: Dict[str, List[float]] = {key: [] for key in BAND_KEYS}
        for year_index in year_indices:
            points: List[float] = []
            for partial in partials:
                band = partial.years.get(year_index)
                if band is not None:
                    points.extend(reconstruct_points(band))
            if not points:
                continue
            values = np.percentile(np.sort(np.asarray(points, dtype=float)), BAND_PERCENTILES)
            if self.config.floor_at_zero:
                values = np.maximum(values, 0.0)
            ages.append(current_age + year_index)
            for key, value in zip(BAND_KEYS, values):
                series[key].append(self._round_value(float(value)))

        meta = {
            "current_age": current_age,
            "retirement_age": retirement_age,
            "longevity_age": ages[-1] if ages else None,
            "runs": runs if runs is not None else sum(p.paths for p in partials),
            "calculated_at": datetime.now(timezone.utc).isoformat(),
        }
        logger.info("Merged %d band partials into %d ages", len(partials), len(ages))
        return BandsResult(ages=ages, percentiles=series, meta=meta)
