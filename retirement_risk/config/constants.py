"""Module-level constants shared by the configuration and simulation layers.

Rates and ratios are decimals (0.04 = 4%). Monetary values are in today's
dollars unless a name says otherwise.
"""

from typing import Dict, Tuple

REGIME_NAMES: Tuple[str, ...] = ("bull", "normal", "bear", "crisis")
"""Market regimes of the return model's Markov chain, in canonical order."""

HEALTH_MORTALITY_MULTIPLIERS: Dict[str, float] = {
    "excellent": 0.7,
    "good": 1.0,
    "fair": 1.5,
    "poor": 2.2,
}
"""Multiplier applied to the base annual death probability by health status."""

LTC_DURATION_GENDER_MULTIPLIERS: Dict[str, float] = {
    "male": 0.85,
    "female": 1.15,
}
"""Multiplier applied to the mean long-term-care episode duration."""

DEFAULT_SIMULATION_COUNT: int = 1000
"""Number of paths simulated when a request does not specify one."""

DEFAULT_LONGEVITY_CLAMP_AGE: int = 93
"""Last age reported in confidence bands unless overridden."""

MIN_WORKERS: int = 2
MAX_WORKERS: int = 8

WORKER_SEED_STRIDE: int = 1000
"""Worker ``i`` is seeded with ``i * WORKER_SEED_STRIDE``."""

RETURN_FLOOR: float = -0.95
RETURN_CEILING: float = 3.0

MODEL_VERSION: str = "2025.1"
"""Bumped whenever simulation semantics change; part of the result cache key."""
