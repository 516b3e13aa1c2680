"""Master configuration class composing all sub-configurations.

Contains the top-level ``Config`` class that bundles the household parameter
set with the sub-model, simulation and logging configuration, and provides
YAML loading/saving, dictionary overrides and cross-section validation.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import warnings

from pydantic import BaseModel, Field
import yaml

from .._warnings import ConfigurationWarning
from .exceptions import ConfigurationError
from .household import HouseholdParameters
from .models import ModelConfig
from .reporting import LoggingConfig
from .simulation import SimulationConfig
from .utils import deep_merge


class Config(BaseModel):
    """Complete configuration for a retirement Monte Carlo run.

    Only ``household`` is required; every other section has defaults.

    Examples:
        From a YAML file::

            config = Config.from_yaml(Path("household.yaml"))
            config.validate()

        Overriding a base configuration::

            faster = Config.from_dict({"simulation": {"simulation_count": 200}}, config)
    """

    household: HouseholdParameters
    models: ModelConfig = Field(default_factory=ModelConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Config object with validated parameters.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValidationError: If configuration is invalid.
        """
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        # Remove private anchors if present
        data = {k: v for k, v in data.items() if not k.startswith("_")}

        return cls(**data)

    @classmethod
    def from_dict(cls, data: dict, base_config: Optional["Config"] = None) -> "Config":
        """Create config from dictionary, optionally overriding base config.

        Args:
            data: Dictionary with configuration parameters.
            base_config: Optional base configuration to override.

        Returns:
            Config object with validated parameters.
        """
        if base_config is None:
            return cls(**data)

        merged = deep_merge(base_config.model_dump(), data)
        return cls(**merged)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            path: Path where to save the configuration.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)

    def collect_issues(self) -> List[str]:
        """Check cross-section consistency.

        Returns:
            List of critical issues; empty when the configuration is usable.
        """
        issues = []
        household = self.household
        primary = household.primary

        if primary.retirement_age > household.horizon_age:
            issues.append(
                f"Retirement age {primary.retirement_age} is beyond the planning "
                f"horizon age {household.horizon_age}"
            )
        if self.simulation.longevity_clamp_age < primary.current_age:
            issues.append(
                f"Longevity clamp age {self.simulation.longevity_clamp_age} is below "
                f"current age {primary.current_age}"
            )
        for person in household.people:
            for stream in person.income_streams:
                if stream.end_age is not None and stream.end_age < person.current_age:
                    issues.append(
                        f"{stream.kind} stream ends at {stream.end_age}, before "
                        f"current age {person.current_age}"
                    )

        if household.has_ltc_insurance and not household.model_ltc:
            warnings.warn(
                "LTC insurance is configured but LTC shocks are disabled; "
                "premiums will be ignored.",
                ConfigurationWarning,
                stacklevel=2,
            )
        return issues

    def validate(self) -> None:  # type: ignore[override]
        """Raise :class:`ConfigurationError` when :meth:`collect_issues` finds any."""
        issues = self.collect_issues()
        if issues:
            raise ConfigurationError(issues)

    def setup_logging(self) -> None:
        """Configure logging based on settings.

        Sets up logging handlers for console and/or file output based
        on the logging configuration.
        """
        if not self.logging.enabled:
            return

        import logging
        import sys

        # Create logger
        logger = logging.getLogger("retirement_risk")
        logger.setLevel(getattr(logging, self.logging.level))
        logger.handlers.clear()

        formatter = logging.Formatter(self.logging.format)

        if self.logging.console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        if self.logging.log_file:
            log_path = Path(self.logging.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    def override(self, overrides: Dict[str, Any]) -> "Config":
        """Return a copy with dotted-path overrides applied.

        Args:
            overrides: Mapping like ``{"simulation.simulation_count": 500}``.

        Returns:
            New validated Config.
        """
        nested: Dict[str, Any] = {}
        for dotted, value in overrides.items():
            cursor = nested
            parts = dotted.split(".")
            for part in parts[:-1]:
                cursor = cursor.setdefault(part, {})
            cursor[parts[-1]] = value
        return Config.from_dict(nested, self)
