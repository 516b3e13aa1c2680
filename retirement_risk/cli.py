"""Command-line entry point.

Usage::

    retirement-risk score --config household.yaml --runs 2000
    retirement-risk bands --config household.yaml --clamp-age 95 --workers 4

Results are printed as JSON on stdout; logging goes to stderr.
"""

import argparse
import json
from pathlib import Path
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config.core import Config
from .config.exceptions import ConfigurationError
from .exceptions import SimulationCancelled, WorkerFailureError
from .monte_carlo import RetirementMonteCarlo


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the ``retirement-risk`` command."""
    parser = argparse.ArgumentParser(
        prog="retirement-risk",
        description="Monte Carlo retirement success probability and portfolio bands",
    )
    parser.add_argument("report", choices=["score", "bands"], help="Report to produce")
    parser.add_argument("--config", type=Path, required=True, help="Household YAML file")
    parser.add_argument("--runs", type=int, default=None, help="Number of simulated paths")
    parser.add_argument("--clamp-age", type=int, default=None, help="Last age in bands")
    parser.add_argument("--workers", type=int, default=None, help="Worker count override")
    parser.add_argument(
        "--in-process", action="store_true", help="Run workers sequentially in this process"
    )
    parser.add_argument("--progress", action="store_true", help="Show a progress bar")
    parser.add_argument("--cache-key", action="store_true", help="Print the cache key only")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI."""
    args = build_parser().parse_args(argv)

    try:
        config = Config.from_yaml(args.config)
        overrides = {"simulation.report_kind": args.report}
        if args.runs is not None:
            overrides["simulation.simulation_count"] = args.runs
        if args.clamp_age is not None:
            overrides["simulation.longevity_clamp_age"] = args.clamp_age
        if args.workers is not None:
            overrides["simulation.n_workers"] = args.workers
        if args.in_process:
            overrides["simulation.use_processes"] = False
        if args.progress:
            overrides["simulation.progress_bar"] = True
        config = config.override(overrides)
    except (FileNotFoundError, ValidationError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    config.setup_logging()
    engine = RetirementMonteCarlo.from_config(config)

    if args.cache_key:
        print(engine.cache_key())
        return 0

    try:
        result = engine.run()
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        return 2
    except (SimulationCancelled, WorkerFailureError) as e:
        print(f"Simulation failed: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
