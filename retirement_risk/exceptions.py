"""Runtime exceptions raised while orchestrating a simulation.

Configuration problems are reported with
:class:`~retirement_risk.config.exceptions.ConfigurationError` before any
work starts; the exceptions here cover the parallel run itself.
"""

from .config.exceptions import ConfigurationError


class SimulationCancelled(RuntimeError):
    """Raised when a run is cancelled through its cancel event."""


class WorkerFailureError(RuntimeError):
    """Raised when any worker fails; partial results are discarded.

    Attributes:
        worker_index: Index of the first worker whose failure was observed.
    """

    def __init__(self, worker_index: int, message: str) -> None:
        self.worker_index = worker_index
        super().__init__(f"Worker {worker_index} failed: {message}")


__all__ = ["ConfigurationError", "SimulationCancelled", "WorkerFailureError"]
