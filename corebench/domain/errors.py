"""Error taxonomy for corebench.

Every error surfaced to a caller carries the workload and, for the
multi-core phase, the worker it came from.
"""

from __future__ import annotations


class CorebenchError(Exception):
    """Base class for all corebench errors."""


class ConfigurationError(CorebenchError):
    """Invalid run configuration, detected before any timing begins."""


class WorkloadExecutionError(CorebenchError):
    """A workload raised during a single-core run."""

    def __init__(self, workload_name: str, cause: BaseException) -> None:
        self.workload_name = workload_name
        self.cause = cause
        super().__init__(f"workload {workload_name!r} failed: {cause!r}")


class WorkerPoolError(CorebenchError):
    """A worker failed during the multi-core phase.

    ``cause`` is a message rather than an exception object because it
    usually crossed a process boundary.
    """

    def __init__(self, worker_id: int | None, workload_name: str | None, cause: str) -> None:
        self.worker_id = worker_id
        self.workload_name = workload_name
        self.cause = cause
        where = f"worker #{worker_id}" if worker_id is not None else "worker pool"
        what = f" on workload {workload_name!r}" if workload_name else ""
        super().__init__(f"{where} failed{what}: {cause}")
