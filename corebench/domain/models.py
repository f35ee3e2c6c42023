"""Core data types for corebench.

All records are frozen dataclasses with complete type annotations.
This module has ZERO imports from outside the Python standard library.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class PhaseKind(Enum):
    """Which half of a benchmark run a result belongs to."""

    SINGLE_CORE = "single-core"
    MULTI_CORE = "multi-core"


class PhaseStatus(Enum):
    """How a phase ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Workload catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkloadSpec:
    """A named, parameterized CPU-bound workload.

    ``routine`` names the function that does the work; several specs may
    share a routine with different ``parameters``. The parameters are
    copied into a read-only mapping.
    """

    name: str
    display_name: str
    routine: str
    reference_time_ms: float
    parameters: Mapping[str, Any] = field(default_factory=lambda: dict[str, Any]())

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))


@dataclass(frozen=True)
class RunConfig:
    """Options recognised by the phase runners."""

    trials_per_workload: int = 3
    warmup_trials: int = 1
    workload_parameters: dict[str, dict[str, Any]] = field(
        default_factory=lambda: dict[str, dict[str, Any]]()
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExecutionResult:
    """Timing of one workload within one phase.

    A failed placeholder has ``error`` set, no raw durations, a NaN
    duration and a score of 0.
    """

    workload_name: str
    display_name: str
    duration_ms: float
    raw_durations: tuple[float, ...]
    score: int = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def failure(cls, spec: WorkloadSpec, error: str) -> ExecutionResult:
        """Build the placeholder recorded for a workload that raised."""
        return cls(
            workload_name=spec.name,
            display_name=spec.display_name,
            duration_ms=math.nan,
            raw_durations=(),
            score=0,
            error=error,
        )


@dataclass(frozen=True)
class PhaseFailure:
    """Identity and cause of the error that ended a phase."""

    message: str
    workload_name: str | None = None
    worker_id: int | None = None


@dataclass(frozen=True)
class PhaseSummary:
    """Everything one phase produced."""

    phase_kind: PhaseKind
    results: tuple[ExecutionResult, ...]
    overall_score: int
    total_duration_ms: float
    status: PhaseStatus = PhaseStatus.COMPLETED
    worker_count: int = 1
    failure: PhaseFailure | None = None

    @property
    def failed(self) -> bool:
        return self.status is PhaseStatus.FAILED


@dataclass(frozen=True)
class BenchmarkSummary:
    """Both phases of a full run plus the combined score."""

    single_core: PhaseSummary
    multi_core: PhaseSummary | None
    overall_score: int
    total_duration_ms: float
    core_count: int


@dataclass(frozen=True)
class ProgressEvent:
    """A single progress notification emitted while a phase runs."""

    phase_kind: PhaseKind
    workload_name: str
    workload_index: int
    workload_count: int
    iteration: int
    iteration_count: int
    overall_progress_percent: float


# ---------------------------------------------------------------------------
# Worker messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkerTask:
    """One workload as handed to a worker."""

    workload_name: str
    routine: str
    parameters: dict[str, Any]
    trial_count: int
    worker_id: int


@dataclass(frozen=True)
class WorkerAssignment:
    """The complete, ordered work list for a single worker."""

    worker_id: int
    tasks: tuple[WorkerTask, ...]
    warmup_trials: int = 0


@dataclass(frozen=True)
class WorkerOutcome:
    """What a worker reports after finishing (or failing) one workload.

    ``duration_ms`` is the mean of the worker's own trials.
    """

    worker_id: int
    workload_name: str | None
    duration_ms: float | None = None
    raw_durations: tuple[float, ...] = ()
    error: str | None = None


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class CancellationToken:
    """Cooperative cancellation flag, safe to set from any thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
