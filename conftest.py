"""Shared pytest fixtures and test factories for corebench.

Provides:
- Fake port implementations (Clock, WorkloadInvoker, WorkerPool)
- Factory functions for the domain models with sensible defaults
- Pytest fixtures wrapping the most commonly used fakes
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from corebench.domain.models import (
    ExecutionResult,
    PhaseKind,
    PhaseStatus,
    PhaseSummary,
    WorkerOutcome,
    WorkloadSpec,
)
from corebench.modules.coordinator.core import run_assignment

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping, Sequence

    from corebench.domain.models import CancellationToken, WorkerAssignment


# ── Fake Port Implementations ─────────────────────────────────────────────


class FakeClock:
    """Manually advanced clock, in seconds.

    Time only moves when ``advance`` is called, usually by a
    RecordingInvoker standing in for real work.
    """

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingInvoker:
    """WorkloadInvoker that records calls and simulates their cost.

    Each call advances ``clock`` by ``cost_ms`` (or the per-routine value
    in ``costs_ms``). Routines listed in ``fail_on`` raise RuntimeError.
    ``on_call`` runs after every successful call.
    """

    def __init__(
        self,
        clock: FakeClock | None = None,
        *,
        cost_ms: float = 10.0,
        costs_ms: Mapping[str, float] | None = None,
        fail_on: Sequence[str] = (),
        on_call: Callable[[str], None] | None = None,
    ) -> None:
        self.clock = clock
        self.cost_ms = cost_ms
        self.costs_ms = dict(costs_ms or {})
        self.fail_on = set(fail_on)
        self.on_call = on_call
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, routine: str, parameters: Mapping[str, Any]) -> object:
        self.calls.append((routine, dict(parameters)))
        if routine in self.fail_on:
            msg = f"{routine} exploded"
            raise RuntimeError(msg)
        if self.clock is not None:
            self.clock.advance(self.costs_ms.get(routine, self.cost_ms) / 1000.0)
        if self.on_call is not None:
            self.on_call(routine)
        return None

    def count(self, routine: str) -> int:
        return sum(1 for name, _ in self.calls if name == routine)


class InProcessWorkerPool:
    """WorkerPoolPort that runs every assignment on the calling thread.

    Workers are interleaved round-robin, one workload at a time, so
    outcomes arrive in the same mixed order real workers produce.

    Args:
        invoker_factory: Builds the invoker used by a given worker id.
        fail_on: worker id -> routine that raises on that worker only.
        crash_worker: A worker that "dies" before reporting anything.
    """

    def __init__(
        self,
        invoker_factory: Callable[[int], RecordingInvoker] | None = None,
        *,
        fail_on: Mapping[int, str] | None = None,
        crash_worker: int | None = None,
    ) -> None:
        self._invoker_factory = invoker_factory or (lambda _worker_id: RecordingInvoker())
        self._fail_on = dict(fail_on or {})
        self._crash_worker = crash_worker
        self._assignments: list[WorkerAssignment] = []
        self._cancel: CancellationToken | None = None
        self.active: set[int] = set()
        self.started = 0
        self.terminate_calls = 0

    def start(
        self,
        assignments: Sequence[WorkerAssignment],
        cancel: CancellationToken | None = None,
    ) -> None:
        self._assignments = list(assignments)
        self._cancel = cancel
        self.active = {a.worker_id for a in assignments}
        self.started = len(assignments)

    def _stopped(self) -> bool:
        return self._cancel is not None and self._cancel.cancelled

    def _worker(self, assignment: WorkerAssignment) -> Iterator[WorkerOutcome]:
        if assignment.worker_id == self._crash_worker:
            yield WorkerOutcome(
                worker_id=assignment.worker_id,
                workload_name=None,
                error="worker exited unexpectedly (exit code -9)",
            )
            return
        invoker = self._invoker_factory(assignment.worker_id)
        failing = self._fail_on.get(assignment.worker_id)
        if failing is not None:
            invoker.fail_on.add(failing)
        clock = invoker.clock if invoker.clock is not None else FakeClock()
        yield from run_assignment(assignment, invoker, clock, should_stop=self._stopped)

    def outcomes(self) -> Iterator[WorkerOutcome]:
        running = {a.worker_id: self._worker(a) for a in self._assignments}
        while running:
            for worker_id in list(running):
                outcome = next(running[worker_id], None)
                if outcome is None or outcome.error is not None:
                    del running[worker_id]
                    self.active.discard(worker_id)
                if outcome is not None:
                    yield outcome

    def active_count(self) -> int:
        return len(self.active)

    def terminate_all(self) -> None:
        self.terminate_calls += 1
        self.active.clear()


# ── Factories ─────────────────────────────────────────────────────────────


def make_spec(
    name: str = "alpha",
    *,
    reference_time_ms: float = 20.0,
    routine: str | None = None,
    parameters: dict[str, Any] | None = None,
) -> WorkloadSpec:
    """Create a WorkloadSpec whose routine defaults to its name."""
    return WorkloadSpec(
        name=name,
        display_name=name.title(),
        routine=routine or name,
        reference_time_ms=reference_time_ms,
        parameters=parameters or {},
    )


def make_result(
    name: str = "alpha",
    *,
    duration_ms: float = 20.0,
    score: int = 50,
    raw_durations: tuple[float, ...] | None = None,
    error: str | None = None,
) -> ExecutionResult:
    """Create an ExecutionResult with sensible defaults."""
    return ExecutionResult(
        workload_name=name,
        display_name=name.title(),
        duration_ms=duration_ms,
        raw_durations=(duration_ms,) if raw_durations is None else raw_durations,
        score=score,
        error=error,
    )


def make_phase(
    kind: PhaseKind = PhaseKind.SINGLE_CORE,
    results: tuple[ExecutionResult, ...] | None = None,
    *,
    overall_score: int = 50,
    status: PhaseStatus = PhaseStatus.COMPLETED,
    worker_count: int = 1,
) -> PhaseSummary:
    """Create a PhaseSummary with sensible defaults."""
    return PhaseSummary(
        phase_kind=kind,
        results=(make_result(),) if results is None else results,
        overall_score=overall_score,
        total_duration_ms=123.0,
        status=status,
        worker_count=worker_count,
    )


# ── Pytest Fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def recording_invoker(fake_clock: FakeClock) -> RecordingInvoker:
    """Provide an invoker where every call costs 10 ms on ``fake_clock``."""
    return RecordingInvoker(fake_clock)


@pytest.fixture
def spec_factory() -> Callable[..., WorkloadSpec]:
    """Provide the make_spec factory function."""
    return make_spec


@pytest.fixture
def result_factory() -> Callable[..., ExecutionResult]:
    """Provide the make_result factory function."""
    return make_result


@pytest.fixture
def phase_factory() -> Callable[..., PhaseSummary]:
    """Provide the make_phase factory function."""
    return make_phase
