"""Coordinator module — runs the full catalog on N isolated workers at once.

Every worker receives the complete ordered workload list (the point is to
load all cores simultaneously, not to share work). Each worker averages its
own trials; the coordinator then averages those per-worker means once every
worker has reported a workload.

Any worker error fails the whole phase. Workers are always terminated
before the coordinator returns or raises.

This module depends only on domain/ types and has zero external imports beyond stdlib.
"""

from __future__ import annotations

import logging
import time
import traceback
from collections.abc import Callable, Generator, Iterator, Sequence
from typing import TYPE_CHECKING

from corebench.domain.errors import WorkerPoolError
from corebench.domain.models import (
    ExecutionResult,
    WorkerAssignment,
    WorkerOutcome,
    WorkerTask,
    WorkloadSpec,
)
from corebench.modules.harness.core import mean, validate_counts

if TYPE_CHECKING:
    from corebench.domain.models import CancellationToken
    from corebench.domain.ports import Clock, WorkerPoolPort, WorkloadInvoker

logger = logging.getLogger("corebench.coordinator")


def clamp_core_count(core_count: int, hardware_limit: int) -> int:
    """Clamp a requested worker count to [1, hardware_limit]."""
    return max(1, min(core_count, max(1, hardware_limit)))


def build_assignments(
    specs: Sequence[WorkloadSpec],
    worker_count: int,
    trials_per_workload: int,
    warmup_trials: int = 0,
) -> tuple[WorkerAssignment, ...]:
    """Give every worker the full catalog, in catalog order."""
    return tuple(
        WorkerAssignment(
            worker_id=worker_id,
            tasks=tuple(
                WorkerTask(
                    workload_name=spec.name,
                    routine=spec.routine,
                    parameters=dict(spec.parameters),
                    trial_count=trials_per_workload,
                    worker_id=worker_id,
                )
                for spec in specs
            ),
            warmup_trials=warmup_trials,
        )
        for worker_id in range(worker_count)
    )


def run_assignment(
    assignment: WorkerAssignment,
    invoke: WorkloadInvoker,
    clock: Clock = time.perf_counter,
    should_stop: Callable[[], bool] = lambda: False,
) -> Iterator[WorkerOutcome]:
    """The loop each worker executes.

    Performs the untimed warmup rounds over the catalog, then times each
    workload in order and yields one outcome per workload. Stops early at a
    workload boundary, warmup included, when ``should_stop()`` is true. An
    exception is reported as an error outcome and ends the worker.
    """
    current: str | None = None
    try:
        for _ in range(assignment.warmup_trials):
            for task in assignment.tasks:
                if should_stop():
                    return
                current = task.workload_name
                invoke(task.routine, task.parameters)

        for task in assignment.tasks:
            if should_stop():
                return
            current = task.workload_name
            durations: list[float] = []
            for _ in range(task.trial_count):
                start = clock()
                invoke(task.routine, task.parameters)
                durations.append((clock() - start) * 1000.0)
            raw = tuple(durations)
            yield WorkerOutcome(
                worker_id=assignment.worker_id,
                workload_name=task.workload_name,
                duration_ms=mean(raw),
                raw_durations=raw,
            )
    except Exception as exc:
        yield WorkerOutcome(
            worker_id=assignment.worker_id,
            workload_name=current,
            error=f"{exc!r}\n{traceback.format_exc()}",
        )


def _duration(outcome: WorkerOutcome) -> float:
    if outcome.duration_ms is None:
        raise WorkerPoolError(outcome.worker_id, outcome.workload_name, "reported no duration")
    return outcome.duration_ms


def aggregate(spec: WorkloadSpec, outcomes: dict[int, WorkerOutcome]) -> ExecutionResult:
    """Mean across workers of the per-worker mean durations.

    ``raw_durations`` holds the per-worker means ordered by worker id.
    """
    per_worker = tuple(
        _duration(outcomes[worker_id]) for worker_id in sorted(outcomes)
    )
    return ExecutionResult(
        workload_name=spec.name,
        display_name=spec.display_name,
        duration_ms=mean(per_worker),
        raw_durations=per_worker,
    )


class WorkerPoolCoordinator:
    """Drives a worker pool through one multi-core phase.

    ``pool_factory`` is called once per phase so no worker outlives it.
    """

    def __init__(
        self,
        pool_factory: Callable[[], WorkerPoolPort],
        hardware_limit: int,
    ) -> None:
        self._pool_factory = pool_factory
        self._hardware_limit = hardware_limit

    @property
    def hardware_limit(self) -> int:
        return self._hardware_limit

    def worker_count(self, core_count: int) -> int:
        return clamp_core_count(core_count, self._hardware_limit)

    def iter_parallel(
        self,
        specs: Sequence[WorkloadSpec],
        core_count: int,
        trials_per_workload: int,
        warmup_trials: int = 0,
        cancel: CancellationToken | None = None,
    ) -> Generator[WorkerOutcome, None, dict[str, ExecutionResult]]:
        """Yield each worker outcome as it arrives; return the aggregated results.

        On cancellation the returned mapping holds only the workloads every
        worker finished.

        Raises:
            ConfigurationError: on invalid counts, before any worker starts.
            WorkerPoolError: if any worker fails, after all are terminated.
        """
        validate_counts(trials_per_workload, warmup_trials)
        workers = self.worker_count(core_count)
        by_name = {spec.name: spec for spec in specs}
        reported: dict[str, dict[int, WorkerOutcome]] = {name: {} for name in by_name}
        results: dict[str, ExecutionResult] = {}

        pool = self._pool_factory()
        logger.info("Starting %d workers for %d workloads", workers, len(specs))
        try:
            pool.start(build_assignments(specs, workers, trials_per_workload, warmup_trials), cancel)
            for outcome in pool.outcomes():
                if outcome.error is not None:
                    raise WorkerPoolError(outcome.worker_id, outcome.workload_name, outcome.error)
                name = outcome.workload_name
                if name not in by_name:
                    raise WorkerPoolError(
                        outcome.worker_id, name, "reported a workload it was not assigned"
                    )
                reported[name][outcome.worker_id] = outcome
                yield outcome
                if len(reported[name]) == workers:
                    results[name] = aggregate(by_name[name], reported[name])
                    logger.debug("%s aggregated over %d workers", name, workers)
        finally:
            pool.terminate_all()
            logger.debug("Worker pool terminated (%d active)", pool.active_count())

        cancelled = cancel is not None and cancel.cancelled
        missing = [name for name in by_name if name not in results]
        if missing and not cancelled:
            msg = f"workers finished without reporting: {', '.join(missing)}"
            raise WorkerPoolError(None, missing[0], msg)
        return {spec.name: results[spec.name] for spec in specs if spec.name in results}

    def run_parallel(
        self,
        specs: Sequence[WorkloadSpec],
        core_count: int,
        trials_per_workload: int,
        on_outcome: Callable[[WorkerOutcome], None] | None = None,
        warmup_trials: int = 0,
        cancel: CancellationToken | None = None,
    ) -> dict[str, ExecutionResult]:
        """Run the phase to completion, calling ``on_outcome`` per (workload, worker)."""
        stream = self.iter_parallel(specs, core_count, trials_per_workload, warmup_trials, cancel)
        try:
            while True:
                try:
                    outcome = next(stream)
                except StopIteration as done:
                    results: dict[str, ExecutionResult] = done.value
                    return results
                if on_outcome is not None:
                    on_outcome(outcome)
        finally:
            stream.close()
