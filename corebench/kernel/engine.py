"""
kernel/engine.py — Benchmark orchestration.

Runs the single-core phase through the execution harness, then the
multi-core phase through the worker pool coordinator, scoring every
result and emitting progress events along the way.

Every phase is available in two forms:
  iter_*  generators yielding ProgressEvent values and returning the summary
  run_*   drivers that push the same events into an optional callback

Phases always run strictly in sequence.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Generator
from dataclasses import replace
from typing import TYPE_CHECKING, TypeVar

from corebench.domain.errors import WorkerPoolError, WorkloadExecutionError
from corebench.domain.models import (
    BenchmarkSummary,
    ExecutionResult,
    PhaseFailure,
    PhaseKind,
    PhaseStatus,
    PhaseSummary,
    ProgressEvent,
    RunConfig,
    WorkloadSpec,
)
from corebench.modules.harness.core import validate_counts
from corebench.modules.progress.core import compute_progress, window_for
from corebench.modules.scoring.core import ScoringEngine, combined_score, overall_score

if TYPE_CHECKING:
    from corebench.domain.models import CancellationToken
    from corebench.domain.ports import Clock
    from corebench.modules.coordinator.core import WorkerPoolCoordinator
    from corebench.modules.harness.core import ExecutionHarness
    from corebench.modules.registry.core import WorkloadRegistry

logger = logging.getLogger("corebench.engine")

ProgressCallback = Callable[[ProgressEvent], None]

_T = TypeVar("_T")


def drain(
    stream: Generator[ProgressEvent, None, _T],
    on_progress: ProgressCallback | None = None,
) -> _T:
    """Run an event stream to completion and return its final value."""
    try:
        while True:
            try:
                event = next(stream)
            except StopIteration as done:
                value: _T = done.value
                return value
            if on_progress is not None:
                on_progress(event)
    finally:
        stream.close()


class BenchmarkEngine:
    """Runs benchmark phases against an injected registry, harness and coordinator."""

    def __init__(
        self,
        registry: WorkloadRegistry,
        harness: ExecutionHarness,
        coordinator: WorkerPoolCoordinator,
        clock: Clock = time.perf_counter,
    ) -> None:
        self._registry = registry
        self._harness = harness
        self._coordinator = coordinator
        self._clock = clock

    @property
    def hardware_limit(self) -> int:
        return self._coordinator.hardware_limit

    @property
    def registry(self) -> WorkloadRegistry:
        return self._registry

    def worker_count(self, core_count: int) -> int:
        """Number of workers a multi-core phase would use for ``core_count``."""
        return self._coordinator.worker_count(core_count)

    # -- Preparation ---------------------------------------------------------

    def _prepare(
        self, config: RunConfig, phase_kind: PhaseKind
    ) -> tuple[tuple[WorkloadSpec, ...], ScoringEngine]:
        """Validate the config and resolve the phase catalog; fails fast."""
        validate_counts(config.trials_per_workload, config.warmup_trials)
        registry = self._registry.with_parameters(config.workload_parameters)
        return registry.list_workloads(phase_kind), ScoringEngine(registry)

    def _elapsed_ms(self, started: float) -> float:
        return (self._clock() - started) * 1000.0

    # -- Single-core phase ---------------------------------------------------

    def iter_single_core_phase(
        self,
        config: RunConfig,
        cancel: CancellationToken | None = None,
    ) -> Generator[ProgressEvent, None, PhaseSummary]:
        """Run every workload sequentially on this thread.

        A workload that raises is recorded as a failed placeholder and the
        phase moves on. Cancellation is honoured between workloads only.
        """
        kind = PhaseKind.SINGLE_CORE
        specs, scoring = self._prepare(config, kind)
        window = window_for(kind)
        trials = config.trials_per_workload
        count = len(specs)

        def event(index: int, spec: WorkloadSpec, iteration: int) -> ProgressEvent:
            return ProgressEvent(
                phase_kind=kind,
                workload_name=spec.name,
                workload_index=index,
                workload_count=count,
                iteration=iteration,
                iteration_count=trials,
                overall_progress_percent=compute_progress(
                    kind, index, count, iteration, trials, window.weight, window.offset
                ),
            )

        logger.info("Single-core phase: %d workloads x %d trials", count, trials)
        started = self._clock()
        results: list[ExecutionResult] = []
        status = PhaseStatus.COMPLETED

        for index, spec in enumerate(specs):
            if cancel is not None and cancel.cancelled:
                logger.info("Single-core phase cancelled before %s", spec.name)
                status = PhaseStatus.CANCELLED
                break

            stream = self._harness.iter_workload(spec, trials, config.warmup_trials)
            try:
                while True:
                    try:
                        iteration = next(stream)
                    except StopIteration as done:
                        result: ExecutionResult = done.value
                        break
                    yield event(index, spec, iteration)
            except WorkloadExecutionError as exc:
                logger.warning("Workload %s failed: %r", spec.name, exc.cause)
                results.append(ExecutionResult.failure(spec, repr(exc.cause)))
                yield event(index, spec, trials)
                continue

            results.append(replace(result, score=scoring.score(spec.name, result.duration_ms)))

        summary = PhaseSummary(
            phase_kind=kind,
            results=tuple(results),
            overall_score=overall_score(results),
            total_duration_ms=self._elapsed_ms(started),
            status=status,
            worker_count=1,
        )
        logger.info(
            "Single-core phase %s: score %d", summary.status.value, summary.overall_score
        )
        return summary

    def run_single_core_phase(
        self,
        config: RunConfig,
        on_progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> PhaseSummary:
        return drain(self.iter_single_core_phase(config, cancel), on_progress)

    # -- Multi-core phase ----------------------------------------------------

    def iter_multi_core_phase(
        self,
        config: RunConfig,
        core_count: int,
        cancel: CancellationToken | None = None,
    ) -> Generator[ProgressEvent, None, PhaseSummary]:
        """Run the multi-core catalog on ``core_count`` workers.

        A worker failure does not raise: it comes back as a FAILED summary
        naming the worker and workload.
        """
        kind = PhaseKind.MULTI_CORE
        specs, scoring = self._prepare(config, kind)
        window = window_for(kind)
        workers = self._coordinator.worker_count(core_count)
        index_of = {spec.name: index for index, spec in enumerate(specs)}
        count = len(specs)
        reported: dict[str, int] = dict.fromkeys(index_of, 0)
        completed = 0

        logger.info(
            "Multi-core phase: %d workloads x %d workers x %d trials",
            count,
            workers,
            config.trials_per_workload,
        )
        started = self._clock()
        stream = self._coordinator.iter_parallel(
            specs, workers, config.trials_per_workload, config.warmup_trials, cancel
        )
        try:
            while True:
                try:
                    outcome = next(stream)
                except StopIteration as done:
                    aggregated: dict[str, ExecutionResult] = done.value
                    break
                name = outcome.workload_name or ""
                reported[name] += 1
                completed += 1
                yield ProgressEvent(
                    phase_kind=kind,
                    workload_name=name,
                    workload_index=index_of[name],
                    workload_count=count,
                    iteration=reported[name],
                    iteration_count=workers,
                    overall_progress_percent=compute_progress(
                        kind,
                        completed // workers,
                        count,
                        completed % workers,
                        workers,
                        window.weight,
                        window.offset,
                    ),
                )
        except WorkerPoolError as exc:
            logger.error("Multi-core phase failed: %s", exc)
            return PhaseSummary(
                phase_kind=kind,
                results=(),
                overall_score=0,
                total_duration_ms=self._elapsed_ms(started),
                status=PhaseStatus.FAILED,
                worker_count=workers,
                failure=PhaseFailure(
                    message=exc.cause,
                    workload_name=exc.workload_name,
                    worker_id=exc.worker_id,
                ),
            )
        finally:
            stream.close()

        results = [
            replace(result, score=scoring.score(name, result.duration_ms))
            for name, result in aggregated.items()
        ]
        cancelled = cancel is not None and cancel.cancelled and len(results) < count
        summary = PhaseSummary(
            phase_kind=kind,
            results=tuple(results),
            overall_score=overall_score(results),
            total_duration_ms=self._elapsed_ms(started),
            status=PhaseStatus.CANCELLED if cancelled else PhaseStatus.COMPLETED,
            worker_count=workers,
        )
        logger.info("Multi-core phase %s: score %d", summary.status.value, summary.overall_score)
        return summary

    def run_multi_core_phase(
        self,
        config: RunConfig,
        core_count: int,
        on_progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> PhaseSummary:
        return drain(self.iter_multi_core_phase(config, core_count, cancel), on_progress)

    # -- Full run ------------------------------------------------------------

    def iter_full_benchmark(
        self,
        config: RunConfig,
        core_count: int,
        cancel: CancellationToken | None = None,
    ) -> Generator[ProgressEvent, None, BenchmarkSummary]:
        """Single-core phase, then multi-core phase, then the combined score.

        The multi-core phase is skipped when the run was cancelled during the
        single-core phase.
        """
        # Validate both phases before any timing starts.
        self._prepare(config, PhaseKind.MULTI_CORE)
        started = self._clock()
        single = yield from self.iter_single_core_phase(config, cancel)
        multi: PhaseSummary | None = None
        if single.status is PhaseStatus.CANCELLED:
            logger.info("Skipping multi-core phase after cancellation")
        else:
            multi = yield from self.iter_multi_core_phase(config, core_count, cancel)
        return BenchmarkSummary(
            single_core=single,
            multi_core=multi,
            overall_score=combined_score((single, multi)),
            total_duration_ms=self._elapsed_ms(started),
            core_count=self._coordinator.worker_count(core_count),
        )

    def run_full_benchmark(
        self,
        config: RunConfig,
        core_count: int,
        on_progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> BenchmarkSummary:
        return drain(self.iter_full_benchmark(config, core_count, cancel), on_progress)
