"""Harness module — times repeated invocations of a single workload.

Runs untimed warmup invocations, then a fixed number of timed trials on
the calling thread. The generator form yields after each timed trial;
that yield is the only point where the caller gets control back while a
workload is running.

This module depends only on domain/ types and has zero external imports beyond stdlib.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Generator
from typing import TYPE_CHECKING

from corebench.domain.errors import ConfigurationError, WorkloadExecutionError
from corebench.domain.models import ExecutionResult, WorkloadSpec
from corebench.modules.workloads.core import run_routine

if TYPE_CHECKING:
    from corebench.domain.ports import Clock, WorkloadInvoker

logger = logging.getLogger("corebench.harness")


def validate_counts(trial_count: int, warmup_trials: int) -> None:
    """Raise ConfigurationError unless trial_count >= 1 and warmup_trials >= 0."""
    if trial_count < 1:
        msg = f"trial count must be at least 1, got {trial_count}"
        raise ConfigurationError(msg)
    if warmup_trials < 0:
        msg = f"warmup trials must not be negative, got {warmup_trials}"
        raise ConfigurationError(msg)


def mean(values: tuple[float, ...]) -> float:
    """Unweighted arithmetic mean of a non-empty tuple."""
    return sum(values) / len(values)


class ExecutionHarness:
    """Times a workload spec with an injectable invoker and clock."""

    def __init__(
        self,
        invoke: WorkloadInvoker = run_routine,
        clock: Clock = time.perf_counter,
    ) -> None:
        self._invoke = invoke
        self._clock = clock

    def iter_workload(
        self,
        spec: WorkloadSpec,
        trial_count: int,
        warmup_trials: int = 0,
    ) -> Generator[int, None, ExecutionResult]:
        """Yield the 1-based iteration after each timed trial; return the result.

        Raises:
            ConfigurationError: on invalid counts, before anything runs.
            WorkloadExecutionError: if any invocation raises. Partial
                timings are discarded.
        """
        validate_counts(trial_count, warmup_trials)
        try:
            for _ in range(warmup_trials):
                self._invoke(spec.routine, spec.parameters)
        except Exception as exc:
            raise WorkloadExecutionError(spec.name, exc) from exc

        durations: list[float] = []
        for iteration in range(1, trial_count + 1):
            start = self._clock()
            try:
                self._invoke(spec.routine, spec.parameters)
            except Exception as exc:
                raise WorkloadExecutionError(spec.name, exc) from exc
            durations.append((self._clock() - start) * 1000.0)
            yield iteration

        raw = tuple(durations)
        result = ExecutionResult(
            workload_name=spec.name,
            display_name=spec.display_name,
            duration_ms=mean(raw),
            raw_durations=raw,
        )
        logger.debug("%s: %d trials, mean %.3f ms", spec.name, trial_count, result.duration_ms)
        return result

    def run_workload(
        self,
        spec: WorkloadSpec,
        trial_count: int,
        warmup_trials: int = 0,
        on_iteration_complete: Callable[[int], None] | None = None,
    ) -> ExecutionResult:
        """Run a workload to completion, calling back after every timed trial."""
        trials = self.iter_workload(spec, trial_count, warmup_trials)
        while True:
            try:
                iteration = next(trials)
            except StopIteration as done:
                result: ExecutionResult = done.value
                return result
            if on_iteration_complete is not None:
                on_iteration_complete(iteration)
