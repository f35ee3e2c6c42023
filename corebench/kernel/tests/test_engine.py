"""Tests for kernel/engine.py."""

from __future__ import annotations

import math
from typing import Any

import pytest

from conftest import FakeClock, InProcessWorkerPool, RecordingInvoker, make_spec
from corebench.domain.errors import ConfigurationError
from corebench.domain.models import (
    CancellationToken,
    PhaseKind,
    PhaseStatus,
    ProgressEvent,
    RunConfig,
)
from corebench.kernel.engine import BenchmarkEngine, drain
from corebench.modules.coordinator.core import WorkerPoolCoordinator
from corebench.modules.harness.core import ExecutionHarness
from corebench.modules.registry.core import WorkloadRegistry

SINGLE = (make_spec("a"), make_spec("b"), make_spec("c"))
MULTI = (make_spec("m1"), make_spec("m2"))


def _engine(
    invoker: RecordingInvoker,
    clock: FakeClock,
    pool: InProcessWorkerPool | None = None,
    hardware_limit: int = 4,
) -> BenchmarkEngine:
    worker_pool = pool or _pool()
    return BenchmarkEngine(
        registry=WorkloadRegistry(SINGLE, MULTI),
        harness=ExecutionHarness(invoker, clock),
        coordinator=WorkerPoolCoordinator(lambda: worker_pool, hardware_limit),
        clock=clock,
    )


def _pool(**kwargs: Any) -> InProcessWorkerPool:
    """Every worker call costs 40 ms, i.e. twice the 20 ms reference."""
    return InProcessWorkerPool(lambda _wid: RecordingInvoker(FakeClock(), cost_ms=40.0), **kwargs)


def _config(trials: int = 3, warmup: int = 0, **params: dict[str, Any]) -> RunConfig:
    return RunConfig(trials_per_workload=trials, warmup_trials=warmup, workload_parameters=params)


# ---------------------------------------------------------------------------
# Single-core phase
# ---------------------------------------------------------------------------


class TestSingleCorePhase:
    def test_scores_every_workload_in_order(self, fake_clock: FakeClock) -> None:
        invoker = RecordingInvoker(fake_clock, costs_ms={"a": 10.0, "b": 20.0, "c": 40.0})
        summary = _engine(invoker, fake_clock).run_single_core_phase(_config())

        assert summary.phase_kind is PhaseKind.SINGLE_CORE
        assert summary.status is PhaseStatus.COMPLETED
        assert [r.workload_name for r in summary.results] == ["a", "b", "c"]
        assert [r.score for r in summary.results] == [100, 50, 25]
        assert summary.overall_score == 58
        assert summary.worker_count == 1
        assert summary.total_duration_ms == pytest.approx(3 * (10.0 + 20.0 + 40.0))

    def test_progress_events(self, fake_clock: FakeClock) -> None:
        events: list[ProgressEvent] = []
        invoker = RecordingInvoker(fake_clock)
        _engine(invoker, fake_clock).run_single_core_phase(_config(), on_progress=events.append)

        assert len(events) == 9
        percents = [e.overall_progress_percent for e in events]
        assert percents == sorted(percents)
        assert percents[-1] == pytest.approx(50.0)
        assert events[0].workload_name == "a"
        assert (events[0].iteration, events[0].iteration_count) == (1, 3)
        assert events[-1].workload_index == 2
        assert all(e.workload_count == 3 for e in events)

    def test_failed_workload_recorded_and_phase_continues(self, fake_clock: FakeClock) -> None:
        events: list[ProgressEvent] = []
        invoker = RecordingInvoker(fake_clock, cost_ms=20.0, fail_on=["b"])
        summary = _engine(invoker, fake_clock).run_single_core_phase(
            _config(), on_progress=events.append
        )

        assert summary.status is PhaseStatus.COMPLETED
        failed = summary.results[1]
        assert failed.workload_name == "b"
        assert failed.failed
        assert failed.score == 0
        assert math.isnan(failed.duration_ms)
        assert failed.error is not None
        assert "b exploded" in failed.error
        # a and c ran at the reference time
        assert summary.overall_score == 50
        assert len(events) == 7
        assert [e.overall_progress_percent for e in events] == sorted(
            e.overall_progress_percent for e in events
        )

    def test_cancel_between_workloads(self, fake_clock: FakeClock) -> None:
        cancel = CancellationToken()
        invoker = RecordingInvoker(
            fake_clock, on_call=lambda routine: cancel.cancel() if routine == "a" else None
        )
        summary = _engine(invoker, fake_clock).run_single_core_phase(_config(), cancel=cancel)

        assert summary.status is PhaseStatus.CANCELLED
        assert [r.workload_name for r in summary.results] == ["a"]
        assert len(summary.results[0].raw_durations) == 3
        assert invoker.count("b") == 0

    def test_parameter_overrides_reach_invoker(self, fake_clock: FakeClock) -> None:
        invoker = RecordingInvoker(fake_clock)
        _engine(invoker, fake_clock).run_single_core_phase(_config(1, b={"size": 2}))
        assert ("b", {"size": 2}) in invoker.calls

    def test_invalid_config_raises_before_running(self, fake_clock: FakeClock) -> None:
        invoker = RecordingInvoker(fake_clock)
        engine = _engine(invoker, fake_clock)
        with pytest.raises(ConfigurationError):
            engine.run_single_core_phase(_config(trials=0))
        with pytest.raises(ConfigurationError):
            engine.run_single_core_phase(_config(warmup=-1))
        with pytest.raises(ConfigurationError, match="ghost"):
            engine.run_single_core_phase(_config(ghost={"n": 1}))
        assert invoker.calls == []

    def test_each_stream_is_a_fresh_run(self, fake_clock: FakeClock) -> None:
        invoker = RecordingInvoker(fake_clock)
        engine = _engine(invoker, fake_clock)
        first = drain(engine.iter_single_core_phase(_config(1)))
        second = drain(engine.iter_single_core_phase(_config(1)))
        assert [r.workload_name for r in first.results] == ["a", "b", "c"]
        assert [r.workload_name for r in second.results] == ["a", "b", "c"]
        assert len(invoker.calls) == 6


# ---------------------------------------------------------------------------
# Multi-core phase
# ---------------------------------------------------------------------------


class TestMultiCorePhase:
    def test_aggregates_and_scores(self, fake_clock: FakeClock) -> None:
        pool = _pool()
        events: list[ProgressEvent] = []
        engine = _engine(RecordingInvoker(fake_clock), fake_clock, pool)

        summary = engine.run_multi_core_phase(_config(2), 2, on_progress=events.append)

        assert summary.status is PhaseStatus.COMPLETED
        assert summary.worker_count == 2
        assert [r.workload_name for r in summary.results] == ["m1", "m2"]
        assert all(r.score == 25 for r in summary.results)
        assert summary.overall_score == 25
        assert len(events) == 4
        assert all(e.phase_kind is PhaseKind.MULTI_CORE for e in events)
        assert events[0].overall_progress_percent == pytest.approx(62.5)
        assert events[-1].overall_progress_percent == pytest.approx(100.0)
        assert pool.active_count() == 0

    def test_worker_failure_becomes_failed_summary(self, fake_clock: FakeClock) -> None:
        pool = _pool(fail_on={1: "m2"})
        engine = _engine(RecordingInvoker(fake_clock), fake_clock, pool)

        summary = engine.run_multi_core_phase(_config(1), 3)

        assert summary.status is PhaseStatus.FAILED
        assert summary.failed
        assert summary.results == ()
        assert summary.overall_score == 0
        assert summary.failure is not None
        assert summary.failure.worker_id == 1
        assert summary.failure.workload_name == "m2"
        assert "m2 exploded" in summary.failure.message
        assert pool.active_count() == 0

    def test_cores_clamped_to_hardware_limit(self, fake_clock: FakeClock) -> None:
        pool = _pool()
        engine = _engine(RecordingInvoker(fake_clock), fake_clock, pool, hardware_limit=2)
        summary = engine.run_multi_core_phase(_config(1), 64)
        assert summary.worker_count == 2
        assert pool.started == 2

    def test_cancelled_phase(self, fake_clock: FakeClock) -> None:
        pool = _pool()
        cancel = CancellationToken()
        engine = _engine(RecordingInvoker(fake_clock), fake_clock, pool)

        def on_progress(event: ProgressEvent) -> None:
            if event.workload_name == "m1" and event.iteration == event.iteration_count:
                cancel.cancel()

        summary = engine.run_multi_core_phase(_config(1), 2, on_progress, cancel)

        assert summary.status is PhaseStatus.CANCELLED
        assert [r.workload_name for r in summary.results] == ["m1"]


# ---------------------------------------------------------------------------
# Full run
# ---------------------------------------------------------------------------


class TestFullBenchmark:
    def test_runs_both_phases_and_combines(self, fake_clock: FakeClock) -> None:
        events: list[ProgressEvent] = []
        invoker = RecordingInvoker(fake_clock, cost_ms=20.0)
        summary = _engine(invoker, fake_clock).run_full_benchmark(
            _config(2), 4, on_progress=events.append
        )

        assert summary.single_core.overall_score == 50
        assert summary.multi_core is not None
        assert summary.multi_core.overall_score == 25
        assert summary.overall_score == 38
        assert summary.core_count == 4

        percents = [e.overall_progress_percent for e in events]
        assert percents == sorted(percents)
        assert percents[-1] == pytest.approx(100.0)
        kinds = [e.phase_kind for e in events]
        assert kinds == sorted(kinds, key=lambda k: k is PhaseKind.MULTI_CORE)

    def test_cancel_in_single_core_skips_multi_core(self, fake_clock: FakeClock) -> None:
        pool = _pool()
        cancel = CancellationToken()
        invoker = RecordingInvoker(fake_clock, on_call=lambda _r: cancel.cancel())
        summary = _engine(invoker, fake_clock, pool).run_full_benchmark(
            _config(1), 2, cancel=cancel
        )

        assert summary.single_core.status is PhaseStatus.CANCELLED
        assert summary.multi_core is None
        assert summary.overall_score == summary.single_core.overall_score
        assert pool.started == 0

    def test_multi_core_failure_keeps_single_core_score(self, fake_clock: FakeClock) -> None:
        pool = _pool(fail_on={0: "m1"})
        invoker = RecordingInvoker(fake_clock)
        summary = _engine(invoker, fake_clock, pool).run_full_benchmark(_config(1), 2)

        assert summary.multi_core is not None
        assert summary.multi_core.failed
        assert summary.overall_score == summary.single_core.overall_score

    def test_invalid_config_fails_before_any_phase(self, fake_clock: FakeClock) -> None:
        pool = _pool()
        invoker = RecordingInvoker(fake_clock)
        with pytest.raises(ConfigurationError):
            _engine(invoker, fake_clock, pool).run_full_benchmark(_config(trials=0), 2)
        assert invoker.calls == []
        assert pool.started == 0
