"""
wiring.py — Composition root.

Builds a ready-to-run BenchmarkEngine from the concrete collaborators:
the static workload catalogs, the in-process harness, and a coordinator
that spawns a fresh process pool for every multi-core phase.
"""

from __future__ import annotations

import logging

from corebench.adapters.device_info import hardware_concurrency_hint
from corebench.adapters.process_pool import ProcessWorkerPool
from corebench.kernel.config import (
    FALLBACK_CORE_COUNT,
    JOIN_TIMEOUT,
    POLL_INTERVAL,
    START_METHOD,
)
from corebench.kernel.engine import BenchmarkEngine
from corebench.modules.coordinator.core import WorkerPoolCoordinator
from corebench.modules.harness.core import ExecutionHarness
from corebench.modules.registry.core import WorkloadRegistry
from corebench.modules.workloads.core import run_routine

logger = logging.getLogger("corebench.wiring")


def build_engine(
    hardware_hint: int | None = None,
    *,
    start_method: str = START_METHOD,
    poll_interval: float = POLL_INTERVAL,
    join_timeout: float = JOIN_TIMEOUT,
) -> BenchmarkEngine:
    """Wire the default engine.

    Args:
        hardware_hint: Upper bound for the worker count. Read from the
            host when omitted.
        start_method: ``multiprocessing`` start method for workers.
        poll_interval: Seconds between cancellation checks while waiting
            on workers.
        join_timeout: Grace period before a terminated worker is killed.
    """
    if hardware_hint is None:
        hardware_hint = hardware_concurrency_hint(FALLBACK_CORE_COUNT)
    logger.debug("Hardware concurrency hint: %d", hardware_hint)

    def pool_factory() -> ProcessWorkerPool:
        return ProcessWorkerPool(
            start_method=start_method,
            poll_interval=poll_interval,
            join_timeout=join_timeout,
        )

    return BenchmarkEngine(
        registry=WorkloadRegistry(),
        harness=ExecutionHarness(invoke=run_routine),
        coordinator=WorkerPoolCoordinator(pool_factory, hardware_hint),
    )
