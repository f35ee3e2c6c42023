#!/usr/bin/env python3
"""
corebench CLI -- Entry point for the CPU benchmark.

Usage:
  corebench run [--config FILE] [--trials N] [--warmup N] [--cores N]
                [--single-core-only | --multi-core-only] [--json]
                [--verbose | --quiet] [--log-file PATH]
                [--console rich|plain|auto]
  corebench list [--phase single-core|multi-core]

Exit codes: 0 on success, 1 when a phase failed, 2 on a configuration
error, 130 when the run was cancelled with Ctrl-C.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from corebench.domain.errors import ConfigurationError
from corebench.domain.models import (
    BenchmarkSummary,
    CancellationToken,
    PhaseKind,
    PhaseStatus,
    PhaseSummary,
    ProgressEvent,
)
from corebench.kernel.console import configure, console

if TYPE_CHECKING:
    from collections.abc import Callable

    from corebench.domain.models import RunConfig
    from corebench.kernel.engine import BenchmarkEngine

logger = logging.getLogger("corebench")

EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 130

# ---------------------------------------------------------------------------
# CLI commands
# ---------------------------------------------------------------------------


def cmd_list(args: argparse.Namespace) -> int:
    """Print the workload catalogs with reference times."""
    from corebench.modules.registry.core import WorkloadRegistry

    registry = WorkloadRegistry()
    kinds = [PhaseKind(args.phase)] if args.phase else list(PhaseKind)
    for kind in kinds:
        rows = [
            [spec.name, spec.display_name, spec.routine, f"{spec.reference_time_ms:g} ms"]
            for spec in registry.list_workloads(kind)
        ]
        console.table(["Name", "Workload", "Routine", "Reference"], rows, title=kind.value)
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Run one or both benchmark phases."""
    from corebench import wiring
    from corebench.kernel.config import load_run_config

    file_config = load_run_config(args.config)
    config = file_config.to_run_config(trials=args.trials, warmup=args.warmup)

    engine = wiring.build_engine()
    cores = args.cores if args.cores is not None else file_config.cores
    if cores is None:
        cores = engine.hardware_limit
    if cores < 1:
        msg = f"core count must be at least 1, got {cores}"
        raise ConfigurationError(msg)

    if not args.json:
        console.info(
            f"Trials per workload: {config.trials_per_workload} "
            f"(+{config.warmup_trials} warmup)"
        )

    cancel = CancellationToken()
    previous = signal.signal(signal.SIGINT, _cancel_handler(cancel))
    try:
        outcome = _run_phases(engine, config, cores, args, cancel)
    finally:
        signal.signal(signal.SIGINT, previous)

    if args.json:
        from corebench.kernel.report import phase_to_dict, summary_to_dict, to_json

        if isinstance(outcome, BenchmarkSummary):
            print(to_json(summary_to_dict(outcome)))
        else:
            print(to_json(phase_to_dict(outcome)))
    else:
        _print_outcome(outcome)

    phases = _phases(outcome)
    failed = [phase for phase in phases if phase.failed]
    if failed:
        for phase in failed:
            message = phase.failure.message.splitlines()[0] if phase.failure else "unknown error"
            console.error(f"benchmark failed: {phase.phase_kind.value} phase: {message}")
        return EXIT_FAILED
    if any(phase.status is PhaseStatus.CANCELLED for phase in phases):
        console.warning("Benchmark cancelled; partial results shown.")
        return EXIT_CANCELLED
    if not args.json:
        console.success("Benchmark complete")
    return 0


def _cancel_handler(cancel: CancellationToken) -> Callable[[int, object], None]:
    def handler(signum: int, frame: object) -> None:
        if cancel.cancelled:
            raise KeyboardInterrupt
        console.warning("Cancelling after the current workload (Ctrl-C again to abort)")
        logger.info("Cancellation requested by signal %d", signum)
        cancel.cancel()

    return handler


def _run_phases(
    engine: BenchmarkEngine,
    config: RunConfig,
    cores: int,
    args: argparse.Namespace,
    cancel: CancellationToken,
) -> BenchmarkSummary | PhaseSummary:
    on_progress = None if args.json else _ProgressPrinter(engine, cores)
    if args.single_core_only:
        return engine.run_single_core_phase(config, on_progress, cancel)
    if args.multi_core_only:
        return engine.run_multi_core_phase(config, cores, on_progress, cancel)
    return engine.run_full_benchmark(config, cores, on_progress, cancel)


class _ProgressPrinter:
    """Progress callback printing a phase banner whenever the phase changes."""

    def __init__(self, engine: BenchmarkEngine, cores: int) -> None:
        self._engine = engine
        self._cores = cores
        self._phase: PhaseKind | None = None

    def __call__(self, event: ProgressEvent) -> None:
        if event.phase_kind is not self._phase:
            self._phase = event.phase_kind
            workers = (
                1
                if event.phase_kind is PhaseKind.SINGLE_CORE
                else self._engine.worker_count(self._cores)
            )
            console.phase_header(event.phase_kind.value, event.workload_count, workers)
        console.progress(event)


def _phases(outcome: BenchmarkSummary | PhaseSummary) -> list[PhaseSummary]:
    if isinstance(outcome, PhaseSummary):
        return [outcome]
    return [p for p in (outcome.single_core, outcome.multi_core) if p is not None]


def _print_outcome(outcome: BenchmarkSummary | PhaseSummary) -> None:
    for phase in _phases(outcome):
        console.phase_result(phase)
    if isinstance(outcome, BenchmarkSummary):
        console.run_result(outcome)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="corebench",
        description="corebench -- single-core and multi-core CPU benchmark",
    )
    sub = parser.add_subparsers(dest="command")

    # corebench run
    run_p = sub.add_parser("run", help="Run the benchmark")
    run_p.add_argument("--config", type=Path, default=None, help="YAML config file")
    run_p.add_argument("--trials", type=int, default=None, help="Timed trials per workload")
    run_p.add_argument("--warmup", type=int, default=None, help="Untimed warmup invocations")
    run_p.add_argument("--cores", type=int, default=None, help="Workers for the multi-core phase")
    phase = run_p.add_mutually_exclusive_group()
    phase.add_argument("--single-core-only", action="store_true", help="Skip the multi-core phase")
    phase.add_argument("--multi-core-only", action="store_true", help="Skip the single-core phase")
    run_p.add_argument("--json", action="store_true", help="Print results as JSON")
    verbosity = run_p.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", action="store_true", help="Enable debug logging")
    verbosity.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    run_p.add_argument("--log-file", type=Path, default=None, help="Log file path")
    run_p.add_argument(
        "--console",
        choices=["rich", "plain", "auto"],
        default="auto",
        help="Terminal output backend (default: auto)",
    )

    # corebench list
    list_p = sub.add_parser("list", help="List the workload catalogs")
    list_p.add_argument(
        "--phase",
        choices=[kind.value for kind in PhaseKind],
        default=None,
        help="Only list one phase",
    )
    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    from corebench.kernel.config import LOG_FILE

    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    log_file: Path = args.log_file or LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_file),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        level=level,
    )


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(EXIT_CONFIG)

    # -- Console configuration ----------------------------------------------
    configure(backend=getattr(args, "console", "auto"))

    if args.command == "list":
        sys.exit(cmd_list(args))

    # -- Logging configuration (file-based audit log) -----------------------
    _configure_logging(args)

    try:
        code = cmd_run(args)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        console.error(str(exc))
        sys.exit(EXIT_CONFIG)
    sys.exit(code)


if __name__ == "__main__":
    main()
