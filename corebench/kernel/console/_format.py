"""corebench.kernel.console._format -- text helpers shared by both backends."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from corebench.domain.models import ExecutionResult, PhaseSummary, ProgressEvent

RESULT_HEADERS = ["Workload", "Mean", "Trials", "Score"]


def format_ms(value: float) -> str:
    if math.isnan(value):
        return "--"
    return f"{value:.2f} ms"


def result_row(result: ExecutionResult) -> list[str]:
    if result.failed:
        return [result.display_name, "--", "--", "failed"]
    return [
        result.display_name,
        format_ms(result.duration_ms),
        str(len(result.raw_durations)),
        str(result.score),
    ]


def result_rows(summary: PhaseSummary) -> list[list[str]]:
    return [result_row(r) for r in summary.results]


def progress_line(event: ProgressEvent) -> str:
    return (
        f"[{event.workload_index + 1}/{event.workload_count}] {event.workload_name} "
        f"{event.iteration}/{event.iteration_count} "
        f"({event.overall_progress_percent:.1f}%)"
    )


def is_workload_boundary(event: ProgressEvent) -> bool:
    """True for the event that closes a workload; only those are printed."""
    return event.iteration == event.iteration_count
