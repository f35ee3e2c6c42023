"""Progress module — pure arithmetic for the 0-100 overall progress signal.

Each phase owns a disjoint window of the 0-100 range so progress never
moves backwards across a full run, provided the phases run in sequence.
"""

from __future__ import annotations

from dataclasses import dataclass

from corebench.domain.models import PhaseKind


@dataclass(frozen=True)
class ProgressWindow:
    """The slice of the overall range a phase reports into."""

    offset: float
    weight: float


SINGLE_CORE_WINDOW = ProgressWindow(offset=0.0, weight=0.5)
MULTI_CORE_WINDOW = ProgressWindow(offset=50.0, weight=0.5)

_WINDOWS: dict[PhaseKind, ProgressWindow] = {
    PhaseKind.SINGLE_CORE: SINGLE_CORE_WINDOW,
    PhaseKind.MULTI_CORE: MULTI_CORE_WINDOW,
}


def window_for(phase_kind: PhaseKind) -> ProgressWindow:
    return _WINDOWS[phase_kind]


def compute_progress(
    phase_kind: PhaseKind,
    workload_index: int,
    workload_count: int,
    iteration: int,
    iteration_count: int,
    phase_weight: float,
    phase_offset: float,
) -> float:
    """Return overall progress in percent.

    ``workload_index`` is 0-based and counts finished workloads;
    ``iteration`` counts finished iterations of the current one. A phase
    with nothing to run is reported as complete. ``phase_kind`` is not part
    of the arithmetic; it is accepted so every caller passes the same
    counters.
    """
    total = workload_count * iteration_count
    if total <= 0:
        fraction = 1.0
    else:
        fraction = (workload_index * iteration_count + iteration) / total
    percent = phase_offset + phase_weight * fraction * 100.0
    return max(0.0, min(100.0, percent))
