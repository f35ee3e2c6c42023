"""Scoring module — maps durations to bounded scores and reduces them.

A duration equal to the workload's reference time scores 50; faster runs
score higher. Scores are clamped to [1, 100].
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from corebench.domain.models import ExecutionResult, PhaseSummary
    from corebench.modules.registry.core import WorkloadRegistry

MIN_SCORE = 1
MAX_SCORE = 100
_MIDPOINT = 50


def normalize(reference_time_ms: float, duration_ms: float) -> int:
    """Score a duration against a reference time.

    Raises:
        ValueError: if ``duration_ms`` is NaN.
    """
    if math.isnan(duration_ms):
        msg = "cannot score a NaN duration"
        raise ValueError(msg)
    if duration_ms <= 0:
        return MAX_SCORE
    raw = (reference_time_ms / duration_ms) * _MIDPOINT
    if math.isinf(raw):
        return MAX_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, round_half_up(raw)))


def round_half_up(value: float) -> int:
    """Round halves upward; the built-in round() rounds them to even."""
    return math.floor(value + 0.5)


def _rounded_mean(values: list[int]) -> int:
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))


def overall_score(results: Iterable[ExecutionResult]) -> int:
    """Rounded mean score of the completed results; 0 when there are none.

    Failed placeholders are left out of the mean rather than counted as 0,
    so one broken workload does not drag down the scores that were measured.
    """
    return _rounded_mean([r.score for r in results if not r.failed])


def combined_score(phases: Iterable[PhaseSummary | None]) -> int:
    """Rounded mean of the phase scores that have at least one completed result."""
    return _rounded_mean(
        [
            phase.overall_score
            for phase in phases
            if phase is not None and any(not r.failed for r in phase.results)
        ]
    )


class ScoringEngine:
    """Scores workloads by name using the registry's reference times."""

    def __init__(self, registry: WorkloadRegistry) -> None:
        self._registry = registry

    def score(self, workload_name: str, duration_ms: float) -> int:
        """Return the clamped score; unknown names raise ConfigurationError."""
        return normalize(self._registry.reference_time_ms(workload_name), duration_ms)
