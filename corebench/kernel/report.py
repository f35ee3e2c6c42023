"""
kernel/report.py — Plain-data rendering of run summaries.

Used by ``corebench run --json``. Every value is JSON-serialisable;
NaN durations of failed placeholders become ``None``.
"""

from __future__ import annotations

import json
import math
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from corebench.domain.models import BenchmarkSummary, ExecutionResult, PhaseSummary


def _number(value: float) -> float | None:
    return None if math.isnan(value) else value


def result_to_dict(result: ExecutionResult) -> dict[str, Any]:
    return {
        "workload": result.workload_name,
        "display_name": result.display_name,
        "duration_ms": _number(result.duration_ms),
        "raw_durations_ms": list(result.raw_durations),
        "score": result.score,
        "error": result.error,
    }


def phase_to_dict(summary: PhaseSummary) -> dict[str, Any]:
    failure = None
    if summary.failure is not None:
        failure = {
            "message": summary.failure.message,
            "workload": summary.failure.workload_name,
            "worker_id": summary.failure.worker_id,
        }
    return {
        "phase": summary.phase_kind.value,
        "status": summary.status.value,
        "overall_score": summary.overall_score,
        "total_duration_ms": summary.total_duration_ms,
        "worker_count": summary.worker_count,
        "results": [result_to_dict(r) for r in summary.results],
        "failure": failure,
    }


def summary_to_dict(summary: BenchmarkSummary) -> dict[str, Any]:
    """Render a full run as nested dicts and lists."""
    return {
        "overall_score": summary.overall_score,
        "total_duration_ms": summary.total_duration_ms,
        "core_count": summary.core_count,
        "single_core": phase_to_dict(summary.single_core),
        "multi_core": phase_to_dict(summary.multi_core) if summary.multi_core else None,
    }


def to_json(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2, allow_nan=False)
