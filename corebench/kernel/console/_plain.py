"""corebench.kernel.console._plain -- Plain-text backend.

print()-based output with no markup. Used when stdout is not a TTY or
when ``--console plain`` is requested.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from corebench.kernel.console._format import (
    RESULT_HEADERS,
    format_ms,
    is_workload_boundary,
    progress_line,
    result_rows,
)

if TYPE_CHECKING:
    from corebench.domain.models import BenchmarkSummary, PhaseSummary, ProgressEvent


class PlainBackend:
    """ConsoleProtocol implementation using only built-in print()."""

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        print(f"  {message}")

    def success(self, message: str) -> None:
        print(f"  [ok] {message}")

    def warning(self, message: str) -> None:
        print(f"  [warn] {message}")

    def error(self, message: str) -> None:
        print(f"  [error] {message}")

    # -- Structured output ------------------------------------------------

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        if title:
            print(f"\n  {title}:")

        if not headers and not rows:
            return

        all_rows = [headers, *rows]
        col_widths = [
            max(len(str(row[i])) if i < len(row) else 0 for row in all_rows)
            for i in range(len(headers))
        ]

        header_line = "  " + "  ".join(
            h.ljust(w) for h, w in zip(headers, col_widths, strict=True)
        )
        print(header_line)
        print("  " + "  ".join("-" * w for w in col_widths))

        for row in rows:
            cells = [
                str(row[i]).ljust(col_widths[i]) if i < len(row) else " " * col_widths[i]
                for i in range(len(headers))
            ]
            print("  " + "  ".join(cells))

    def kv(self, data: dict[str, str], *, title: str = "") -> None:
        if title:
            print(f"\n  {title}:")
        if not data:
            return
        max_key = max(len(k) for k in data)
        for k, v in data.items():
            print(f"  {k.rjust(max_key)}: {v}")

    # -- Run lifecycle ------------------------------------------------------

    def phase_header(self, phase: str, workloads: int, workers: int) -> None:
        rule = "━" * 60
        noun = "worker" if workers == 1 else "workers"
        print(f"\n{rule}")
        print(f"  {phase}  ─  {workloads} workloads on {workers} {noun}")
        print(rule)

    def progress(self, event: ProgressEvent) -> None:
        if is_workload_boundary(event):
            print(f"  {progress_line(event)}", flush=True)

    def phase_result(self, summary: PhaseSummary) -> None:
        self.table(RESULT_HEADERS, result_rows(summary))
        if summary.failure is not None:
            print(f"  ✗ {summary.failure.message.splitlines()[0]}")
        print(
            f"\n  {summary.phase_kind.value} score: {summary.overall_score} "
            f"({summary.status.value}, {format_ms(summary.total_duration_ms)})"
        )

    def run_result(self, summary: BenchmarkSummary) -> None:
        multi = summary.multi_core.overall_score if summary.multi_core else "--"
        print()
        print(
            f"━━ single-core {summary.single_core.overall_score} · "
            f"multi-core {multi} · overall {summary.overall_score} "
            f"── {summary.total_duration_ms / 1000:.1f}s "
            f"on {summary.core_count} cores ━━"
        )
