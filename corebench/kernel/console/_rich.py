"""corebench.kernel.console._rich -- Rich-based backend.

Provides coloured, structured terminal output using the Rich library.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme

from corebench.domain.models import PhaseStatus
from corebench.kernel.console._format import (
    RESULT_HEADERS,
    format_ms,
    is_workload_boundary,
    progress_line,
    result_rows,
)

if TYPE_CHECKING:
    from corebench.domain.models import BenchmarkSummary, PhaseSummary, ProgressEvent

_THEME = Theme(
    {
        "info": "blue",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "step.num": "bold cyan",
        "score": "bold magenta",
        "dim": "dim",
    }
)


class RichBackend:
    """ConsoleProtocol implementation backed by Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._con = console or Console(theme=_THEME, highlight=False)

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        self._con.print(f"  {message}", style="info")

    def success(self, message: str) -> None:
        self._con.print(f"  ✓ {message}", style="success")

    def warning(self, message: str) -> None:
        self._con.print(f"  ⚠ {message}", style="warning")

    def error(self, message: str) -> None:
        self._con.print(f"  ✗ {message}", style="error")

    # -- Structured output ------------------------------------------------

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        t = Table(title=title or None, box=box.SIMPLE, show_edge=False, pad_edge=True)
        for h in headers:
            t.add_column(h)
        for r in rows:
            t.add_row(*r)
        self._con.print(t)

    def kv(self, data: dict[str, str], *, title: str = "") -> None:
        t = Table(
            title=title or None,
            box=box.SIMPLE,
            show_header=False,
            show_edge=False,
            pad_edge=True,
        )
        t.add_column("Key", style="bold", justify="right")
        t.add_column("Value")
        for k, v in data.items():
            t.add_row(k, v)
        self._con.print(t)

    # -- Run lifecycle ------------------------------------------------------

    def phase_header(self, phase: str, workloads: int, workers: int) -> None:
        noun = "worker" if workers == 1 else "workers"
        self._con.print()
        self._con.print(Rule(f" {phase} ", style="bold", align="left"))
        self._con.print(f"  [dim]{workloads} workloads on {workers} {noun}[/]")

    def progress(self, event: ProgressEvent) -> None:
        if is_workload_boundary(event):
            self._con.print(f"  [step.num]{progress_line(event)}[/]", markup=True)

    def phase_result(self, summary: PhaseSummary) -> None:
        t = Table(box=box.SIMPLE, show_edge=False, pad_edge=True)
        for h in RESULT_HEADERS:
            t.add_column(h, justify="left" if h == "Workload" else "right")
        for row in result_rows(summary):
            style = "error" if row[-1] == "failed" else None
            t.add_row(*row, style=style)
        self._con.print(t)

        if summary.failure is not None:
            self._con.print(f"  [error]✗[/] {summary.failure.message.splitlines()[0]}")
        style = {
            PhaseStatus.COMPLETED: "green",
            PhaseStatus.CANCELLED: "yellow",
            PhaseStatus.FAILED: "red",
        }[summary.status]
        self._con.print(
            Rule(
                f" {summary.phase_kind.value} score {summary.overall_score} "
                f"· {summary.status.value} · {format_ms(summary.total_duration_ms)} ",
                style=style,
            ),
        )

    def run_result(self, summary: BenchmarkSummary) -> None:
        multi = str(summary.multi_core.overall_score) if summary.multi_core else "--"
        self._con.print()
        self.kv(
            {
                "Single-core": str(summary.single_core.overall_score),
                "Multi-core": multi,
                "Overall": f"[score]{summary.overall_score}[/]",
                "Cores": str(summary.core_count),
                "Time": f"{summary.total_duration_ms / 1000:.1f}s",
            },
            title="corebench",
        )
