"""corebench.kernel.console._protocol -- ConsoleProtocol definition.

Pure standard-library typing.Protocol for the corebench terminal output system.
No external dependencies allowed in this file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from corebench.domain.models import BenchmarkSummary, PhaseSummary, ProgressEvent


class ConsoleProtocol(Protocol):
    """corebench terminal output protocol.

    **General messages** -- usable from any module::

        console.info("Using 8 workers")
        console.success("Benchmark complete")
        console.warning("Cancelling after the current workload")
        console.error("benchmark failed")

    **Structured output** -- tables and key-value displays::

        console.table(["Workload", "Score"], [["primes", "52"]], title="Results")
        console.kv({"Cores": "8"})

    **Run lifecycle** -- used by kernel/cli.py::

        console.phase_header("single-core", 10, 1)
        console.progress(event)
        console.phase_result(summary)
        console.run_result(summary)
    """

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        """Informational message."""
        ...

    def success(self, message: str) -> None:
        """Success / positive-outcome message."""
        ...

    def warning(self, message: str) -> None:
        """Warning message."""
        ...

    def error(self, message: str) -> None:
        """Error message."""
        ...

    # -- Structured output ------------------------------------------------

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        """Display a table with *headers* and *rows*."""
        ...

    def kv(self, data: dict[str, str], *, title: str = "") -> None:
        """Display key-value pairs."""
        ...

    # -- Run lifecycle ------------------------------------------------------

    def phase_header(self, phase: str, workloads: int, workers: int) -> None:
        """Display the banner at the start of a phase."""
        ...

    def progress(self, event: ProgressEvent) -> None:
        """Display one progress event."""
        ...

    def phase_result(self, summary: PhaseSummary) -> None:
        """Display the per-workload table and score of a finished phase."""
        ...

    def run_result(self, summary: BenchmarkSummary) -> None:
        """Display the end-of-run summary."""
        ...
