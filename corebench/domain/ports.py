"""Port interfaces for corebench.

All ports are defined as typing.Protocol — structural subtyping means any class
with matching method signatures satisfies the Protocol without inheritance.

This module has ZERO external imports — only stdlib and typing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from corebench.domain.models import CancellationToken, WorkerAssignment, WorkerOutcome


class WorkloadInvoker(Protocol):
    """Runs one invocation of a routine with its parameters."""

    def __call__(self, routine: str, parameters: Mapping[str, Any]) -> object: ...


class Clock(Protocol):
    """Monotonic clock returning seconds."""

    def __call__(self) -> float: ...


class WorkerPoolPort(Protocol):
    """Abstraction over a set of isolated parallel execution contexts.

    Lifecycle: ``start`` once, drain ``outcomes``, then ``terminate_all``.
    ``terminate_all`` must be safe to call at any point, including before
    ``start`` and more than once.
    """

    def start(
        self,
        assignments: Sequence[WorkerAssignment],
        cancel: CancellationToken | None = None,
    ) -> None:
        """Spawn one worker per assignment."""
        ...

    def outcomes(self) -> Iterator[WorkerOutcome]:
        """Yield outcomes one at a time until every worker has finished."""
        ...

    def active_count(self) -> int:
        """Return the number of workers still running."""
        ...

    def terminate_all(self) -> None:
        """Stop every worker and release its resources."""
        ...
