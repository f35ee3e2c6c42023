"""Process-backed WorkerPoolPort.

Each worker is a separate interpreter process (``spawn`` by default, so no
heap is shared with the parent or with siblings). A worker writes its
outcomes to its own one-directional pipe; the parent waits on all pipes at
once and hands outcomes out one at a time, so outcome handling is always
serialized on the parent's thread.
"""

from __future__ import annotations

import logging
import multiprocessing
import signal
from multiprocessing.connection import wait
from typing import TYPE_CHECKING, Any

from corebench.domain.models import WorkerOutcome
from corebench.modules.coordinator.core import run_assignment
from corebench.modules.workloads.core import run_routine

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from multiprocessing.connection import Connection

    from corebench.domain.models import CancellationToken, WorkerAssignment

logger = logging.getLogger("corebench.process_pool")

_DONE = None


def _worker_main(assignment: WorkerAssignment, conn: Connection, stop: Any) -> None:
    """Entry point of a worker process."""
    # Ctrl-C is turned into a cooperative cancel by the parent.
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        for outcome in run_assignment(assignment, run_routine, should_stop=stop.is_set):
            conn.send(outcome)
            if outcome.error is not None:
                break
        conn.send(_DONE)
    finally:
        conn.close()


class ProcessWorkerPool:
    """WorkerPoolPort implementation using ``multiprocessing`` processes."""

    def __init__(
        self,
        start_method: str = "spawn",
        poll_interval: float = 0.1,
        join_timeout: float = 2.0,
    ) -> None:
        self._ctx = multiprocessing.get_context(start_method)
        self._poll_interval = poll_interval
        self._join_timeout = join_timeout
        self._processes: dict[int, Any] = {}
        self._readers: dict[int, Connection] = {}
        self._stop: Any = None
        self._cancel: CancellationToken | None = None

    def start(
        self,
        assignments: Sequence[WorkerAssignment],
        cancel: CancellationToken | None = None,
    ) -> None:
        self._cancel = cancel
        self._stop = self._ctx.Event()
        if cancel is not None and cancel.cancelled:
            self._stop.set()
        for assignment in assignments:
            reader, writer = self._ctx.Pipe(duplex=False)
            process = self._ctx.Process(
                target=_worker_main,
                args=(assignment, writer, self._stop),
                name=f"corebench-worker-{assignment.worker_id}",
                daemon=True,
            )
            try:
                process.start()
            except BaseException:
                reader.close()
                raise
            finally:
                # The child owns the write end; closing ours lets recv()
                # see EOF if the child dies.
                writer.close()
            self._processes[assignment.worker_id] = process
            self._readers[assignment.worker_id] = reader
            logger.debug("Spawned worker #%d (pid %s)", assignment.worker_id, process.pid)

    def outcomes(self) -> Iterator[WorkerOutcome]:
        pending: dict[Connection, int] = {
            reader: worker_id for worker_id, reader in self._readers.items()
        }
        while pending:
            if self._cancel is not None and self._cancel.cancelled and not self._stop.is_set():
                logger.info("Cancellation requested; workers stop after their current workload")
                self._stop.set()
            for conn in wait(list(pending), timeout=self._poll_interval):
                worker_id = pending[conn]
                try:
                    message = conn.recv()
                except EOFError:
                    del pending[conn]
                    process = self._processes[worker_id]
                    process.join(self._join_timeout)
                    yield WorkerOutcome(
                        worker_id=worker_id,
                        workload_name=None,
                        error=f"worker exited unexpectedly (exit code {process.exitcode})",
                    )
                    continue
                if message is _DONE:
                    del pending[conn]
                    continue
                yield message

    def active_count(self) -> int:
        return sum(1 for process in self._processes.values() if process.is_alive())

    def terminate_all(self) -> None:
        if self._stop is not None:
            self._stop.set()
        for worker_id, process in self._processes.items():
            if process.is_alive():
                process.terminate()
            process.join(self._join_timeout)
            if process.is_alive():
                logger.warning("Worker #%d ignored SIGTERM; killing", worker_id)
                process.kill()
                process.join()
        for reader in self._readers.values():
            reader.close()
        self._readers.clear()
