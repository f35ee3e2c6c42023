"""Device capability collaborator: the hardware concurrency hint."""

from __future__ import annotations

import os


def hardware_concurrency_hint(default: int = 4) -> int:
    """Return the number of CPUs usable by this process.

    Prefers the scheduler affinity mask where the platform exposes one,
    then ``os.cpu_count()``, then ``default``.
    """
    if hasattr(os, "sched_getaffinity"):
        try:
            return max(1, len(os.sched_getaffinity(0)))
        except OSError:
            pass
    count = os.cpu_count()
    return count if count else default
