"""Registry module — static, ordered catalogs of workloads per phase.

The order of each catalog is the single-core execution order and the
multi-core distribution order, so it is fixed here and never re-sorted.
Reference times are calibrated so a typical machine running CPython
lands near a score of 50.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from corebench.domain.errors import ConfigurationError
from corebench.domain.models import PhaseKind, WorkloadSpec

SINGLE_CORE_CATALOG: tuple[WorkloadSpec, ...] = (
    WorkloadSpec("primes", "Prime Numbers", "primes", 12.0, {"limit": 50_000}),
    WorkloadSpec("matrix", "Matrix Multiplication", "matrix", 40.0, {"size": 60}),
    WorkloadSpec("fibonacci", "Fibonacci Sequence", "fibonacci", 15.0, {"n": 200_000}),
    WorkloadSpec("hash", "Hash Computation", "hash", 60.0, {"iterations": 200_000}),
    WorkloadSpec(
        "mandelbrot",
        "Mandelbrot Set",
        "mandelbrot",
        90.0,
        {"width": 120, "height": 120, "max_iterations": 100},
    ),
    WorkloadSpec("nqueens", "N-Queens Problem", "nqueens", 45.0, {"n": 9}),
    WorkloadSpec("fft", "FFT Computation", "fft", 35.0, {"size": 256}),
    WorkloadSpec("sort", "QuickSort", "sort", 45.0, {"size": 20_000}),
    WorkloadSpec("float", "Floating Point", "float", 50.0, {"iterations": 100_000}),
    WorkloadSpec("memory", "Memory Access", "memory", 70.0, {"size": 100_000}),
)

# Every worker runs the whole list, so sizes are trimmed relative to the
# single-core catalog.
MULTI_CORE_CATALOG: tuple[WorkloadSpec, ...] = (
    WorkloadSpec(
        "parallel_hash", "Parallel Hashing", "hash", 35.0, {"iterations": 100_000}
    ),
    WorkloadSpec("parallel_matrix", "Parallel Matrix Ops", "matrix", 45.0, {"size": 60}),
    WorkloadSpec(
        "parallel_mandelbrot",
        "Parallel Fractals",
        "mandelbrot",
        60.0,
        {"width": 120, "height": 80, "max_iterations": 100},
    ),
    WorkloadSpec(
        "parallel_float", "Parallel Float Ops", "float", 30.0, {"iterations": 50_000}
    ),
    WorkloadSpec("parallel_sort", "Parallel Sorting", "sort", 25.0, {"size": 10_000}),
    WorkloadSpec(
        "parallel_mixed",
        "Mixed Workload",
        "mixed",
        60.0,
        {
            "hash_iterations": 50_000,
            "matrix_size": 40,
            "float_iterations": 25_000,
            "sort_size": 5_000,
        },
    ),
)


class WorkloadRegistry:
    """Read-only lookup over the per-phase catalogs."""

    def __init__(
        self,
        single_core: tuple[WorkloadSpec, ...] = SINGLE_CORE_CATALOG,
        multi_core: tuple[WorkloadSpec, ...] = MULTI_CORE_CATALOG,
    ) -> None:
        self._catalogs: dict[PhaseKind, tuple[WorkloadSpec, ...]] = {
            PhaseKind.SINGLE_CORE: tuple(single_core),
            PhaseKind.MULTI_CORE: tuple(multi_core),
        }
        self._by_name: dict[str, WorkloadSpec] = {}
        for catalog in self._catalogs.values():
            for spec in catalog:
                if spec.name in self._by_name:
                    msg = f"Duplicate workload name: {spec.name}"
                    raise ConfigurationError(msg)
                self._by_name[spec.name] = spec

    def list_workloads(self, phase_kind: PhaseKind) -> tuple[WorkloadSpec, ...]:
        """Return the ordered catalog for a phase."""
        return self._catalogs[phase_kind]

    def names(self) -> frozenset[str]:
        """Return every workload name across both phases."""
        return frozenset(self._by_name)

    def get(self, name: str) -> WorkloadSpec:
        try:
            return self._by_name[name]
        except KeyError:
            msg = f"Unknown workload: {name}"
            raise ConfigurationError(msg) from None

    def reference_time_ms(self, name: str) -> float:
        return self.get(name).reference_time_ms

    def with_parameters(self, overrides: Mapping[str, Mapping[str, Any]]) -> WorkloadRegistry:
        """Return a new registry with per-workload parameter overrides merged in.

        Raises:
            ConfigurationError: if an override names an unknown workload.
        """
        unknown = sorted(set(overrides) - self._by_name.keys())
        if unknown:
            msg = f"Unknown workload(s) in configuration: {', '.join(unknown)}"
            raise ConfigurationError(msg)

        def merged(catalog: tuple[WorkloadSpec, ...]) -> tuple[WorkloadSpec, ...]:
            return tuple(
                replace(spec, parameters={**spec.parameters, **overrides[spec.name]})
                if spec.name in overrides
                else spec
                for spec in catalog
            )

        return WorkloadRegistry(
            merged(self._catalogs[PhaseKind.SINGLE_CORE]),
            merged(self._catalogs[PhaseKind.MULTI_CORE]),
        )
