"""
kernel/config.py — Defaults, constants and YAML configuration loading.

All tunable settings live here. The engine, CLI and wiring import from
this file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from corebench.domain.errors import ConfigurationError
from corebench.domain.models import RunConfig

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

COREBENCH_DIR = Path(".corebench")
LOG_FILE = COREBENCH_DIR / "corebench.log"
DEFAULT_CONFIG_FILE = Path("corebench.yaml")

# ---------------------------------------------------------------------------
# Run defaults
# ---------------------------------------------------------------------------

DEFAULT_TRIALS = 3
DEFAULT_WARMUP_TRIALS = 1

# Used only when the device-info collaborator cannot report a CPU count
FALLBACK_CORE_COUNT = 4

# ---------------------------------------------------------------------------
# Worker pool settings
# ---------------------------------------------------------------------------

# "spawn" gives every worker a fresh interpreter with nothing inherited
START_METHOD = "spawn"

# How often the pool re-checks for cancellation while waiting (seconds)
POLL_INTERVAL = 0.1

# Grace period for a terminated worker before it is killed (seconds)
JOIN_TIMEOUT = 2.0

# ---------------------------------------------------------------------------
# Config file
# ---------------------------------------------------------------------------

_KNOWN_KEYS = frozenset({"trials", "warmup", "cores", "workloads"})


@dataclass(frozen=True)
class FileConfig:
    """Settings read from a YAML config file. ``None`` means "not set"."""

    trials: int | None = None
    warmup: int | None = None
    cores: int | None = None
    workloads: dict[str, dict[str, Any]] = field(
        default_factory=lambda: dict[str, dict[str, Any]]()
    )

    def to_run_config(
        self,
        *,
        trials: int | None = None,
        warmup: int | None = None,
    ) -> RunConfig:
        """Merge command-line values over file values over defaults."""
        return RunConfig(
            trials_per_workload=_first(trials, self.trials, DEFAULT_TRIALS),
            warmup_trials=_first(warmup, self.warmup, DEFAULT_WARMUP_TRIALS),
            workload_parameters=dict(self.workloads),
        )


def _first(*values: int | None) -> int:
    for value in values:
        if value is not None:
            return value
    msg = "no value available"
    raise ConfigurationError(msg)


def _optional_int(data: dict[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"'{key}' must be an integer, got {value!r}"
        raise ConfigurationError(msg)
    return value


def parse_config(data: Any) -> FileConfig:
    """Validate the mapping loaded from a config file."""
    if data is None:
        return FileConfig()
    if not isinstance(data, dict):
        msg = "config file must contain a mapping at the top level"
        raise ConfigurationError(msg)

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        msg = f"unknown config key(s): {', '.join(map(str, unknown))}"
        raise ConfigurationError(msg)

    workloads_raw = data.get("workloads") or {}
    if not isinstance(workloads_raw, dict):
        msg = "'workloads' must map workload names to parameter mappings"
        raise ConfigurationError(msg)
    workloads: dict[str, dict[str, Any]] = {}
    for name, params in workloads_raw.items():
        if not isinstance(params, dict):
            msg = f"parameters for workload '{name}' must be a mapping"
            raise ConfigurationError(msg)
        workloads[str(name)] = {str(k): v for k, v in params.items()}

    return FileConfig(
        trials=_optional_int(data, "trials"),
        warmup=_optional_int(data, "warmup"),
        cores=_optional_int(data, "cores"),
        workloads=workloads,
    )


def load_run_config(path: Path | None) -> FileConfig:
    """Load a YAML config file; a missing default file means "no settings".

    Raises:
        ConfigurationError: if the file is unreadable, not valid YAML, or
            contains unknown keys or wrongly typed values.
    """
    if path is None:
        if not DEFAULT_CONFIG_FILE.exists():
            return FileConfig()
        path = DEFAULT_CONFIG_FILE
    try:
        text = path.read_text()
    except OSError as exc:
        msg = f"cannot read config file {path}: {exc}"
        raise ConfigurationError(msg) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = f"invalid YAML in {path}: {exc}"
        raise ConfigurationError(msg) from exc
    return parse_config(data)
