"""Tests for adapters/device_info.py."""

from __future__ import annotations

import os

import pytest

from corebench.adapters.device_info import hardware_concurrency_hint


class TestHardwareConcurrencyHint:
    def test_positive(self) -> None:
        assert hardware_concurrency_hint() >= 1

    def test_prefers_affinity_mask(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(os, "sched_getaffinity", lambda _pid: {0, 1, 2}, raising=False)
        monkeypatch.setattr(os, "cpu_count", lambda: 64)
        assert hardware_concurrency_hint() == 3

    def test_falls_back_to_cpu_count(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delattr(os, "sched_getaffinity", raising=False)
        monkeypatch.setattr(os, "cpu_count", lambda: 6)
        assert hardware_concurrency_hint() == 6

    def test_falls_back_to_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delattr(os, "sched_getaffinity", raising=False)
        monkeypatch.setattr(os, "cpu_count", lambda: None)
        assert hardware_concurrency_hint(default=5) == 5
