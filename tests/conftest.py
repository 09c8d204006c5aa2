"""
Pytest configuration and shared fixtures.

The fakes here stand in for the Maven repository and the JVM so the suite
runs without network access or a Java installation.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Sequence

os.environ.setdefault("MPLBACKEND", "Agg")

import pytest

from agent_startup.benchmarks.collector import Trial
from agent_startup.fetcher import FetchOutcome


class FakeSource:
    """Serves every version below ``available_until`` and reports the rest as missing."""

    def __init__(
        self,
        available_until: int | None = None,
        failing: Iterable[int] = (),
    ) -> None:
        self.available_until = available_until
        self.failing = set(failing)
        self.requested: list[int] = []

    def fetch(self, version: int, destination: Path) -> FetchOutcome:
        self.requested.append(version)
        if version in self.failing:
            return FetchOutcome.FAILED
        if self.available_until is not None and version >= self.available_until:
            return FetchOutcome.NOT_FOUND
        destination.write_bytes(b"PK\x03\x04agent")
        return FetchOutcome.DOWNLOADED


class ScriptedLauncher:
    """Returns pre-scripted trials in order, cycling when exhausted."""

    def __init__(self, trials: Sequence[Trial] | None = None) -> None:
        self.trials = list(trials or [Trial(duration_ns=1_000_000)])
        self.commands: list[list[str]] = []

    def run_trial(self, command: Sequence[str]) -> Trial:
        trial = self.trials[len(self.commands) % len(self.trials)]
        self.commands.append(list(command))
        return trial


@pytest.fixture
def target_jar(tmp_path: Path) -> Path:
    jar = tmp_path / "spring-petclinic.jar"
    jar.write_bytes(b"PK\x03\x04app")
    return jar


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "tracers"


@pytest.fixture
def populated_cache(cache_dir: Path) -> Path:
    """Cache holding agents 0.9.0, 0.10.0 and 0.42.0."""
    cache_dir.mkdir()
    for version in (42, 9, 10):
        (cache_dir / f"dd-java-agent-0.{version}.0.jar").write_bytes(b"agent")
    return cache_dir
