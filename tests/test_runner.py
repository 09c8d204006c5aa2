"""Tests for the sequential benchmark loop."""

from __future__ import annotations

from pathlib import Path

import pytest

from agent_startup.benchmarks.collector import Trial
from agent_startup.benchmarks.config import BenchmarkSettings, TimeUnit
from agent_startup.benchmarks.runner import BenchmarkRunner
from agent_startup.fetcher import ArtifactCacheError
from conftest import ScriptedLauncher


def test_runs_every_agent_the_configured_number_of_times(
    populated_cache: Path, target_jar: Path
) -> None:
    launcher = ScriptedLauncher()
    runner = BenchmarkRunner(populated_cache, "/loader", BenchmarkSettings(), launcher)

    results = runner.collect(target_jar)

    assert [r.version for r in results] == ["0.9.0", "0.10.0", "0.42.0"]
    assert all(len(r.trials) == 10 for r in results)
    assert len(launcher.commands) == 30
    assert runner.last_sweep is not None
    assert runner.last_sweep.trials == 30
    assert runner.last_sweep.artifacts == 3


def test_commands_reference_agent_and_target(populated_cache: Path, target_jar: Path) -> None:
    launcher = ScriptedLauncher()
    settings = BenchmarkSettings(trials=1, java="/jdk/bin/java")
    BenchmarkRunner(populated_cache, "/loader", settings, launcher).collect(target_jar)

    first = launcher.commands[0]
    assert first[0] == "/jdk/bin/java"
    assert first[1] == f"-javaagent:{populated_cache / 'dd-java-agent-0.9.0.jar'}"
    assert str(target_jar) in first[first.index("-cp") + 1]


def test_failures_counted_per_agent(populated_cache: Path, target_jar: Path) -> None:
    scripted = [Trial(duration_ns=(i + 1) * 1_000_000, failed=i < 3) for i in range(10)]
    runner = BenchmarkRunner(
        populated_cache, "/loader", BenchmarkSettings(), ScriptedLauncher(scripted)
    )

    rows = runner.run_benchmarks(target_jar)

    assert [row.failures for row in rows] == [3, 3, 3]
    # successful trials took 4..10 ms
    assert rows[0].mean == pytest.approx(7.0)
    assert rows[0].min == pytest.approx(4.0)
    assert rows[0].max == pytest.approx(10.0)


def test_report_unit_follows_settings(populated_cache: Path, target_jar: Path) -> None:
    settings = BenchmarkSettings(trials=2, unit=TimeUnit.SECONDS)
    launcher = ScriptedLauncher([Trial(duration_ns=2_000_000_000)])

    rows = BenchmarkRunner(populated_cache, "/loader", settings, launcher).run_benchmarks(target_jar)

    assert rows[0].mean == pytest.approx(2.0)


def test_empty_cache_gives_no_rows(cache_dir: Path, target_jar: Path) -> None:
    cache_dir.mkdir()
    runner = BenchmarkRunner(cache_dir, "/loader", BenchmarkSettings(), ScriptedLauncher())
    assert runner.run_benchmarks(target_jar) == []


def test_missing_cache_is_fatal(cache_dir: Path, target_jar: Path) -> None:
    runner = BenchmarkRunner(cache_dir, "/loader", BenchmarkSettings(), ScriptedLauncher())
    with pytest.raises(ArtifactCacheError):
        runner.collect(target_jar)


def test_settings_validation() -> None:
    with pytest.raises(ValueError):
        BenchmarkSettings(trials=0)
    with pytest.raises(ValueError):
        BenchmarkSettings(trial_timeout_s=0)
