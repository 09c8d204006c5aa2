from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from ..fetcher import list_artifacts
from .collector import Trial, TrialResult
from .config import BenchmarkSettings
from .process_control import LaunchConfig, TrialLauncher, build_command
from .report import ReportRow, build_rows

LOGGER = logging.getLogger("agent_startup.benchmark.runner")


class Launcher(Protocol):
    def run_trial(self, command: Sequence[str]) -> Trial: ...


@dataclass
class SweepStatistics:
    artifacts: int
    trials: int
    started_at: float
    finished_at: float

    @property
    def duration_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)


class BenchmarkRunner:
    """Time every cached agent against a target jar, one trial at a time."""

    def __init__(
        self,
        cache_dir: Path,
        tool_classpath: str,
        settings: BenchmarkSettings,
        launcher: Launcher | None = None,
    ) -> None:
        self._cache_dir = cache_dir
        self._tool_classpath = tool_classpath
        self._settings = settings
        self._launcher = launcher or TrialLauncher(timeout_s=settings.trial_timeout_s)
        self.last_sweep: SweepStatistics | None = None

    def collect(self, target_jar: Path) -> list[TrialResult]:
        artifacts = list_artifacts(self._cache_dir)
        LOGGER.info(
            "Benchmarking %d agent(s) against %s, %d trial(s) each",
            len(artifacts),
            target_jar.name,
            self._settings.trials,
        )
        started_at = time.time()
        results: list[TrialResult] = []
        for artifact in artifacts:
            command = build_command(self._launch_config(artifact.path, target_jar))
            LOGGER.debug("Command: %s", " ".join(command))
            result = TrialResult(
                agent_path=artifact.path,
                target_jar=target_jar,
                version=str(artifact.version),
            )
            for trial_num in range(1, self._settings.trials + 1):
                LOGGER.info(
                    "  Trial %d/%d for agent %s",
                    trial_num,
                    self._settings.trials,
                    artifact.version,
                )
                result.record(self._launcher.run_trial(command))
            if result.failure_count:
                LOGGER.warning(
                    "Agent %s failed %d of %d trial(s)",
                    artifact.version,
                    result.failure_count,
                    self._settings.trials,
                )
            results.append(result)

        self.last_sweep = SweepStatistics(
            artifacts=len(results),
            trials=sum(len(result.trials) for result in results),
            started_at=started_at,
            finished_at=time.time(),
        )
        return results

    def run_benchmarks(self, target_jar: Path) -> list[ReportRow]:
        return build_rows(self.collect(target_jar), self._settings.unit)

    def _launch_config(self, agent_path: Path, target_jar: Path) -> LaunchConfig:
        return LaunchConfig(
            agent_path=agent_path,
            target_jar=target_jar,
            tool_classpath=self._tool_classpath,
            main_class=self._settings.main_class,
            java=self._settings.java,
            disabled_features=self._settings.disabled_features,
            extra_jvm_args=self._settings.extra_jvm_args,
        )
