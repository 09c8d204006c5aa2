from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pandas as pd

from .config import TimeUnit

TRIAL_COLUMNS = ["version", "agent", "jar", "trial", "duration_ns", "failed"]


@dataclass(frozen=True)
class Trial:
    duration_ns: int
    failed: bool = False


@dataclass
class TrialResult:
    """Ordered trial outcomes for one agent against one target jar."""

    agent_path: Path
    target_jar: Path
    version: str
    trials: list[Trial] = field(default_factory=list)

    def record(self, trial: Trial) -> None:
        self.trials.append(trial)

    @property
    def failure_count(self) -> int:
        return sum(1 for trial in self.trials if trial.failed)

    @property
    def successful_durations(self) -> list[int]:
        return [trial.duration_ns for trial in self.trials if not trial.failed]

    def report(self, unit: TimeUnit) -> BenchmarkReport:
        return BenchmarkReport.from_result(self, unit)

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {
                "version": self.version,
                "agent": self.agent_path.name,
                "jar": self.target_jar.name,
                "trial": index,
                "duration_ns": trial.duration_ns,
                "failed": trial.failed,
            }
            for index, trial in enumerate(self.trials, start=1)
        ]
        return pd.DataFrame(rows, columns=TRIAL_COLUMNS)


@dataclass(frozen=True)
class BenchmarkReport:
    """Descriptive statistics over the successful trials of a TrialResult.

    Failed trials only contribute to ``failures``. When no trial succeeded
    every statistic is NaN.
    """

    unit: TimeUnit
    failures: int
    mean: float
    stddev: float
    min: float
    max: float

    @classmethod
    def from_result(cls, result: TrialResult, unit: TimeUnit) -> BenchmarkReport:
        durations = np.asarray(result.successful_durations, dtype=np.float64)
        if durations.size == 0:
            return cls(
                unit=unit,
                failures=result.failure_count,
                mean=math.nan,
                stddev=math.nan,
                min=math.nan,
                max=math.nan,
            )

        scaled = durations / unit.nanos
        return cls(
            unit=unit,
            failures=result.failure_count,
            mean=float(scaled.mean()),
            # population standard deviation
            stddev=float(scaled.std(ddof=0)),
            min=float(scaled.min()),
            max=float(scaled.max()),
        )

    @property
    def succeeded(self) -> bool:
        return not math.isnan(self.mean)
