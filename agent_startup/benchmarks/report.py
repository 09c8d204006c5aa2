from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, TextIO

import pandas as pd

from ..fetcher import ArtifactVersion
from .collector import TRIAL_COLUMNS, TrialResult
from .config import TimeUnit

LOGGER = logging.getLogger("agent_startup.benchmark.report")

FLOAT_FORMAT = "%.2f"
MISSING_VALUE = "NaN"


@dataclass(frozen=True)
class ReportRow:
    version: str
    jar: str
    failures: int
    mean: float
    stddev: float
    min: float
    max: float

    def sort_key(self) -> ArtifactVersion:
        return ArtifactVersion.parse(self.version)


def report_columns(unit: TimeUnit) -> list[str]:
    label = unit.label
    return [
        "version",
        "jar",
        "failures",
        f"mean({label})",
        f"stddev({label})",
        f"min({label})",
        f"max({label})",
    ]


def build_rows(results: Iterable[TrialResult], unit: TimeUnit) -> list[ReportRow]:
    """One row per agent, ordered by numeric version rather than text."""
    rows = []
    for result in results:
        report = result.report(unit)
        rows.append(
            ReportRow(
                version=result.version,
                jar=result.target_jar.name,
                failures=report.failures,
                mean=report.mean,
                stddev=report.stddev,
                min=report.min,
                max=report.max,
            )
        )
    return sorted(rows, key=ReportRow.sort_key)


def rows_to_dataframe(rows: Iterable[ReportRow], unit: TimeUnit) -> pd.DataFrame:
    records = [
        (row.version, row.jar, row.failures, row.mean, row.stddev, row.min, row.max)
        for row in rows
    ]
    return pd.DataFrame.from_records(records, columns=report_columns(unit))


def write_report(rows: Iterable[ReportRow], unit: TimeUnit, stream: TextIO) -> None:
    rows_to_dataframe(rows, unit).to_csv(
        stream,
        index=False,
        float_format=FLOAT_FORMAT,
        na_rep=MISSING_VALUE,
        lineterminator="\n",
    )


def trials_dataframe(results: Iterable[TrialResult]) -> pd.DataFrame:
    frames = [result.to_dataframe() for result in results]
    if not frames:
        return pd.DataFrame(columns=TRIAL_COLUMNS)
    return pd.concat(frames, ignore_index=True)


def save_results(
    output_dir: Path,
    results: list[TrialResult],
    rows: list[ReportRow],
    unit: TimeUnit,
    extra: dict | None = None,
) -> dict[str, str]:
    """Write raw trials, the summary table and a manifest into ``output_dir``."""
    output_dir.mkdir(parents=True, exist_ok=True)

    trials_path = output_dir / "trials.csv"
    trials_dataframe(results).to_csv(trials_path, index=False)
    LOGGER.info("Saved %d trial(s) to %s", sum(len(r.trials) for r in results), trials_path)

    summary_path = output_dir / "summary.csv"
    with open(summary_path, "w", encoding="utf-8", newline="") as f:
        write_report(rows, unit, f)
    LOGGER.info("Saved summary of %d agent(s) to %s", len(rows), summary_path)

    manifest = {
        "unit": unit.label,
        "trials": str(trials_path),
        "summary": str(summary_path),
        "versions": [row.version for row in rows],
    }
    manifest.update(extra or {})
    manifest_path = output_dir / "benchmark_manifest.json"
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)
    LOGGER.info("Benchmark manifest written to %s", manifest_path)
    return manifest
