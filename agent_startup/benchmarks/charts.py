from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .collector import TrialResult
from .config import TimeUnit
from .report import ReportRow

LOGGER = logging.getLogger("agent_startup.benchmark.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 300
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13
plt.rcParams["xtick.labelsize"] = 10
plt.rcParams["ytick.labelsize"] = 10
plt.rcParams["legend.fontsize"] = 9
plt.rcParams["figure.titlesize"] = 14

OVERHEAD_CHART = "startup_overhead.png"
DISTRIBUTION_CHART = "startup_distribution.png"

BAR_COLOR = "#2E86AB"
FAILED_COLOR = "#C73E1D"


def render_startup_charts(
    rows: list[ReportRow],
    results: list[TrialResult],
    unit: TimeUnit,
    output_dir: Path,
) -> list[Path]:
    """Render the mean-per-version bar chart and the per-trial distribution chart."""
    output_dir.mkdir(parents=True, exist_ok=True)
    charts = [
        _render_overhead_chart(rows, unit, output_dir / OVERHEAD_CHART),
        _render_distribution_chart(results, rows, unit, output_dir / DISTRIBUTION_CHART),
    ]
    return [chart for chart in charts if chart is not None]


def _render_overhead_chart(
    rows: list[ReportRow], unit: TimeUnit, chart_path: Path
) -> Path | None:
    """Mean load time per agent version with one standard deviation as error bar."""
    if not rows:
        LOGGER.warning("No agents benchmarked, skipping %s", chart_path.name)
        return None

    fig, ax = plt.subplots(figsize=(max(8, len(rows) * 0.6), 6))

    labels = [row.version for row in rows]
    means = np.array([row.mean for row in rows], dtype=float)
    errors = np.array([row.stddev for row in rows], dtype=float)
    failed = np.isnan(means)

    bars = ax.bar(
        labels,
        np.nan_to_num(means),
        yerr=np.nan_to_num(errors),
        capsize=3,
        color=[FAILED_COLOR if f else BAR_COLOR for f in failed],
        alpha=0.8,
        edgecolor="white",
        linewidth=2,
    )

    for bar, row, all_failed in zip(bars, rows, failed):
        ax.text(
            bar.get_x() + bar.get_width() / 2.0,
            bar.get_height(),
            "all failed" if all_failed else f"{row.mean:.0f}",
            ha="center",
            va="bottom",
            fontsize=8,
            fontweight="semibold",
            rotation=90 if len(rows) > 12 else 0,
        )

    ax.set_xlabel("Agent version", fontweight="semibold")
    ax.set_ylabel(f"Time to load all classes ({unit.label})", fontweight="semibold")
    ax.set_title(f"Class Loading Time per Agent Version ({rows[0].jar})", fontweight="bold", pad=15)
    ax.grid(True, alpha=0.3, axis="y", linestyle="--")
    ax.tick_params(axis="x", rotation=45)

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path


def _render_distribution_chart(
    results: list[TrialResult],
    rows: list[ReportRow],
    unit: TimeUnit,
    chart_path: Path,
) -> Path | None:
    """Box plot of successful trial durations per agent version."""
    frame = pd.DataFrame(
        [
            {"version": result.version, "duration": unit.from_nanos(duration)}
            for result in results
            for duration in result.successful_durations
        ],
        columns=["version", "duration"],
    )
    if frame.empty:
        LOGGER.warning("No successful trials, skipping %s", chart_path.name)
        return None

    order = [row.version for row in rows if row.version in set(frame["version"])]

    fig, ax = plt.subplots(figsize=(max(8, len(order) * 0.6), 6))
    sns.boxplot(
        data=frame,
        x="version",
        y="duration",
        order=order,
        color=BAR_COLOR,
        ax=ax,
        linewidth=1.5,
        width=0.6,
    )
    sns.stripplot(
        data=frame,
        x="version",
        y="duration",
        order=order,
        color="#333333",
        size=3,
        alpha=0.6,
        ax=ax,
    )

    ax.set_xlabel("Agent version", fontweight="semibold", labelpad=12)
    ax.set_ylabel(f"Trial duration ({unit.label})", fontweight="semibold", labelpad=12)
    ax.set_title("Trial Duration Distribution per Agent Version", fontweight="bold", pad=15)
    ax.tick_params(axis="x", rotation=45)

    ax.grid(True, alpha=0.3, linestyle="--", linewidth=0.5, axis="y")
    ax.set_axisbelow(True)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path
