from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

from ..fetcher import (
    ArtifactCacheError,
    ArtifactFetcher,
    MavenArtifactSource,
    VersionAvailabilityCheck,
)
from .config import (
    MIN_VERSION_DEFAULT,
    TRIALS_DEFAULT,
    BenchmarkSettings,
    FetchSettings,
    TimeUnit,
    default_cache_dir,
    env_default,
)
from .loader import LoaderBuildError, ensure_loader
from .report import build_rows, save_results, write_report
from .runner import BenchmarkRunner, Launcher

LOGGER = logging.getLogger("agent_startup.benchmark")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="agent-startup",
        description="Time how long a JVM takes to load every class of a jar "
        "with each tracer agent release attached.",
        epilog="Example: agent-startup spring-petclinic.jar 40 63",
    )
    parser.add_argument("target_jar", type=Path, help="Jar whose classes are loaded")
    parser.add_argument(
        "min_version",
        type=int,
        nargs="?",
        default=MIN_VERSION_DEFAULT,
        help="Lowest agent minor version (default: %(default)s)",
    )
    parser.add_argument(
        "max_version",
        type=int,
        nargs="?",
        default=None,
        help="Highest agent minor version (default: until a release is missing)",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=env_default("AGENT_STARTUP_CACHE_DIR"),
        help="Directory holding downloaded agents (default: ./tracers)",
    )
    parser.add_argument(
        "--trials",
        type=int,
        default=env_default("AGENT_STARTUP_TRIALS", str(TRIALS_DEFAULT)),
        help="Trials per agent",
    )
    parser.add_argument(
        "--unit",
        choices=[unit.label for unit in TimeUnit],
        default=env_default("AGENT_STARTUP_UNIT", TimeUnit.MILLISECONDS.label),
        help="Time unit of the report",
    )
    parser.add_argument(
        "--trial-timeout",
        type=float,
        default=env_default("AGENT_STARTUP_TRIAL_TIMEOUT"),
        help="Seconds before a trial is killed and counted as failed (default: no limit)",
    )
    parser.add_argument(
        "--java",
        default=env_default("AGENT_STARTUP_JAVA", "java"),
        help="Java launcher used for trials",
    )
    parser.add_argument(
        "--tool-classpath",
        default=env_default("AGENT_STARTUP_TOOL_CLASSPATH"),
        help="Classpath providing the LoadClasses entry point; compiled with javac when omitted",
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=env_default("AGENT_STARTUP_CONNECT_TIMEOUT", "20"),
        help="Seconds allowed to connect to the repository",
    )
    parser.add_argument(
        "--skip-download",
        action="store_true",
        help="Benchmark the agents already cached without contacting the repository",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=env_default("AGENT_STARTUP_OUTPUT_DIR"),
        help="Directory to store trial and summary CSV files",
    )
    parser.add_argument(
        "--chart",
        action="store_true",
        help="Also render PNG charts into --output-dir",
    )
    parser.add_argument(
        "--log-level",
        default=env_default("AGENT_STARTUP_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    args = parser.parse_args(argv)

    if args.max_version is not None and args.max_version < args.min_version:
        parser.error("max_version must not be lower than min_version")
    if args.unit not in [unit.label for unit in TimeUnit]:
        parser.error(f"--unit must be one of {', '.join(unit.label for unit in TimeUnit)}")
    if args.trials <= 0:
        parser.error("--trials must be > 0")
    if args.trial_timeout is not None and args.trial_timeout <= 0:
        parser.error("--trial-timeout must be > 0")
    if args.chart and args.output_dir is None:
        parser.error("--chart requires --output-dir")
    if not args.target_jar.is_file():
        parser.error(f"target jar {args.target_jar} does not exist")
    return args


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def main(
    argv: list[str] | None = None,
    *,
    source: VersionAvailabilityCheck | None = None,
    launcher: Launcher | None = None,
    stdout: TextIO | None = None,
) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    fetch_settings = FetchSettings(
        cache_dir=args.cache_dir or default_cache_dir(Path.cwd()),
        connect_timeout_s=args.connect_timeout,
    )
    settings = BenchmarkSettings(
        trials=args.trials,
        unit=TimeUnit.from_label(args.unit),
        trial_timeout_s=args.trial_timeout,
        java=args.java,
    )
    target_jar = args.target_jar.resolve()

    LOGGER.info("Target jar: %s", target_jar)
    LOGGER.info("Agent cache: %s", fetch_settings.cache_dir)

    try:
        if args.skip_download:
            LOGGER.info("Skipping download, using cached agents only")
        else:
            fetcher = ArtifactFetcher(
                fetch_settings.cache_dir,
                source
                or MavenArtifactSource(
                    url_template=fetch_settings.url_template,
                    connect_timeout=fetch_settings.connect_timeout_s,
                ),
            )
            fetcher.ensure_artifacts(args.min_version, args.max_version)

        tool_classpath = args.tool_classpath or ensure_loader(fetch_settings.cache_dir)
        runner = BenchmarkRunner(
            cache_dir=fetch_settings.cache_dir,
            tool_classpath=tool_classpath,
            settings=settings,
            launcher=launcher,
        )
        results = runner.collect(target_jar)
        rows = build_rows(results, settings.unit)

        write_report(rows, settings.unit, stdout or sys.stdout)

        if args.output_dir is not None:
            manifest = save_results(
                args.output_dir,
                results,
                rows,
                settings.unit,
                extra={"target_jar": str(target_jar), "trials_per_agent": settings.trials},
            )
            if args.chart:
                from .charts import render_startup_charts

                charts = render_startup_charts(rows, results, settings.unit, args.output_dir)
                LOGGER.info("Rendered %d chart(s) next to %s", len(charts), manifest["summary"])

        if runner.last_sweep is not None:
            LOGGER.info(
                "Ran %d trial(s) over %d agent(s) in %.1fs",
                runner.last_sweep.trials,
                runner.last_sweep.artifacts,
                runner.last_sweep.duration_s,
            )
    except (ArtifactCacheError, LoaderBuildError, OSError) as exc:
        LOGGER.error("Benchmark aborted: %s", exc)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
