from __future__ import annotations

import contextlib
import logging
import os
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from .collector import Trial

LOGGER = logging.getLogger("agent_startup.benchmark.process")


@dataclass
class LaunchConfig:
    agent_path: Path
    target_jar: Path
    tool_classpath: str
    main_class: str
    java: str = "java"
    disabled_features: Sequence[str] = field(default_factory=tuple)
    extra_jvm_args: Sequence[str] = field(default_factory=tuple)


def build_command(config: LaunchConfig) -> List[str]:
    """JVM command line that attaches the agent and loads every class of the target jar."""
    classpath = os.pathsep.join(
        entry for entry in (str(config.target_jar), config.tool_classpath) if entry
    )
    command = [config.java, f"-javaagent:{config.agent_path}"]
    command.extend(f"-D{feature}=false" for feature in config.disabled_features)
    command.extend(config.extra_jvm_args)
    command.extend(["-cp", classpath, config.main_class])
    return command


class TrialLauncher:
    """Spawn one JVM per trial and time it from spawn to exit.

    Output of the child is passed through to this process. Without a
    timeout a hung child blocks the benchmark indefinitely; with one the
    child is killed and the trial counted as failed.
    """

    def __init__(self, timeout_s: float | None = None) -> None:
        self._timeout_s = timeout_s

    def run_trial(self, command: Sequence[str]) -> Trial:
        failed = True
        start = time.perf_counter_ns()
        try:
            process = subprocess.Popen(list(command))
            try:
                exit_code = process.wait(timeout=self._timeout_s)
            except subprocess.TimeoutExpired:
                LOGGER.warning(
                    "Trial exceeded %.1fs timeout, killing pid %d",
                    self._timeout_s,
                    process.pid,
                )
                _kill(process)
            else:
                failed = exit_code != 0
                if failed:
                    LOGGER.warning("Trial exited with code %d", exit_code)
        except (OSError, subprocess.SubprocessError) as exc:
            LOGGER.warning("Trial could not be run: %s", exc)
        finally:
            duration_ns = time.perf_counter_ns() - start
        return Trial(duration_ns=duration_ns, failed=failed)


def _kill(process: subprocess.Popen) -> None:
    process.kill()
    with contextlib.suppress(subprocess.TimeoutExpired):
        process.wait(timeout=10)
