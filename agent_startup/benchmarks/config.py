from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from ..fetcher import CONNECT_TIMEOUT_S_DEFAULT, REPOSITORY_URL_TEMPLATE

TRIALS_DEFAULT = 10
MIN_VERSION_DEFAULT = 30
CACHE_DIR_NAME = "tracers"
LOADER_MAIN_CLASS = "agent_startup.LoadClasses"

# Agent subsystems that would otherwise add work unrelated to class loading.
DISABLED_AGENT_FEATURES: tuple[str, ...] = (
    "dd.jmxfetch.enabled",
    "dd.profiling.enabled",
)


class TimeUnit(enum.Enum):
    """Reporting unit, valued by its size in nanoseconds."""

    NANOSECONDS = ("ns", 1)
    MICROSECONDS = ("us", 1_000)
    MILLISECONDS = ("ms", 1_000_000)
    SECONDS = ("s", 1_000_000_000)

    def __init__(self, label: str, nanos: int) -> None:
        self.label = label
        self.nanos = nanos

    def from_nanos(self, duration_ns: float) -> float:
        return duration_ns / self.nanos

    @classmethod
    def from_label(cls, label: str) -> TimeUnit:
        for unit in cls:
            if unit.label == label:
                return unit
        raise ValueError(f"unknown time unit {label!r}")


@dataclass(frozen=True)
class FetchSettings:
    """Where agent releases come from and where they are cached."""

    cache_dir: Path
    url_template: str = REPOSITORY_URL_TEMPLATE
    connect_timeout_s: float = CONNECT_TIMEOUT_S_DEFAULT


@dataclass(frozen=True)
class BenchmarkSettings:
    """How each agent is exercised and how results are reported."""

    trials: int = TRIALS_DEFAULT
    unit: TimeUnit = TimeUnit.MILLISECONDS
    trial_timeout_s: float | None = None
    java: str = "java"
    main_class: str = LOADER_MAIN_CLASS
    disabled_features: Sequence[str] = DISABLED_AGENT_FEATURES
    extra_jvm_args: Sequence[str] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.trials <= 0:
            raise ValueError("trials must be > 0")
        if self.trial_timeout_s is not None and self.trial_timeout_s <= 0:
            raise ValueError("trial timeout must be > 0 when set")


def env_default(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value


def default_cache_dir(working_dir: Path) -> Path:
    return working_dir / CACHE_DIR_NAME
