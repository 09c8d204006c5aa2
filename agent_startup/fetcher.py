from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Protocol

import requests

LOGGER = logging.getLogger("agent_startup.fetcher")

AGENT_PREFIX = "dd-java-agent-"
AGENT_SUFFIX = ".jar"
REPOSITORY_URL_TEMPLATE = (
    "https://repo1.maven.org/maven2/com/datadoghq/dd-java-agent/"
    "{version}/dd-java-agent-{version}.jar"
)
CONNECT_TIMEOUT_S_DEFAULT = 20.0
CHUNK_SIZE = 64 * 1024


class ArtifactCacheError(Exception):
    """Raised when the artifact cache directory cannot be read."""


@dataclass(frozen=True, order=True)
class ArtifactVersion:
    """Agent release identifier; only the minor component varies between releases."""

    major: int = 0
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, text: str) -> ArtifactVersion:
        parts = text.split(".")
        if len(parts) != 3:
            raise ValueError(f"expected major.minor.patch, got {text!r}")
        major, minor, patch = (int(part) for part in parts)
        return cls(major=major, minor=minor, patch=patch)

    @classmethod
    def release(cls, minor: int) -> ArtifactVersion:
        return cls(major=0, minor=minor, patch=0)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class LocalArtifact:
    version: ArtifactVersion
    path: Path


class FetchOutcome(enum.Enum):
    DOWNLOADED = "downloaded"
    NOT_FOUND = "not-found"
    FAILED = "failed"


class VersionAvailabilityCheck(Protocol):
    """Downloads one agent release, reporting whether it exists.

    The fetch loop stops at the first outcome other than ``DOWNLOADED``.
    Implementations must not leave a file at ``destination`` unless they
    return ``DOWNLOADED``.
    """

    def fetch(self, version: int, destination: Path) -> FetchOutcome: ...


def artifact_file_name(version: int) -> str:
    return f"{AGENT_PREFIX}{ArtifactVersion.release(version)}{AGENT_SUFFIX}"


def artifact_url(version: int, template: str = REPOSITORY_URL_TEMPLATE) -> str:
    return template.format(version=ArtifactVersion.release(version))


def extract_version(artifact: Path | str) -> str:
    """Return the version text embedded in an agent file name.

    ``dd-java-agent-0.42.0.jar`` gives ``0.42.0``.
    """
    name = Path(artifact).name
    start = name.find(AGENT_PREFIX)
    end = name.rfind(AGENT_SUFFIX)
    if start < 0 or end < start + len(AGENT_PREFIX):
        raise ValueError(f"not an agent artifact name: {name!r}")
    return name[start + len(AGENT_PREFIX) : end]


def version_to_number(version: str) -> int:
    """Minor component of a version string, the number releases are keyed by."""
    return ArtifactVersion.parse(version).minor


def list_artifacts(cache_dir: Path) -> list[LocalArtifact]:
    """Every agent jar in the cache, ordered by version."""
    if not cache_dir.is_dir():
        raise ArtifactCacheError(f"artifact cache {cache_dir} is not a directory")
    try:
        paths = list(cache_dir.glob(f"{AGENT_PREFIX}*{AGENT_SUFFIX}"))
    except OSError as exc:
        raise ArtifactCacheError(f"unable to list artifact cache {cache_dir}") from exc

    artifacts: list[LocalArtifact] = []
    for path in paths:
        if not path.is_file():
            continue
        try:
            version = ArtifactVersion.parse(extract_version(path))
        except ValueError as exc:
            LOGGER.warning("Skipping %s: %s", path.name, exc)
            continue
        artifacts.append(LocalArtifact(version=version, path=path))
    return sorted(artifacts, key=lambda artifact: artifact.version)


class MavenArtifactSource:
    """Fetch agent releases from a Maven repository over HTTP.

    Only the connection phase is bounded by ``connect_timeout``; a slow
    transfer is allowed to run to completion.
    """

    def __init__(
        self,
        url_template: str = REPOSITORY_URL_TEMPLATE,
        connect_timeout: float = CONNECT_TIMEOUT_S_DEFAULT,
        session: requests.Session | None = None,
    ) -> None:
        self._url_template = url_template
        self._connect_timeout = connect_timeout
        self._session = session or requests.Session()

    def fetch(self, version: int, destination: Path) -> FetchOutcome:
        url = artifact_url(version, self._url_template)
        partial = destination.with_name(destination.name + ".part")
        try:
            with self._session.get(
                url,
                stream=True,
                allow_redirects=True,
                timeout=(self._connect_timeout, None),
            ) as response:
                if response.status_code == 404:
                    return FetchOutcome.NOT_FOUND
                response.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
            partial.replace(destination)
            return FetchOutcome.DOWNLOADED
        except (requests.RequestException, OSError) as exc:
            LOGGER.warning("Download of %s failed: %s", url, exc)
            return FetchOutcome.FAILED
        finally:
            partial.unlink(missing_ok=True)


class ArtifactFetcher:
    """Populate the local cache with a contiguous range of agent releases."""

    def __init__(self, cache_dir: Path, source: VersionAvailabilityCheck) -> None:
        self._cache_dir = cache_dir
        self._source = source

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def artifact_path(self, version: int) -> Path:
        return self._cache_dir / artifact_file_name(version)

    def ensure_artifacts(
        self, min_version: int, max_version: int | None = None
    ) -> list[LocalArtifact]:
        """Download every missing release from ``min_version`` upwards.

        Scanning ends at ``max_version`` (inclusive) or at the first release
        the source cannot provide, whichever comes first. Returns the cached
        artifacts for the scanned range.
        """
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        present: list[LocalArtifact] = []

        for version in _candidate_versions(min_version, max_version):
            release = ArtifactVersion.release(version)
            path = self.artifact_path(version)
            if path.exists():
                LOGGER.info("Already downloaded tracer %s", release)
            else:
                LOGGER.info("Downloading tracer %s... to %s", release, path)
                outcome = self._source.fetch(version, path)
                if outcome is FetchOutcome.NOT_FOUND:
                    LOGGER.info(
                        "No version %s found, no further versions will be fetched "
                        "as this was probably the latest version",
                        release,
                    )
                    break
                if outcome is FetchOutcome.FAILED:
                    LOGGER.info(
                        "No version %s could be downloaded, no further versions will "
                        "be fetched as this was probably the latest version",
                        release,
                    )
                    break
            present.append(LocalArtifact(version=release, path=path))

        return present


def _candidate_versions(min_version: int, max_version: int | None) -> Iterator[int]:
    if max_version is None:
        return itertools.count(start=min_version)
    return iter(range(min_version, max_version + 1))
