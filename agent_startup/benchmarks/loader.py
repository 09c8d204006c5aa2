from __future__ import annotations

import logging
import shutil
import subprocess
from importlib import resources
from pathlib import Path

from .config import LOADER_MAIN_CLASS

LOGGER = logging.getLogger("agent_startup.benchmark.loader")

LOADER_SOURCE = "LoadClasses.java"
LOADER_DIR_NAME = ".loader"


class LoaderBuildError(Exception):
    """Raised when the class loading entry point cannot be compiled."""


def loader_source() -> str:
    return resources.files("agent_startup.resources").joinpath(LOADER_SOURCE).read_text(
        encoding="utf-8"
    )


def ensure_loader(cache_dir: Path, javac: str = "javac") -> str:
    """Compile the bundled LoadClasses entry point once and return its classpath.

    The compiled classes live next to the agent cache so later runs reuse
    them. The source is recompiled whenever it differs from the copy that
    produced the existing classes.
    """
    output_dir = cache_dir / LOADER_DIR_NAME
    source_path = output_dir / LOADER_SOURCE
    class_file = output_dir.joinpath(*LOADER_MAIN_CLASS.split(".")).with_suffix(".class")
    source = loader_source()

    if (
        class_file.exists()
        and source_path.exists()
        and source_path.read_text(encoding="utf-8") == source
    ):
        LOGGER.debug("Reusing compiled loader in %s", output_dir)
        return str(output_dir)

    if shutil.which(javac) is None:
        raise LoaderBuildError(f"{javac} not found; pass --tool-classpath instead")

    output_dir.mkdir(parents=True, exist_ok=True)
    source_path.write_text(source, encoding="utf-8")
    LOGGER.info("Compiling %s into %s", LOADER_SOURCE, output_dir)
    completed = subprocess.run(
        [javac, "-d", str(output_dir), str(source_path)],
        capture_output=True,
        text=True,
    )
    if completed.returncode != 0:
        source_path.unlink(missing_ok=True)
        raise LoaderBuildError(
            f"javac exited with {completed.returncode}: {completed.stderr.strip()}"
        )
    return str(output_dir)
