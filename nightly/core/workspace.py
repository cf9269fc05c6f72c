"""Project root detection.

The project root is the checkout of the game repository: the directory that
holds `nightly.toml` or, failing that, the game's `Cargo.toml`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .config import CONFIG_FILE_NAME
from .result import Err, Ok, Result

__all__ = ["Project", "ProjectError", "detect_project", "find_project_upward"]

ROOT_ENV_VAR = "NIGHTLY_ROOT"


@dataclass(frozen=True, slots=True)
class ProjectError:
    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class Project:
    """A detected game checkout."""

    root: Path

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILE_NAME


def _is_project_root(path: Path) -> bool:
    return (path / CONFIG_FILE_NAME).is_file() or (path / "Cargo.toml").is_file()


def find_project_upward(start: Path) -> Path | None:
    """Walk up from `start` to the first directory that looks like a project root."""
    current = start.resolve()
    for candidate in (current, *current.parents):
        if _is_project_root(candidate):
            return candidate
    return None


def detect_project(
    explicit: Path | None = None,
    start: Path | None = None,
) -> Result[Project, ProjectError]:
    """Resolve the project root.

    Order: explicit path, then $NIGHTLY_ROOT, then an upward search from `start`
    (defaults to the current directory).
    """
    if explicit is not None:
        root = explicit.expanduser().resolve()
        if not root.is_dir():
            return Err(ProjectError(f"not a directory: {root}"))
        return Ok(Project(root=root))

    env_root = os.environ.get(ROOT_ENV_VAR)
    if env_root:
        root = Path(env_root).expanduser().resolve()
        if not root.is_dir():
            return Err(ProjectError(f"${ROOT_ENV_VAR} is not a directory: {root}"))
        return Ok(Project(root=root))

    origin = start or Path.cwd()
    found = find_project_upward(origin)
    if found is None:
        return Err(
            ProjectError(
                f"no {CONFIG_FILE_NAME} or Cargo.toml found above {origin}",
                searched_from=origin,
            )
        )
    return Ok(Project(root=found))
