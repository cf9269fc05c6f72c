from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Build failures: abort the target job, nothing is published.


@dataclass(frozen=True, slots=True)
class PrereqMissing:
    target: str
    tool: str
    hint: str


@dataclass(frozen=True, slots=True)
class SystemPackagesFailed:
    target: str
    packages: tuple[str, ...]
    detail: str


@dataclass(frozen=True, slots=True)
class CompileFailed:
    target: str
    returncode: int


@dataclass(frozen=True, slots=True)
class TestsFailed:
    target: str
    returncode: int


# Packaging failures


@dataclass(frozen=True, slots=True)
class StripFailed:
    target: str
    path: Path
    returncode: int


@dataclass(frozen=True, slots=True)
class OutputMissing:
    target: str
    path: Path


# Marker and release


@dataclass(frozen=True, slots=True)
class CommitUnresolved:
    message: str


@dataclass(frozen=True, slots=True)
class TagMoveFailed:
    marker: str
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class MarkerSuperseded:
    """A newer trunk commit already owns the marker."""

    marker: str
    commit: str
    current: str


@dataclass(frozen=True, slots=True)
class PublishMismatch:
    """The declared artifact file is absent; never publish a partial release."""

    path: Path


@dataclass(frozen=True, slots=True)
class PublishFailed:
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class DeployFailed:
    message: str
    hint: str | None = None


BuildError = (
    PrereqMissing | SystemPackagesFailed | CompileFailed | TestsFailed | StripFailed | OutputMissing
)

MarkerError = TagMoveFailed | MarkerSuperseded

PipelineError = (
    BuildError
    | CommitUnresolved
    | MarkerError
    | PublishMismatch
    | PublishFailed
    | DeployFailed
)


def describe(error: PipelineError) -> str:
    """One-line summary, as shown in a job's status line."""
    match error:
        case PrereqMissing(tool=tool):
            return f"{tool}: missing"
        case SystemPackagesFailed(packages=packages):
            return f"system package install failed: {' '.join(packages)}"
        case CompileFailed(returncode=rc):
            return f"build failed (exit {rc})"
        case TestsFailed(returncode=rc):
            return f"tests failed (exit {rc})"
        case StripFailed(path=path, returncode=rc):
            return f"strip failed for {path} (exit {rc})"
        case OutputMissing(path=path):
            return f"output not found: {path}"
        case CommitUnresolved(message=message):
            return message
        case TagMoveFailed(marker=marker, message=message):
            return f"could not move {marker}: {message}"
        case MarkerSuperseded(marker=marker, current=current):
            return f"{marker} already at newer commit {current[:7]}"
        case PublishMismatch(path=path):
            return f"artifact missing at publish time: {path}"
        case PublishFailed(message=message) | DeployFailed(message=message):
            return message


def hint_for(error: PipelineError) -> str | None:
    match error:
        case PrereqMissing(hint=hint):
            return hint
        case SystemPackagesFailed(detail=detail):
            return detail or None
        case TagMoveFailed(hint=hint) | PublishFailed(hint=hint) | DeployFailed(hint=hint):
            return hint
        case _:
            return None


@dataclass(frozen=True, slots=True)
class UnknownTarget:
    """A requested target id is not in the capability table."""

    name: str
    available: tuple[str, ...]
