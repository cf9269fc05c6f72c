from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from nightly.pipeline.errors import PipelineError

_SHA_RE = re.compile(r"^[0-9a-f]{40}$")
_LABEL_SEPARATOR = " @ "


def is_full_sha(value: str) -> bool:
    return _SHA_RE.match(value) is not None


@dataclass(frozen=True, slots=True)
class TrunkCommit:
    """A commit on the trunk branch, identified by its full sha."""

    sha: str
    branch: str

    def __post_init__(self) -> None:
        if not is_full_sha(self.sha):
            raise ValueError(f"not a full commit sha: {self.sha!r}")

    @property
    def short(self) -> str:
        return self.sha[:7]


class ArtifactKind(StrEnum):
    BINARY = "binary"
    BUNDLE = "bundle"


@dataclass(frozen=True, slots=True)
class Artifact:
    """Output of one target build.

    A native artifact is a single executable; a web artifact is the bundle
    directory the bundler produced.
    """

    target: str
    kind: ArtifactKind
    path: Path
    commit: TrunkCommit
    stripped: bool = False

    @property
    def slot(self) -> str:
        """Release asset name this artifact occupies."""
        return self.path.name

    @property
    def label(self) -> str:
        return asset_label(self.target, self.commit)


def asset_label(target: str, commit: TrunkCommit) -> str:
    return f"{target}{_LABEL_SEPARATOR}{commit.short}"


class MarkerState(StrEnum):
    STALE = "stale"
    CURRENT = "current"


@dataclass(frozen=True, slots=True)
class MarkerStatus:
    """Remote marker position relative to a commit."""

    name: str
    commit: str | None
    object_id: str | None
    state: MarkerState


@dataclass(frozen=True, slots=True)
class ReleaseAsset:
    name: str
    size: int
    digest: str | None = None
    label: str | None = None

    @property
    def target(self) -> str | None:
        if not self.label or _LABEL_SEPARATOR not in self.label:
            return None
        return self.label.split(_LABEL_SEPARATOR, 1)[0]

    @property
    def commit_short(self) -> str | None:
        """Short sha of the commit this asset was built from, if labelled."""
        if not self.label or _LABEL_SEPARATOR not in self.label:
            return None
        return self.label.split(_LABEL_SEPARATOR, 1)[1]


def _no_assets() -> dict[str, ReleaseAsset]:
    return {}


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    """The release identified by the nightly marker, keyed by asset slot."""

    tag: str
    title: str
    body: str
    prerelease: bool = False
    assets: dict[str, ReleaseAsset] = field(default_factory=_no_assets)

    def asset(self, slot: str) -> ReleaseAsset | None:
        return self.assets.get(slot)


class JobStatus(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    SUPERSEDED = "superseded"


@dataclass(frozen=True, slots=True)
class JobReport:
    """Outcome of one target job.

    `published` names the release slot that was written (None if the job did
    not publish); `deployed` is True only when the web bundle went live.
    """

    target: str
    status: JobStatus
    commit: TrunkCommit | None = None
    artifact: Artifact | None = None
    published: str | None = None
    deployed: bool = False
    notes: tuple[str, ...] = ()
    error: PipelineError | None = None

    @property
    def ok(self) -> bool:
        return self.status != JobStatus.FAILED


@dataclass(frozen=True, slots=True)
class PipelineReport:
    commit: TrunkCommit | None
    jobs: tuple[JobReport, ...]

    @property
    def ok(self) -> bool:
        return all(job.ok for job in self.jobs)

    @property
    def failed(self) -> tuple[JobReport, ...]:
        return tuple(job for job in self.jobs if not job.ok)

    def job(self, target: str) -> JobReport | None:
        for job in self.jobs:
            if job.target == target:
                return job
        return None
