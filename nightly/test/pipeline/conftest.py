"""In-memory stand-ins for the remote marker, the release endpoint and git."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import pytest

from nightly.core.result import Err, Ok, Result
from nightly.git.repository import GitError, GitIdentity, RemoteRef
from nightly.pipeline import marker as marker_mod
from nightly.pipeline import retry as retry_mod
from nightly.pipeline.errors import PublishFailed
from nightly.pipeline.model import ReleaseAsset, ReleaseRecord
from nightly.pipeline.release import file_digest

# Trunk history, oldest first.
C0 = "a0" * 20
C1 = "c1" * 20
C2 = "c2" * 20


def _no_sleep(seconds: float) -> None:
    del seconds


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(retry_mod, "sleep", _no_sleep)
    monkeypatch.setattr(marker_mod, "sleep", _no_sleep)


class InMemoryMarkerStore:
    """A remote tag with compare-and-swap semantics over a linear history."""

    def __init__(self, history: list[str]) -> None:
        self.history = history
        self.ref: RemoteRef | None = None
        self.writes: list[str] = []
        self.write_errors: list[GitError] = []
        self.read_errors: list[GitError] = []
        self.before_write: Callable[[], None] | None = None
        self._lock = threading.Lock()
        self._objects = 0

    def force(self, commit: str) -> None:
        """Move the tag behind everyone's back."""
        with self._lock:
            self._objects += 1
            self.ref = RemoteRef(
                name="refs/tags/nightly", object_id=f"{self._objects:040x}", peeled=commit
            )

    def read(self) -> Result[RemoteRef | None, GitError]:
        if self.read_errors:
            return Err(self.read_errors.pop(0))
        with self._lock:
            return Ok(self.ref)

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, GitError]:
        if ancestor not in self.history or descendant not in self.history:
            return Err(GitError(command="merge-base", message="Not a valid commit", returncode=128))
        return Ok(self.history.index(ancestor) <= self.history.index(descendant))

    def write(self, commit: str, *, expected: str | None) -> Result[None, GitError]:
        hook, self.before_write = self.before_write, None
        if hook is not None:
            hook()
        if self.write_errors:
            return Err(self.write_errors.pop(0))
        with self._lock:
            current = self.ref.object_id if self.ref is not None else None
            if current != expected:
                return Err(
                    GitError(
                        command="push",
                        message=" ! [rejected]        nightly -> nightly (stale info)",
                    )
                )
            self._objects += 1
            self.ref = RemoteRef(
                name="refs/tags/nightly", object_id=f"{self._objects:040x}", peeled=commit
            )
            self.writes.append(commit)
            return Ok(None)


class FakeReleaseClient:
    """Release endpoint kept in memory; uploads record real file digests."""

    def __init__(self) -> None:
        self.release: ReleaseRecord | None = None
        self.calls: list[str] = []
        self.errors: dict[str, list[PublishFailed]] = {}
        self._lock = threading.Lock()

    def _fail(self, op: str) -> PublishFailed | None:
        queue = self.errors.get(op)
        return queue.pop(0) if queue else None

    def view(self, tag: str) -> Result[ReleaseRecord | None, PublishFailed]:
        self.calls.append("view")
        error = self._fail("view")
        if error is not None:
            return Err(error)
        return Ok(self.release)

    def create(
        self, tag: str, *, title: str, body: str, prerelease: bool
    ) -> Result[bool, PublishFailed]:
        self.calls.append("create")
        error = self._fail("create")
        if error is not None:
            return Err(error)
        with self._lock:
            if self.release is not None:
                return Ok(False)
            self.release = ReleaseRecord(tag=tag, title=title, body=body, prerelease=prerelease)
            return Ok(True)

    def edit(
        self, tag: str, *, title: str, body: str, prerelease: bool
    ) -> Result[None, PublishFailed]:
        self.calls.append("edit")
        with self._lock:
            assert self.release is not None
            self.release = replace(self.release, title=title, body=body, prerelease=prerelease)
        return Ok(None)

    def upload(self, tag: str, path: Path, *, label: str) -> Result[None, PublishFailed]:
        self.calls.append("upload")
        error = self._fail("upload")
        if error is not None:
            return Err(error)
        with self._lock:
            assert self.release is not None
            assets = dict(self.release.assets)
            assets[path.name] = ReleaseAsset(
                name=path.name,
                size=path.stat().st_size,
                digest=file_digest(path),
                label=label,
            )
            self.release = replace(self.release, assets=assets)
        return Ok(None)


class FakePagesRepo:
    """The slice of Repository the web deployer uses."""

    def __init__(self) -> None:
        self.snapshots: list[Path] = []
        self.pushes: list[tuple[str, str, str]] = []
        self.push_errors: list[GitError] = []

    def snapshot_tree(self, work_tree: Path) -> Result[str, GitError]:
        self.snapshots.append(work_tree)
        return Ok("tree" + "0" * 36)

    def commit_tree(
        self, tree: str, *, message: str, identity: GitIdentity
    ) -> Result[str, GitError]:
        return Ok("d" * 40)

    def push_force(self, remote: str, source: str, dest_ref: str) -> Result[None, GitError]:
        if self.push_errors:
            return Err(self.push_errors.pop(0))
        self.pushes.append((remote, source, dest_ref))
        return Ok(None)


@pytest.fixture
def marker_store() -> InMemoryMarkerStore:
    return InMemoryMarkerStore([C0, C1, C2])


@pytest.fixture
def release_client() -> FakeReleaseClient:
    return FakeReleaseClient()


@pytest.fixture
def pages_repo() -> FakePagesRepo:
    return FakePagesRepo()
