"""Nightly marker: the floating pointer to the latest published trunk commit.

The marker is a single annotated tag shared by every target job. Moving it is
a compare-and-swap against the remote (`git push --force-with-lease`), so
concurrent jobs of the same run converge on the same commit no matter which
one pushes first:

- already at the commit        -> no-op (Current)
- at a newer trunk commit      -> superseded, this job must not publish
- at an older commit / absent  -> force-move, leased on the value just read
- lease rejected (lost a race) -> re-read and decide again
"""

from __future__ import annotations

import threading
from time import sleep
from typing import Protocol

from nightly.core.result import Err, Ok, Result
from nightly.git.repository import GitError, GitIdentity, RemoteRef, Repository
from nightly.output.console import ConsoleProtocol, Style
from nightly.pipeline.errors import MarkerError, MarkerSuperseded, TagMoveFailed
from nightly.pipeline.model import MarkerState, MarkerStatus, TrunkCommit
from nightly.pipeline.retry import RetryPolicy, is_transient_text, retry_transient

__all__ = ["GitMarkerStore", "MarkerStore", "TagManager", "is_lease_rejection"]


class MarkerStore(Protocol):
    """Remote storage of the marker ref."""

    def read(self) -> Result[RemoteRef | None, GitError]: ...

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, GitError]: ...

    def write(self, commit: str, *, expected: str | None) -> Result[None, GitError]:
        """Point the marker at `commit` iff the remote still stores `expected`."""
        ...


def is_lease_rejection(error: GitError) -> bool:
    text = error.message.lower()
    return "stale info" in text or "[rejected]" in text


def _is_transient_git(error: GitError) -> bool:
    return not is_lease_rejection(error) and is_transient_text(error.message)


class GitMarkerStore:
    """Marker stored as an annotated tag on a git remote."""

    def __init__(
        self,
        repo: Repository,
        *,
        remote: str,
        name: str,
        identity: GitIdentity,
    ) -> None:
        self._repo = repo
        self._remote = remote
        self._name = name
        self._identity = identity
        # Jobs of one local run share the checkout; `git tag` locks the ref.
        self._write_lock = threading.Lock()

    def read(self) -> Result[RemoteRef | None, GitError]:
        return self._repo.ls_remote_tag(self._remote, self._name)

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, GitError]:
        result = self._repo.is_ancestor(ancestor, descendant)
        if isinstance(result, Ok):
            return result

        # The marker's commit may be missing locally; fetch it and ask again.
        fetched = self._repo.fetch(self._remote, descendant)
        if isinstance(fetched, Err):
            return fetched
        return self._repo.is_ancestor(ancestor, descendant)

    def write(self, commit: str, *, expected: str | None) -> Result[None, GitError]:
        with self._write_lock:
            tagged = self._repo.tag_force(
                self._name, commit, message="", identity=self._identity
            )
            if isinstance(tagged, Err):
                return tagged
            return self._repo.push_tag_with_lease(self._remote, self._name, expected=expected)


class TagManager:
    """Keeps the marker Current for a trunk commit."""

    def __init__(
        self,
        store: MarkerStore,
        *,
        name: str,
        policy: RetryPolicy,
        console: ConsoleProtocol,
    ) -> None:
        self._store = store
        self._name = name
        self._policy = policy
        self._console = console

    @property
    def name(self) -> str:
        return self._name

    def status(self, commit: str | None = None) -> Result[MarkerStatus, TagMoveFailed]:
        """Where the remote marker points, and whether that is `commit`."""
        remote = self._read()
        if isinstance(remote, Err):
            return remote
        return Ok(self._status(remote.value, commit))

    def ensure_current(
        self,
        commit: TrunkCommit,
        *,
        allow_move: bool = True,
    ) -> Result[MarkerStatus, MarkerError]:
        """Make the marker point at `commit`, idempotently.

        Safe to call from every target job of a run, concurrently.

        Returns:
            Ok(MarkerStatus) once the marker is Current for `commit`
            Err(MarkerSuperseded) if a newer trunk commit owns the marker
            Err(TagMoveFailed) on remote failure or exhausted attempts
        """
        attempts = max(1, self._policy.attempts)
        last_message = "no attempt made"

        for attempt in range(1, attempts + 1):
            remote_result = self._read()
            if isinstance(remote_result, Err):
                return remote_result
            remote = remote_result.value

            if remote is not None and remote.peeled == commit.sha:
                return Ok(self._status(remote, commit.sha))

            if remote is not None:
                superseded = self._check_superseded(commit, remote)
                if superseded is not None:
                    return Err(superseded)

            if not allow_move:
                return Err(
                    TagMoveFailed(
                        marker=self._name,
                        message=f"marker is not at {commit.short} and this target does not move it",
                        hint="Enable moves_marker for this target or publish after the primary job",
                    )
                )

            expected = remote.object_id if remote is not None else None
            self._console.print(
                f"move {self._name}: {_short(remote)} -> {commit.short}", Style.DIM
            )
            written = self._store.write(commit.sha, expected=expected)
            if isinstance(written, Ok):
                return Ok(
                    MarkerStatus(
                        name=self._name,
                        commit=commit.sha,
                        object_id=None,
                        state=MarkerState.CURRENT,
                    )
                )

            error = written.error
            last_message = error.message
            if is_lease_rejection(error):
                # Another job moved the marker between read and push.
                self._console.print(f"{self._name} changed concurrently; re-reading", Style.DIM)
                continue
            if _is_transient_git(error) and attempt < attempts:
                sleep(self._policy.delay_seconds * attempt)
                continue
            return Err(TagMoveFailed(marker=self._name, message=error.message))

        return Err(
            TagMoveFailed(
                marker=self._name,
                message=f"gave up after {attempts} attempts: {last_message}",
                hint="The next push or scheduled run will retry",
            )
        )

    def _read(self) -> Result[RemoteRef | None, TagMoveFailed]:
        result = retry_transient(
            self._store.read,
            policy=self._policy,
            is_transient=_is_transient_git,
        )
        if isinstance(result, Err):
            return Err(
                TagMoveFailed(
                    marker=self._name,
                    message=f"cannot read remote marker: {result.error.message}",
                    hint="Check network access and push credentials",
                )
            )
        return result

    def _check_superseded(self, commit: TrunkCommit, remote: RemoteRef) -> MarkerSuperseded | None:
        ancestry = self._store.is_ancestor(commit.sha, remote.peeled)
        if isinstance(ancestry, Err):
            self._console.warning(
                f"cannot order {commit.short} against {remote.peeled[:7]}: "
                f"{ancestry.error.message}; moving {self._name} anyway"
            )
            return None
        if ancestry.value:
            return MarkerSuperseded(marker=self._name, commit=commit.sha, current=remote.peeled)
        return None

    def _status(self, remote: RemoteRef | None, commit: str | None) -> MarkerStatus:
        current = remote is not None and commit is not None and remote.peeled == commit
        return MarkerStatus(
            name=self._name,
            commit=remote.peeled if remote is not None else None,
            object_id=remote.object_id if remote is not None else None,
            state=MarkerState.CURRENT if current else MarkerState.STALE,
        )


def _short(remote: RemoteRef | None) -> str:
    return remote.peeled[:7] if remote is not None else "(none)"
