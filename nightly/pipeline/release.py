"""Release publisher: attach target artifacts to the nightly release.

The release is keyed by the marker's tag. Each artifact occupies one asset
slot (its file name); uploading replaces that slot only, so a target that did
not publish this cycle keeps its previous asset.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, TypeVar

from nightly.core.config import ReleaseConfig
from nightly.core.result import Err, Ok, Result
from nightly.core.structured import (
    as_obj_list,
    as_str_dict,
    get_bool,
    get_int,
    get_raw_str,
    get_str,
)
from nightly.output.console import ConsoleProtocol, Style
from nightly.platform.process import run as run_process
from nightly.pipeline.errors import PublishFailed, PublishMismatch
from nightly.pipeline.model import Artifact, ReleaseAsset, ReleaseRecord
from nightly.pipeline.retry import RetryPolicy, is_transient_text, retry_transient
from nightly.pipeline.timeouts import GH_TIMEOUT_SECONDS, GH_UPLOAD_TIMEOUT_SECONDS

T = TypeVar("T")

__all__ = [
    "GhReleaseClient",
    "PublishOutcome",
    "ReleaseClient",
    "ReleasePublisher",
    "file_digest",
    "parse_release",
]


class ReleaseClient(Protocol):
    """Release endpoint operations."""

    def view(self, tag: str) -> Result[ReleaseRecord | None, PublishFailed]: ...

    def create(
        self, tag: str, *, title: str, body: str, prerelease: bool
    ) -> Result[bool, PublishFailed]:
        """Create the release; Ok(False) if it already existed."""
        ...

    def edit(
        self, tag: str, *, title: str, body: str, prerelease: bool
    ) -> Result[None, PublishFailed]: ...

    def upload(self, tag: str, path: Path, *, label: str) -> Result[None, PublishFailed]:
        """Upload `path`, replacing an asset of the same name."""
        ...


def file_digest(path: Path) -> str:
    """`sha256:<hex>`, the format GitHub reports for release assets."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return f"sha256:{h.hexdigest()}"


def parse_release(payload: object) -> ReleaseRecord | None:
    data = as_str_dict(payload)
    if data is None:
        return None
    tag = get_str(data, "tag_name")
    if tag is None:
        return None

    assets: dict[str, ReleaseAsset] = {}
    for item in as_obj_list(data.get("assets")) or []:
        d = as_str_dict(item)
        if d is None:
            continue
        name = get_str(d, "name")
        if name is None:
            continue
        assets[name] = ReleaseAsset(
            name=name,
            size=get_int(d, "size") or 0,
            digest=get_str(d, "digest"),
            label=get_str(d, "label"),
        )

    return ReleaseRecord(
        tag=tag,
        title=get_raw_str(data, "name") or "",
        body=get_raw_str(data, "body") or "",
        prerelease=get_bool(data, "prerelease") or False,
        assets=assets,
    )


def _is_not_found(text: str) -> bool:
    lowered = text.lower()
    return "http 404" in lowered or "not found" in lowered


class GhReleaseClient:
    """Release endpoint backed by the GitHub CLI."""

    def __init__(self, *, root: Path, repo: str | None = None) -> None:
        self._root = root
        self._repo = repo

    def view(self, tag: str) -> Result[ReleaseRecord | None, PublishFailed]:
        slug = self._repo or "{owner}/{repo}"
        endpoint = f"repos/{slug}/releases/tags/{tag}"
        result = run_process(["gh", "api", endpoint], cwd=self._root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            e = result.error
            if _is_not_found(e.output):
                return Ok(None)
            return Err(PublishFailed(message=f"gh api failed: {endpoint}", hint=e.output or None))

        try:
            payload: object = json.loads(result.value)
        except json.JSONDecodeError as e:
            return Err(PublishFailed(message=f"gh api returned invalid JSON: {e}", hint=endpoint))

        record = parse_release(payload)
        if record is None:
            return Err(PublishFailed(message=f"unexpected release payload for {tag}"))
        return Ok(record)

    def create(
        self, tag: str, *, title: str, body: str, prerelease: bool
    ) -> Result[bool, PublishFailed]:
        cmd = [
            "gh",
            "release",
            "create",
            tag,
            "--title",
            title,
            "--notes",
            body,
            "--verify-tag",
        ]
        if prerelease:
            cmd.append("--prerelease")
        result = run_process(self._with_repo(cmd), cwd=self._root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            e = result.error
            # Another target job created it first.
            if "already exists" in e.output.lower():
                return Ok(False)
            return Err(
                PublishFailed(message=f"failed to create release {tag}", hint=e.output or None)
            )
        return Ok(True)

    def edit(
        self, tag: str, *, title: str, body: str, prerelease: bool
    ) -> Result[None, PublishFailed]:
        cmd = [
            "gh",
            "release",
            "edit",
            tag,
            "--title",
            title,
            "--notes",
            body,
            f"--prerelease={'true' if prerelease else 'false'}",
        ]
        result = run_process(self._with_repo(cmd), cwd=self._root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            message = f"failed to edit release {tag}"
            return Err(PublishFailed(message=message, hint=result.error.output or None))
        return Ok(None)

    def upload(self, tag: str, path: Path, *, label: str) -> Result[None, PublishFailed]:
        cmd = ["gh", "release", "upload", tag, f"{path}#{label}", "--clobber"]
        result = run_process(
            self._with_repo(cmd), cwd=self._root, timeout=GH_UPLOAD_TIMEOUT_SECONDS
        )
        if isinstance(result, Err):
            message = f"failed to upload {path.name} to {tag}"
            return Err(PublishFailed(message=message, hint=result.error.output or None))
        return Ok(None)

    def _with_repo(self, cmd: list[str]) -> list[str]:
        if self._repo:
            return [*cmd, "--repo", self._repo]
        return cmd


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    """Result of publishing one artifact.

    `uploaded` is False when the slot already held identical bytes.
    """

    slot: str
    uploaded: bool


def _is_transient_publish(error: PublishFailed) -> bool:
    return is_transient_text(f"{error.message}\n{error.hint or ''}")


class ReleasePublisher:
    """Attaches artifacts to the release identified by the marker."""

    def __init__(
        self,
        client: ReleaseClient,
        *,
        config: ReleaseConfig,
        policy: RetryPolicy,
        console: ConsoleProtocol,
    ) -> None:
        self._client = client
        self._config = config
        self._policy = policy
        self._console = console

    @property
    def tag(self) -> str:
        return self._config.marker

    def show(self) -> Result[ReleaseRecord | None, PublishFailed]:
        return self._retry(lambda: self._client.view(self.tag))

    def ensure_release(self) -> Result[ReleaseRecord, PublishFailed]:
        """Make sure the release exists with the configured title and body."""
        cfg = self._config
        existing = self.show()
        if isinstance(existing, Err):
            return existing

        record = existing.value
        if record is None:
            self._console.print(f"gh release create {self.tag}", Style.DIM)
            created = self._retry(
                lambda: self._client.create(
                    self.tag, title=cfg.title, body=cfg.body, prerelease=cfg.prerelease
                )
            )
            if isinstance(created, Err):
                return created
            if created.value:
                return Ok(ReleaseRecord(self.tag, cfg.title, cfg.body, cfg.prerelease))
            # Lost the creation race: fall through to reconcile the existing release.
            again = self.show()
            if isinstance(again, Err):
                return again
            if again.value is None:
                return Err(PublishFailed(message=f"release {self.tag} vanished after creation"))
            record = again.value

        if (record.title, record.body, record.prerelease) != (cfg.title, cfg.body, cfg.prerelease):
            self._console.print(f"gh release edit {self.tag}", Style.DIM)
            edited = self._retry(
                lambda: self._client.edit(
                    self.tag, title=cfg.title, body=cfg.body, prerelease=cfg.prerelease
                )
            )
            if isinstance(edited, Err):
                return edited

        return Ok(record)

    def publish(
        self, artifact: Artifact
    ) -> Result[PublishOutcome, PublishMismatch | PublishFailed]:
        """Replace the artifact's slot in the release.

        Fails before touching the release if the artifact file is missing.
        """
        path = artifact.path
        if not path.is_file():
            return Err(PublishMismatch(path=path))

        record = self.ensure_release()
        if isinstance(record, Err):
            return record

        digest = file_digest(path)
        current = record.value.asset(artifact.slot)
        if current is not None and current.target not in (None, artifact.target):
            return Err(
                PublishFailed(
                    message=f"{artifact.slot} belongs to {current.target}, not {artifact.target}",
                    hint="Each native target needs its own binary name",
                )
            )
        if current is not None and current.digest == digest and current.label == artifact.label:
            self._console.print(f"{artifact.slot} unchanged ({digest[:19]})", Style.DIM)
            return Ok(PublishOutcome(slot=artifact.slot, uploaded=False))

        self._console.print(f"gh release upload {self.tag} {path.name} --clobber", Style.DIM)
        uploaded = self._retry(lambda: self._client.upload(self.tag, path, label=artifact.label))
        if isinstance(uploaded, Err):
            return uploaded
        return Ok(PublishOutcome(slot=artifact.slot, uploaded=True))

    def _retry(
        self, operation: Callable[[], Result[T, PublishFailed]]
    ) -> Result[T, PublishFailed]:
        return retry_transient(operation, policy=self._policy, is_transient=_is_transient_publish)
