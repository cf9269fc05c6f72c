"""Web deployer: publish the web bundle to the static hosting branch.

The bundle directory becomes the single, parentless commit of the hosting
branch, so each deploy replaces the previous site entirely. Deploys are
gated on trunk pushes; a scheduled keep-warm rebuild leaves the live site
alone.
"""

from __future__ import annotations

from dataclasses import dataclass

from nightly.core.config import Config
from nightly.core.result import Err, Ok, Result
from nightly.git.repository import GitError, GitIdentity, Repository
from nightly.output.console import ConsoleProtocol, Style
from nightly.pipeline.errors import DeployFailed, PublishMismatch
from nightly.pipeline.model import Artifact, ArtifactKind
from nightly.pipeline.retry import RetryPolicy, is_transient_text, retry_transient
from nightly.pipeline.trigger import Trigger, should_deploy

__all__ = ["DeployOutcome", "PagesDeployer"]


@dataclass(frozen=True, slots=True)
class DeployOutcome:
    deployed: bool
    reason: str = ""
    commit: str | None = None


class PagesDeployer:
    """Force-pushes a bundle snapshot to the hosting branch."""

    def __init__(
        self,
        repo: Repository,
        *,
        config: Config,
        identity: GitIdentity,
        policy: RetryPolicy,
        console: ConsoleProtocol,
        dry_run: bool = False,
    ) -> None:
        self._repo = repo
        self._config = config
        self._identity = identity
        self._policy = policy
        self._console = console
        self._dry_run = dry_run

    @property
    def dest_ref(self) -> str:
        return f"refs/heads/{self._config.deploy.branch}"

    def deploy(
        self,
        artifact: Artifact,
        trigger: Trigger,
    ) -> Result[DeployOutcome, DeployFailed | PublishMismatch]:
        """Publish `artifact` if the trigger allows a live update.

        A closed gate is not an error: Ok(DeployOutcome(deployed=False)).
        """
        if not should_deploy(trigger, self._config):
            reason = f"deploy skipped: {trigger.kind} on {trigger.branch or '(no branch)'}"
            self._console.print(reason, Style.DIM)
            return Ok(DeployOutcome(deployed=False, reason=reason))

        if artifact.kind != ArtifactKind.BUNDLE:
            return Err(DeployFailed(message=f"{artifact.target} did not produce a web bundle"))

        bundle = artifact.path
        index = bundle / "index.html"
        if not self._dry_run and not index.is_file():
            return Err(PublishMismatch(path=index))

        remote = self._config.project.remote
        message = f"Deploy {self._config.project.name} {artifact.commit.sha}"
        self._console.print(f"publish {bundle} -> {remote} {self.dest_ref}", Style.DIM)
        if self._dry_run:
            return Ok(DeployOutcome(deployed=True, reason="dry-run"))

        # GitHub Pages would otherwise run Jekyll and drop `_`-prefixed files.
        (bundle / ".nojekyll").touch()

        tree = self._repo.snapshot_tree(bundle)
        if isinstance(tree, Err):
            return Err(_deploy_error("failed to snapshot bundle", tree.error))

        commit = self._repo.commit_tree(tree.value, message=message, identity=self._identity)
        if isinstance(commit, Err):
            return Err(_deploy_error("failed to commit bundle", commit.error))

        pushed = retry_transient(
            lambda: self._repo.push_force(remote, commit.value, self.dest_ref),
            policy=self._policy,
            is_transient=lambda e: is_transient_text(e.message),
        )
        if isinstance(pushed, Err):
            return Err(_deploy_error(f"failed to push {self.dest_ref}", pushed.error))

        return Ok(DeployOutcome(deployed=True, commit=commit.value))


def _deploy_error(message: str, error: GitError) -> DeployFailed:
    return DeployFailed(message=message, hint=error.message or None)
