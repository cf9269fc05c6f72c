"""Git repository abstraction.

The pipeline needs a narrow slice of git: resolve the trunk commit, read and
force-move the nightly tag on the remote, and publish a directory snapshot to
the static hosting branch. All operations return Result types.

Usage:
    repo = Repository(Path("."))
    match repo.ls_remote_tag("origin", "nightly"):
        case Ok(None):
            print("no marker yet")
        case Ok(ref):
            print(f"marker at {ref.peeled}")
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from nightly.core.result import Err, Ok, Result
from nightly.platform.process import ProcessError, merged_env
from nightly.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

__all__ = [
    "GitError",
    "GitIdentity",
    "RemoteRef",
    "Repository",
    "identity_from_env",
    "parse_ls_remote",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message (stderr, or a fallback)
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class GitIdentity:
    """Author/committer used for tags and snapshot commits."""

    name: str
    email: str

    def config_args(self) -> list[str]:
        return ["-c", f"user.name={self.name}", "-c", f"user.email={self.email}"]

    def env(self) -> dict[str, str]:
        return {
            "GIT_AUTHOR_NAME": self.name,
            "GIT_AUTHOR_EMAIL": self.email,
            "GIT_COMMITTER_NAME": self.name,
            "GIT_COMMITTER_EMAIL": self.email,
        }


def identity_from_env(env: Mapping[str, str]) -> GitIdentity:
    """Identity of the CI actor, as the workflow used to configure it."""
    actor = env.get("GITHUB_ACTOR", "").strip() or "nightly-bot"
    return GitIdentity(name=actor, email=f"{actor}@users.noreply.github.com")


@dataclass(frozen=True, slots=True)
class RemoteRef:
    """A ref advertised by the remote.

    Attributes:
        name: Full ref name (e.g. refs/tags/nightly)
        object_id: The object the ref stores (the tag object for annotated tags)
        peeled: The commit the ref ultimately points at
    """

    name: str
    object_id: str
    peeled: str


class Repository:
    """Git operations on one checkout.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def head_sha(self, ref: str = "HEAD") -> Result[str, GitError]:
        """Resolve `ref` to a full commit sha."""
        result = self._run(["rev-parse", "--verify", f"{ref}^{{commit}}"])
        match result:
            case Err(e):
                return Err(_git_error("rev-parse", e, f"cannot resolve {ref}"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def current_branch(self) -> str | None:
        """Current branch name, or None on detached HEAD or error."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def ls_remote_tag(self, remote: str, tag: str) -> Result[RemoteRef | None, GitError]:
        """Read a tag from the remote without touching local refs.

        Returns:
            Ok(None) if the remote has no such tag
            Ok(RemoteRef) with the tag object id and the peeled commit
            Err(GitError) on network/auth failure
        """
        ref = f"refs/tags/{tag}"
        result = self._run(["ls-remote", "--tags", remote, ref, f"{ref}^{{}}"], network=True)
        if isinstance(result, Err):
            return Err(_git_error("ls-remote", result.error, "ls-remote failed"))
        return Ok(parse_ls_remote(result.value, ref))

    def is_ancestor(self, ancestor: str, descendant: str) -> Result[bool, GitError]:
        """True if `ancestor` is reachable from `descendant`.

        `git merge-base --is-ancestor` exits 1 for "no"; anything else is an error
        (typically a commit missing from a shallow clone).
        """
        result = self._run(["merge-base", "--is-ancestor", ancestor, descendant])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1:
                return Ok(False)
            case Err(e):
                return Err(_git_error("merge-base", e, "ancestry check failed"))

    def fetch(self, remote: str, refspec: str) -> Result[None, GitError]:
        result = self._run(["fetch", "--no-tags", remote, refspec], network=True)
        if isinstance(result, Err):
            return Err(_git_error("fetch", result.error, f"fetch {refspec} failed"))
        return Ok(None)

    def tag_force(
        self,
        name: str,
        target: str,
        *,
        message: str,
        identity: GitIdentity,
    ) -> Result[None, GitError]:
        """Create or overwrite an annotated tag locally (`git tag -fa`)."""
        result = self._run([*identity.config_args(), "tag", "-fa", name, target, "-m", message])
        if isinstance(result, Err):
            return Err(_git_error("tag", result.error, f"failed to tag {name}"))
        return Ok(None)

    def push_tag_with_lease(
        self,
        remote: str,
        name: str,
        *,
        expected: str | None,
    ) -> Result[None, GitError]:
        """Force-push a tag only if the remote still holds `expected`.

        `expected=None` requires that the tag does not exist on the remote yet.
        """
        ref = f"refs/tags/{name}"
        lease = f"--force-with-lease={ref}:{expected or ''}"
        result = self._run(["push", lease, remote, f"{ref}:{ref}"], network=True)
        if isinstance(result, Err):
            return Err(_git_error("push", result.error, f"failed to push {ref}"))
        return Ok(None)

    def git_dir(self) -> Result[Path, GitError]:
        result = self._run(["rev-parse", "--absolute-git-dir"])
        match result:
            case Err(e):
                return Err(_git_error("rev-parse", e, "not a git repository"))
            case Ok(stdout):
                return Ok(Path(stdout.strip()))

    def snapshot_tree(self, work_tree: Path) -> Result[str, GitError]:
        """Write the full contents of `work_tree` as a tree object.

        Uses a throwaway index so the checkout's own index is untouched.
        """
        git_dir = self.git_dir()
        if isinstance(git_dir, Err):
            return git_dir

        base = ["git", "--git-dir", str(git_dir.value), "--work-tree", str(work_tree)]
        with tempfile.TemporaryDirectory(prefix="nightly-index-") as tmp:
            env = merged_env({"GIT_INDEX_FILE": str(Path(tmp) / "index")})
            added = run_process(
                [*base, "add", "-A", "--force", "."],
                cwd=work_tree,
                env=env,
                timeout=_GIT_TIMEOUT_SECONDS,
            )
            if isinstance(added, Err):
                return Err(_git_error("add", added.error, "failed to stage snapshot"))

            tree = run_process(
                [*base, "write-tree"], cwd=work_tree, env=env, timeout=_GIT_TIMEOUT_SECONDS
            )
            if isinstance(tree, Err):
                return Err(_git_error("write-tree", tree.error, "failed to write tree"))
            return Ok(tree.value.strip())

    def commit_tree(
        self,
        tree: str,
        *,
        message: str,
        identity: GitIdentity,
    ) -> Result[str, GitError]:
        """Create a parentless commit for `tree`."""
        result = self._run(["commit-tree", tree, "-m", message], env=identity.env())
        match result:
            case Err(e):
                return Err(_git_error("commit-tree", e, "failed to create commit"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def push_force(self, remote: str, source: str, dest_ref: str) -> Result[None, GitError]:
        result = self._run(["push", "--force", remote, f"{source}:{dest_ref}"], network=True)
        if isinstance(result, Err):
            return Err(_git_error("push", result.error, f"failed to push {dest_ref}"))
        return Ok(None)

    def _run(
        self,
        args: list[str],
        env: dict[str, str] | None = None,
        *,
        network: bool = False,
    ) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        timeout = _GIT_NETWORK_TIMEOUT_SECONDS if network else _GIT_TIMEOUT_SECONDS
        return run_process(
            ["git", "-C", str(self.path), *args],
            cwd=self.path,
            env=merged_env(env),
            timeout=timeout,
        )


def parse_ls_remote(output: str, ref: str) -> RemoteRef | None:
    """Parse `git ls-remote` lines for one tag.

    Annotated tags are advertised twice: `<tag-object> ref` and
    `<commit> ref^{}`. Lightweight tags only have the first line.
    """
    object_id: str | None = None
    peeled: str | None = None
    for line in output.splitlines():
        parts = line.strip().split("\t")
        if len(parts) != 2:
            continue
        sha, name = parts
        if name == ref:
            object_id = sha
        elif name == f"{ref}^{{}}":
            peeled = sha

    if object_id is None:
        return None
    return RemoteRef(name=ref, object_id=object_id, peeled=peeled or object_id)


def _git_error(command: str, error: ProcessError, fallback: str) -> GitError:
    return GitError(
        command=command,
        message=error.output or fallback,
        returncode=error.returncode,
    )
