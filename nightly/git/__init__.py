"""Git operations used by the marker and the web deployer.

Usage:
    from nightly.git import Repository

    repo = Repository(Path("."))
    match repo.head_sha():
        case Ok(sha): ...
        case Err(error): ...
"""

from nightly.git.repository import (
    GitError,
    GitIdentity,
    RemoteRef,
    Repository,
    identity_from_env,
    parse_ls_remote,
)

__all__ = [
    "GitError",
    "GitIdentity",
    "RemoteRef",
    "Repository",
    "identity_from_env",
    "parse_ls_remote",
]
