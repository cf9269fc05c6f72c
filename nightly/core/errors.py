"""Exit codes for the nightly CLI.

Each code maps to one family of failure so that a CI run history shows at a
glance why a target job failed.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad input, unknown target)
    - 2: Environment error (missing tool, bad config)
    - 3: Build error (compile, tests, strip)
    - 4: Network error (marker push rejected, remote unreachable)
    - 5: I/O error (expected output missing)
    - 6: Publish error (release upload or web deploy failed)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    PUBLISH_ERROR = 6
