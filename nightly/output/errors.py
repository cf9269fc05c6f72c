"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from nightly.core.errors import ErrorCode
from nightly.output.console import Style
from nightly.pipeline.errors import (
    CommitUnresolved,
    CompileFailed,
    DeployFailed,
    MarkerSuperseded,
    OutputMissing,
    PipelineError,
    PrereqMissing,
    PublishFailed,
    PublishMismatch,
    StripFailed,
    SystemPackagesFailed,
    TagMoveFailed,
    TestsFailed,
    UnknownTarget,
    describe,
    hint_for,
)

if TYPE_CHECKING:
    from nightly.output.console import ConsoleProtocol

__all__ = ["pipeline_error_exit_code", "print_pipeline_error", "print_unknown_target"]


def print_pipeline_error(error: PipelineError, console: ConsoleProtocol) -> None:
    """Print a pipeline error with its hint, if any."""
    if isinstance(error, MarkerSuperseded):
        console.warning(describe(error))
    else:
        console.error(describe(error))
    hint = hint_for(error)
    if hint:
        console.print(f"hint: {hint}", Style.DIM)


def print_unknown_target(error: UnknownTarget, console: ConsoleProtocol) -> None:
    console.error(f"Unknown target: {error.name}")
    if error.available:
        console.print(f"Available: {', '.join(error.available)}", Style.DIM)


def pipeline_error_exit_code(error: PipelineError) -> int:
    """Get exit code for a pipeline error."""
    match error:
        case PrereqMissing() | SystemPackagesFailed() | CommitUnresolved():
            return int(ErrorCode.ENV_ERROR)
        case CompileFailed() | TestsFailed() | StripFailed():
            return int(ErrorCode.BUILD_ERROR)
        case OutputMissing() | PublishMismatch():
            return int(ErrorCode.IO_ERROR)
        case TagMoveFailed():
            return int(ErrorCode.NETWORK_ERROR)
        case PublishFailed() | DeployFailed():
            return int(ErrorCode.PUBLISH_ERROR)
        case MarkerSuperseded():
            # A newer commit owns the release; nothing is wrong with this run.
            return int(ErrorCode.OK)
