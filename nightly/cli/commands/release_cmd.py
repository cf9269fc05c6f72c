"""Release commands - inspect the nightly release and publish artifacts."""

from __future__ import annotations

from pathlib import Path

import typer

from nightly.cli.commands._helpers import (
    exit_with_code,
    make_publisher,
    make_tag_manager,
    require_target,
    resolve_commit,
    resolve_trigger,
)
from nightly.cli.context import build_context
from nightly.core.errors import ErrorCode
from nightly.core.result import Err
from nightly.output.console import Style
from nightly.output.errors import pipeline_error_exit_code, print_pipeline_error
from nightly.pipeline.errors import PublishMismatch
from nightly.pipeline.model import Artifact, ArtifactKind
from nightly.pipeline.trigger import TriggerKind

release_app = typer.Typer(add_completion=False, no_args_is_help=True)


@release_app.command("show")
def show() -> None:
    """Show the release the marker identifies and its asset slots."""
    ctx = build_context()
    publisher = make_publisher(ctx)

    result = publisher.show()
    if isinstance(result, Err):
        print_pipeline_error(result.error, ctx.console)
        exit_with_code(pipeline_error_exit_code(result.error))

    record = result.value
    if record is None:
        ctx.console.print(f"release {publisher.tag}: not created yet", Style.WARNING)
        return

    flag = " (prerelease)" if record.prerelease else ""
    ctx.console.header(f"{record.tag}: {record.title}{flag}")
    if not record.assets:
        ctx.console.print("no assets", Style.DIM)
    for name, asset in sorted(record.assets.items()):
        if asset.commit_short is None:
            built = "unlabelled"
        else:
            built = f"{asset.target} built from {asset.commit_short}"
        ctx.console.print(f"{name:<24} {asset.size:>10}  {built}")
        if asset.digest:
            ctx.console.print(f"  {asset.digest}", Style.DIM)


def publish(
    target: str = typer.Argument(..., help="Target the file was built for"),
    path: Path = typer.Argument(..., help="Artifact file to attach"),
    branch: str | None = typer.Option(None, "--branch", help="Branch the commit is on"),
    sha: str | None = typer.Option(None, "--sha", help="Commit the file was built from"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without modifying"),
) -> None:
    """Publish a prebuilt native artifact into its release slot."""
    ctx = build_context()
    target_cfg = require_target(ctx, target)
    if not target_cfg.is_native:
        ctx.console.error(f"{target} is deployed, not published; use `nightly deploy`")
        exit_with_code(int(ErrorCode.USER_ERROR))

    resolved_path = path.expanduser()
    if not resolved_path.is_absolute():
        resolved_path = (Path.cwd() / resolved_path).resolve()
    if not resolved_path.is_file():
        error = PublishMismatch(path=resolved_path)
        print_pipeline_error(error, ctx.console)
        exit_with_code(pipeline_error_exit_code(error))
    # The file name is the release slot; anything else would clobber another target.
    if resolved_path.name != target_cfg.binary:
        ctx.console.error(
            f"{resolved_path.name} is not the {target_cfg.id} binary ({target_cfg.binary})"
        )
        ctx.console.print(f"hint: rename the file to {target_cfg.binary}", Style.DIM)
        exit_with_code(int(ErrorCode.USER_ERROR))

    trigger = resolve_trigger(ctx, kind=TriggerKind.MANUAL, branch=branch, sha=sha)
    commit = resolve_commit(ctx, trigger)
    artifact = Artifact(
        target=target_cfg.id,
        kind=ArtifactKind.BINARY,
        path=resolved_path,
        commit=commit,
    )
    if dry_run:
        ctx.console.print(
            f"would publish {artifact.slot} ({artifact.label}) to {ctx.config.release.marker}",
            Style.DIM,
        )
        return

    marker = make_tag_manager(ctx).ensure_current(commit, allow_move=target_cfg.moves_marker)
    if isinstance(marker, Err):
        print_pipeline_error(marker.error, ctx.console)
        exit_with_code(pipeline_error_exit_code(marker.error))

    published = make_publisher(ctx).publish(artifact)
    if isinstance(published, Err):
        print_pipeline_error(published.error, ctx.console)
        exit_with_code(pipeline_error_exit_code(published.error))

    outcome = published.value
    if outcome.uploaded:
        ctx.console.success(f"{outcome.slot} -> {ctx.config.release.marker}")
    else:
        ctx.console.success(f"{outcome.slot} already up to date")
