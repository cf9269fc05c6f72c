"""Marker commands - inspect and move the nightly tag."""

from __future__ import annotations

import typer

from nightly.cli.commands._helpers import (
    exit_with_code,
    make_tag_manager,
    resolve_commit,
    resolve_trigger,
)
from nightly.cli.context import build_context
from nightly.core.errors import ErrorCode
from nightly.core.result import Err
from nightly.output.console import Style
from nightly.output.errors import pipeline_error_exit_code, print_pipeline_error
from nightly.pipeline.model import MarkerState
from nightly.pipeline.trigger import TriggerKind

marker_app = typer.Typer(add_completion=False, no_args_is_help=True)


@marker_app.command("show")
def show(
    sha: str | None = typer.Option(None, "--sha", help="Compare against this commit"),
) -> None:
    """Show where the remote marker points."""
    ctx = build_context()
    tags = make_tag_manager(ctx)

    commit = sha
    if sha is not None:
        commit = resolve_commit(ctx, resolve_trigger(ctx, kind=None, branch=None, sha=sha)).sha

    status = tags.status(commit)
    if isinstance(status, Err):
        print_pipeline_error(status.error, ctx.console)
        exit_with_code(pipeline_error_exit_code(status.error))

    st = status.value
    if st.commit is None:
        ctx.console.print(f"{st.name}: not set", Style.WARNING)
        return
    ctx.console.print(f"{st.name} -> {st.commit}")
    if st.object_id and st.object_id != st.commit:
        ctx.console.print(f"tag object {st.object_id}", Style.DIM)
    if commit is not None:
        style = Style.SUCCESS if st.state == MarkerState.CURRENT else Style.WARNING
        ctx.console.print(f"{st.state} for {commit[:7]}", style)


@marker_app.command("move")
def move(
    sha: str | None = typer.Option(None, "--sha", help="Commit to point at (default: HEAD)"),
    branch: str | None = typer.Option(None, "--branch", help="Branch the commit is on"),
    force: bool = typer.Option(
        False, "--force", help="Move even when the trigger is not a trunk push"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without modifying"),
) -> None:
    """Make the marker point at a trunk commit (compare-and-swap)."""
    ctx = build_context()
    trigger = resolve_trigger(ctx, kind=TriggerKind.MANUAL, branch=branch, sha=sha)
    if not force and not trigger.on_branch(ctx.config.project.trunk):
        ctx.console.error(
            f"refusing to move {ctx.config.release.marker} from branch "
            f"{trigger.branch or '(none)'}; trunk is {ctx.config.project.trunk}"
        )
        ctx.console.print("hint: pass --force to move it anyway", Style.DIM)
        exit_with_code(int(ErrorCode.USER_ERROR))

    commit = resolve_commit(ctx, trigger)
    tags = make_tag_manager(ctx)
    if dry_run:
        ctx.console.print(f"would move {tags.name} -> {commit.sha}", Style.DIM)
        return

    moved = tags.ensure_current(commit)
    if isinstance(moved, Err):
        print_pipeline_error(moved.error, ctx.console)
        exit_with_code(pipeline_error_exit_code(moved.error))
    ctx.console.success(f"{tags.name} -> {commit.short}")
