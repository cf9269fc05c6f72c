"""Build command - build one target without publishing."""

from __future__ import annotations

import typer

from nightly.cli.commands._helpers import require_target, resolve_commit
from nightly.cli.context import build_context
from nightly.core.result import Err, Ok
from nightly.output.errors import pipeline_error_exit_code, print_pipeline_error
from nightly.pipeline.builder import TargetBuilder
from nightly.pipeline.trigger import Trigger, TriggerKind


def build(
    target: str = typer.Argument(..., help="Target id (e.g. linux, windows, web)"),
    sha: str | None = typer.Option(None, "--sha", help="Commit to label the artifact with"),
    install_deps: bool = typer.Option(
        False, "--install-deps", help="Install the target's system packages first"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print commands without running"),
) -> None:
    """Build, test and package one target."""
    ctx = build_context()
    target_cfg = require_target(ctx, target)
    commit = resolve_commit(ctx, Trigger(kind=TriggerKind.MANUAL, sha=sha))

    builder = TargetBuilder(
        root=ctx.project.root,
        config=ctx.config,
        target=target_cfg,
        console=ctx.console,
        dry_run=dry_run,
        install_deps=install_deps,
    )
    match builder.build(commit):
        case Ok(artifact):
            ctx.console.success(str(artifact.path))
        case Err(error):
            print_pipeline_error(error, ctx.console)
            raise typer.Exit(code=pipeline_error_exit_code(error))
