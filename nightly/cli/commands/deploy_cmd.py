"""Deploy command - push a built web bundle to static hosting."""

from __future__ import annotations

from pathlib import Path

import typer

from nightly.cli.commands._helpers import (
    exit_with_code,
    make_deployer,
    resolve_commit,
    resolve_trigger,
)
from nightly.cli.context import build_context
from nightly.core.errors import ErrorCode
from nightly.core.result import Err
from nightly.output.errors import pipeline_error_exit_code, print_pipeline_error
from nightly.pipeline.model import Artifact, ArtifactKind
from nightly.pipeline.trigger import TriggerKind


def deploy(
    dist: Path | None = typer.Option(
        None, "--dist", help="Bundle directory (default: the web target's dist dir)"
    ),
    trigger: TriggerKind | None = typer.Option(
        None, "--trigger", help="Trigger kind (default: from CI environment)"
    ),
    branch: str | None = typer.Option(None, "--branch", help="Branch the trigger is on"),
    sha: str | None = typer.Option(None, "--sha", help="Commit the bundle was built from"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without modifying"),
) -> None:
    """Replace the hosting branch with the web bundle (trunk pushes only)."""
    ctx = build_context()
    web = next((t for t in ctx.config.targets if t.is_web), None)
    if dist is not None:
        bundle = dist.expanduser()
    elif web is not None:
        bundle = ctx.project.root / web.dist_dir
    else:
        ctx.console.error("no web target configured; pass --dist")
        exit_with_code(int(ErrorCode.USER_ERROR))

    if not bundle.is_absolute():
        bundle = (Path.cwd() / bundle).resolve()

    resolved = resolve_trigger(ctx, kind=trigger, branch=branch, sha=sha)
    commit = resolve_commit(ctx, resolved)
    artifact = Artifact(
        target=web.id if web is not None else "web",
        kind=ArtifactKind.BUNDLE,
        path=bundle,
        commit=commit,
    )

    result = make_deployer(ctx, dry_run=dry_run).deploy(artifact, resolved)
    if isinstance(result, Err):
        print_pipeline_error(result.error, ctx.console)
        exit_with_code(pipeline_error_exit_code(result.error))

    outcome = result.value
    if outcome.deployed:
        ctx.console.success(f"{bundle} -> {ctx.config.deploy.branch}")
    else:
        ctx.console.info(outcome.reason)
