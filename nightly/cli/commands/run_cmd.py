"""Job and run commands - execute the pipeline for one or all targets."""

from __future__ import annotations

import typer

from nightly.cli.commands._helpers import (
    exit_with_code,
    make_coordinator,
    print_report,
    report_exit_code,
    require_target,
    resolve_commit,
    resolve_trigger,
)
from nightly.cli.context import build_context
from nightly.core.errors import ErrorCode
from nightly.core.result import Err
from nightly.output.errors import print_unknown_target
from nightly.pipeline.coordinator import plan_jobs
from nightly.pipeline.trigger import TriggerKind

_TRIGGER_HELP = "Trigger kind (default: from CI environment, else manual)"


def job(
    target: str = typer.Argument(..., help="Target id (e.g. linux, windows, web)"),
    trigger: TriggerKind | None = typer.Option(None, "--trigger", help=_TRIGGER_HELP),
    branch: str | None = typer.Option(None, "--branch", help="Branch the trigger is on"),
    sha: str | None = typer.Option(None, "--sha", help="Commit to build (default: HEAD)"),
    install_deps: bool = typer.Option(
        False, "--install-deps", help="Install the target's system packages first"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without modifying"),
) -> None:
    """Run the full job of one target (one CI matrix entry)."""
    ctx = build_context()
    require_target(ctx, target)
    resolved = resolve_trigger(ctx, kind=trigger, branch=branch, sha=sha)
    commit = resolve_commit(ctx, resolved)

    plans = plan_jobs(ctx.config, resolved, [target])
    if isinstance(plans, Err):
        print_unknown_target(plans.error, ctx.console)
        exit_with_code(int(ErrorCode.USER_ERROR))

    coordinator = make_coordinator(
        ctx, dry_run=dry_run, install_deps=install_deps, filter_host=False
    )
    report = coordinator.run(plans.value, commit, resolved, parallel=False)
    print_report(report, ctx.console)
    exit_with_code(report_exit_code(report))


def run(
    selected: list[str] | None = typer.Argument(None, help="Targets (default: all)"),
    trigger: TriggerKind | None = typer.Option(None, "--trigger", help=_TRIGGER_HELP),
    branch: str | None = typer.Option(None, "--branch", help="Branch the trigger is on"),
    sha: str | None = typer.Option(None, "--sha", help="Commit to build (default: HEAD)"),
    install_deps: bool = typer.Option(
        False, "--install-deps", help="Install system packages before building"
    ),
    sequential: bool = typer.Option(
        False, "--sequential", help="Run target jobs one after another"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without modifying"),
) -> None:
    """Run every target job buildable on this host; failures stay isolated."""
    ctx = build_context()
    resolved = resolve_trigger(ctx, kind=trigger, branch=branch, sha=sha)

    plans = plan_jobs(ctx.config, resolved, selected)
    if isinstance(plans, Err):
        print_unknown_target(plans.error, ctx.console)
        exit_with_code(int(ErrorCode.USER_ERROR))

    commit = resolve_commit(ctx, resolved)
    coordinator = make_coordinator(
        ctx, dry_run=dry_run, install_deps=install_deps, filter_host=True
    )
    report = coordinator.run(plans.value, commit, resolved, parallel=not sequential)
    print_report(report, ctx.console)
    exit_with_code(report_exit_code(report))
