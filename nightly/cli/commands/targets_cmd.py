"""Targets and plan commands - inspect the capability table and job plan."""

from __future__ import annotations

import typer

from nightly.cli.commands._helpers import exit_with_code, resolve_trigger
from nightly.cli.context import build_context
from nightly.core.errors import ErrorCode
from nightly.core.result import Err
from nightly.output.console import Style
from nightly.output.errors import print_unknown_target
from nightly.pipeline.builder import TargetBuilder
from nightly.pipeline.coordinator import plan_jobs
from nightly.pipeline.trigger import TriggerKind


def targets() -> None:
    """List the targets of the capability table."""
    ctx = build_context()
    for t in ctx.config.targets:
        output = t.binary if t.is_native else f"{t.dist_dir}/"
        here = "yes" if ctx.platform.can_build(t.host) else "no"
        ctx.console.print(
            f"{t.id:<10} {t.kind:<7} host={t.host:<8} runner={t.runner:<16} "
            f"output={output}  buildable here: {here}"
        )


def plan(
    selected: list[str] | None = typer.Argument(None, help="Targets (default: all)"),
    trigger: TriggerKind | None = typer.Option(
        None, "--trigger", help="Trigger kind (default: from CI environment)"
    ),
    branch: str | None = typer.Option(None, "--branch", help="Branch the trigger is on"),
) -> None:
    """Show what a run would do for a trigger, without running anything."""
    ctx = build_context()
    resolved = resolve_trigger(ctx, kind=trigger, branch=branch, sha=None)

    plans = plan_jobs(ctx.config, resolved, selected)
    if isinstance(plans, Err):
        print_unknown_target(plans.error, ctx.console)
        exit_with_code(int(ErrorCode.USER_ERROR))

    ctx.console.header(f"{resolved.kind} on {resolved.branch or '(no branch)'}")
    for job in plans.value:
        ctx.console.print(job.describe(), Style.BOLD)
        builder = TargetBuilder(
            root=ctx.project.root,
            config=ctx.config,
            target=job.target,
            console=ctx.console,
            dry_run=True,
        )
        for cmd in builder.planned_commands():
            ctx.console.print(f"  {' '.join(cmd)}", Style.DIM)
