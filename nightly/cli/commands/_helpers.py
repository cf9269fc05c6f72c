"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from nightly.core.config import TargetConfig
from nightly.core.errors import ErrorCode
from nightly.core.result import Err
from nightly.git.repository import Repository, identity_from_env
from nightly.output.console import ConsoleProtocol, Style
from nightly.output.errors import (
    pipeline_error_exit_code,
    print_pipeline_error,
    print_unknown_target,
)
from nightly.pipeline.builder import TargetBuilder
from nightly.pipeline.coordinator import BuilderFactory, PipelineCoordinator
from nightly.pipeline.deploy import PagesDeployer
from nightly.pipeline.errors import CommitUnresolved, UnknownTarget
from nightly.pipeline.marker import GitMarkerStore, TagManager
from nightly.pipeline.model import JobStatus, PipelineReport, TrunkCommit, is_full_sha
from nightly.pipeline.release import GhReleaseClient, ReleasePublisher
from nightly.pipeline.retry import RetryPolicy
from nightly.pipeline.trigger import Trigger, TriggerKind, detect_trigger

if TYPE_CHECKING:
    from nightly.cli.context import CLIContext


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)


def require_target(ctx: CLIContext, target_id: str) -> TargetConfig:
    target = ctx.config.target(target_id)
    if target is None:
        print_unknown_target(
            UnknownTarget(name=target_id, available=ctx.config.target_ids), ctx.console
        )
        exit_with_code(int(ErrorCode.USER_ERROR))
    return target


def resolve_trigger(
    ctx: CLIContext,
    *,
    kind: TriggerKind | None,
    branch: str | None,
    sha: str | None,
) -> Trigger:
    """CI environment first, command line overrides second.

    Outside CI the branch defaults to the checked out branch.
    """
    detected = detect_trigger(ctx.env)
    resolved_branch = branch or detected.branch
    if resolved_branch is None and "GITHUB_EVENT_NAME" not in ctx.env:
        resolved_branch = Repository(ctx.project.root).current_branch()
    return Trigger(
        kind=kind or detected.kind,
        branch=resolved_branch,
        sha=sha or detected.sha,
    )


def resolve_commit(ctx: CLIContext, trigger: Trigger) -> TrunkCommit:
    """The commit this run builds; exits when it cannot be resolved."""
    sha = trigger.sha
    if sha is None or not is_full_sha(sha):
        resolved = Repository(ctx.project.root).head_sha(sha or "HEAD")
        if isinstance(resolved, Err):
            error = CommitUnresolved(message=f"cannot resolve commit: {resolved.error.message}")
            print_pipeline_error(error, ctx.console)
            exit_with_code(pipeline_error_exit_code(error))
        sha = resolved.value

    return TrunkCommit(sha=sha, branch=trigger.branch or ctx.config.project.trunk)


def retry_policy(ctx: CLIContext) -> RetryPolicy:
    return RetryPolicy.from_config(ctx.config.retry)


def make_tag_manager(ctx: CLIContext, console: ConsoleProtocol | None = None) -> TagManager:
    cfg = ctx.config
    store = GitMarkerStore(
        Repository(ctx.project.root),
        remote=cfg.project.remote,
        name=cfg.release.marker,
        identity=identity_from_env(ctx.env),
    )
    return TagManager(
        store,
        name=cfg.release.marker,
        policy=retry_policy(ctx),
        console=console or ctx.console,
    )


def make_publisher(ctx: CLIContext) -> ReleasePublisher:
    client = GhReleaseClient(root=ctx.project.root, repo=ctx.config.release.repo)
    return ReleasePublisher(
        client,
        config=ctx.config.release,
        policy=retry_policy(ctx),
        console=ctx.console,
    )


def make_deployer(ctx: CLIContext, *, dry_run: bool) -> PagesDeployer:
    return PagesDeployer(
        Repository(ctx.project.root),
        config=ctx.config,
        identity=identity_from_env(ctx.env),
        policy=retry_policy(ctx),
        console=ctx.console,
        dry_run=dry_run,
    )


def make_builder_factory(ctx: CLIContext, *, dry_run: bool, install_deps: bool) -> BuilderFactory:
    def factory(target: TargetConfig, console: ConsoleProtocol) -> TargetBuilder:
        return TargetBuilder(
            root=ctx.project.root,
            config=ctx.config,
            target=target,
            console=console,
            dry_run=dry_run,
            install_deps=install_deps,
        )

    return factory


def make_coordinator(
    ctx: CLIContext,
    *,
    dry_run: bool,
    install_deps: bool,
    filter_host: bool,
) -> PipelineCoordinator:
    return PipelineCoordinator(
        builder_factory=make_builder_factory(ctx, dry_run=dry_run, install_deps=install_deps),
        tag_manager=make_tag_manager(ctx),
        publisher=make_publisher(ctx),
        deployer=make_deployer(ctx, dry_run=dry_run),
        console=ctx.console,
        host=ctx.platform if filter_host else None,
        dry_run=dry_run,
    )


_STATUS_STYLES = {
    JobStatus.SUCCEEDED: Style.SUCCESS,
    JobStatus.FAILED: Style.ERROR,
    JobStatus.SKIPPED: Style.DIM,
    JobStatus.SUPERSEDED: Style.WARNING,
}


def print_report(report: PipelineReport, console: ConsoleProtocol) -> None:
    """One status line per target, then the first hint of each failure."""
    console.newline()
    if report.commit is not None:
        console.header(f"nightly @ {report.commit.short}")
    for job in report.jobs:
        detail = job.published or ("deployed" if job.deployed else "")
        if not detail and job.notes:
            detail = job.notes[0]
        line = f"{job.target:<10} {job.status}"
        if detail:
            line += f"  {detail}"
        console.print(line, _STATUS_STYLES[job.status])
    for job in report.failed:
        if job.error is not None:
            print_pipeline_error(job.error, console)


def report_exit_code(report: PipelineReport) -> int:
    """Exit code of the first failed job, or OK when no job failed."""
    for job in report.failed:
        if job.error is not None:
            return pipeline_error_exit_code(job.error)
        return int(ErrorCode.BUILD_ERROR)
    return int(ErrorCode.OK)
